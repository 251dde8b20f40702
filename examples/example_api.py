"""
Example script demonstrating the Python API.
"""

from blast_sim import (
    BlastVibrationEngine,
    ChargeColumn,
    Deck,
    Hole,
    Primer,
    Product,
    ScaledHeelanParameters,
)


def build_holes():
    """Two rows of five vertical holes, 25 ms between holes."""
    anfo = Product("ANFO", density=0.85, vod=4200.0)
    emulsion = Product("Emulsion", density=1.2, vod=5500.0)
    holes = []
    for row in range(2):
        for col in range(5):
            x, y = col * 4.0, row * 3.5
            fire_time = (row * 5 + col) * 25.0
            if row == 0:
                # Single column, base primed
                holes.append(Hole(
                    hole_id=f"A{col + 1}",
                    collar=(x, y, 100.0),
                    toe=(x, y, 88.0),
                    diameter=115.0,
                    fire_time=fire_time,
                    charge=ChargeColumn(
                        top_depth=3.5,
                        base_depth=12.0,
                        total_mass=75.0,
                        vod=5000.0,
                        primers=[Primer(depth_along_column=8.0, fire_time=fire_time)]
                    )
                ))
            else:
                # Two decks separated by an air gap
                holes.append(Hole(
                    hole_id=f"B{col + 1}",
                    collar=(x, y, 100.0),
                    toe=(x, y, 88.0),
                    diameter=115.0,
                    fire_time=fire_time,
                    decks=[
                        Deck(3.5, 6.5, product=anfo, fire_time=fire_time + 17.0),
                        Deck(8.0, 12.0, product=emulsion, fire_time=fire_time),
                    ]
                ))
    return holes


def main():
    """Run example evaluation."""
    print("Building blast design...")
    engine = BlastVibrationEngine(build_holes())

    print("\nBlast statistics:")
    for key, value in engine.get_statistics().items():
        print(f"  {key}: {value}")

    print("\nPPV at a monitoring point 60 m east of the pattern:")
    ppv = engine.evaluate_field("ppv", (76.0, 1.75, 100.0), {"time_window": 8.0})
    print(f"  {ppv:.1f} mm/s (8 ms MIC window)")

    print("\nDetonation of hole A1:")
    summary = engine.detonation_summary("A1", charge_exponent=0.5)
    for key, value in summary.items():
        print(f"  {key}: {value}")

    print("\nGenerating scaled Heelan map...")
    raster = engine.generate_output(
        "scaled_heelan",
        filename="example_api_output",
        params=ScaledHeelanParameters(K=1140.0, B=1.6),
        padding=30.0,
        resolution=1.0,
        workers=4
    )

    print("\nGrid statistics:")
    for key, value in raster.get_grid_statistics(threshold=100.0).items():
        print(f"  {key}: {value}")

    print("\nDone! Check example_api_output.png and example_api_output.pgw")


if __name__ == "__main__":
    main()
