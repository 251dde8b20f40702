"""
Command-line interface for the blast vibration engine.
"""

import argparse
import logging
import sys

from .config import blast_from_config, load_config, params_from_config
from .engine import BlastVibrationEngine
from .models import available_models


def progress_callback(rows_done: int, total_rows: int):
    """Print grid progress."""
    print(f"Rows evaluated: {rows_done}/{total_rows}")


def main(argv=None):
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(
        description="Blast vibration, damage and SDoB field maps"
    )

    parser.add_argument(
        "-c", "--config",
        type=str,
        help="Configuration file (JSON) with holes, model and parameters"
    )

    parser.add_argument(
        "-m", "--model",
        type=str,
        default=None,
        help="Field model (default: ppv, see --list-models)"
    )

    parser.add_argument(
        "--list-models",
        action="store_true",
        help="List available models and exit"
    )

    parser.add_argument(
        "--padding",
        type=float,
        default=None,
        help="Grid margin around the blast in metres (default: config value, else 50)"
    )

    parser.add_argument(
        "--resolution",
        type=float,
        default=None,
        help="Grid cell size in metres (default: config value, else 1.0)"
    )

    parser.add_argument(
        "--elevation",
        type=float,
        default=None,
        help="Analysis plane Z (default: mean collar elevation)"
    )

    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Worker threads for grid evaluation (default: 1)"
    )

    parser.add_argument(
        "--threshold",
        type=float,
        default=None,
        help="Report the area at or above this value"
    )

    parser.add_argument(
        "-o", "--output",
        type=str,
        default=None,
        help="Output filename prefix (default: config value, else blast_output)"
    )

    parser.add_argument(
        "--log",
        type=str,
        default="INFO",
        help="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(message)s"
    )

    if args.list_models:
        for info in available_models():
            unit = f" [{info['unit']}]" if info["unit"] else ""
            print(f"{info['name']:<20} {info['display_name']}{unit}")
        return

    if not args.config:
        print("Error: --config is required")
        sys.exit(1)

    config = load_config(args.config)
    grid = config.get("grid", {})
    model_name = args.model or config.get("model", "ppv")
    # Command-line options take precedence over the config file
    padding = args.padding if args.padding is not None else grid.get("padding", 50.0)
    resolution = args.resolution if args.resolution is not None else grid.get("resolution", 1.0)
    elevation = args.elevation if args.elevation is not None else grid.get("elevation")
    output = args.output if args.output is not None else config.get("output", "blast_output")

    try:
        params = params_from_config(config, model_name)
        blast = blast_from_config(config)
    except ValueError as exc:
        print(f"Error: {exc}")
        sys.exit(1)

    if not blast.columns:
        print("Error: no hole in the configuration carries a usable charge")
        sys.exit(1)

    engine = BlastVibrationEngine(blast)
    stats = engine.get_statistics()

    print("=" * 60)
    print("Blast Vibration Engine")
    print("=" * 60)
    print(f"Model: {model_name}")
    print(f"Holes: {stats['total_holes']} ({stats['charged_holes']} charged, "
          f"{stats['charged_decks']} decks)")
    print(f"Total explosive mass: {stats['total_mass_kg']:.1f} kg")
    if stats["first_fire_time_ms"] is not None:
        print(f"Firing: {stats['first_fire_time_ms']:.1f} - "
              f"{stats['last_fire_time_ms']:.1f} ms")
    print(f"Grid: {resolution} m cells, {padding} m padding")
    print("=" * 60)

    print("\nEvaluating field...")
    raster = engine.generate_output(
        model_name,
        filename=output,
        params=params,
        padding=padding,
        resolution=resolution,
        elevation=elevation,
        workers=args.workers,
        progress_callback=progress_callback
    )

    grid_stats = raster.get_grid_statistics(threshold=args.threshold)
    unit = grid_stats["unit"] or ""
    print(f"\nOutput: {output}.png, {output}.pgw")
    print("\nField statistics:")
    print(f"  Maximum value: {grid_stats['max_value']:.3f} {unit}")
    print(f"  Mean of covered cells: {grid_stats['mean_covered_value']:.3f} {unit}")
    print(f"  Covered area: {grid_stats['covered_area_m2']:.0f} m²")
    print(f"  Covered cells: {grid_stats['covered_cells']} / {grid_stats['total_cells']}")
    if args.threshold is not None:
        print(f"  Area >= {args.threshold}: {grid_stats['area_above_threshold_m2']:.0f} m²")


if __name__ == "__main__":
    main()
