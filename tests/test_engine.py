"""
Tests for the engine, output grid, configuration and CLI.
"""

import json
import math
import numpy as np
import pytest
from blast_sim import (
    Blast,
    BlastVibrationEngine,
    ChargeColumn,
    Deck,
    FieldRaster,
    Hole,
    PPVParameters,
    Primer,
    Product,
    evaluate_field,
    evaluate_grid,
)
from blast_sim import engine as engine_module
from blast_sim.cli import main
from blast_sim.config import blast_from_config, hole_from_dict, params_from_config


def make_holes():
    """Small pattern: three columns and one decked hole."""
    holes = [
        Hole(
            hole_id=f"H{i}",
            collar=(i * 4.0, 0.0, 100.0),
            toe=(i * 4.0, 0.0, 90.0),
            fire_time=i * 25.0,
            charge=ChargeColumn(3.0, 10.0, total_mass=50.0, vod=5000.0,
                                primers=[Primer(7.0, i * 25.0)])
        )
        for i in range(3)
    ]
    holes.append(Hole(
        hole_id="D1",
        collar=(0.0, 5.0, 100.0),
        toe=(0.0, 5.0, 90.0),
        fire_time=75.0,
        decks=[
            Deck(3.0, 5.0, product=Product("ANFO", 0.85, 4200.0), fire_time=92.0),
            Deck(7.0, 10.0, product=Product("Emulsion", 1.2, 5500.0)),
        ]
    ))
    return holes


def grid_points():
    xs, ys = np.meshgrid(np.linspace(-20, 30, 9), np.linspace(-20, 25, 7))
    return np.column_stack([xs.ravel(), ys.ravel(), np.full(xs.size, 100.0)])


def test_evaluate_field_matches_grid():
    """Point queries agree with batched evaluation."""
    blast = Blast(make_holes())
    points = grid_points()[:10]
    for name in ("ppv", "scaled_heelan", "sdob"):
        grid = evaluate_grid(name, points, blast)
        single = [evaluate_field(name, p, blast) for p in points]
        assert np.allclose(grid, single)


def test_evaluate_field_accepts_holes():
    """A plain sequence of holes is wrapped in a Blast."""
    holes = make_holes()
    assert evaluate_field("ppv", (20.0, 0.0, 100.0), holes) == pytest.approx(
        evaluate_field("ppv", (20.0, 0.0, 100.0), Blast(holes))
    )
    with pytest.raises(ValueError):
        evaluate_field("ppv", [[0, 0, 0], [1, 1, 1]], holes)


def test_evaluate_field_components():
    """Heelan models report radial and vertical components."""
    blast = Blast(make_holes())
    result = evaluate_field("heelan_original", (20.0, 3.0, 95.0), blast, components=True)
    total = evaluate_field("heelan_original", (20.0, 3.0, 95.0), blast)
    assert math.hypot(result["radial"], result["vertical"]) == pytest.approx(total)

    with pytest.raises(ValueError):
        evaluate_field("ppv", (20.0, 3.0, 95.0), blast, components=True)


def test_parallel_grid_matches_serial():
    """Chunked evaluation on worker threads gives the same field."""
    blast = Blast(make_holes())
    points = grid_points()
    for name in ("ppv_deck", "heelan_original", "nonlinear_damage"):
        serial = evaluate_grid(name, points, blast)
        parallel = evaluate_grid(name, points, blast, workers=4, chunk_size=7)
        assert np.allclose(serial, parallel)


def test_engine_detonation_diagnostics():
    """Arrival times and Em can be inspected per hole."""
    engine = BlastVibrationEngine(make_holes())
    elements = engine.simulate_detonation("H1", num_elements=10)
    assert len(elements) == 10
    assert all(math.isfinite(e.det_time) for e in elements)

    em = engine.compute_em_values(elements, 0.5)
    assert sum(e.em for e in em) == pytest.approx(50.0 ** 0.5)

    summary = engine.detonation_summary("H1", charge_exponent=0.5)
    assert summary["em_total"] == pytest.approx(50.0 ** 0.5)
    assert summary["first_detonation_ms"] >= 25.0

    upper_deck = engine.simulate_detonation("D1", num_elements=4, deck_index=0)
    assert len(upper_deck) == 4
    assert engine.simulate_detonation("D1", deck_index=5) == []

    with pytest.raises(KeyError):
        engine.simulate_detonation("missing")


def test_engine_statistics():
    """Blast summary."""
    engine = BlastVibrationEngine(make_holes())
    stats = engine.get_statistics()
    assert stats["total_holes"] == 4
    assert stats["charged_holes"] == 4
    assert stats["charged_decks"] == 5
    assert stats["first_fire_time_ms"] == 0.0
    assert stats["last_fire_time_ms"] == 92.0
    assert stats["total_mass_kg"] > 150.0


def test_analysis_plane():
    """The default grid covers the blast plus padding at collar level."""
    blast = Blast(make_holes())
    raster = blast.analysis_plane(padding=5.0, resolution=1.0)
    assert (raster.min_x, raster.min_y, raster.max_x, raster.max_y) == (-5.0, -5.0, 13.0, 10.0)
    assert raster.elevation == pytest.approx(100.0)
    assert raster.nx == 19
    assert raster.ny == 16
    assert raster.points().shape == (19 * 16, 3)

    with pytest.raises(ValueError):
        Blast([]).bounds()


def test_generate_output(tmp_path):
    """Grid evaluation writes PNG and world file and reports progress."""
    engine = BlastVibrationEngine(make_holes())
    progress = []
    prefix = str(tmp_path / "ppv_map")
    raster = engine.generate_output(
        "ppv",
        filename=prefix,
        params=PPVParameters(time_window=8.0),
        padding=10.0,
        resolution=2.0,
        workers=2,
        progress_callback=lambda done, total: progress.append((done, total))
    )
    assert (tmp_path / "ppv_map.png").exists()
    assert (tmp_path / "ppv_map.pgw").exists()
    assert progress[-1] == (raster.ny, raster.ny)

    expected = evaluate_grid("ppv", raster.points(), engine.blast, {"time_window": 8.0})
    assert np.allclose(raster.grid.ravel(), expected)

    stats = raster.get_grid_statistics(threshold=100.0)
    assert stats["max_value"] > 100.0
    assert stats["covered_cells"] == stats["total_cells"]
    assert stats["area_above_threshold_m2"] == stats["cells_above_threshold"] * 4.0


def test_generate_output_uses_thread_pool(monkeypatch):
    """Several workers evaluate row bands on one shared thread pool."""
    pools = []

    class RecordingExecutor(engine_module.ThreadPoolExecutor):
        def __init__(self, max_workers=None, **kwargs):
            super().__init__(max_workers=max_workers, **kwargs)
            pools.append(max_workers)

    monkeypatch.setattr(engine_module, "ThreadPoolExecutor", RecordingExecutor)
    engine = BlastVibrationEngine(make_holes())
    progress = []
    parallel = engine.generate_output(
        "ppv", padding=10.0, resolution=2.0, workers=4,
        progress_callback=lambda done, total: progress.append(done)
    )
    assert pools == [4]
    assert progress[-1] == parallel.ny

    serial = engine.generate_output("ppv", padding=10.0, resolution=2.0)
    assert pools == [4]
    assert np.allclose(parallel.grid, serial.grid)


def test_save_raster_leaves_backend_alone(tmp_path, monkeypatch):
    """Saving a map does not switch the matplotlib backend."""
    pytest.importorskip("matplotlib.pyplot")
    import matplotlib
    calls = []
    monkeypatch.setattr(matplotlib, "use", lambda *args, **kwargs: calls.append(args))

    raster = FieldRaster((0.0, 0.0, 4.0, 4.0), resolution=1.0)
    raster.set_values(np.arange(25, dtype=float), model_name="test", unit="mm/s")
    raster.save_raster(str(tmp_path / "map"))
    assert (tmp_path / "map.png").exists()
    assert calls == []


def test_world_file(tmp_path):
    """World file carries the cell size and upper-left cell centre."""
    raster = FieldRaster((0.0, 0.0, 10.0, 20.0), resolution=2.0)
    raster._save_world_file(str(tmp_path / "grid"))
    lines = (tmp_path / "grid.pgw").read_text().split()
    assert [float(v) for v in lines] == [2.0, 0.0, 0.0, -2.0, 0.0, 20.0]


def test_field_raster_values():
    """Values are stored row-major and sanitised."""
    raster = FieldRaster((0.0, 0.0, 2.0, 1.0), resolution=1.0)
    assert raster.points()[:, :2].tolist() == [
        [0, 0], [1, 0], [2, 0], [0, 1], [1, 1], [2, 1]
    ]
    raster.set_values([1, 2, np.nan, 0, 5, np.inf], model_name="test", unit="mm/s")
    assert raster.grid.tolist() == [[1, 2, 0], [0, 5, 0]]

    stats = raster.get_grid_statistics()
    assert stats["max_value"] == 5.0
    assert stats["covered_cells"] == 3

    with pytest.raises(ValueError):
        raster.set_values([1, 2, 3])
    with pytest.raises(ValueError):
        FieldRaster((0.0, 0.0, 1.0, 1.0), resolution=0.0)


def config_dict(output):
    return {
        "model": "ppv",
        "params": {"K": 1140, "B": 1.6, "time_window": 8.0},
        "holes": [
            {
                "id": "H1",
                "collar": [0, 0, 100],
                "toe": [0, 0, 90],
                "charge": {"top_depth": 3, "base_depth": 10, "total_mass": 50,
                           "vod": 5000, "primers": [{"depth_along_column": 7}]}
            },
            {
                "id": "D1",
                "collar": [4, 0, 100],
                "toe": [4, 0, 90],
                "fire_time": 25,
                "decks": [
                    {"top_depth": 5, "base_depth": 3,
                     "product": {"name": "ANFO", "density": 0.85, "vod": 4200}},
                    {"top_depth": 7, "base_depth": 10, "mass": 30,
                     "deck_type": "COUPLED", "fire_time": 42}
                ]
            },
            {"id": "broken", "collar": [8, 0, 100]}
        ],
        "grid": {"padding": 10, "resolution": 2.0},
        "output": output
    }


def test_blast_from_config():
    """Holes are built from config entries; malformed entries are skipped."""
    blast = blast_from_config(config_dict("unused"))
    assert [h.hole_id for h in blast.holes] == ["H1", "D1"]

    decked = blast.get_hole("D1")
    assert decked.decks[0].top_depth == 3
    assert decked.decks[0].base_depth == 5
    assert len(blast.decks_for("D1")) == 2
    assert blast.decks_for("D1")[1].fire_time == 42

    params = params_from_config(config_dict("unused"), "ppv")
    assert params.time_window == 8.0
    with pytest.raises(ValueError):
        params_from_config({"params": {"bogus": 1}}, "ppv")


def test_hole_from_dict_errors():
    """Entries without geometry or with unknown fields are rejected."""
    with pytest.raises(ValueError):
        hole_from_dict({"id": "X", "collar": [0, 0, 0]})
    with pytest.raises(ValueError):
        hole_from_dict({"id": "X", "collar": [0, 0, 0], "toe": [0, 0, -5], "colour": "red"})


def test_bad_charging_defaults_rejected(tmp_path, capsys):
    """Unknown charging defaults are a configuration error, not a crash."""
    config = config_dict(str(tmp_path / "unused"))
    config["defaults"] = {"stemming_fraction": 0.3, "primer_count": 2}
    with pytest.raises(ValueError):
        blast_from_config(config)

    config_file = tmp_path / "blast.json"
    config_file.write_text(json.dumps(config))
    with pytest.raises(SystemExit):
        main(["-c", str(config_file), "--log", "WARNING"])
    assert "Invalid charging defaults" in capsys.readouterr().out


def test_cli_run(tmp_path, capsys):
    """The CLI evaluates the configured model and writes output files."""
    config_file = tmp_path / "blast.json"
    output = tmp_path / "cli_map"
    config_file.write_text(json.dumps(config_dict(str(output))))

    main(["-c", str(config_file), "--threshold", "50", "--log", "WARNING"])

    captured = capsys.readouterr().out
    assert "Blast Vibration Engine" in captured
    assert "Field statistics" in captured
    assert (tmp_path / "cli_map.png").exists()
    assert (tmp_path / "cli_map.pgw").exists()


def test_cli_options_override_config(tmp_path, capsys):
    """Command-line output and grid options win over config values."""
    config_file = tmp_path / "blast.json"
    config_file.write_text(json.dumps(config_dict(str(tmp_path / "from_config"))))

    main(["-c", str(config_file), "-o", str(tmp_path / "from_cli"),
          "--resolution", "4", "--padding", "6", "--log", "WARNING"])

    captured = capsys.readouterr().out
    assert "Grid: 4.0 m cells, 6.0 m padding" in captured
    assert (tmp_path / "from_cli.png").exists()
    assert not (tmp_path / "from_config.png").exists()


def test_cli_list_models(capsys):
    """Available models are listed."""
    main(["--list-models"])
    captured = capsys.readouterr().out
    assert "scaled_heelan" in captured
    assert "powder_factor_vol" in captured


def test_cli_requires_config():
    """Running without a configuration exits with an error."""
    with pytest.raises(SystemExit):
        main([])


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
