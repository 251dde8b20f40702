"""
Main engine module tying the blast, the field models and the output grid
together.

Evaluation is two-phase: anything that needs the whole blast (charge
resolution, timing-window MIC sums) is computed from the immutable Blast,
then observation points are evaluated independently, optionally in parallel
chunks.
"""

import logging
import math
import time
import numpy as np
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, List, Optional, Sequence, Union

from .blast import Blast
from .charge import DEFAULT_CHARGING, ChargingDefaults, Element, Hole
from .detonation import (
    SIMULTANEOUS_TOLERANCE,
    BlockedElementPolicy,
    compute_em_values,
    detonation_span,
    simulate_detonation,
)
from .geometry import as_points
from .models import get_model
from .output import FieldRaster
from .sitelaw import SiteLawModel

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 4096


def _as_blast(blast) -> Blast:
    if isinstance(blast, Blast):
        return blast
    return Blast(blast)


def evaluate_field(
    model: Union[str, SiteLawModel],
    point,
    blast,
    params=None,
    components: bool = False
):
    """
    Evaluate a model at a single observation point.

    Args:
        model: Registry name or model instance
        point: XYZ of the observation point
        blast: Blast or sequence of holes
        params: Parameter record, mapping or None for defaults
        components: Return {"radial", "vertical"} instead of the scalar
            (Heelan models only)

    Returns:
        Field value, or a dict of velocity components
    """
    m = get_model(model)
    blast = _as_blast(blast)
    pts = as_points(point)
    if len(pts) != 1:
        raise ValueError(f"evaluate_field takes one point, got {len(pts)}")
    if components:
        if not hasattr(m, "evaluate_components"):
            raise ValueError(f"Model {m.name!r} has no velocity components")
        radial, vertical = m.evaluate_components(pts, blast, params)
        return {"radial": float(radial[0]), "vertical": float(vertical[0])}
    return float(m.evaluate(pts, blast, params)[0])


def evaluate_grid(
    model: Union[str, SiteLawModel],
    points,
    blast,
    params=None,
    workers: int = 1,
    chunk_size: int = DEFAULT_CHUNK_SIZE
) -> np.ndarray:
    """
    Evaluate a model over many observation points.

    With workers > 1 the points are split into chunks evaluated on a thread
    pool; results are identical to the single-threaded evaluation.

    Args:
        model: Registry name or model instance
        points: Observation points, shape (n, 3)
        blast: Blast or sequence of holes
        params: Parameter record, mapping or None for defaults
        workers: Number of worker threads
        chunk_size: Points per chunk

    Returns:
        Array of n field values
    """
    m = get_model(model)
    blast = _as_blast(blast)
    pts = as_points(points)
    resolved = m.resolve_params(params)
    n = len(pts)

    if workers <= 1 or n <= chunk_size:
        return m.evaluate(pts, blast, resolved)

    if chunk_size < 1:
        raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")

    result = np.zeros(n)
    starts = range(0, n, chunk_size)
    max_workers = min(workers, len(starts))
    logger.debug("Evaluating %s on %d points in %d chunks (%d workers)",
                 m.name, n, len(starts), max_workers)

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        future_to_start = {
            executor.submit(m.evaluate, pts[s:s + chunk_size], blast, resolved): s
            for s in starts
        }
        for future in as_completed(future_to_start):
            start = future_to_start[future]
            try:
                values = future.result()
            except Exception as exc:
                logger.error("Chunk at point %d generated an exception: %s", start, exc)
                raise
            result[start:start + len(values)] = values

    return result


class BlastVibrationEngine:
    """
    Blast vibration and damage field engine.

    Holds one blast design and answers field queries against it with any of
    the registered models.
    """

    def __init__(
        self,
        holes: Union[Blast, Sequence[Hole]],
        defaults: ChargingDefaults = DEFAULT_CHARGING
    ):
        """
        Initialize the engine.

        Args:
            holes: Blast or sequence of holes
            defaults: Fallbacks for missing charging data (ignored when a
                Blast is given)
        """
        self.blast = holes if isinstance(holes, Blast) else Blast(holes, defaults)

    def evaluate_field(self, model, point, params=None, components: bool = False):
        return evaluate_field(model, point, self.blast, params, components)

    def evaluate_grid(self, model, points, params=None, workers: int = 1) -> np.ndarray:
        return evaluate_grid(model, points, self.blast, params, workers)

    def simulate_detonation(
        self,
        hole_id: str,
        num_elements: int = 20,
        deck_index: Optional[int] = None
    ) -> List[Element]:
        """
        Detonation arrival times along a hole's charge.

        Args:
            hole_id: Hole to inspect
            num_elements: Elements per charge
            deck_index: Charged deck to inspect; None for the whole column

        Returns:
            Elements with det_time populated (empty if the hole has no charge)

        Raises:
            KeyError: If the hole does not exist
        """
        self.blast.get_hole(hole_id)
        if deck_index is None:
            segment = self.blast.column_for(hole_id)
        else:
            decks = self.blast.decks_for(hole_id)
            segment = decks[deck_index] if deck_index < len(decks) else None
        if segment is None:
            return []
        return simulate_detonation(segment, num_elements)

    @staticmethod
    def compute_em_values(
        elements: Sequence[Element],
        charge_exponent: float,
        tolerance: float = SIMULTANEOUS_TOLERANCE,
        blocked_policy: BlockedElementPolicy = BlockedElementPolicy.DETONATE_LAST
    ) -> List[Element]:
        return compute_em_values(elements, charge_exponent, tolerance, blocked_policy)

    def detonation_summary(
        self,
        hole_id: str,
        charge_exponent: float = 0.5,
        num_elements: int = 20
    ) -> Dict[str, object]:
        """Arrival time span and Em total of a hole's charge column."""
        elements = self.compute_em_values(
            self.simulate_detonation(hole_id, num_elements), charge_exponent
        )
        span = detonation_span(elements)
        return {
            "hole_id": str(hole_id),
            "elements": len(elements),
            "first_detonation_ms": span[0] if span else None,
            "last_detonation_ms": span[1] if span else None,
            "em_total": sum(e.em for e in elements),
        }

    def generate_output(
        self,
        model: Union[str, SiteLawModel],
        filename: Optional[str] = None,
        params=None,
        padding: float = 50.0,
        resolution: float = 1.0,
        elevation: Optional[float] = None,
        workers: int = 1,
        progress_callback: Optional[callable] = None,
        **save_options
    ) -> FieldRaster:
        """
        Evaluate a model over the blast's analysis plane.

        Args:
            model: Registry name or model instance
            filename: Output filename (without extension); None skips saving
            params: Parameter record, mapping or None for defaults
            padding: Margin around the hole extent (m)
            resolution: Cell size (m)
            elevation: Plane Z; defaults to the mean collar elevation
            workers: Number of worker threads
            progress_callback: Optional callback function(rows_done, total_rows)
            **save_options: Passed to FieldRaster.save_raster

        Returns:
            FieldRaster with evaluated values
        """
        m = get_model(model)
        resolved = m.resolve_params(params)
        raster = self.blast.analysis_plane(padding, resolution, elevation)
        points = raster.points()

        t0 = time.perf_counter()
        values = np.zeros(len(points))
        # Bands of rows so progress can be reported; at least one band per worker
        rows_per_band = max(1, min(DEFAULT_CHUNK_SIZE // raster.nx,
                                   math.ceil(raster.ny / max(workers, 1))))
        bands = [
            (row * raster.nx, min(raster.ny, row + rows_per_band) * raster.nx)
            for row in range(0, raster.ny, rows_per_band)
        ]
        rows_done = 0

        if workers <= 1 or len(bands) == 1:
            for lo, hi in bands:
                values[lo:hi] = m.evaluate(points[lo:hi], self.blast, resolved)
                rows_done += (hi - lo) // raster.nx
                if progress_callback:
                    progress_callback(rows_done, raster.ny)
        else:
            logger.debug("Evaluating %s in %d bands (%d workers)", m.name, len(bands), workers)
            with ThreadPoolExecutor(max_workers=min(workers, len(bands))) as executor:
                future_to_band = {
                    executor.submit(m.evaluate, points[lo:hi], self.blast, resolved): (lo, hi)
                    for lo, hi in bands
                }
                for future in as_completed(future_to_band):
                    lo, hi = future_to_band[future]
                    try:
                        values[lo:hi] = future.result()
                    except Exception as exc:
                        logger.error("Band at point %d generated an exception: %s", lo, exc)
                        raise
                    rows_done += (hi - lo) // raster.nx
                    if progress_callback:
                        progress_callback(rows_done, raster.ny)

        raster.set_values(values, model_name=m.display_name, unit=m.unit)
        logger.info("Evaluated %s on %d x %d grid in %.2f s",
                    m.name, raster.nx, raster.ny, time.perf_counter() - t0)

        if filename:
            raster.save_raster(filename, **save_options)
        return raster

    def get_statistics(self) -> dict:
        """
        Get blast statistics.

        Returns:
            Dictionary with statistics
        """
        span = self.blast.fire_time_span()
        return {
            "total_holes": len(self.blast),
            "charged_holes": len(self.blast.columns),
            "charged_decks": len(self.blast.decks),
            "total_mass_kg": self.blast.total_mass,
            "first_fire_time_ms": span[0] if span else None,
            "last_fire_time_ms": span[1] if span else None,
        }
