"""
Blast: an immutable set of holes with their charges resolved once.

Charge resolution (fallbacks, deck splitting) happens on construction so
every evaluation works from the same read-only segments and evaluations can
run concurrently.
"""

import logging
import numpy as np
from typing import Iterable, List, Optional, Tuple

from .charge import DEFAULT_CHARGING, ChargeSegment, ChargingDefaults, Hole
from .output import FieldRaster

logger = logging.getLogger(__name__)


class Blast:
    """Collection of holes in a blast design."""

    def __init__(
        self,
        holes: Iterable[Hole],
        defaults: ChargingDefaults = DEFAULT_CHARGING
    ):
        """
        Resolve the charges of a set of holes.

        Args:
            holes: Holes in the design
            defaults: Fallbacks for missing charging data
        """
        self._holes: Tuple[Hole, ...] = tuple(holes)
        self.defaults = defaults

        seen = set()
        for hole in self._holes:
            if hole.hole_id in seen:
                logger.warning("Duplicate hole id %s", hole.hole_id)
            seen.add(hole.hole_id)

        columns = []
        decks = []
        for hole in self._holes:
            column = hole.resolve_column(defaults)
            if column is not None:
                columns.append(column)
            decks.extend(hole.resolve_decks(defaults))
        self._columns: Tuple[ChargeSegment, ...] = tuple(columns)
        self._decks: Tuple[ChargeSegment, ...] = tuple(decks)

        excluded = len(self._holes) - len(self._columns)
        if excluded:
            logger.info("%d of %d holes carry no usable charge", excluded, len(self._holes))

    @property
    def holes(self) -> Tuple[Hole, ...]:
        return self._holes

    @property
    def columns(self) -> Tuple[ChargeSegment, ...]:
        """One resolved charge column per contributing hole."""
        return self._columns

    @property
    def decks(self) -> Tuple[ChargeSegment, ...]:
        """One resolved segment per charged deck."""
        return self._decks

    def __len__(self):
        return len(self._holes)

    def __iter__(self):
        return iter(self._holes)

    def get_hole(self, hole_id: str) -> Hole:
        """
        Raises:
            KeyError: If no hole has this id
        """
        for hole in self._holes:
            if hole.hole_id == str(hole_id):
                return hole
        raise KeyError(f"No hole with id {hole_id!r}")

    def column_for(self, hole_id: str) -> Optional[ChargeSegment]:
        for column in self._columns:
            if column.hole_id == str(hole_id):
                return column
        return None

    def decks_for(self, hole_id: str) -> List[ChargeSegment]:
        return [d for d in self._decks if d.hole_id == str(hole_id)]

    @property
    def total_mass(self) -> float:
        return float(sum(c.mass for c in self._columns))

    def fire_time_span(self) -> Optional[Tuple[float, float]]:
        """Earliest and latest charge firing times (ms)."""
        times = [d.fire_time for d in self._decks]
        if not times:
            return None
        return min(times), max(times)

    def bounds(self) -> Tuple[float, float, float, float]:
        """
        Plan extent of all collars and toes.

        Returns:
            (min_x, min_y, max_x, max_y)

        Raises:
            ValueError: If the blast has no holes
        """
        if not self._holes:
            raise ValueError("Blast has no holes")
        pts = np.array([h.collar for h in self._holes] + [h.toe for h in self._holes])
        return (
            float(pts[:, 0].min()), float(pts[:, 1].min()),
            float(pts[:, 0].max()), float(pts[:, 1].max())
        )

    def mean_collar_elevation(self) -> float:
        if not self._holes:
            raise ValueError("Blast has no holes")
        return float(np.mean([h.collar[2] for h in self._holes]))

    def analysis_plane(
        self,
        padding: float = 50.0,
        resolution: float = 1.0,
        elevation: Optional[float] = None
    ) -> FieldRaster:
        """
        Horizontal grid covering the blast plus padding.

        Args:
            padding: Margin around the hole extent (m)
            resolution: Cell size (m)
            elevation: Plane Z; defaults to the mean collar elevation

        Returns:
            Empty FieldRaster ready for evaluation
        """
        min_x, min_y, max_x, max_y = self.bounds()
        if elevation is None:
            elevation = self.mean_collar_elevation()
        return FieldRaster(
            bounds=(min_x - padding, min_y - padding, max_x + padding, max_y + padding),
            resolution=resolution,
            elevation=elevation
        )
