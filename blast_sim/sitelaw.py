"""
Common interface of the site-law evaluators.

Every evaluator maps an (n, 3) array of observation points, a blast and a
parameter record to n field values.
"""

import numpy as np
from abc import ABC, abstractmethod
from typing import Tuple

from .geometry import as_points, distance
from .params import SiteLawParameters


def finite_or_zero(values) -> np.ndarray:
    """Replace NaN/inf by 0 so a failed evaluation never reaches the caller."""
    values = np.asarray(values, dtype=float)
    return np.where(np.isfinite(values), values, 0.0)


def cull(points: np.ndarray, anchor, max_distance: float) -> Tuple[np.ndarray, np.ndarray]:
    """
    Cheap pre-check before the per-element loop.

    Returns:
        Tuple of (distances to anchor, mask of points within max_distance)
    """
    dist = distance(points, anchor)
    return dist, dist <= max_distance


def is_fired(segment, display_time) -> bool:
    """Whether a charge has fired by the display time (None shows everything)."""
    return display_time is None or segment.fire_time <= display_time


class SiteLawModel(ABC):
    """Base class for field evaluators."""

    name = ""
    display_name = ""
    unit = ""
    parameters_class = SiteLawParameters

    def default_params(self) -> SiteLawParameters:
        return self.parameters_class()

    def resolve_params(self, params=None) -> SiteLawParameters:
        """Accept None (defaults), a mapping, or a parameter record."""
        if params is None:
            return self.default_params()
        if isinstance(params, self.parameters_class):
            return params
        if isinstance(params, dict):
            return self.parameters_class.from_dict(params)
        raise TypeError(
            f"{self.name}: expected {self.parameters_class.__name__} or dict, "
            f"got {type(params).__name__}"
        )

    def evaluate(self, points, blast, params=None) -> np.ndarray:
        """
        Evaluate the field at observation points.

        Args:
            points: Observation point(s), shape (3,) or (n, 3)
            blast: Blast providing resolved charge segments
            params: Parameter record, mapping or None for defaults

        Returns:
            Array of shape (n,); 0 where nothing contributes
        """
        pts = as_points(points)
        resolved = self.resolve_params(params)
        if len(pts) == 0:
            return np.zeros(0)
        with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
            values = self._evaluate(pts, blast, resolved)
        return finite_or_zero(values)

    @abstractmethod
    def _evaluate(self, points: np.ndarray, blast, params) -> np.ndarray:
        """Model-specific evaluation on a validated (n, 3) array."""

    def __repr__(self):
        return f"{type(self).__name__}(name={self.name!r})"
