"""
Geometry primitives shared by the charge model and the site-law evaluators.

All functions accept a single point of shape (3,) or a batch of observation
points of shape (n, 3) and return one value per point.
"""

import numpy as np
from typing import Tuple

# Squared segment length below which a segment is treated as a point
SEGMENT_EPSILON = 1e-4


def as_points(points) -> np.ndarray:
    """
    Coerce input to an (n, 3) float array of observation points.

    Args:
        points: A single XYZ triple or a sequence of them

    Returns:
        Array of shape (n, 3)
    """
    arr = np.asarray(points, dtype=float)
    if arr.ndim == 1:
        arr = arr.reshape(1, -1)
    if arr.ndim != 2 or arr.shape[1] != 3:
        raise ValueError(f"Expected points of shape (n, 3), got {arr.shape}")
    return arr


def unit_vector(vector) -> np.ndarray:
    """Normalise a vector; a zero vector is returned unchanged."""
    v = np.asarray(vector, dtype=float)
    norm = np.linalg.norm(v)
    if norm <= 0.0:
        return np.zeros_like(v)
    return v / norm


def distance(points, target) -> np.ndarray:
    """Euclidean distance from each point to a single target point."""
    pts = as_points(points)
    return np.linalg.norm(pts - np.asarray(target, dtype=float), axis=1)


def distance_to_segment(points, a, b) -> np.ndarray:
    """
    Nearest distance from each point to the closed segment [a, b].

    Degenerates to the distance to ``a`` when the segment has (numerically)
    zero length.

    Args:
        points: Observation point(s), shape (3,) or (n, 3)
        a: Segment start (3,)
        b: Segment end (3,)

    Returns:
        Array of shape (n,) with distances in the units of the inputs
    """
    pts = as_points(points)
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    ab = b - a
    len_sq = float(np.dot(ab, ab))
    if len_sq < SEGMENT_EPSILON:
        return np.linalg.norm(pts - a, axis=1)

    t = np.clip((pts - a) @ ab / len_sq, 0.0, 1.0)
    closest = a + t[:, None] * ab
    return np.linalg.norm(pts - closest, axis=1)


def angle_cos_sin(
    axis,
    to_observer,
    absolute: bool = False
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Cosine and sine of the angle between a charge axis and the direction to
    the observer.

    sin is derived from cos as sqrt(max(1 - cos^2, 0)) so that no inverse
    trig is evaluated near the poles.

    Args:
        axis: Unit axis of the hole or deck (3,)
        to_observer: Vector(s) from the charge element to the observer, (n, 3)
        absolute: Fold the angle into [0, 90] degrees (|cos|)

    Returns:
        Tuple of (cos_phi, sin_phi) arrays of shape (n,)
    """
    vecs = as_points(to_observer)
    lengths = np.linalg.norm(vecs, axis=1)
    safe = np.where(lengths > 0.0, lengths, 1.0)
    cos_phi = (vecs @ np.asarray(axis, dtype=float)) / safe
    # Observer sitting on the element: treat as broadside
    cos_phi = np.where(lengths > 0.0, np.clip(cos_phi, -1.0, 1.0), 0.0)
    if absolute:
        cos_phi = np.abs(cos_phi)
    sin_phi = np.sqrt(np.maximum(1.0 - cos_phi * cos_phi, 0.0))
    return cos_phi, sin_phi


def project_on_axis(points, origin, axis) -> np.ndarray:
    """Signed distance of each point along ``axis`` measured from ``origin``."""
    pts = as_points(points)
    return (pts - np.asarray(origin, dtype=float)) @ np.asarray(axis, dtype=float)
