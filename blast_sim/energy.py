"""
Charge-geometry fields: scaled depth of burial, specific explosive energy,
borehole wall pressure and volumetric powder factor.
"""

import math
import numpy as np

from .geometry import distance_to_segment
from .params import PowderFactorParameters, PressureParameters, SDoBParameters, SEEParameters
from .sitelaw import SiteLawModel, cull

# Contributing charge length in hole diameters (Chiappetta & Treleven)
CONTRIBUTING_DIAMETERS_LARGE = 10
CONTRIBUTING_DIAMETERS_SMALL = 8
LARGE_HOLE_DIAMETER = 100.0  # mm

# Lower bound of the displayed powder factor before taking log10
MIN_DISPLAY_POWDER_FACTOR = 0.001


def contributing_mass(segment) -> float:
    """
    Mass of the upper part of the charge that governs cratering.

    The contributing length is m hole diameters (m = 10 for holes of at least
    100 mm, otherwise 8), capped at the charge length.
    """
    diameter_m = segment.diameter / 1000.0
    m = (CONTRIBUTING_DIAMETERS_LARGE if segment.diameter >= LARGE_HOLE_DIAMETER
         else CONTRIBUTING_DIAMETERS_SMALL)
    length = min(segment.length, m * diameter_m)
    return segment.linear_density * length


def specific_explosive_energy(segment) -> float:
    """Detonation energy density 0.5 * rho_e * VOD^2 in GJ/m^3."""
    return 0.5 * segment.density * segment.vod * segment.vod / 1e9


def borehole_pressure(segment) -> float:
    """Borehole wall pressure rho_e * VOD^2 / 8 in Pa."""
    return segment.density * segment.vod * segment.vod / 8.0


def _idw_blend(points, segments, value_fn, params) -> np.ndarray:
    """
    Inverse-distance-weighted blend of per-hole values, weighted by
    1 / max(d^2, cutoff^2) with d the distance to the collar.
    """
    weighted = np.zeros(len(points))
    total = np.zeros(len(points))
    floor = params.cutoff_distance ** 2
    for segment in segments:
        collar_dist, mask = cull(points, segment.collar_point, params.max_display_distance)
        if not mask.any():
            continue
        weight = 1.0 / np.maximum(collar_dist[mask] ** 2, floor)
        weighted[mask] += weight * value_fn(points[mask], segment)
        total[mask] += weight
    result = np.zeros(len(points))
    covered = total > 0
    result[covered] = weighted[covered] / total[covered]
    return result


class SDoBModel(SiteLawModel):
    """
    Scaled Depth of Burial, SDoB = D / Wt^(1/3).

    D is the distance from the observation point to the charge and Wt the
    contributing charge mass. Lower values indicate higher flyrock risk.
    """

    name = "sdob"
    display_name = "Scaled Depth of Burial (SDoB)"
    unit = "m/kg^(1/3)"
    parameters_class = SDoBParameters

    @staticmethod
    def hole_sdob(points, segment) -> np.ndarray:
        d = distance_to_segment(points, segment.top, segment.base)
        return d / contributing_mass(segment) ** (1.0 / 3.0)

    def _evaluate(self, points, blast, params):
        return _idw_blend(points, blast.columns, self.hole_sdob, params)


class SEEModel(SiteLawModel):
    """Specific explosive energy of nearby holes, IDW blended by collar distance."""

    name = "see"
    display_name = "Specific Explosive Energy (SEE)"
    unit = "GJ/m^3"
    parameters_class = SEEParameters

    def _evaluate(self, points, blast, params):
        return _idw_blend(
            points, blast.columns,
            lambda pts, segment: specific_explosive_energy(segment),
            params
        )


class PressureModel(SiteLawModel):
    """
    Borehole wall pressure attenuated with distance from the charge:

        P(R) = Pb * (a / R)^alpha

    with a the borehole radius and R the distance to the charge segment.
    """

    name = "pressure"
    display_name = "Borehole Pressure"
    unit = "MPa"
    parameters_class = PressureParameters

    def _evaluate(self, points, blast, params):
        peak = np.zeros(len(points))
        for segment in blast.columns:
            _, mask = cull(points, segment.collar_point, params.max_display_distance)
            if not mask.any():
                continue
            r = np.maximum(
                distance_to_segment(points[mask], segment.top, segment.base),
                params.cutoff_distance
            )
            pb_mpa = borehole_pressure(segment) / 1e6
            pressure = pb_mpa * (segment.radius / r) ** params.attenuation_exponent
            peak[mask] = np.maximum(peak[mask], pressure)
        return peak


class PowderFactorModel(SiteLawModel):
    """
    Volumetric powder factor: deck mass spread over the sphere reaching the
    observation point, mass / (4/3 pi R^3).
    """

    name = "powder_factor_vol"
    display_name = "Volumetric Powder Factor"
    unit = "kg/m^3"
    parameters_class = PowderFactorParameters

    def _evaluate(self, points, blast, params):
        peak = np.zeros(len(points))
        for segment in blast.decks:
            _, mask = cull(points, segment.midpoint, params.max_display_distance)
            if not mask.any():
                continue
            r = np.maximum(
                distance_to_segment(points[mask], segment.top, segment.base),
                params.cutoff_distance
            )
            pf = segment.mass / (4.0 / 3.0 * math.pi * r ** 3)
            peak[mask] = np.maximum(peak[mask], pf)
        return peak

    @staticmethod
    def to_display(values) -> np.ndarray:
        """log10 scale for colouring; values are floored at 0.001 kg/m^3."""
        return np.log10(np.maximum(np.asarray(values, dtype=float),
                                   MIN_DISPLAY_POWDER_FACTOR))
