"""
Scaled-distance Peak Particle Velocity.

PPV = K * (R / Q^A)^(-B)

with R the distance from the charge to the observation point and Q the
charge mass, or the Maximum Instantaneous Charge of its firing window when
a timing window is configured.
"""

import numpy as np

from .params import PPVDeckParameters, PPVParameters
from .sitelaw import SiteLawModel, cull, is_fired
from .geometry import distance
from .timing import instantaneous_charges


def scaled_distance_ppv(dist, charge: float, params: PPVParameters) -> np.ndarray:
    """
    Site-law PPV for distances to a charge of the given mass.

    Args:
        dist: Distance(s) to the charge (m), floored at the cutoff distance
        charge: Charge mass or MIC (kg)
        params: Site law constants

    Returns:
        PPV in mm/s
    """
    r = np.maximum(np.asarray(dist, dtype=float), params.cutoff_distance)
    scaled = r / charge ** params.charge_exponent
    return params.K * scaled ** (-params.B)


class PPVModel(SiteLawModel):
    """
    Per-hole PPV from the charge centroid (midpoint of the charge column).

    In timing-window mode each hole is evaluated at the top, centre and base
    of its charge with the MIC of its window.
    """

    name = "ppv"
    display_name = "Peak Particle Velocity (PPV)"
    unit = "mm/s"
    parameters_class = PPVParameters

    def charges(self, blast):
        return blast.columns

    def anchors(self, segment, windowed: bool):
        if windowed:
            return (segment.top, segment.midpoint, segment.base)
        return (segment.midpoint,)

    def cull_anchor(self, segment):
        return segment.collar_point

    def _evaluate(self, points, blast, params):
        segments = [s for s in self.charges(blast) if is_fired(s, params.display_time)]
        peak = np.zeros(len(points))
        windowed = params.time_window > 0
        if windowed:
            charges = instantaneous_charges(
                [(s.mass, s.fire_time) for s in segments],
                params.time_window,
                params.time_offset
            )
        else:
            charges = [s.mass for s in segments]

        for segment, charge in zip(segments, charges):
            if not charge > 0:
                continue
            _, mask = cull(points, self.cull_anchor(segment), params.max_display_distance)
            if not mask.any():
                continue
            subset = points[mask]
            for anchor in self.anchors(segment, windowed):
                ppv = scaled_distance_ppv(distance(subset, anchor), charge, params)
                peak[mask] = np.maximum(peak[mask], ppv)
        return peak


class PPVDeckModel(PPVModel):
    """
    Per-deck PPV: every charged deck is evaluated at its top, centre and
    base using its own mass, so multi-deck holes show one influence zone
    per deck and air gaps contribute nothing.
    """

    name = "ppv_deck"
    display_name = "PPV (Per-Deck)"
    parameters_class = PPVDeckParameters

    def charges(self, blast):
        return blast.decks

    def anchors(self, segment, windowed: bool):
        return (segment.top, segment.midpoint, segment.base)

    def cull_anchor(self, segment):
        return segment.midpoint
