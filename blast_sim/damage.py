"""
Near-field damage models based on the Holmberg-Persson integration.

Each charge is split into elements; every element contributes

    PPV_e = K_hp * q^alpha / R^beta

with q the element mass. Contributions are RMS-summed over the elements of a
charge and the peak is taken over charges.
"""

import math
import numpy as np

from .params import HolmbergPerssonParameters, JointedRockParameters
from .geometry import as_points
from .sitelaw import SiteLawModel, cull


def holmberg_persson_ppv(points, segment, K_hp, alpha, beta, num_elements, cutoff) -> np.ndarray:
    """
    RMS-superposed Holmberg-Persson PPV of one charge.

    Args:
        points: Observation points (n, 3)
        segment: Resolved charge segment
        K_hp: Site constant
        alpha: Charge exponent
        beta: Distance exponent
        num_elements: Number of elements along the charge
        cutoff: Distance floor (m)

    Returns:
        PPV in mm/s, shape (n,)
    """
    elements = segment.elements(num_elements)
    energy = np.zeros(len(points))
    for element in elements:
        r = np.maximum(np.linalg.norm(points - element.position, axis=1), cutoff)
        ppv = K_hp * element.mass ** alpha / r ** beta
        energy += ppv * ppv
    return np.sqrt(energy)


def _peak_over_decks(points, blast, params) -> np.ndarray:
    peak = np.zeros(len(points))
    for segment in blast.decks:
        _, mask = cull(points, segment.midpoint, params.max_display_distance)
        if not mask.any():
            continue
        ppv = holmberg_persson_ppv(
            points[mask], segment,
            params.K_hp, params.alpha_hp, params.beta_hp,
            params.num_elements, params.cutoff_distance
        )
        peak[mask] = np.maximum(peak[mask], ppv)
    return peak


class HolmbergPerssonModel(SiteLawModel):
    """
    Damage index = peak PPV / critical PPV.

    0 means no damage, 1 is the crack-initiation threshold; values above 1
    are kept so heavily damaged zones remain distinguishable.
    """

    name = "nonlinear_damage"
    display_name = "Holmberg-Persson Damage Index"
    unit = ""
    parameters_class = HolmbergPerssonParameters

    def peak_ppv(self, points, blast, params=None) -> np.ndarray:
        """Peak Holmberg-Persson PPV (mm/s) before normalisation."""
        return _peak_over_decks(as_points(points), blast, self.resolve_params(params))

    def _evaluate(self, points, blast, params):
        peak = _peak_over_decks(points, blast, params)
        return np.maximum(peak / params.ppv_critical, 0.0)


def jointed_rock_failure_ratio(ppv, params: JointedRockParameters) -> np.ndarray:
    """
    Failure ratio of intact rock and of a joint set under dynamic stress.

    The dynamic stress sigma_d = rho * Vp * PPV is compared with the tensile
    strength of the rock, and resolved on the joint plane for a Mohr-Coulomb
    check:

        sigma_n = sigma_d cos^2(theta)
        tau     = sigma_d sin(theta) cos(theta)
        FR      = tau / (c + tan(phi_f) sigma_n)

    Args:
        ppv: Peak particle velocity (mm/s)
        params: Rock and joint properties

    Returns:
        max(rock ratio, joint ratio); >= 1 indicates failure
    """
    ppv = np.asarray(ppv, dtype=float)
    # mm/s -> m/s, Pa -> MPa
    sigma_d = params.rock_density * params.p_wave_velocity * ppv * 0.001 / 1e6
    rock_ratio = sigma_d / max(params.rock_tensile_strength, 0.001)

    theta = math.radians(params.joint_set_angle)
    sigma_n = sigma_d * math.cos(theta) ** 2
    tau = sigma_d * math.sin(theta) * math.cos(theta)
    resistance = params.joint_cohesion + math.tan(math.radians(params.joint_friction_angle)) * sigma_n
    safe = np.where(resistance > 0.001, resistance, 1.0)
    joint_ratio = np.where(resistance > 0.001, tau / safe, 0.0)
    return np.maximum(rock_ratio, joint_ratio)


class JointedRockDamageModel(SiteLawModel):
    """Holmberg-Persson PPV converted into a rock/joint failure ratio."""

    name = "jointed_rock"
    display_name = "Jointed Rock Damage"
    unit = ""
    parameters_class = JointedRockParameters

    def _evaluate(self, points, blast, params):
        peak = np.zeros(len(points))
        for segment in blast.decks:
            _, mask = cull(points, segment.midpoint, params.max_display_distance)
            if not mask.any():
                continue
            ppv = holmberg_persson_ppv(
                points[mask], segment,
                params.K_hp, params.alpha_hp, params.beta_hp,
                params.num_elements, params.cutoff_distance
            )
            ratio = jointed_rock_failure_ratio(ppv, params)
            peak[mask] = np.maximum(peak[mask], ratio)
        return peak
