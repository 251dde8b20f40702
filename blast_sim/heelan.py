"""
Heelan wave-radiation vibration models.

Each charge element radiates a P wave and an SV wave with the Heelan (1953)
angular patterns

    F1(phi) = 2 sin(phi) cos(phi)^2            (P)
    F2(phi) = sin(phi) (2 cos(phi)^2 - 1)      (SV)

where phi is the angle between the hole axis and the direction from the
element to the observer. Contributions are resolved into radial and vertical
components and superposed over the elements of a charge, then the peak is
taken over charges.

Two amplitude scalings are provided:

* HeelanOriginalModel - physical scaling from the borehole wall pressure
  (Blair & Minchinton 1996).
* ScaledHeelanModel - empirical site law with Blair (2008) effective mass
  per element (Blair & Minchinton 2006).
"""

import numpy as np
from abc import abstractmethod
from typing import Tuple

from .detonation import process_detonation
from .geometry import angle_cos_sin, as_points, project_on_axis
from .params import HeelanParameters, ScaledHeelanParameters, Superposition
from .sitelaw import SiteLawModel, cull, finite_or_zero, is_fired

# Below-toe decay length: max(fraction * charge length, radii * borehole radius)
TOE_DECAY_FRACTION = 0.15
TOE_DECAY_RADII = 4.0


def radiation_patterns(cos_phi, sin_phi) -> Tuple[np.ndarray, np.ndarray]:
    """
    Heelan P-wave and SV-wave radiation amplitudes.

    Args:
        cos_phi: Cosine of the angle from the charge axis
        sin_phi: Sine of the same angle

    Returns:
        Tuple of (F1, F2)
    """
    cos_sq = cos_phi * cos_phi
    return 2.0 * sin_phi * cos_sq, sin_phi * (2.0 * cos_sq - 1.0)


def characteristic_frequency(segment) -> float:
    """Angular frequency VOD / (2 a) of a charge with borehole radius a."""
    return segment.vod / (2.0 * segment.radius)


def viscoelastic_attenuation(omega: float, r, quality_factor: float, velocity: float):
    """exp(-omega R / (2 Q V)); Q <= 0 means a perfectly elastic medium."""
    if quality_factor <= 0:
        return np.ones_like(r)
    return np.exp(-omega * r / (2.0 * quality_factor * velocity))


def below_toe_factor(points: np.ndarray, segment) -> np.ndarray:
    """
    Amplitude factor for observers projecting past the toe along the hole
    axis, where the charge loses free-face confinement.
    """
    projected = project_on_axis(points, segment.collar, segment.axis)
    excess = np.maximum(projected - segment.hole_length, 0.0)
    decay_length = max(TOE_DECAY_FRACTION * segment.length,
                       TOE_DECAY_RADII * segment.radius)
    return np.exp(-excess / decay_length)


class _Superposer:
    """Accumulates per-element radial/vertical contributions."""

    def __init__(self, n: int, mode: Superposition):
        self.coherent = Superposition(mode) == Superposition.COHERENT
        self.radial = np.zeros(n)
        self.vertical = np.zeros(n)

    def add(self, v_p, v_sv, cos_phi, sin_phi):
        v_r = v_p * sin_phi + v_sv * cos_phi
        v_z = v_p * cos_phi - v_sv * sin_phi
        if self.coherent:
            self.radial += v_r
            self.vertical += v_z
        else:
            self.radial += v_r * v_r
            self.vertical += v_z * v_z

    def result(self) -> Tuple[np.ndarray, np.ndarray]:
        if self.coherent:
            return self.radial, self.vertical
        return np.sqrt(self.radial), np.sqrt(self.vertical)


class _HeelanBase(SiteLawModel):
    unit = "mm/s"

    @abstractmethod
    def charges(self, blast):
        """Charge segments the model superposes."""

    @abstractmethod
    def cull_anchor(self, segment):
        """Point used for display-distance culling."""

    @abstractmethod
    def segment_components(self, points, segment, params) -> Tuple[np.ndarray, np.ndarray]:
        """(radial, vertical) velocity in mm/s of one charge at each point."""

    def include(self, segment, params) -> bool:
        return True

    def evaluate_components(self, points, blast, params=None) -> Tuple[np.ndarray, np.ndarray]:
        """
        Radial and vertical components at each point, taken from the charge
        producing the peak vector PPV there.

        Args:
            points: Observation point(s), shape (3,) or (n, 3)
            blast: Blast providing resolved charge segments
            params: Parameter record, mapping or None for defaults

        Returns:
            Tuple of (radial, vertical) arrays in mm/s
        """
        pts = as_points(points)
        resolved = self.resolve_params(params)
        with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
            radial, vertical, _ = self._peak_components(pts, blast, resolved)
        return finite_or_zero(radial), finite_or_zero(vertical)

    def _peak_components(self, points, blast, params):
        n = len(points)
        peak = np.zeros(n)
        radial = np.zeros(n)
        vertical = np.zeros(n)
        for segment in self.charges(blast):
            if not self.include(segment, params):
                continue
            _, mask = cull(points, self.cull_anchor(segment), params.max_display_distance)
            if not mask.any():
                continue
            subset = points[mask]
            v_r, v_z = self.segment_components(subset, segment, params)
            if params.below_toe_decay:
                factor = below_toe_factor(subset, segment)
                v_r = v_r * factor
                v_z = v_z * factor
            magnitude = finite_or_zero(np.sqrt(v_r * v_r + v_z * v_z))
            better = magnitude > peak[mask]
            idx = np.flatnonzero(mask)[better]
            peak[idx] = magnitude[better]
            radial[idx] = v_r[better]
            vertical[idx] = v_z[better]
        return radial, vertical, peak

    def _evaluate(self, points, blast, params):
        return self._peak_components(points, blast, params)[2]


class HeelanOriginalModel(_HeelanBase):
    """
    Vector PPV from the Heelan solution with physical amplitude scaling.

    Per element of length dL at distance R:

        scale = Pb a^2 dL / (rho_rock V^2 R)
        v     = scale * F * omega * attenuation

    with Pb = rho_e VOD^2 / 8 unless a borehole pressure is configured.
    The angle is folded into [0, 90] degrees so the pattern is symmetric
    about the plane normal to the hole.
    """

    name = "heelan_original"
    display_name = "Heelan Original (Blair & Minchinton 1996)"
    parameters_class = HeelanParameters

    def charges(self, blast):
        return blast.columns

    def cull_anchor(self, segment):
        return segment.collar_point

    def segment_components(self, points, segment, params):
        a = segment.radius
        dl = segment.length / params.num_elements
        if params.borehole_pressure > 0:
            pb = params.borehole_pressure
        else:
            pb = segment.density * segment.vod * segment.vod / 8.0
        omega = characteristic_frequency(segment)
        source = pb * a * a * dl / params.rock_density
        vp_sq = params.p_wave_velocity ** 2
        vs_sq = params.s_wave_velocity ** 2

        acc = _Superposer(len(points), params.superposition)
        for element in segment.elements(params.num_elements):
            to_obs = points - element.position
            r = np.maximum(np.linalg.norm(to_obs, axis=1), params.cutoff_distance)
            cos_phi, sin_phi = angle_cos_sin(segment.axis, to_obs, absolute=True)
            f1, f2 = radiation_patterns(cos_phi, sin_phi)

            att_p = viscoelastic_attenuation(omega, r, params.quality_factor_p,
                                             params.p_wave_velocity)
            att_s = viscoelastic_attenuation(omega, r, params.quality_factor_s,
                                             params.s_wave_velocity)
            v_p = source / (vp_sq * r) * f1 * omega * att_p
            v_sv = source / (vs_sq * r) * f2 * omega * att_s
            acc.add(v_p, v_sv, cos_phi, sin_phi)

        radial, vertical = acc.result()
        # m/s -> mm/s
        return radial * 1000.0, vertical * 1000.0


class ScaledHeelanModel(_HeelanBase):
    """
    Per-deck vector PPV with the site law applied per element:

        vppv_e = K * Em_e * R^(-B)

    Em_e comes from the detonation order of the deck's elements (its own
    primers, or a single base primer), so the deck's Em values sum to
    mass^A regardless of the number of elements.
    """

    name = "scaled_heelan"
    display_name = "Scaled Heelan (Blair & Minchinton 2006)"
    parameters_class = ScaledHeelanParameters

    def charges(self, blast):
        return blast.decks

    def cull_anchor(self, segment):
        return segment.midpoint

    def include(self, segment, params) -> bool:
        return is_fired(segment, params.display_time)

    def segment_components(self, points, segment, params):
        elements = process_detonation(
            segment,
            params.charge_exponent,
            num_elements=params.elems_per_deck,
            tolerance=params.simultaneous_tolerance
        )
        omega = characteristic_frequency(segment)

        acc = _Superposer(len(points), params.superposition)
        for element in elements:
            if not element.em > 0:
                continue
            position = segment.point_at_depth(segment.top_depth + element.centre_depth)
            to_obs = points - position
            r = np.maximum(np.linalg.norm(to_obs, axis=1), params.cutoff_distance)
            cos_phi, sin_phi = angle_cos_sin(segment.axis, to_obs)
            f1, f2 = radiation_patterns(cos_phi, sin_phi)

            vppv = params.K * element.em * r ** (-params.B)
            att_p = viscoelastic_attenuation(omega, r, params.quality_factor_p,
                                             params.p_wave_velocity)
            att_s = viscoelastic_attenuation(omega, r, params.quality_factor_s,
                                             params.s_wave_velocity)
            v_p = vppv * f1 * params.p_wave_weight * att_p
            v_sv = vppv * f2 * params.sv_wave_weight * att_s
            acc.add(v_p, v_sv, cos_phi, sin_phi)

        return acc.result()
