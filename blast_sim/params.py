"""
Site-law parameter records.

One immutable record per evaluator. Defaults are typical hard-rock values;
callers override them per evaluation.
"""

import math
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Optional

from .detonation import SIMULTANEOUS_TOLERANCE


class Superposition(str, Enum):
    """How per-element wave contributions are combined."""

    COHERENT = "coherent"      # signed vector sum of radial/vertical parts
    INCOHERENT = "incoherent"  # root-sum-square of amplitudes


@dataclass(frozen=True)
class SiteLawParameters:
    """Fields shared by every evaluator."""

    cutoff_distance: float = 1.0                 # m, distance floor
    max_display_distance: float = math.inf       # m, cull beyond this

    @classmethod
    def from_dict(cls, values: Optional[dict] = None):
        """
        Build parameters from a plain mapping (e.g. a JSON config section).

        Raises:
            ValueError: If the mapping contains names the record does not have
        """
        values = dict(values or {})
        names = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - names)
        if unknown:
            raise ValueError(f"Unknown parameter(s) for {cls.__name__}: {unknown}")
        return cls(**values)

    def with_updates(self, **changes):
        return replace(self, **changes)


@dataclass(frozen=True)
class PPVParameters(SiteLawParameters):
    """PPV = K * (R / Q^A)^(-B)"""

    K: float = 1140.0
    B: float = 1.6
    charge_exponent: float = 0.5
    cutoff_distance: float = 1.0
    time_window: float = 0.0            # ms, 0 = every charge on its own
    time_offset: float = 0.0            # ms, start of the first full window
    display_time: Optional[float] = None  # ms, ignore charges firing later


@dataclass(frozen=True)
class PPVDeckParameters(PPVParameters):
    max_display_distance: float = 200.0


@dataclass(frozen=True)
class HeelanParameters(SiteLawParameters):
    """Heelan (1953) radiation solution as formulated by Blair & Minchinton (1996)."""

    rock_density: float = 2700.0        # kg/m^3
    p_wave_velocity: float = 4500.0     # m/s
    s_wave_velocity: float = 2600.0     # m/s
    borehole_pressure: float = 0.0      # Pa, 0 = rho_e * VOD^2 / 8
    num_elements: int = 20
    cutoff_distance: float = 0.5
    quality_factor_p: float = 50.0      # 0 = elastic
    quality_factor_s: float = 30.0
    superposition: Superposition = Superposition.INCOHERENT
    below_toe_decay: bool = True

    def __post_init__(self):
        object.__setattr__(self, "superposition", Superposition(self.superposition))


@dataclass(frozen=True)
class ScaledHeelanParameters(SiteLawParameters):
    """Blair & Minchinton (2006) scaled Heelan with Blair (2008) Em."""

    K: float = 1140.0
    B: float = 1.6
    charge_exponent: float = 0.5
    elems_per_deck: int = 8
    p_wave_velocity: float = 4500.0
    s_wave_velocity: float = 2600.0
    p_wave_weight: float = 1.0
    sv_wave_weight: float = 1.0
    cutoff_distance: float = 0.5
    quality_factor_p: float = 50.0
    quality_factor_s: float = 30.0
    superposition: Superposition = Superposition.INCOHERENT
    below_toe_decay: bool = True
    display_time: Optional[float] = None
    simultaneous_tolerance: float = SIMULTANEOUS_TOLERANCE

    def __post_init__(self):
        object.__setattr__(self, "superposition", Superposition(self.superposition))


@dataclass(frozen=True)
class HolmbergPerssonParameters(SiteLawParameters):
    K_hp: float = 700.0
    alpha_hp: float = 0.8
    beta_hp: float = 1.4
    ppv_critical: float = 700.0         # mm/s, crack initiation threshold
    num_elements: int = 20
    cutoff_distance: float = 0.3
    max_display_distance: float = 50.0


@dataclass(frozen=True)
class JointedRockParameters(SiteLawParameters):
    K_hp: float = 700.0
    alpha_hp: float = 0.7
    beta_hp: float = 1.5
    rock_tensile_strength: float = 10.0  # MPa
    rock_density: float = 2700.0         # kg/m^3
    p_wave_velocity: float = 4500.0      # m/s
    joint_set_angle: float = 45.0        # deg, joint normal to vertical
    joint_cohesion: float = 0.1          # MPa
    joint_friction_angle: float = 30.0   # deg
    num_elements: int = 20
    cutoff_distance: float = 0.3
    max_display_distance: float = 50.0


@dataclass(frozen=True)
class SDoBParameters(SiteLawParameters):
    # Floors the inverse-distance weights at 1 / cutoff^2
    cutoff_distance: float = 0.1
    max_display_distance: float = 50.0


@dataclass(frozen=True)
class SEEParameters(SiteLawParameters):
    cutoff_distance: float = 0.1
    max_display_distance: float = 50.0


@dataclass(frozen=True)
class PressureParameters(SiteLawParameters):
    attenuation_exponent: float = 2.0
    cutoff_distance: float = 0.3
    max_display_distance: float = 50.0


@dataclass(frozen=True)
class PowderFactorParameters(SiteLawParameters):
    cutoff_distance: float = 0.3
    max_display_distance: float = 50.0
