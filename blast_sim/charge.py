"""
Charge model for blastholes.

Defines holes, charge columns, decks, primers and the ephemeral charge
elements used by the detonation and site-law calculations.
"""

import logging
import math
import numpy as np
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from .geometry import unit_vector

logger = logging.getLogger(__name__)


def _xyz(value) -> Tuple[float, float, float]:
    x, y, z = (float(v) for v in value)
    return (x, y, z)


class DeckType(str, Enum):
    """Kinds of interval a hole can be loaded with."""

    COUPLED = "COUPLED"
    DECOUPLED = "DECOUPLED"
    INERT = "INERT"
    STEMMING = "STEMMING"
    SPACER = "SPACER"


CHARGED_DECK_TYPES = (DeckType.COUPLED, DeckType.DECOUPLED)


@dataclass(frozen=True)
class ChargingDefaults:
    """
    Fallbacks substituted when a hole is missing charging data.

    Charge column spans from stemming_fraction * length down to the toe.
    """

    stemming_fraction: float = 0.3
    density: float = 1200.0  # kg/m^3
    vod: float = 5000.0      # m/s
    diameter: float = 115.0  # mm


DEFAULT_CHARGING = ChargingDefaults()


@dataclass(frozen=True)
class Product:
    """Explosive product loaded into a deck."""

    name: str
    density: float     # kg/L (g/cc)
    vod: float = 0.0   # m/s, 0 = unknown

    @property
    def density_kg_m3(self) -> float:
        return self.density * 1000.0


@dataclass(frozen=True)
class Primer:
    """Detonator and booster position within a charge interval."""

    # Measured from the top of the charge interval the primer sits in
    depth_along_column: float
    fire_time: float = 0.0  # ms

    @classmethod
    def from_collar(
        cls,
        length_from_collar: float,
        charge_top_depth: float,
        hole_time: float = 0.0,
        delay_ms: float = 0.0,
        delivery_vod: float = 0.0
    ) -> "Primer":
        """
        Build a primer from a collar-referenced position and downhole delay.

        Args:
            length_from_collar: Primer depth measured from the collar (m)
            charge_top_depth: Depth of the top of the charge interval (m)
            hole_time: Surface firing time of the hole (ms)
            delay_ms: Programmed or series delay of the detonator (ms)
            delivery_vod: Burn velocity of the delivery line (m/s), 0 = instant

        Returns:
            Primer with its depth relative to the charge top and the
            full initiation time
        """
        burn = 0.0
        if delivery_vod > 0:
            burn = length_from_collar * 1000.0 / delivery_vod
        return cls(
            depth_along_column=length_from_collar - charge_top_depth,
            fire_time=hole_time + delay_ms + burn
        )


@dataclass(frozen=True)
class ChargeColumn:
    """Single charged interval of a hole, depths measured from the collar."""

    top_depth: float
    base_depth: float
    total_mass: Optional[float] = None  # kg
    density: Optional[float] = None     # kg/m^3
    vod: Optional[float] = None         # m/s
    primers: Tuple[Primer, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "primers", tuple(self.primers))

    @property
    def length(self) -> float:
        return self.base_depth - self.top_depth

    def is_valid(self) -> bool:
        if not (self.base_depth > self.top_depth >= 0):
            return False
        return self.total_mass is None or self.total_mass > 0


@dataclass(frozen=True)
class Deck:
    """
    Independently timed charged interval of a hole.

    Air gaps are simply intervals not covered by a deck. Non-explosive deck
    types may be supplied but never contribute charge.
    """

    top_depth: float
    base_depth: float
    product: Optional[Product] = None
    mass: Optional[float] = None        # kg, derived from product when None
    deck_type: DeckType = DeckType.COUPLED
    fire_time: Optional[float] = None   # ms, defaults to the hole time
    primers: Tuple[Primer, ...] = ()

    def __post_init__(self):
        top, base = sorted((self.top_depth, self.base_depth))
        object.__setattr__(self, "top_depth", top)
        object.__setattr__(self, "base_depth", base)
        object.__setattr__(self, "deck_type", DeckType(self.deck_type))
        object.__setattr__(self, "primers", tuple(self.primers))

    @property
    def length(self) -> float:
        return self.base_depth - self.top_depth

    @property
    def is_charged(self) -> bool:
        return self.deck_type in CHARGED_DECK_TYPES

    def is_valid(self) -> bool:
        if not (self.base_depth > self.top_depth >= 0):
            return False
        return self.mass is None or self.mass > 0

    def volume(self, hole_diameter: float) -> float:
        """Deck volume in m^3 for a hole diameter in mm."""
        radius = hole_diameter / 2000.0
        return math.pi * radius * radius * self.length

    def calculate_mass(
        self,
        hole_diameter: float,
        defaults: ChargingDefaults = DEFAULT_CHARGING
    ) -> float:
        """Explicit mass, else volume times product (or fallback) density."""
        if self.mass is not None:
            return self.mass
        return self.volume(hole_diameter) * self.resolved_density(hole_diameter, defaults)

    def resolved_density(
        self,
        hole_diameter: float,
        defaults: ChargingDefaults = DEFAULT_CHARGING
    ) -> float:
        if self.product is not None and self.product.density > 0:
            return self.product.density_kg_m3
        volume = self.volume(hole_diameter)
        if self.mass is not None and volume > 0:
            return self.mass / volume
        return defaults.density

    def resolved_vod(self, defaults: ChargingDefaults = DEFAULT_CHARGING) -> float:
        if self.product is not None and self.product.vod > 0:
            return self.product.vod
        return defaults.vod


@dataclass
class Element:
    """
    Discretisation unit of a charge interval.

    Index 0 is the element nearest the interval base; centre_depth is
    measured from the interval top.
    """

    index: int
    centre_depth: float
    mass: float
    position: Optional[np.ndarray] = None
    det_time: float = math.inf  # ms
    em: float = 0.0


def discretize(top, base, total_mass: float, num_elements: int) -> List[Element]:
    """
    Split a charge interval into equal-length elements.

    ``top`` and ``base`` may be depths along the column (floats) or 3D
    points; with points each element also carries its world position.

    Args:
        top: Top of the charge interval
        base: Base of the charge interval
        total_mass: Mass of the interval (kg)
        num_elements: Number of elements M (>= 1)

    Returns:
        List of M elements, or an empty list when the interval has no length
        or no mass
    """
    if num_elements < 1:
        raise ValueError(f"num_elements must be >= 1, got {num_elements}")

    top_arr = np.asarray(top, dtype=float)
    base_arr = np.asarray(base, dtype=float)
    direction = None
    if top_arr.ndim == 0:
        length = float(base_arr - top_arr)
    else:
        delta = base_arr - top_arr
        length = float(np.linalg.norm(delta))
        if length > 0:
            direction = delta / length

    if not (length > 0) or not (total_mass > 0):
        return []

    dl = length / num_elements
    element_mass = total_mass / num_elements
    elements = []
    for i in range(num_elements):
        centre_depth = length - (i + 0.5) * dl
        position = None
        if direction is not None:
            position = top_arr + direction * centre_depth
        elements.append(Element(
            index=i,
            centre_depth=centre_depth,
            mass=element_mass,
            position=position
        ))
    return elements


@dataclass(frozen=True)
class ChargeSegment:
    """
    Charged interval resolved into world space.

    This is what the evaluators consume: every fallback has already been
    applied, so mass, density and VOD are always positive.
    """

    hole_id: str
    collar: Tuple[float, float, float]
    axis: Tuple[float, float, float]
    hole_length: float
    top_depth: float
    base_depth: float
    mass: float       # kg
    density: float    # kg/m^3
    vod: float        # m/s
    diameter: float   # mm
    fire_time: float = 0.0
    primers: Tuple[Primer, ...] = ()

    @property
    def length(self) -> float:
        return self.base_depth - self.top_depth

    @property
    def radius(self) -> float:
        """Borehole radius in metres."""
        return self.diameter / 2000.0

    @property
    def linear_density(self) -> float:
        return self.mass / self.length

    @property
    def collar_point(self) -> np.ndarray:
        return np.array(self.collar)

    @property
    def axis_vector(self) -> np.ndarray:
        return np.array(self.axis)

    def point_at_depth(self, depth: float) -> np.ndarray:
        """World position at a depth measured from the collar."""
        return self.collar_point + self.axis_vector * depth

    @property
    def top(self) -> np.ndarray:
        return self.point_at_depth(self.top_depth)

    @property
    def base(self) -> np.ndarray:
        return self.point_at_depth(self.base_depth)

    @property
    def midpoint(self) -> np.ndarray:
        return self.point_at_depth(0.5 * (self.top_depth + self.base_depth))

    def elements(self, num_elements: int) -> List[Element]:
        """Evenly spaced elements with world positions, element 0 at the base."""
        return discretize(self.top, self.base, self.mass, num_elements)


@dataclass(frozen=True)
class Hole:
    """Blasthole geometry and charging as supplied by the design."""

    hole_id: str
    collar: Tuple[float, float, float]
    toe: Tuple[float, float, float]
    diameter: float = 115.0            # mm
    fire_time: float = 0.0             # ms
    mass: Optional[float] = None       # measured total mass, kg
    charge: Optional[ChargeColumn] = None
    decks: Tuple[Deck, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, "hole_id", str(self.hole_id))
        object.__setattr__(self, "collar", _xyz(self.collar))
        object.__setattr__(self, "toe", _xyz(self.toe))
        object.__setattr__(self, "decks", tuple(self.decks))

    @property
    def collar_point(self) -> np.ndarray:
        return np.array(self.collar)

    @property
    def toe_point(self) -> np.ndarray:
        return np.array(self.toe)

    @property
    def length(self) -> float:
        return float(np.linalg.norm(self.toe_point - self.collar_point))

    @property
    def axis(self) -> np.ndarray:
        return unit_vector(self.toe_point - self.collar_point)

    def _diameter(self, defaults: ChargingDefaults) -> float:
        return self.diameter if self.diameter > 0 else defaults.diameter

    def _segment(self, defaults, top_depth, base_depth, mass, density, vod,
                 fire_time, primers) -> ChargeSegment:
        return ChargeSegment(
            hole_id=self.hole_id,
            collar=self.collar,
            axis=_xyz(self.axis),
            hole_length=self.length,
            top_depth=top_depth,
            base_depth=base_depth,
            mass=mass,
            density=density,
            vod=vod,
            diameter=self._diameter(defaults),
            fire_time=fire_time,
            primers=tuple(primers)
        )

    def charged_decks(self) -> List[Deck]:
        """Charged decks that carry usable geometry and mass."""
        decks = []
        for deck in self.decks:
            if not deck.is_charged:
                continue
            if not deck.is_valid():
                logger.debug("Hole %s: skipping invalid deck %.2f-%.2f m",
                             self.hole_id, deck.top_depth, deck.base_depth)
                continue
            decks.append(deck)
        return decks

    def resolve_column(
        self,
        defaults: ChargingDefaults = DEFAULT_CHARGING
    ) -> Optional[ChargeSegment]:
        """
        Resolve the hole's whole charge into one segment.

        Uses the explicit charge column if present, otherwise the span of
        the charged decks, otherwise the stemming/charge fallback split.

        Returns:
            ChargeSegment, or None when the hole cannot contribute
        """
        length = self.length
        if not length > 0:
            logger.debug("Hole %s: zero length, skipped", self.hole_id)
            return None

        diameter = self._diameter(defaults)
        radius = diameter / 2000.0
        area = math.pi * radius * radius
        decks = self.charged_decks()
        column = self.charge

        if column is not None:
            if not column.is_valid():
                logger.debug("Hole %s: invalid charge column, skipped", self.hole_id)
                return None
            top, base = column.top_depth, column.base_depth
        elif decks:
            top = min(d.top_depth for d in decks)
            base = max(d.base_depth for d in decks)
        else:
            top = length * defaults.stemming_fraction
            base = length

        volume = area * (base - top)
        deck_masses = [d.calculate_mass(diameter, defaults) for d in decks]

        if column is not None and column.total_mass is not None:
            mass = column.total_mass
        elif decks:
            mass = sum(deck_masses)
        elif self.mass is not None:
            mass = self.mass
        else:
            mass = defaults.density * volume

        if not mass > 0:
            logger.debug("Hole %s: no explosive mass, skipped", self.hole_id)
            return None

        if column is not None and column.density:
            density = column.density
        elif decks and column is None:
            density = sum(
                m * d.resolved_density(diameter, defaults)
                for m, d in zip(deck_masses, decks)
            ) / mass
        elif volume > 0:
            density = mass / volume
        else:
            density = defaults.density

        if column is not None and column.vod:
            vod = column.vod
        elif decks and column is None:
            vod = sum(m * d.resolved_vod(defaults) for m, d in zip(deck_masses, decks)) / mass
        else:
            vod = defaults.vod

        if column is not None:
            primers = column.primers
        else:
            # Re-reference deck primers to the top of the combined column
            primers = [
                Primer(d.top_depth + p.depth_along_column - top, p.fire_time)
                for d in decks for p in d.primers
            ]

        return self._segment(defaults, top, base, mass, density, vod,
                             self.fire_time, primers)

    def resolve_decks(
        self,
        defaults: ChargingDefaults = DEFAULT_CHARGING
    ) -> List[ChargeSegment]:
        """
        Resolve every charged deck into its own segment.

        Holes without deck data contribute their resolved charge column as a
        single deck.
        """
        if not self.length > 0:
            logger.debug("Hole %s: zero length, skipped", self.hole_id)
            return []

        if not any(d.is_charged for d in self.decks):
            column = self.resolve_column(defaults)
            return [column] if column is not None else []

        diameter = self._diameter(defaults)
        segments = []
        for deck in self.charged_decks():
            mass = deck.calculate_mass(diameter, defaults)
            if not mass > 0:
                continue
            fire_time = deck.fire_time if deck.fire_time is not None else self.fire_time
            segments.append(self._segment(
                defaults,
                deck.top_depth,
                deck.base_depth,
                mass,
                deck.resolved_density(diameter, defaults),
                deck.resolved_vod(defaults),
                fire_time,
                deck.primers
            ))
        return segments
