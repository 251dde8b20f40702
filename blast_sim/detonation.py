"""
Detonation front propagation and non-linear charge superposition.

Per-element arrival times are found from one or more primers with front
collision blocking, and converted into Blair (2008) effective-mass (Em)
contributions.

Reference: Blair (2008), "Non-linear superposition models of blast
vibration", Int J Rock Mech Min Sci 45, 235-247
"""

import logging
import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from .charge import Element, Primer, discretize

logger = logging.getLogger(__name__)

# ms; detonation times closer than this are treated as simultaneous
SIMULTANEOUS_TOLERANCE = 0.01


class BlockedElementPolicy(str, Enum):
    """What superposition does with elements no detonation front reaches."""

    DETONATE_LAST = "detonate_last"
    EXCLUDE = "exclude"


@dataclass(frozen=True)
class DetonationColumn:
    """Minimal charge column description for the front simulator."""

    top_depth: float
    base_depth: float
    mass: float
    vod: float
    primers: Tuple[Primer, ...] = ()


def _column_mass(column) -> float:
    mass = getattr(column, "mass", None)
    if mass is None:
        mass = getattr(column, "total_mass", None)
    return mass if mass is not None else 0.0


def collision_depth(upper: Primer, lower: Primer, vod: float) -> float:
    """
    Depth at which the fronts of two neighbouring primers meet.

    The later-firing primer's front meets the other one displaced towards
    the later primer by vod * dt / 2.

    Args:
        upper: Primer with the smaller depth
        lower: Primer with the larger depth
        vod: Velocity of detonation (m/s)

    Returns:
        Meeting depth along the column (m)
    """
    midpoint = 0.5 * (upper.depth_along_column + lower.depth_along_column)
    return midpoint + vod * (lower.fire_time - upper.fire_time) / 2000.0


def is_front_blocked(
    depth: float,
    primer_index: int,
    primers: Sequence[Primer],
    vod: float
) -> bool:
    """
    True when the front from ``primers[primer_index]`` cannot reach ``depth``.

    ``primers`` must be sorted by depth. A primer with no neighbour on one
    side is never blocked on that side; an element exactly on the meeting
    depth is reachable from both primers.
    """
    primer = primers[primer_index]
    if depth < primer.depth_along_column and primer_index > 0:
        upper = primers[primer_index - 1]
        if depth < collision_depth(upper, primer, vod):
            return True
    if depth > primer.depth_along_column and primer_index < len(primers) - 1:
        lower = primers[primer_index + 1]
        if depth > collision_depth(primer, lower, vod):
            return True
    return False


def _usable_primers(primers, charge_length: float) -> List[Primer]:
    usable = []
    for primer in primers or ():
        if math.isfinite(primer.depth_along_column) and math.isfinite(primer.fire_time):
            usable.append(primer)
        else:
            logger.warning("Dropping primer with non-finite depth/time: %s", primer)
    if not usable:
        # Single base primer
        usable = [Primer(depth_along_column=charge_length, fire_time=0.0)]
    return sorted(usable, key=lambda p: p.depth_along_column)


def simulate_detonation(column, num_elements: int = 20) -> List[Element]:
    """
    Compute the earliest unblocked detonation arrival time of every element.

    Args:
        column: Charge interval with top_depth, base_depth, mass (or
            total_mass), vod and primers. Primer depths are measured from
            the top of the interval.
        num_elements: Number of discretisation elements M

    Returns:
        Elements (index 0 at the base) with det_time in ms; inf where every
        front is blocked. Empty when the column has no length or no mass.
    """
    charge_length = column.base_depth - column.top_depth
    elements = discretize(0.0, charge_length, _column_mass(column), num_elements)
    if not elements:
        return []

    vod = column.vod
    if not vod or not vod > 0:
        logger.warning("Column %.2f-%.2f m has no usable VOD, skipped",
                       column.top_depth, column.base_depth)
        return []
    primers = _usable_primers(column.primers, charge_length)

    for element in elements:
        earliest = math.inf
        for i, primer in enumerate(primers):
            if is_front_blocked(element.centre_depth, i, primers, vod):
                continue
            dist = abs(element.centre_depth - primer.depth_along_column)
            arrival = primer.fire_time + dist / vod * 1000.0
            earliest = min(earliest, arrival)
        element.det_time = earliest

    return elements


def _group_simultaneous(elements: List[Element], tolerance: float) -> List[List[Element]]:
    groups = []
    current = [elements[0]]
    for element in elements[1:]:
        if abs(element.det_time - current[0].det_time) < tolerance:
            current.append(element)
        else:
            groups.append(current)
            current = [element]
    groups.append(current)
    return groups


def compute_em_values(
    elements: Sequence[Element],
    charge_exponent: float,
    tolerance: float = SIMULTANEOUS_TOLERANCE,
    blocked_policy: BlockedElementPolicy = BlockedElementPolicy.DETONATE_LAST
) -> List[Element]:
    """
    Blair (2008) effective mass of each element from its detonation order.

    Em_group = M_after^A - M_before^A, shared equally inside a group of
    simultaneous elements, so that sum(Em) == total_mass^A independent of
    the number of elements.

    Args:
        elements: Elements with mass and det_time populated
        charge_exponent: Charge exponent A
        tolerance: Simultaneity tolerance (ms)
        blocked_policy: Treatment of elements with det_time == inf

    Returns:
        New elements, in input order, with em populated
    """
    if not elements:
        return []

    order = sorted(range(len(elements)), key=lambda i: elements[i].det_time)
    reached = [i for i in order if math.isfinite(elements[i].det_time)]
    blocked = [i for i in order if not math.isfinite(elements[i].det_time)]

    if blocked:
        logger.warning(
            "%d of %d elements unreachable by any detonation front (%s)",
            len(blocked), len(elements), BlockedElementPolicy(blocked_policy).value
        )

    em = [0.0] * len(elements)
    groups = []
    if reached:
        indexed = _group_simultaneous([elements[i] for i in reached], tolerance)
        pos = 0
        for group in indexed:
            groups.append(reached[pos:pos + len(group)])
            pos += len(group)
    if blocked and blocked_policy == BlockedElementPolicy.DETONATE_LAST:
        groups.append(blocked)

    cumulative = 0.0
    for group in groups:
        group_mass = sum(elements[i].mass for i in group)
        previous = cumulative
        cumulative += group_mass
        group_em = cumulative ** charge_exponent
        if previous > 0:
            group_em -= previous ** charge_exponent
        share = group_em / len(group)
        for i in group:
            em[i] = share

    return [replace(element, em=value) for element, value in zip(elements, em)]


def process_detonation(
    column,
    charge_exponent: float,
    num_elements: int = 20,
    tolerance: float = SIMULTANEOUS_TOLERANCE,
    blocked_policy: BlockedElementPolicy = BlockedElementPolicy.DETONATE_LAST
) -> List[Element]:
    """Simulate the detonation of a column and compute its Em values."""
    elements = simulate_detonation(column, num_elements)
    return compute_em_values(elements, charge_exponent, tolerance, blocked_policy)


def detonation_span(elements: Sequence[Element]) -> Optional[Tuple[float, float]]:
    """First and last finite detonation time of a set of elements (ms)."""
    times = [e.det_time for e in elements if math.isfinite(e.det_time)]
    if not times:
        return None
    return min(times), max(times)
