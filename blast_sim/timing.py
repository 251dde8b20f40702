"""
Timing-window grouping for cooperative vibration prediction.

Charges are binned into fixed-width firing windows and the mass in each bin
is summed into a Maximum Instantaneous Charge (MIC). This is the aggregation
phase that must run over the whole blast before any per-point evaluation.
"""

import math
import numpy as np
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

# Bin index for charges firing before the window offset
EDGE_BIN = -1


@dataclass(frozen=True)
class TimingBin:
    """One firing window and the charges assigned to it."""

    index: int
    mic: float                  # kg
    members: Tuple[int, ...]    # positions in the input sequence


def bin_index(fire_time: float, window: float, offset: float = 0.0) -> int:
    """
    Firing window of a charge.

    Windows are [offset + nW, offset + (n+1)W); charges before the offset
    share the edge bin.

    Args:
        fire_time: Firing time (ms)
        window: Window width W (ms), > 0
        offset: Start of the first full window (ms)

    Returns:
        Bin index, EDGE_BIN for charges before the offset
    """
    if not window > 0:
        raise ValueError(f"Timing window must be positive, got {window}")
    if fire_time < offset:
        return EDGE_BIN
    return int(math.floor((fire_time - offset) / window))


def group_by_window(
    items: Sequence[Tuple[float, float]],
    window: float,
    offset: float = 0.0
) -> List[TimingBin]:
    """
    Sum charge mass per firing window.

    Args:
        items: (mass, fire_time) pairs
        window: Window width (ms)
        offset: Start of the first full window (ms)

    Returns:
        Bins ordered by index; non-positive masses are ignored
    """
    members: Dict[int, List[int]] = {}
    mics: Dict[int, float] = {}
    for i, (mass, fire_time) in enumerate(items):
        if not mass > 0:
            continue
        b = bin_index(fire_time, window, offset)
        members.setdefault(b, []).append(i)
        mics[b] = mics.get(b, 0.0) + mass

    return [
        TimingBin(index=b, mic=mics[b], members=tuple(members[b]))
        for b in sorted(members)
    ]


def instantaneous_charges(
    items: Sequence[Tuple[float, float]],
    window: float,
    offset: float = 0.0
) -> np.ndarray:
    """
    MIC each charge is evaluated with: the total mass of its firing window.

    Charges with no mass get 0.
    """
    mic = np.zeros(len(items))
    for timing_bin in group_by_window(items, window, offset):
        mic[list(timing_bin.members)] = timing_bin.mic
    return mic
