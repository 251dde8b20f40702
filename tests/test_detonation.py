"""
Tests for detonation front simulation and Blair effective mass.
"""

import logging
import math
import numpy as np
import pytest
from blast_sim.charge import Element, Primer
from blast_sim.detonation import (
    BlockedElementPolicy,
    DetonationColumn,
    collision_depth,
    compute_em_values,
    detonation_span,
    is_front_blocked,
    process_detonation,
    simulate_detonation,
)


def make_column(primers=(), length=8.0, mass=80.0, vod=5000.0):
    return DetonationColumn(
        top_depth=2.0,
        base_depth=2.0 + length,
        mass=mass,
        vod=vod,
        primers=tuple(primers)
    )


@pytest.mark.parametrize("charge_exponent", [0.33, 0.5, 0.8])
def test_em_sum_independent_of_discretisation(charge_exponent):
    """Sum of Em equals mass^A for any element count and primer layout."""
    rng = np.random.default_rng(42)
    for _ in range(25):
        num_elements = int(rng.integers(1, 60))
        num_primers = int(rng.integers(1, 4))
        primers = [
            Primer(float(rng.uniform(0.0, 8.0)), float(rng.uniform(0.0, 10.0)))
            for _ in range(num_primers)
        ]
        elements = process_detonation(make_column(primers), charge_exponent, num_elements)
        assert len(elements) == num_elements
        total = sum(e.em for e in elements)
        assert total == pytest.approx(80.0 ** charge_exponent, rel=1e-9)


def test_default_base_primer():
    """Without primers the column is initiated at its base."""
    elements = simulate_detonation(make_column(), num_elements=8)
    times = [e.det_time for e in elements]
    # Element 0 sits at the base, 0.5 m from the primer
    assert times[0] == pytest.approx(0.5 / 5000.0 * 1000.0)
    assert times == sorted(times)


def test_collision_at_midpoint_for_simultaneous_primers():
    """Simultaneous primers meet exactly halfway between them."""
    upper, lower = Primer(2.0, 0.0), Primer(6.0, 0.0)
    assert collision_depth(upper, lower, 5000.0) == pytest.approx(4.0)

    primers = [upper, lower]
    # The meeting point itself is reachable from both primers
    assert not is_front_blocked(4.0, 0, primers, 5000.0)
    assert not is_front_blocked(4.0, 1, primers, 5000.0)
    assert is_front_blocked(4.01, 0, primers, 5000.0)
    assert is_front_blocked(3.99, 1, primers, 5000.0)


def test_symmetric_arrival_times():
    """Arrival times mirror about the midpoint of two simultaneous primers."""
    column = DetonationColumn(0.0, 8.0, 80.0, 5000.0, (Primer(2.0, 0.0), Primer(6.0, 0.0)))
    elements = simulate_detonation(column, num_elements=8)
    by_depth = sorted(elements, key=lambda e: e.centre_depth)
    times = [e.det_time for e in by_depth]
    assert times == pytest.approx(times[::-1])
    assert all(math.isfinite(t) for t in times)


def test_later_primer_shifts_collision():
    """A later-firing primer has its front stopped closer to itself."""
    upper, lower = Primer(2.0, 0.0), Primer(6.0, 1.0)
    assert collision_depth(upper, lower, 2000.0) == pytest.approx(5.0)

    column = DetonationColumn(0.0, 8.0, 80.0, 2000.0, (upper, lower))
    elements = simulate_detonation(column, num_elements=16)
    element = next(e for e in elements if e.centre_depth == pytest.approx(4.75))
    # Reached from the upper primer only
    assert element.det_time == pytest.approx(2.75 / 2000.0 * 1000.0)


def test_em_idempotent():
    """Recomputing Em on its own output gives identical values."""
    primers = [Primer(1.0, 3.0), Primer(7.0, 0.0)]
    first = process_detonation(make_column(primers), 0.5, 20)
    second = compute_em_values(first, 0.5)
    assert [e.em for e in second] == [e.em for e in first]


def test_em_returns_new_elements_in_input_order():
    """Inputs are left untouched and order is preserved."""
    elements = [
        Element(0, 7.5, 10.0, det_time=0.3),
        Element(1, 6.5, 10.0, det_time=0.1),
    ]
    result = compute_em_values(elements, 0.5)
    assert [e.index for e in result] == [0, 1]
    assert all(e.em == 0.0 for e in elements)
    assert result[1].em == pytest.approx(10.0 ** 0.5)
    assert result[0].em == pytest.approx(20.0 ** 0.5 - 10.0 ** 0.5)


def test_simultaneous_elements_share_em():
    """Elements within the tolerance form one group and share its Em."""
    elements = [
        Element(0, 1.5, 10.0, det_time=0.0),
        Element(1, 0.5, 10.0, det_time=0.005),
    ]
    result = compute_em_values(elements, 0.5)
    assert result[0].em == pytest.approx(result[1].em)
    assert result[0].em == pytest.approx(20.0 ** 0.5 / 2.0)


def test_blocked_elements_policy(caplog):
    """Unreached elements detonate last or are excluded, with a warning."""
    elements = [
        Element(0, 2.5, 10.0, det_time=0.1),
        Element(1, 1.5, 10.0, det_time=math.inf),
        Element(2, 0.5, 10.0, det_time=0.2),
    ]
    with caplog.at_level(logging.WARNING):
        last = compute_em_values(elements, 0.5, blocked_policy=BlockedElementPolicy.DETONATE_LAST)
    assert "unreachable" in caplog.text
    assert last[1].em == pytest.approx(30.0 ** 0.5 - 20.0 ** 0.5)
    assert sum(e.em for e in last) == pytest.approx(30.0 ** 0.5)

    excluded = compute_em_values(elements, 0.5, blocked_policy="exclude")
    assert excluded[1].em == 0.0
    assert sum(e.em for e in excluded) == pytest.approx(20.0 ** 0.5)


def test_invalid_columns():
    """Columns without VOD, length or mass produce no elements."""
    assert simulate_detonation(make_column(vod=0.0)) == []
    assert simulate_detonation(make_column(mass=0.0)) == []
    assert simulate_detonation(make_column(length=0.0)) == []
    assert compute_em_values([], 0.5) == []
    with pytest.raises(ValueError):
        simulate_detonation(make_column(), num_elements=0)


def test_non_finite_primers_dropped(caplog):
    """Primers with NaN depth or time are ignored."""
    with caplog.at_level(logging.WARNING):
        elements = simulate_detonation(make_column([Primer(float("nan"), 0.0)]), 4)
    assert "non-finite" in caplog.text
    # Falls back to the base primer
    assert elements[0].det_time == pytest.approx(1.0 / 5000.0 * 1000.0)


def test_detonation_span():
    """First and last finite arrival times."""
    elements = simulate_detonation(make_column([Primer(0.0, 10.0)]), 8)
    first, last = detonation_span(elements)
    assert first == pytest.approx(10.0 + 0.5 / 5000.0 * 1000.0)
    assert last == pytest.approx(10.0 + 7.5 / 5000.0 * 1000.0)
    assert detonation_span([]) is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
