"""
Tests for holes, decks and charge discretisation.
"""

import math
import numpy as np
import pytest
from blast_sim import ChargeColumn, ChargingDefaults, Deck, DeckType, Hole, Primer, Product, discretize


def make_hole(**kwargs):
    """Vertical 10 m hole at the origin."""
    params = dict(hole_id="H1", collar=(0, 0, 0), toe=(0, 0, -10), diameter=115.0)
    params.update(kwargs)
    return Hole(**params)


@pytest.mark.parametrize("num_elements", [1, 5, 20, 100])
def test_discretize_conserves_mass(num_elements):
    """Element masses sum to the interval mass."""
    elements = discretize(3.0, 10.0, 50.0, num_elements)
    assert len(elements) == num_elements
    assert sum(e.mass for e in elements) == pytest.approx(50.0, rel=1e-9)


def test_discretize_orders_from_base():
    """Element 0 is nearest the base of the interval."""
    elements = discretize(0.0, 10.0, 50.0, 5)
    assert elements[0].centre_depth == pytest.approx(9.0)
    assert elements[-1].centre_depth == pytest.approx(1.0)
    assert [e.index for e in elements] == list(range(5))


def test_discretize_with_points():
    """World positions are interpolated between top and base points."""
    elements = discretize((0, 0, -3), (0, 0, -10), 50.0, 7)
    assert np.allclose(elements[0].position, [0, 0, -9.5])
    assert np.allclose(elements[-1].position, [0, 0, -3.5])


def test_discretize_invalid_input():
    """Bad element counts raise; empty intervals yield no elements."""
    with pytest.raises(ValueError):
        discretize(0.0, 10.0, 50.0, 0)
    assert discretize(5.0, 5.0, 50.0, 10) == []
    assert discretize(10.0, 5.0, 50.0, 10) == []
    assert discretize(0.0, 10.0, 0.0, 10) == []


def test_hole_geometry():
    """Length and axis derive from collar and toe."""
    hole = Hole("A", collar=(0, 0, 0), toe=(3, 0, -4))
    assert hole.length == pytest.approx(5.0)
    assert np.allclose(hole.axis, [0.6, 0.0, -0.8])


def test_resolve_explicit_column():
    """An explicit charge column is used as given."""
    hole = make_hole(charge=ChargeColumn(3.0, 10.0, total_mass=50.0, vod=5000.0))
    column = hole.resolve_column()
    assert column.mass == 50.0
    assert column.vod == 5000.0
    assert column.length == pytest.approx(7.0)
    assert np.allclose(column.midpoint, [0, 0, -6.5])
    assert np.allclose(column.top, [0, 0, -3])
    assert column.radius == pytest.approx(0.0575)


def test_resolve_fallback_column():
    """Missing charging data falls back to 30/70 split and default density."""
    defaults = ChargingDefaults()
    column = make_hole().resolve_column(defaults)
    area = math.pi * 0.0575 ** 2
    assert column.top_depth == pytest.approx(3.0)
    assert column.base_depth == pytest.approx(10.0)
    assert column.mass == pytest.approx(defaults.density * area * 7.0)
    assert column.vod == defaults.vod


def test_resolve_measured_mass():
    """A measured hole mass is used when no charge data exists."""
    column = make_hole(mass=40.0).resolve_column()
    area = math.pi * 0.0575 ** 2
    assert column.mass == 40.0
    assert column.density == pytest.approx(40.0 / (area * 7.0))


def test_resolve_decks():
    """Each charged deck becomes a segment; inert decks are ignored."""
    anfo = Product("ANFO", density=0.85, vod=4200.0)
    emulsion = Product("Emulsion", density=1.2, vod=5500.0)
    hole = make_hole(fire_time=100.0, decks=[
        Deck(3.0, 5.0, product=anfo, fire_time=117.0),
        Deck(5.0, 7.0, deck_type=DeckType.STEMMING),
        Deck(7.0, 10.0, product=emulsion),
    ])
    area = math.pi * 0.0575 ** 2

    decks = hole.resolve_decks()
    assert len(decks) == 2
    assert decks[0].mass == pytest.approx(area * 2.0 * 850.0)
    assert decks[0].fire_time == 117.0
    assert decks[1].mass == pytest.approx(area * 3.0 * 1200.0)
    assert decks[1].fire_time == 100.0
    assert decks[1].vod == 5500.0

    column = hole.resolve_column()
    assert column.top_depth == 3.0
    assert column.base_depth == 10.0
    assert column.mass == pytest.approx(decks[0].mass + decks[1].mass)
    expected_vod = (decks[0].mass * 4200.0 + decks[1].mass * 5500.0) / column.mass
    assert column.vod == pytest.approx(expected_vod)


def test_deck_primers_rereferenced_to_column():
    """Deck primer depths are re-measured from the combined column top."""
    hole = make_hole(decks=[
        Deck(3.0, 5.0, mass=10.0, primers=[Primer(1.0, 5.0)]),
        Deck(7.0, 10.0, mass=20.0, primers=[Primer(2.0, 0.0)]),
    ])
    column = hole.resolve_column()
    depths = sorted(p.depth_along_column for p in column.primers)
    assert depths == pytest.approx([1.0, 6.0])


def test_invalid_holes_excluded():
    """Zero-length holes and invalid charges produce no segments."""
    flat = Hole("Z", collar=(0, 0, 0), toe=(0, 0, 0))
    assert flat.resolve_column() is None
    assert flat.resolve_decks() == []

    bad_column = make_hole(charge=ChargeColumn(8.0, 4.0, total_mass=10.0))
    assert bad_column.resolve_column() is None

    no_mass = make_hole(charge=ChargeColumn(3.0, 10.0, total_mass=0.0))
    assert no_mass.resolve_column() is None


def test_deck_depths_normalised():
    """Decks given base-first are reordered."""
    deck = Deck(5.0, 3.0, mass=10.0)
    assert (deck.top_depth, deck.base_depth) == (3.0, 5.0)
    assert deck.is_valid()


def test_primer_from_collar():
    """Collar-referenced primers include delay and delivery burn time."""
    primer = Primer.from_collar(8.0, 3.0, hole_time=100.0, delay_ms=25.0, delivery_vod=2000.0)
    assert primer.depth_along_column == pytest.approx(5.0)
    assert primer.fire_time == pytest.approx(129.0)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
