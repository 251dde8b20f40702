"""
JSON configuration for the command-line interface.

Example::

    {
        "model": "ppv",
        "params": {"K": 1140, "B": 1.6},
        "defaults": {"stemming_fraction": 0.3},
        "holes": [
            {
                "id": "H1",
                "collar": [0, 0, 0],
                "toe": [0, 0, -10],
                "diameter": 115,
                "fire_time": 0,
                "charge": {"top_depth": 3, "base_depth": 10, "total_mass": 50,
                           "vod": 5000,
                           "primers": [{"depth_along_column": 7}]}
            }
        ],
        "grid": {"padding": 50, "resolution": 1.0},
        "output": "blast_output"
    }
"""

import json
import logging
from typing import List

from .blast import Blast
from .charge import ChargeColumn, ChargingDefaults, Deck, Hole, Primer, Product
from .models import get_model

logger = logging.getLogger(__name__)


def load_config(config_file: str) -> dict:
    """Load configuration from JSON file."""
    with open(config_file, 'r') as f:
        return json.load(f)


def _primers(entries) -> List[Primer]:
    return [Primer(**entry) for entry in entries or ()]


def _deck(entry: dict) -> Deck:
    entry = dict(entry)
    product = entry.pop("product", None)
    if product is not None:
        product = Product(**product)
    return Deck(
        product=product,
        primers=_primers(entry.pop("primers", None)),
        **entry
    )


def hole_from_dict(entry: dict) -> Hole:
    """
    Build a Hole from a config entry.

    Raises:
        ValueError: If collar or toe are missing, or a field is not recognised
    """
    entry = dict(entry)
    hole_id = entry.pop("id", entry.pop("hole_id", None))
    if hole_id is None or "collar" not in entry or "toe" not in entry:
        raise ValueError(f"Hole entry needs id, collar and toe: {entry}")

    charge = entry.pop("charge", None)
    if charge is not None:
        charge = dict(charge)
        charge = ChargeColumn(primers=_primers(charge.pop("primers", None)), **charge)
    decks = [_deck(d) for d in entry.pop("decks", ())]

    try:
        return Hole(hole_id=hole_id, charge=charge, decks=decks, **entry)
    except TypeError as exc:
        raise ValueError(f"Hole {hole_id}: {exc}") from None


def blast_from_config(config: dict) -> Blast:
    """
    Build the Blast described by a configuration.

    Malformed hole entries are skipped with a warning, like any other
    incomplete hole in a design.

    Raises:
        ValueError: If the charging defaults are malformed
    """
    try:
        defaults = ChargingDefaults(**config.get("defaults", {}))
    except TypeError as exc:
        raise ValueError(f"Invalid charging defaults: {exc}") from None
    holes = []
    for i, entry in enumerate(config.get("holes", [])):
        try:
            holes.append(hole_from_dict(entry))
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning("Skipping hole entry %d: %s", i, exc)
    return Blast(holes, defaults)


def params_from_config(config: dict, model_name: str):
    """Parameter record of the chosen model from the "params" section."""
    model = get_model(model_name)
    return model.parameters_class.from_dict(config.get("params", {}))
