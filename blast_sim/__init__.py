"""
blast_sim - Blast vibration and damage field engine.

This package predicts peak particle velocity, damage indices, scaled depth of
burial and related fields around a set of charged blastholes.
"""

__version__ = "0.1.0"
__author__ = "blast_sim contributors"

from .charge import (
    ChargeColumn,
    ChargingDefaults,
    Deck,
    DeckType,
    Element,
    Hole,
    Primer,
    Product,
    discretize,
)
from .detonation import (
    BlockedElementPolicy,
    compute_em_values,
    process_detonation,
    simulate_detonation,
)
from .blast import Blast
from .engine import BlastVibrationEngine, evaluate_field, evaluate_grid
from .models import MODELS, available_models, get_model
from .output import FieldRaster
from .params import (
    HeelanParameters,
    HolmbergPerssonParameters,
    JointedRockParameters,
    PowderFactorParameters,
    PPVDeckParameters,
    PPVParameters,
    PressureParameters,
    ScaledHeelanParameters,
    SDoBParameters,
    SEEParameters,
    Superposition,
)

__all__ = [
    "Blast",
    "BlastVibrationEngine",
    "BlockedElementPolicy",
    "ChargeColumn",
    "ChargingDefaults",
    "Deck",
    "DeckType",
    "Element",
    "FieldRaster",
    "HeelanParameters",
    "Hole",
    "HolmbergPerssonParameters",
    "JointedRockParameters",
    "MODELS",
    "PowderFactorParameters",
    "PPVDeckParameters",
    "PPVParameters",
    "PressureParameters",
    "Primer",
    "Product",
    "ScaledHeelanParameters",
    "SDoBParameters",
    "SEEParameters",
    "Superposition",
    "available_models",
    "compute_em_values",
    "discretize",
    "evaluate_field",
    "evaluate_grid",
    "get_model",
    "process_detonation",
    "simulate_detonation",
]
