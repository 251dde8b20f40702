"""
Registry of the available field models.
"""

from typing import Dict, List, Union

from .damage import HolmbergPerssonModel, JointedRockDamageModel
from .energy import PowderFactorModel, PressureModel, SDoBModel, SEEModel
from .heelan import HeelanOriginalModel, ScaledHeelanModel
from .ppv import PPVDeckModel, PPVModel
from .sitelaw import SiteLawModel

MODELS: Dict[str, SiteLawModel] = {
    model.name: model
    for model in (
        PPVModel(),
        PPVDeckModel(),
        HeelanOriginalModel(),
        ScaledHeelanModel(),
        HolmbergPerssonModel(),
        JointedRockDamageModel(),
        SDoBModel(),
        SEEModel(),
        PressureModel(),
        PowderFactorModel(),
    )
}


def get_model(model: Union[str, SiteLawModel]) -> SiteLawModel:
    """
    Look up a model by registry name; model instances pass through.

    Raises:
        ValueError: If the name is not registered
    """
    if isinstance(model, SiteLawModel):
        return model
    try:
        return MODELS[model]
    except KeyError:
        raise ValueError(
            f"Unknown model {model!r}. Available: {', '.join(sorted(MODELS))}"
        ) from None


def available_models() -> List[dict]:
    """Name, display name and unit of every registered model."""
    return [
        {"name": m.name, "display_name": m.display_name, "unit": m.unit}
        for m in MODELS.values()
    ]
