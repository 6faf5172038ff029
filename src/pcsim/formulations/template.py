"""
Problem templates.

A ``ProblemTemplate`` maps each component category to a ``DeviceModel``
(formulation name plus parameters) and carries a ``NetworkModel``. Templates
are plain values: ``clone()`` gives an independent copy and a decision model
keeps its own clone, so editing a template never reaches a model already
created from it.
"""

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Set

from ..components import ComponentCategory, STRUCTURAL_CATEGORIES, as_category
from ..exceptions import ConfigurationError, FormulationMismatchError, UnknownCategoryError
from .base import get_formulation
from .network import get_network_formulation


@dataclass
class DeviceModel:
    """Formulation chosen for one component category."""
    category: ComponentCategory
    formulation: str
    parameters: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        try:
            self.category = as_category(self.category)
        except ValueError:
            raise ConfigurationError(f"Unknown component category '{self.category}'") from None
        formulation = get_formulation(self.formulation)
        if self.category not in formulation.categories:
            raise ConfigurationError(
                f"Formulation '{self.formulation}' does not apply to {self.category.value}"
            )
        formulation.validate_parameters(self.parameters)
        self.parameters = dict(self.parameters)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category.value,
            "formulation": self.formulation,
            "parameters": dict(self.parameters),
        }


@dataclass
class NetworkModel:
    """Network representation and balance slack settings."""
    model: str = "CopperPlatePowerModel"
    use_slacks: bool = False
    slack_penalty: float = 1e5

    def __post_init__(self):
        get_network_formulation(self.model)
        if self.slack_penalty <= 0:
            raise ConfigurationError(f"Slack penalty must be > 0, got {self.slack_penalty}")

    def create(self):
        return get_network_formulation(self.model)(self.use_slacks, self.slack_penalty)


class ProblemTemplate:
    """Category to formulation mapping for building decision models."""

    def __init__(self, network_model: Optional[NetworkModel] = None):
        self.network_model = network_model or NetworkModel()
        self._device_models: Dict[ComponentCategory, DeviceModel] = {}
        self._excluded: Set[ComponentCategory] = set()

    def __repr__(self) -> str:
        models = ", ".join(f"{c.value}={m.formulation}" for c, m in self._device_models.items())
        return f"ProblemTemplate({self.network_model.model}; {models})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, ProblemTemplate):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    @property
    def device_models(self) -> Dict[ComponentCategory, DeviceModel]:
        return dict(self._device_models)

    @property
    def excluded(self) -> Set[ComponentCategory]:
        return set(self._excluded)

    def set_device_model(self, category, formulation: str,
                         parameters: Optional[Dict[str, Any]] = None) -> DeviceModel:
        """Register or overwrite the formulation of ``category``.

        The formulation name is checked now; whether the category has any
        components is only known once the template is applied to a system.
        """
        model = DeviceModel(category, formulation, parameters or {})
        self._device_models[model.category] = model
        self._excluded.discard(model.category)
        return model

    def get_device_model(self, category) -> Optional[DeviceModel]:
        return self._device_models.get(as_category(category))

    def remove_device_model(self, category) -> None:
        self._device_models.pop(as_category(category), None)

    def exclude(self, category) -> None:
        """Leave ``category`` out of the optimization."""
        category = as_category(category)
        self._device_models.pop(category, None)
        self._excluded.add(category)

    def set_network_model(self, network_model: NetworkModel) -> None:
        self.network_model = network_model

    def clone(self) -> "ProblemTemplate":
        return copy.deepcopy(self)

    def validate_against(self, grid) -> Dict[ComponentCategory, DeviceModel]:
        """Device models that apply to ``grid``, in category order.

        Raises ``FormulationMismatchError`` for a category present in the grid
        that is neither mapped nor excluded, and ``UnknownCategoryError`` for
        a mapped category with no components in the grid.
        """
        present = set(grid.categories())
        unmapped = [
            c for c in present
            if c not in STRUCTURAL_CATEGORIES and c not in self._device_models and c not in self._excluded
        ]
        if unmapped:
            raise FormulationMismatchError(
                "No formulation in template for categories "
                f"{sorted(c.value for c in unmapped)}; map them or exclude them explicitly"
            )
        missing = [c for c in self._device_models if c not in present]
        if missing:
            raise UnknownCategoryError(
                f"Template maps categories with no components in '{grid.name}': "
                f"{sorted(c.value for c in missing)}"
            )
        return {c: self._device_models[c] for c in ComponentCategory if c in self._device_models}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "network": {
                "model": self.network_model.model,
                "use_slacks": self.network_model.use_slacks,
                "slack_penalty": self.network_model.slack_penalty,
            },
            "device_models": [m.to_dict() for m in self._device_models.values()],
            "excluded": sorted(c.value for c in self._excluded),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProblemTemplate":
        template = cls(NetworkModel(**data.get("network", {})))
        for entry in data.get("device_models", []):
            template.set_device_model(entry["category"], entry["formulation"],
                                      entry.get("parameters"))
        for category in data.get("excluded", []):
            template.exclude(category)
        return template


def _template(thermal_formulation: str, network_model: Optional[NetworkModel]) -> ProblemTemplate:
    template = ProblemTemplate(network_model)
    template.set_device_model(ComponentCategory.THERMAL, thermal_formulation)
    template.set_device_model(ComponentCategory.RENEWABLE_DISPATCH, "RenewableFullDispatch")
    template.set_device_model(ComponentCategory.POWER_LOAD, "StaticPowerLoad")
    return template


def template_unit_commitment(network_model: Optional[NetworkModel] = None) -> ProblemTemplate:
    """Thermal commitment, curtailable renewables and static loads."""
    return _template("ThermalBasicUnitCommitment", network_model)


def template_economic_dispatch(network_model: Optional[NetworkModel] = None) -> ProblemTemplate:
    """Continuous thermal dispatch, curtailable renewables and static loads."""
    return _template("ThermalDispatchNoMin", network_model)
