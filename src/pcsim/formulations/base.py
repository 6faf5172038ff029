"""
Device formulation contract and registry.

A formulation turns the available components of one category into variables,
constraints, balance contributions and cost terms inside an
``OptimizationContainer``. Formulations are looked up by name so that
templates can be written in configuration files.
"""

from abc import ABC, abstractmethod
from typing import Callable, Dict, FrozenSet, List, Sequence, Tuple, Type
import logging

import pandas as pd

from ..components import Component, ComponentCategory
from ..exceptions import ConfigurationError
from ..initial_conditions import InitialCondition, InitialConditionKey, InitialConditionSet
from ..optimization.container import OptimizationContainer


FORMULATIONS: Dict[str, Type["DeviceFormulation"]] = {}


def register_formulation(cls: Type["DeviceFormulation"]) -> Type["DeviceFormulation"]:
    """Class decorator adding a formulation to the registry under ``cls.name``."""
    if cls.name in FORMULATIONS:
        raise ConfigurationError(f"Formulation '{cls.name}' is already registered")
    FORMULATIONS[cls.name] = cls
    return cls


def get_formulation(name: str) -> Type["DeviceFormulation"]:
    try:
        return FORMULATIONS[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown formulation '{name}'. Available: {sorted(FORMULATIONS)}"
        ) from None


def list_formulations(category: ComponentCategory = None) -> List[str]:
    return sorted(
        name for name, cls in FORMULATIONS.items()
        if category is None or category in cls.categories
    )


class DeviceFormulation(ABC):
    """Base class for the formulation of one component category."""

    name: str = ""
    categories: FrozenSet[ComponentCategory] = frozenset()
    initial_condition_keys: Tuple[InitialConditionKey, ...] = ()
    default_parameters: Dict[str, object] = {}

    def __init__(self, category: ComponentCategory, parameters: Dict[str, object] = None):
        self.category = category
        self.parameters = {**self.default_parameters, **(parameters or {})}
        self.logger = logging.getLogger(f"pcsim.formulations.{self.name}")

    @classmethod
    def validate_parameters(cls, parameters: Dict[str, object]) -> None:
        unknown = set(parameters) - set(cls.default_parameters)
        if unknown:
            raise ConfigurationError(
                f"Formulation '{cls.name}' does not take parameters {sorted(unknown)}"
            )

    @abstractmethod
    def build(self, container: OptimizationContainer, grid, devices: Sequence[Component],
              initial_conditions: InitialConditionSet) -> None:
        """Add this category's variables, constraints and costs to ``container``."""

    def required_time_series(self, device: Component) -> List[str]:
        """Names of the series ``build`` reads for ``device``."""
        return []

    def default_initial_conditions(self, device: Component) -> List[InitialCondition]:
        """Initial conditions taken from the component's own fields."""
        return []

    def resolve_initial_conditions(self, devices: Sequence[Component],
                                   supplied: InitialConditionSet) -> List[InitialCondition]:
        """Supplied values where present, component defaults otherwise."""
        resolved = []
        for device in devices:
            for default in self.default_initial_conditions(device):
                value = supplied.get_value(default.category, default.component, default.key)
                resolved.append(default if value is None else InitialCondition(
                    default.category, default.component, default.key, value
                ))
        return resolved

    def extract_initial_conditions(self, extract: Callable[[str], pd.DataFrame],
                                   devices: Sequence[Component],
                                   previous: InitialConditionSet,
                                   resolution_hours: float) -> List[InitialCondition]:
        """State at the last timestep of a solved window."""
        return []

    def initial_value(self, initial_conditions: InitialConditionSet, device: Component,
                      key: InitialConditionKey) -> float:
        value = initial_conditions.get_value(self.category, device.name, key)
        if value is not None:
            return value
        for default in self.default_initial_conditions(device):
            if default.key == key:
                return default.value
        raise ConfigurationError(
            f"No {key.value} initial condition for {self.category.value} '{device.name}'"
        )

    def _condition(self, device: Component, key: InitialConditionKey,
                   value: float) -> InitialCondition:
        return InitialCondition(self.category, device.name, key, value)
