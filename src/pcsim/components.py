"""Grid component definitions.

All numeric ratings are stored in natural units (MW, MWh, MW/min, hours).
Read them through ``System.get_value`` to see them in another unit base.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from .units import MinMax, UpDown, InOut
from .validation import ComponentValidator


class ComponentCategory(str, Enum):
    """Component categories known to the engine."""
    BUS = "ACBus"
    THERMAL = "ThermalStandard"
    RENEWABLE_DISPATCH = "RenewableDispatch"
    RENEWABLE_NON_DISPATCH = "RenewableNonDispatch"
    STORAGE = "EnergyReservoirStorage"
    POWER_LOAD = "PowerLoad"


# Categories that never need a formulation in a template.
STRUCTURAL_CATEGORIES = frozenset({ComponentCategory.BUS})


@dataclass
class ThermalGenerationCost:
    """Linear production cost of a thermal unit."""
    variable: float = 0.0   # $/MWh
    fixed: float = 0.0      # $/h while committed
    start_up: float = 0.0   # $ per start
    shut_down: float = 0.0  # $ per stop


@dataclass
class RenewableGenerationCost:
    variable: float = 0.0      # $/MWh
    curtailment: float = 0.0   # $/MWh of unused available energy


@dataclass
class StorageCost:
    charge_variable: float = 0.0     # $/MWh charged
    discharge_variable: float = 0.0  # $/MWh discharged


@dataclass
class Component:
    """Base class for all grid components."""
    name: str
    available: bool = True
    base_power: float = 100.0
    ext: Dict[str, Any] = field(default_factory=dict)

    category = None

    def __post_init__(self):
        ComponentValidator.validate_name(self.name)
        ComponentValidator.validate_positive(self.base_power, "Base power")


@dataclass
class ACBus(Component):
    """Electrical bus. Structural only; the copper plate ignores topology."""
    number: int = 0
    base_voltage: Optional[float] = None

    category = ComponentCategory.BUS


@dataclass
class ThermalStandard(Component):
    """Dispatchable thermal generator."""
    bus: Optional[str] = None
    rating: float = 0.0
    active_power: float = 0.0
    status: bool = True
    active_power_limits: MinMax = MinMax(0.0, 0.0)
    ramp_limits: Optional[UpDown] = None
    time_limits: Optional[UpDown] = None
    time_at_status: float = 10000.0
    operation_cost: ThermalGenerationCost = field(default_factory=ThermalGenerationCost)

    category = ComponentCategory.THERMAL

    def __post_init__(self):
        super().__post_init__()
        self.active_power_limits = MinMax(*self.active_power_limits)
        ComponentValidator.validate_min_max(self.active_power_limits, "Active power limits")
        ComponentValidator.validate_power(self.rating, "Rating")
        ComponentValidator.validate_power(self.active_power, "Active power")
        if self.ramp_limits is not None:
            self.ramp_limits = UpDown(*self.ramp_limits)
            ComponentValidator.validate_power(self.ramp_limits.up, "Ramp up limit")
            ComponentValidator.validate_power(self.ramp_limits.down, "Ramp down limit")
        if self.time_limits is not None:
            self.time_limits = UpDown(*self.time_limits)
            ComponentValidator.validate_power(self.time_limits.up, "Minimum up time")
            ComponentValidator.validate_power(self.time_limits.down, "Minimum down time")


@dataclass
class RenewableDispatch(Component):
    """Curtailable renewable generator driven by a max_active_power profile."""
    bus: Optional[str] = None
    rating: float = 0.0
    active_power: float = 0.0
    operation_cost: RenewableGenerationCost = field(default_factory=RenewableGenerationCost)

    category = ComponentCategory.RENEWABLE_DISPATCH

    def __post_init__(self):
        super().__post_init__()
        ComponentValidator.validate_power(self.rating, "Rating")


@dataclass
class RenewableNonDispatch(RenewableDispatch):
    """Renewable generator whose output is taken as given."""
    category = ComponentCategory.RENEWABLE_NON_DISPATCH


@dataclass
class EnergyReservoirStorage(Component):
    """Battery-like storage with a single energy reservoir."""
    bus: Optional[str] = None
    storage_capacity: float = 0.0
    initial_energy: float = 0.0
    input_active_power_limits: MinMax = MinMax(0.0, 0.0)
    output_active_power_limits: MinMax = MinMax(0.0, 0.0)
    efficiency: InOut = InOut(1.0, 1.0)
    operation_cost: StorageCost = field(default_factory=StorageCost)

    category = ComponentCategory.STORAGE

    def __post_init__(self):
        super().__post_init__()
        self.input_active_power_limits = MinMax(*self.input_active_power_limits)
        self.output_active_power_limits = MinMax(*self.output_active_power_limits)
        self.efficiency = InOut(*self.efficiency)
        ComponentValidator.validate_power(self.storage_capacity, "Storage capacity")
        ComponentValidator.validate_min_max(self.input_active_power_limits, "Input limits")
        ComponentValidator.validate_min_max(self.output_active_power_limits, "Output limits")
        ComponentValidator.validate_efficiency(self.efficiency.input)
        ComponentValidator.validate_efficiency(self.efficiency.output)
        ComponentValidator.validate_range(
            self.initial_energy, 0, self.storage_capacity, name="Initial energy"
        )


@dataclass
class PowerLoad(Component):
    """Fixed demand scaled by a max_active_power profile."""
    bus: Optional[str] = None
    max_active_power: float = 0.0

    category = ComponentCategory.POWER_LOAD

    def __post_init__(self):
        super().__post_init__()
        ComponentValidator.validate_power(self.max_active_power, "Max active power")


COMPONENT_TYPES = {
    cls.category: cls
    for cls in (ACBus, ThermalStandard, RenewableDispatch, RenewableNonDispatch,
                EnergyReservoirStorage, PowerLoad)
}


def as_category(value) -> ComponentCategory:
    """Coerce a category name, enum member or component class to a category."""
    if isinstance(value, ComponentCategory):
        return value
    if isinstance(value, type) and issubclass(value, Component):
        return value.category
    return ComponentCategory(value)
