"""
Unit systems and the component field accessor table.

Component fields are stored in natural units (MW, MWh, MW/min). Every read or
write goes through a ``UnitContext`` which says how the caller wants to see
the numbers. The accessor table maps a field name to its unit kind so that the
conversion is resolved in one place rather than per field.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, NamedTuple

from .exceptions import ValidationError


class UnitSystem(Enum):
    """Normalization convention for numeric component fields."""
    NATURAL_UNITS = "natural_units"
    DEVICE_BASE = "device_base"
    SYSTEM_BASE = "system_base"


class UnitKind(Enum):
    """How a field scales with the base power."""
    POWER = "power"          # MW
    ENERGY = "energy"        # MWh, scales like power
    RAMP = "ramp"            # MW/min, scales like power
    DIMENSIONLESS = "none"   # hours, costs, efficiencies, flags


class MinMax(NamedTuple):
    min: float
    max: float


class UpDown(NamedTuple):
    up: float
    down: float


class InOut(NamedTuple):
    input: float
    output: float


# Fields that are not listed here are read and written untouched.
FIELD_UNITS: Dict[str, UnitKind] = {
    "rating": UnitKind.POWER,
    "active_power": UnitKind.POWER,
    "active_power_limits": UnitKind.POWER,
    "max_active_power": UnitKind.POWER,
    "input_active_power_limits": UnitKind.POWER,
    "output_active_power_limits": UnitKind.POWER,
    "ramp_limits": UnitKind.RAMP,
    "storage_capacity": UnitKind.ENERGY,
    "initial_energy": UnitKind.ENERGY,
    "time_limits": UnitKind.DIMENSIONLESS,
    "time_at_status": UnitKind.DIMENSIONLESS,
    "efficiency": UnitKind.DIMENSIONLESS,
    "base_power": UnitKind.DIMENSIONLESS,
}


def _scale(value: Any, op: Callable[[float], float]) -> Any:
    if value is None:
        return None
    if isinstance(value, tuple):
        scaled = [_scale(v, op) for v in value]
        # Keep the NamedTuple type (MinMax, UpDown, ...)
        return type(value)(*scaled) if hasattr(value, "_fields") else tuple(scaled)
    return op(value)


@dataclass(frozen=True)
class UnitContext:
    """Immutable description of the active unit base.

    Attributes:
        unit_system: Base in which values are read and written.
        system_base_power: System base power in MVA.
    """
    unit_system: UnitSystem = UnitSystem.NATURAL_UNITS
    system_base_power: float = 100.0

    def __post_init__(self):
        if self.system_base_power <= 0:
            raise ValidationError(
                f"System base power must be positive, got {self.system_base_power}"
            )

    def with_units(self, unit_system: UnitSystem) -> "UnitContext":
        return UnitContext(unit_system=unit_system, system_base_power=self.system_base_power)

    def base_for(self, device_base_power: float) -> float:
        """Base power dividing natural values in this context."""
        if self.unit_system == UnitSystem.NATURAL_UNITS:
            return 1.0
        if self.unit_system == UnitSystem.DEVICE_BASE:
            return device_base_power
        return self.system_base_power

    def to_context(self, field: str, natural_value: Any, device_base_power: float) -> Any:
        """Convert a stored natural value into this context."""
        return _converter(field, "read")(natural_value, self.base_for(device_base_power))

    def to_natural(self, field: str, value: Any, device_base_power: float,
                   current: Any = None) -> Any:
        """Convert a value expressed in this context into natural units.

        When ``current`` (the stored natural value) reads back exactly as
        ``value``, the stored value is returned untouched so that a
        read-then-write leaves the field bit-for-bit identical.
        """
        base = self.base_for(device_base_power)
        natural = _converter(field, "write")(value, base)
        if current is None:
            return natural
        read = _converter(field, "read")
        return _keep_unchanged(current, value, natural, lambda v: read(v, base))


def _identity(value: Any, base: float) -> Any:
    return value


def _read_scaled(value: Any, base: float) -> Any:
    return value if base == 1.0 else _scale(value, lambda v: v / base)


def _write_scaled(value: Any, base: float) -> Any:
    return value if base == 1.0 else _scale(value, lambda v: v * base)


_CONVERTERS: Dict[UnitKind, Dict[str, Callable[[Any, float], Any]]] = {
    UnitKind.POWER: {"read": _read_scaled, "write": _write_scaled},
    UnitKind.ENERGY: {"read": _read_scaled, "write": _write_scaled},
    UnitKind.RAMP: {"read": _read_scaled, "write": _write_scaled},
    UnitKind.DIMENSIONLESS: {"read": _identity, "write": _identity},
}


def _keep_unchanged(current: Any, value: Any, natural: Any, read: Callable[[Any], Any]) -> Any:
    if isinstance(current, tuple) and isinstance(value, tuple) and len(current) == len(value):
        kept = [_keep_unchanged(c, v, n, read) for c, v, n in zip(current, value, natural)]
        return type(natural)(*kept) if hasattr(natural, "_fields") else tuple(kept)
    if isinstance(current, tuple) or isinstance(value, tuple):
        return natural
    return current if read(current) == value else natural


def _converter(field: str, direction: str) -> Callable[[Any, float], Any]:
    kind = FIELD_UNITS.get(field, UnitKind.DIMENSIONLESS)
    return _CONVERTERS[kind][direction]


NATURAL = UnitContext()
