"""Validation utilities for components and configuration."""

from typing import Any, Optional, Union, Type, Tuple

from .exceptions import ValidationError


class Validator:
    """Base validator class."""

    @staticmethod
    def validate_type(value: Any, expected_type: Union[Type, Tuple[Type, ...]]) -> None:
        """Validate value type."""
        if not isinstance(value, expected_type):
            names = (
                "/".join(t.__name__ for t in expected_type)
                if isinstance(expected_type, tuple) else expected_type.__name__
            )
            raise ValidationError(
                f"Expected type {names}, got {type(value).__name__}"
            )

    @staticmethod
    def validate_range(
        value: Union[int, float],
        min_value: Optional[Union[int, float]] = None,
        max_value: Optional[Union[int, float]] = None,
        name: str = "Value"
    ) -> None:
        """Validate numeric range."""
        if min_value is not None and value < min_value:
            raise ValidationError(f"{name} {value} is below minimum {min_value}")

        if max_value is not None and value > max_value:
            raise ValidationError(f"{name} {value} exceeds maximum {max_value}")


class ComponentValidator(Validator):
    """Validator for component data."""

    @staticmethod
    def validate_name(name: str) -> None:
        """Validate component name."""
        if not name or not isinstance(name, str):
            raise ValidationError("Component name must be a non-empty string")

    @staticmethod
    def validate_power(power: float, name: str = "Power") -> None:
        """Validate a non-negative power value."""
        Validator.validate_type(power, (int, float))
        Validator.validate_range(power, min_value=0, name=name)

    @staticmethod
    def validate_positive(value: float, name: str) -> None:
        Validator.validate_type(value, (int, float))
        if value <= 0:
            raise ValidationError(f"{name} must be positive, got {value}")

    @staticmethod
    def validate_min_max(limits: Tuple[float, float], name: str) -> None:
        """Validate a (min, max) pair."""
        low, high = limits
        Validator.validate_type(low, (int, float))
        Validator.validate_type(high, (int, float))
        if low < 0:
            raise ValidationError(f"{name} minimum must be >= 0, got {low}")
        if low > high:
            raise ValidationError(f"{name} minimum {low} exceeds maximum {high}")

    @staticmethod
    def validate_efficiency(efficiency: float) -> None:
        """Validate efficiency value."""
        Validator.validate_type(efficiency, (int, float))
        if efficiency <= 0 or efficiency > 1:
            raise ValidationError(f"Efficiency must be in (0, 1], got {efficiency}")
