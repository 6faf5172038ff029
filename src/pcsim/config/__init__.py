"""
Configuration package for pcsim.
Provides validatable configuration objects that load from and save to YAML or JSON.
"""

from .base import (
    BaseConfig,
    ConfigFormat,
    ValidationLevel,
    ConfigValidationResult
)

from .simulation_config import (
    SolverConfig,
    HorizonConfig,
    DeviceModelConfig,
    TemplateConfig,
    MonitoringConfig,
    SimulationConfig,
    setup_logging
)

__all__ = [
    # Base configuration classes
    "BaseConfig",
    "ConfigFormat",
    "ValidationLevel",
    "ConfigValidationResult",

    # Simulation configuration components
    "SolverConfig",
    "HorizonConfig",
    "DeviceModelConfig",
    "TemplateConfig",
    "MonitoringConfig",

    # Main configuration class
    "SimulationConfig",
    "setup_logging"
]
