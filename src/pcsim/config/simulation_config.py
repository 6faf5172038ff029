"""
Simulation configuration: solver, horizon, template, monitoring and the
top-level ``SimulationConfig`` that turns a file into a runnable simulation.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Dict, Any, Optional, List
import logging

import pandas as pd

from .base import BaseConfig, ConfigValidationResult, ValidationLevel
from ..components import ComponentCategory
from ..decision_model import DecisionModel
from ..formulations.base import FORMULATIONS
from ..formulations.network import NETWORK_FORMULATIONS
from ..formulations.template import NetworkModel, ProblemTemplate
from ..optimization.solver import SolverSettings
from ..simulation.results import FileResultsStore, InMemoryResultsStore, ResultsStore
from ..simulation.sequence import SimulationModels, SimulationSequence
from ..simulation.simulation import Simulation


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
_CATEGORIES = {c.value for c in ComponentCategory}


@dataclass
class SolverConfig:
    """Configuration for the MILP solver."""
    solver: str = "PULP_CBC_CMD"
    time_limit: Optional[float] = 300.0  # seconds
    mip_gap: Optional[float] = 1e-4
    threads: Optional[int] = None
    msg: bool = False
    options: Dict[str, Any] = field(default_factory=dict)

    def validate(self) -> ConfigValidationResult:
        result = ConfigValidationResult(is_valid=True)

        if not self.solver:
            result.add_error("Solver name cannot be empty")

        if self.time_limit is not None and self.time_limit <= 0:
            result.add_error(f"Time limit must be > 0, got {self.time_limit}")
        if self.time_limit is None:
            result.add_warning("No solver time limit; a hard instance can block indefinitely")

        if self.mip_gap is not None and not 0 <= self.mip_gap < 1:
            result.add_error(f"MIP gap must be in [0, 1), got {self.mip_gap}")

        if self.threads is not None and self.threads < 1:
            result.add_error(f"Threads must be >= 1, got {self.threads}")

        return result

    def to_settings(self) -> SolverSettings:
        return SolverSettings(self.solver, self.time_limit, self.mip_gap, self.threads,
                              self.msg, dict(self.options))


@dataclass
class HorizonConfig:
    """Window length, resolution and the offset between window starts."""
    horizon: int = 24               # steps per window
    resolution_minutes: int = 60
    interval_minutes: Optional[int] = None  # defaults to the window span

    @property
    def resolution(self) -> timedelta:
        return timedelta(minutes=self.resolution_minutes)

    @property
    def interval(self) -> timedelta:
        if self.interval_minutes is None:
            return self.horizon * self.resolution
        return timedelta(minutes=self.interval_minutes)

    def validate(self) -> ConfigValidationResult:
        result = ConfigValidationResult(is_valid=True)

        if self.horizon <= 0:
            result.add_error(f"Horizon must be > 0 steps, got {self.horizon}")

        if self.resolution_minutes <= 0:
            result.add_error(f"Resolution must be > 0 minutes, got {self.resolution_minutes}")

        if self.interval_minutes is not None:
            if self.interval_minutes <= 0:
                result.add_error(f"Interval must be > 0 minutes, got {self.interval_minutes}")
            elif self.resolution_minutes > 0 and self.interval_minutes % self.resolution_minutes:
                result.add_error(
                    f"Interval {self.interval_minutes} min is not a multiple of the resolution"
                )
            elif self.interval_minutes != self.horizon * self.resolution_minutes:
                result.add_warning(
                    f"Interval {self.interval_minutes} min differs from the window span "
                    f"{self.horizon * self.resolution_minutes} min; initial conditions are "
                    "still read at the last step of each window"
                )

        return result


@dataclass
class DeviceModelConfig:
    """One template entry."""
    category: str
    formulation: str
    parameters: Dict[str, Any] = field(default_factory=dict)

    def validate(self) -> ConfigValidationResult:
        result = ConfigValidationResult(is_valid=True)

        if self.category not in _CATEGORIES:
            result.add_error(f"Unknown component category: {self.category}")

        formulation = FORMULATIONS.get(self.formulation)
        if formulation is None:
            result.add_error(f"Unknown formulation: {self.formulation}")
        elif self.category in _CATEGORIES and \
                ComponentCategory(self.category) not in formulation.categories:
            result.add_error(f"Formulation {self.formulation} does not apply to {self.category}")

        return result


def _unit_commitment_entries() -> List[DeviceModelConfig]:
    return [
        DeviceModelConfig("ThermalStandard", "ThermalBasicUnitCommitment"),
        DeviceModelConfig("RenewableDispatch", "RenewableFullDispatch"),
        DeviceModelConfig("PowerLoad", "StaticPowerLoad"),
    ]


@dataclass
class TemplateConfig:
    """Configuration of the problem template."""
    network_model: str = "CopperPlatePowerModel"
    use_slacks: bool = False
    slack_penalty: float = 1e5
    device_models: List[DeviceModelConfig] = field(default_factory=_unit_commitment_entries)
    excluded: List[str] = field(default_factory=list)

    def validate(self) -> ConfigValidationResult:
        result = ConfigValidationResult(is_valid=True)

        if self.network_model not in NETWORK_FORMULATIONS:
            result.add_error(f"Unknown network model: {self.network_model}")

        if self.slack_penalty <= 0:
            result.add_error(f"Slack penalty must be > 0, got {self.slack_penalty}")

        seen = set()
        for entry in self.device_models:
            if entry.category in seen:
                result.add_error(f"Duplicate template entry for {entry.category}")
            seen.add(entry.category)
            result.include(entry.category, entry.validate())

        for category in self.excluded:
            if category not in _CATEGORIES:
                result.add_error(f"Unknown excluded category: {category}")
            elif category in seen:
                result.add_error(f"Category {category} is both mapped and excluded")

        if not self.device_models:
            result.add_warning("Template has no device models")

        return result

    def to_template(self) -> ProblemTemplate:
        template = ProblemTemplate(NetworkModel(self.network_model, self.use_slacks, self.slack_penalty))
        for entry in self.device_models:
            template.set_device_model(entry.category, entry.formulation, entry.parameters)
        for category in self.excluded:
            template.exclude(category)
        return template


@dataclass
class MonitoringConfig:
    """Configuration for logging."""
    log_level: str = "INFO"
    log_file: Optional[str] = None
    log_format: str = LOG_FORMAT

    def validate(self) -> ConfigValidationResult:
        """Validate monitoring configuration."""
        result = ConfigValidationResult(is_valid=True)

        valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.log_level not in valid_log_levels:
            result.add_error(f"Invalid log level: {self.log_level}")

        return result


def setup_logging(monitoring: Optional[MonitoringConfig] = None) -> logging.Logger:
    """Configure the ``pcsim`` logger from a monitoring configuration."""
    monitoring = monitoring or MonitoringConfig()
    logger = logging.getLogger("pcsim")
    logger.setLevel(getattr(logging, monitoring.log_level))
    formatter = logging.Formatter(monitoring.log_format)

    # Console handler
    if not any(type(h) is logging.StreamHandler for h in logger.handlers):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    # File handler if specified
    if monitoring.log_file:
        file_handler = logging.FileHandler(monitoring.log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


@dataclass
class SimulationConfig(BaseConfig):
    """Main configuration of a simulation run."""

    name: str = "simulation"
    steps: int = 1
    initial_time: Optional[str] = None  # ISO timestamp
    model_name: str = "UC"
    system: str = "c_sys5_uc"
    results_directory: Optional[str] = None

    horizon: HorizonConfig = field(default_factory=HorizonConfig)
    solver: SolverConfig = field(default_factory=SolverConfig)
    template: TemplateConfig = field(default_factory=TemplateConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)

    config_version: str = "1.0"

    def __post_init__(self):
        """Initialize after dataclass creation."""
        super().__init__()

    def validate(self) -> ConfigValidationResult:
        """Validate the entire simulation configuration."""
        result = ConfigValidationResult(is_valid=True)

        if not self.name:
            result.add_error("Simulation name cannot be empty")

        if not self.model_name:
            result.add_error("Model name cannot be empty")

        if self.steps < 1:
            result.add_error(f"Steps must be >= 1, got {self.steps}")

        if self.initial_time is not None:
            try:
                pd.Timestamp(self.initial_time)
            except ValueError:
                result.add_error(f"Invalid initial time: {self.initial_time}")

        components = [
            ("horizon", self.horizon),
            ("solver", self.solver),
            ("template", self.template),
            ("monitoring", self.monitoring),
        ]
        for component_name, component in components:
            result.include(component_name, component.validate())

        return result

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "name": self.name,
            "steps": self.steps,
            "initial_time": self.initial_time,
            "model_name": self.model_name,
            "system": self.system,
            "results_directory": self.results_directory,
            "horizon": {
                "horizon": self.horizon.horizon,
                "resolution_minutes": self.horizon.resolution_minutes,
                "interval_minutes": self.horizon.interval_minutes
            },
            "solver": {
                "solver": self.solver.solver,
                "time_limit": self.solver.time_limit,
                "mip_gap": self.solver.mip_gap,
                "threads": self.solver.threads,
                "msg": self.solver.msg,
                "options": dict(self.solver.options)
            },
            "template": {
                "network_model": self.template.network_model,
                "use_slacks": self.template.use_slacks,
                "slack_penalty": self.template.slack_penalty,
                "device_models": [
                    {
                        "category": entry.category,
                        "formulation": entry.formulation,
                        "parameters": dict(entry.parameters)
                    }
                    for entry in self.template.device_models
                ],
                "excluded": list(self.template.excluded)
            },
            "monitoring": {
                "log_level": self.monitoring.log_level,
                "log_file": self.monitoring.log_file,
                "log_format": self.monitoring.log_format
            },
            "config_version": self.config_version
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SimulationConfig':
        """Create configuration from dictionary."""
        horizon_data = data.get("horizon", {})
        horizon = HorizonConfig(
            horizon=horizon_data.get("horizon", 24),
            resolution_minutes=horizon_data.get("resolution_minutes", 60),
            interval_minutes=horizon_data.get("interval_minutes")
        )

        solver_data = data.get("solver", {})
        solver = SolverConfig(
            solver=solver_data.get("solver", "PULP_CBC_CMD"),
            time_limit=solver_data.get("time_limit", 300.0),
            mip_gap=solver_data.get("mip_gap", 1e-4),
            threads=solver_data.get("threads"),
            msg=solver_data.get("msg", False),
            options=solver_data.get("options", {})
        )

        template_data = data.get("template", {})
        if "device_models" in template_data:
            device_models = [
                DeviceModelConfig(
                    category=entry["category"],
                    formulation=entry["formulation"],
                    parameters=entry.get("parameters") or {}
                )
                for entry in template_data["device_models"]
            ]
        else:
            device_models = _unit_commitment_entries()
        template = TemplateConfig(
            network_model=template_data.get("network_model", "CopperPlatePowerModel"),
            use_slacks=template_data.get("use_slacks", False),
            slack_penalty=template_data.get("slack_penalty", 1e5),
            device_models=device_models,
            excluded=template_data.get("excluded", [])
        )

        monitoring_data = data.get("monitoring", {})
        monitoring = MonitoringConfig(
            log_level=monitoring_data.get("log_level", "INFO"),
            log_file=monitoring_data.get("log_file"),
            log_format=monitoring_data.get("log_format", LOG_FORMAT)
        )

        return cls(
            name=data.get("name", "simulation"),
            steps=data.get("steps", 1),
            initial_time=data.get("initial_time"),
            model_name=data.get("model_name", "UC"),
            system=data.get("system", "c_sys5_uc"),
            results_directory=data.get("results_directory"),
            horizon=horizon,
            solver=solver,
            template=template,
            monitoring=monitoring,
            config_version=data.get("config_version", "1.0")
        )

    # -- factories ------------------------------------------------------------

    def create_results_store(self) -> ResultsStore:
        if self.results_directory:
            return FileResultsStore(self.results_directory)
        return InMemoryResultsStore()

    def create_decision_model(self, system) -> DecisionModel:
        return DecisionModel(
            self.template.to_template(), system, name=self.model_name,
            horizon=self.horizon.horizon, resolution=self.horizon.resolution,
            interval=self.horizon.interval, initial_time=self.initial_time,
            solver_settings=self.solver.to_settings(),
        )

    def create_simulation(self, system, results_store: Optional[ResultsStore] = None) -> Simulation:
        """Validate, then wire the decision model, sequence and store together."""
        self.validate_and_log()
        model = self.create_decision_model(system)
        sequence = SimulationSequence(SimulationModels([model]))
        return Simulation(
            self.name, self.steps, sequence, results_store or self.create_results_store(),
            initial_time=self.initial_time,
        )
