"""
Decision model: one optimization problem for one time window.

A model is created once and rebuilt for every window it is asked to solve.
``build`` takes an immutable snapshot of the system, the window and the
initial conditions; ``solve`` runs the solver; ``extract`` reads result
families after a successful solve.
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple
import logging
import threading

import pandas as pd

from .components import Component, ComponentCategory
from .exceptions import ConfigurationError, ModelStateError, NotSolvedError
from .formulations.base import DeviceFormulation, get_formulation
from .formulations.template import DeviceModel, ProblemTemplate
from .initial_conditions import InitialConditionSet
from .optimization.container import OptimizationContainer
from .optimization.solver import PulpSolver, SolveReport, SolverSettings
from .system import SystemSnapshot
from .timeseries import WindowSpec


class ModelStatus(Enum):
    """Lifecycle of a decision model."""
    UNBUILT = "unbuilt"
    BUILT = "built"
    SOLVED = "solved"
    FAILED = "failed"


class DecisionModel:
    """Builds, solves and exposes the results of one window at a time."""

    def __init__(self, template: ProblemTemplate, system, name: str = "UC",
                 horizon: Optional[int] = None, resolution: Optional[timedelta] = None,
                 interval: Optional[timedelta] = None, initial_time: Optional[datetime] = None,
                 solver_settings: Optional[SolverSettings] = None):
        if not name:
            raise ConfigurationError("Decision model name cannot be empty")
        if horizon is not None and horizon <= 0:
            raise ConfigurationError(f"Horizon must be > 0 steps, got {horizon}")
        self.name = name
        self.template = template.clone()
        self.system = system
        self._horizon = horizon
        self._resolution = pd.Timedelta(resolution) if resolution is not None else None
        self._interval = pd.Timedelta(interval) if interval is not None else None
        self._initial_time = pd.Timestamp(initial_time) if initial_time is not None else None
        self.solver = PulpSolver(solver_settings, name=f"{name}.solver")
        self.logger = logging.getLogger(f"pcsim.decision_model.{name}")

        self.status = ModelStatus.UNBUILT
        self.snapshot: Optional[SystemSnapshot] = None
        self.window: Optional[WindowSpec] = None
        self.initial_conditions = InitialConditionSet()
        self.container: Optional[OptimizationContainer] = None
        self.report: Optional[SolveReport] = None
        self.build_stats: Dict[str, Any] = {}
        self._formulations: List[Tuple[DeviceFormulation, List[Component]]] = []
        self._cancel_event = threading.Event()

    def __repr__(self) -> str:
        return f"DecisionModel(name={self.name!r}, status={self.status.name})"

    # -- time settings ------------------------------------------------------

    @property
    def horizon(self) -> int:
        return self._horizon or 24

    @property
    def resolution(self) -> pd.Timedelta:
        if self._resolution is not None:
            return self._resolution
        resolution = self.system.get_time_series_resolution()
        if resolution is None:
            raise ConfigurationError(
                f"Model '{self.name}' has no resolution and the system has no time series"
            )
        return resolution

    @property
    def interval(self) -> pd.Timedelta:
        """Offset between the starts of consecutive windows."""
        return self._interval if self._interval is not None else self.horizon * self.resolution

    @property
    def initial_time(self) -> pd.Timestamp:
        if self._initial_time is not None:
            return self._initial_time
        forecast_times = self.system.get_forecast_initial_times()
        if forecast_times:
            return forecast_times[0]
        start = self.system.get_time_series_initial_timestamp()
        if start is None:
            raise ConfigurationError(
                f"Model '{self.name}' has no initial time and the system has no time series"
            )
        return start

    def window_for_step(self, step: int, initial_time: Optional[datetime] = None) -> WindowSpec:
        start = pd.Timestamp(initial_time) if initial_time is not None else self.initial_time
        return WindowSpec(start + step * self.interval, self.horizon, self.resolution)

    # -- validation ---------------------------------------------------------

    def validate(self, grid=None) -> Dict[ComponentCategory, DeviceModel]:
        """Check the template against ``grid`` (the live system by default)."""
        return self.template.validate_against(grid if grid is not None else self.system)

    def check_window(self, window: WindowSpec, grid=None) -> None:
        """Raise ``WindowDataMissingError`` if ``window`` cannot be resolved for every device."""
        grid = grid if grid is not None else self.system
        for category, device_model in self.validate(grid).items():
            formulation = get_formulation(device_model.formulation)(category, device_model.parameters)
            for device in grid.get_components(category, available_only=True):
                for series in formulation.required_time_series(device):
                    grid.get_time_series_values(device, series, window)

    # -- lifecycle ----------------------------------------------------------

    def build(self, window: Optional[WindowSpec] = None,
              initial_conditions: Optional[InitialConditionSet] = None,
              snapshot: Optional[SystemSnapshot] = None) -> ModelStatus:
        """Build the problem for ``window``.

        Only available components take part. Initial conditions missing from
        ``initial_conditions`` default to the component fields. On error the
        model is left ``UNBUILT`` and the ``BuildError`` propagates.
        """
        self._reset()
        snapshot = snapshot if snapshot is not None else self.system.snapshot()
        window = window if window is not None else self.window_for_step(0)
        supplied = initial_conditions if initial_conditions is not None else InitialConditionSet()

        device_models = self.template.validate_against(snapshot)
        container = OptimizationContainer(f"{self.name}_{window.start:%Y%m%dT%H%M}", window)
        formulations = []
        resolved = []
        for category, device_model in device_models.items():
            formulation = get_formulation(device_model.formulation)(category, device_model.parameters)
            devices = snapshot.get_components(category, available_only=True)
            resolved.extend(formulation.resolve_initial_conditions(devices, supplied))
            formulations.append((formulation, devices))
        effective = InitialConditionSet(resolved)

        for formulation, devices in formulations:
            formulation.build(container, snapshot, devices, effective)
            self.logger.debug(
                f"{formulation.name}: {len(devices)} {formulation.category.value} component(s)"
            )
        self.template.network_model.create().build(container)
        container.finalize()

        self.snapshot = snapshot
        self.window = window
        self.initial_conditions = effective
        self.container = container
        self._formulations = formulations
        self.build_stats = {
            **container.stats(),
            "window_start": window.start.isoformat(),
            "num_components": sum(len(d) for _, d in formulations),
        }
        self.status = ModelStatus.BUILT
        self.logger.info(
            f"Built {self.name} for window starting {window.start}: "
            f"{self.build_stats['num_variables']} variables "
            f"({self.build_stats['num_binary_variables']} binary), "
            f"{self.build_stats['num_constraints']} constraints"
        )
        return self.status

    def solve(self) -> ModelStatus:
        """Solve the built problem.

        Raises the typed ``SolveError`` of the failure after moving to ``FAILED``.
        """
        if self.status != ModelStatus.BUILT:
            raise ModelStateError(
                f"Model '{self.name}' must be built before solving (status {self.status.name})"
            )
        report = self.solver.solve(self.container.problem, self._cancel_event)
        self.report = report
        if report.success:
            self.status = ModelStatus.SOLVED
            self.logger.info(
                f"Solved {self.name}: objective {report.objective_value:.2f} "
                f"in {report.solve_time:.3f}s"
            )
            return self.status

        self.status = ModelStatus.FAILED
        self.logger.error(f"Solve of {self.name} failed: {report.status.value}")
        report.raise_for_status(f"{self.name} window {self.window.start}")
        return self.status

    def cancel(self) -> None:
        """Abort an in-flight or upcoming solve; the model ends ``FAILED``."""
        self._cancel_event.set()

    def _reset(self) -> None:
        self.status = ModelStatus.UNBUILT
        self.container = None
        self.report = None
        self.window = None
        self.build_stats = {}
        self._formulations = []
        self._cancel_event = threading.Event()

    # -- results ------------------------------------------------------------

    @property
    def is_solved(self) -> bool:
        return self.status == ModelStatus.SOLVED

    def _require_solved(self) -> None:
        if not self.is_solved:
            raise NotSolvedError(
                f"Model '{self.name}' has no results (status {self.status.name})"
            )

    def formulations(self) -> Iterator[Tuple[DeviceFormulation, Sequence[Component]]]:
        return iter(self._formulations)

    def list_families(self) -> List[str]:
        if self.container is None:
            return []
        return self.container.families()

    def extract(self, family: str) -> pd.DataFrame:
        """Values of ``family`` per timestep (rows) and component (columns)."""
        self._require_solved()
        return self.container.values(family)

    def extract_all(self) -> Dict[str, pd.DataFrame]:
        self._require_solved()
        return {family: self.container.values(family) for family in self.container.families()}

    @property
    def objective_value(self) -> float:
        self._require_solved()
        return self.report.objective_value

    @property
    def solve_time(self) -> float:
        self._require_solved()
        return self.report.solve_time

    def cost_by_category(self) -> Dict[str, float]:
        self._require_solved()
        return self.container.cost_by_category()
