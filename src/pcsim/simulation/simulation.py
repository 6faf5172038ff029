"""
Rolling-horizon simulation orchestrator.

A ``Simulation`` runs the models of a ``SimulationSequence`` over ``steps``
consecutive windows. ``build()`` checks every model against the system and
every window's time series coverage, then builds step 0. ``execute()`` then
solves each step, advances the initial conditions through the chronology and
persists the step before moving on. The first failure stops the run; steps
persisted before it are kept.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Sequence
import logging
import threading
import uuid

import pandas as pd

from ..decision_model import DecisionModel
from ..events import EventRecorder, SimulationEventType
from ..exceptions import (
    BuildError, ConfigurationError, ModelStateError, NotSolvedError, PCSimError,
    ResultsStoreError, SimulationBuildError, SimulationExecutionError, SimulationStateError,
    SolveError, StepDependencyError, ValidationError
)
from ..initial_conditions import InitialConditionSet
from .results import ResultsStore, RunHandle, SimulationResults, StepResults
from .sequence import SimulationSequence


class SimulationState(Enum):
    """Lifecycle of a simulation run."""
    UNBUILT = "unbuilt"
    BUILDING = "building"
    BUILT = "built"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class StepFailure:
    """Where and why a run stopped."""
    step: int
    model: Optional[str]
    kind: str
    message: str
    best_objective: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class Simulation:
    """Owns the rolling-horizon loop for one run."""

    def __init__(self, name: str, steps: int, sequence: SimulationSequence,
                 results_store: ResultsStore, initial_time: Optional[datetime] = None,
                 initial_conditions: Optional[Dict[str, InitialConditionSet]] = None):
        if not name:
            raise ConfigurationError("Simulation name cannot be empty")
        if steps < 1:
            raise ConfigurationError(f"Simulation needs at least one step, got {steps}")
        unknown = set(initial_conditions or {}) - set(sequence.models.names)
        if unknown:
            raise ConfigurationError(f"Initial conditions given for unknown models {sorted(unknown)}")

        self.name = name
        self.steps = steps
        self.sequence = sequence
        self.results_store = results_store
        self.initial_time = pd.Timestamp(initial_time) if initial_time is not None else None
        self.run_id = uuid.uuid4().hex
        self.state = SimulationState.UNBUILT
        self.failure: Optional[StepFailure] = None
        self.build_artifacts: Dict[str, Dict[int, Dict[str, Any]]] = {}
        self.recorder = EventRecorder()
        self.logger = logging.getLogger(f"pcsim.simulation.{name}")

        self._initial_conditions = dict(initial_conditions or {})
        self._next_conditions: Dict[str, InitialConditionSet] = {}
        self._last_solved: Dict[str, int] = {}
        self._handle: Optional[RunHandle] = None
        self._cancel_requested = threading.Event()

    def __repr__(self) -> str:
        return f"Simulation(name={self.name!r}, steps={self.steps}, state={self.state.name})"

    @property
    def models(self):
        return self.sequence.models

    def window(self, model: DecisionModel, step: int):
        return model.window_for_step(step, self.initial_time)

    # -- build --------------------------------------------------------------

    def build(self) -> SimulationState:
        """Validate every model and window, then build step 0.

        Raises ``SimulationBuildError`` (state ``FAILED``) on any build
        problem. No solver is invoked.
        """
        if self.state != SimulationState.UNBUILT:
            raise SimulationStateError(
                f"Simulation '{self.name}' can only be built once (state {self.state.name})"
            )
        self.state = SimulationState.BUILDING
        self.recorder.record(SimulationEventType.BUILD_STARTED, steps=self.steps)
        self.logger.info(f"Building simulation '{self.name}' ({self.steps} steps, run {self.run_id})")

        step, model_name = 0, None
        try:
            self.sequence.validate()
            for model in self.models:
                model_name = model.name
                model.validate()
                for step in range(self.steps):
                    model.check_window(self.window(model, step))
            step = 0
            for model in self.models:
                model_name = model.name
                self._build_model(0, model)
        except (BuildError, ConfigurationError, ValidationError) as e:
            self.state = SimulationState.FAILED
            self.failure = StepFailure(step, model_name, e.kind, str(e))
            self.recorder.record(SimulationEventType.BUILD_FAILED, step, model_name,
                                 kind=e.kind, message=str(e))
            self.logger.error(f"Build of '{self.name}' failed at step {step}: {e}")
            raise SimulationBuildError(
                f"Simulation '{self.name}' failed to build at step {step} ({e.kind}): {e}",
                step, e.kind
            ) from e

        self.state = SimulationState.BUILT
        self.recorder.record(SimulationEventType.BUILD_COMPLETED)
        return self.state

    def build_step(self, step: int, model_name: Optional[str] = None) -> None:
        """Build ``step`` for one model, or for every model.

        Step i > 0 is built from the initial conditions of step i-1, which
        must have been solved; otherwise ``StepDependencyError`` is raised.
        """
        if self.state not in (SimulationState.BUILT, SimulationState.EXECUTING):
            raise SimulationStateError(
                f"Cannot build steps of '{self.name}' in state {self.state.name}"
            )
        if not 0 <= step < self.steps:
            raise ConfigurationError(f"Step {step} outside 0..{self.steps - 1}")
        models = [self.models[model_name]] if model_name else list(self.models)
        for model in models:
            if step > 0 and self._last_solved.get(model.name) != step - 1:
                raise StepDependencyError(
                    f"Step {step} of '{model.name}' needs step {step - 1} solved first"
                )
            self._build_model(step, model)

    def _build_model(self, step: int, model: DecisionModel) -> None:
        if step == 0:
            conditions = self._initial_conditions.get(model.name)
        else:
            conditions = self._next_conditions[self.sequence.source_of(model.name)]
        model.build(self.window(model, step), conditions)
        self.build_artifacts.setdefault(model.name, {})[step] = dict(model.build_stats)
        self.recorder.record(SimulationEventType.STEP_BUILT, step, model.name, **{
            k: v for k, v in model.build_stats.items() if k.startswith("num_")
        })

    # -- execute ------------------------------------------------------------

    def execute(self) -> SimulationState:
        """Solve every step in order and persist the results.

        Raises ``SimulationExecutionError`` (state ``FAILED``, ``failure``
        set) when a step fails. A simulation executes once; run a new
        ``Simulation`` to get a new run.
        """
        if self.state != SimulationState.BUILT:
            raise SimulationStateError(
                f"Simulation '{self.name}' cannot execute in state {self.state.name}; "
                "create a new Simulation for a new run"
            )
        self.state = SimulationState.EXECUTING
        try:
            self._handle = self.results_store.open_run(self.name, self.run_id, self._metadata())
        except PCSimError:
            self.state = SimulationState.FAILED
            raise
        self.recorder.record(SimulationEventType.EXECUTION_STARTED, run_id=self.run_id)

        for step in range(self.steps):
            for model_name in self.sequence.execution_order:
                model = self.models[model_name]
                try:
                    if step > 0:
                        self.build_step(step, model.name)
                    if self._cancel_requested.is_set():
                        model.cancel()
                    model.solve()
                    conditions = self.sequence.chronology.advance(model)
                except (BuildError, SolveError, NotSolvedError, ModelStateError,
                        ConfigurationError, ValidationError) as e:
                    raise self._fail(step, model, e) from e

                self._last_solved[model.name] = step
                self._next_conditions[model.name] = conditions
                self.recorder.record(SimulationEventType.STEP_SOLVED, step, model.name,
                                     objective_value=model.objective_value,
                                     solve_time=model.solve_time)
                self.recorder.record(SimulationEventType.INITIAL_CONDITIONS_UPDATED, step,
                                     model.name, entries=len(conditions))
                try:
                    self._handle.persist(step, StepResults.from_model(step, model))
                except ResultsStoreError as e:
                    raise self._fail(step, model, e) from e
                self.recorder.record(SimulationEventType.RESULTS_PERSISTED, step, model.name)
            self.logger.info(f"'{self.name}': step {step + 1}/{self.steps} done")

        self.state = SimulationState.COMPLETED
        self.recorder.record(SimulationEventType.SIMULATION_COMPLETED)
        self._handle.close(self.state.name, self.recorder.events)
        self.logger.info(f"Simulation '{self.name}' completed")
        return self.state

    def _fail(self, step: int, model: DecisionModel, error: PCSimError) -> SimulationExecutionError:
        best = getattr(error, "best_objective", None)
        self.failure = StepFailure(step, model.name, error.kind, str(error), best)
        self.state = SimulationState.FAILED
        self.recorder.record(SimulationEventType.STEP_FAILED, step, model.name,
                             kind=error.kind, message=str(error), best_objective=best)
        self.recorder.record(SimulationEventType.SIMULATION_FAILED, step, model.name)
        try:
            self._handle.close(self.state.name, self.recorder.events, self.failure.to_dict())
        except ResultsStoreError as e:
            self.logger.error(f"Could not record the failure of '{self.name}' in the store: {e}")
        self.logger.error(f"Simulation '{self.name}' failed at step {step} on '{model.name}': {error}")
        return SimulationExecutionError(
            f"Step {step} of model '{model.name}' failed ({error.kind}): {error}",
            step, model.name, error.kind, best
        )

    def cancel(self) -> None:
        """Stop the run; the step in progress (or the next one) fails as cancelled."""
        self._cancel_requested.set()
        for model in self.models:
            model.cancel()

    def _metadata(self) -> Dict[str, Any]:
        return {
            "steps": self.steps,
            "initial_time": self.initial_time.isoformat() if self.initial_time is not None else None,
            "chronology": self.sequence.chronology.name,
            "models": {
                model.name: {
                    "horizon": model.horizon,
                    "resolution": str(model.resolution),
                    "interval": str(model.interval),
                    "template": model.template.to_dict(),
                }
                for model in self.models
            },
        }

    # -- results ------------------------------------------------------------

    def results(self) -> SimulationResults:
        return self.results_store.load(self.name)

    @property
    def events(self):
        return self.recorder.events


def run_scenarios(simulations: Sequence[Simulation],
                  max_workers: Optional[int] = None) -> Dict[str, SimulationState]:
    """Build and execute independent simulations concurrently.

    A failing scenario is logged and reported through its final state; the
    others keep running. Scenarios must not share decision models.
    """
    names = [s.name for s in simulations]
    if len(set(names)) != len(names):
        raise ConfigurationError(f"Scenario names must be unique: {names}")
    seen: Dict[int, str] = {}
    for simulation in simulations:
        for model in simulation.models:
            owner = seen.setdefault(id(model), simulation.name)
            if owner != simulation.name:
                raise ConfigurationError(
                    f"Decision model '{model.name}' is shared by '{owner}' and '{simulation.name}'"
                )

    logger = logging.getLogger("pcsim.simulation")

    def _run(simulation: Simulation) -> SimulationState:
        try:
            if simulation.state == SimulationState.UNBUILT:
                simulation.build()
            simulation.execute()
        except PCSimError as e:
            logger.error(f"Scenario '{simulation.name}' ended in {simulation.state.name}: {e}")
        return simulation.state

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures = {s.name: pool.submit(_run, s) for s in simulations}
        return {name: future.result() for name, future in futures.items()}
