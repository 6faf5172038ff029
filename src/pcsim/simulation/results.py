"""
Results stores and the results reader.

The orchestrator writes through an explicit ``RunHandle`` obtained from a
``ResultsStore``; nothing is written relative to the working directory.
``FileResultsStore`` lays a run out as::

    <directory>/<run name>/run.json
    <directory>/<run name>/events.json
    <directory>/<run name>/steps/step_0000/<model>/step.json
    <directory>/<run name>/steps/step_0000/<model>/<family>.csv

A store refuses to open a run name it already holds, so results of distinct
runs are never merged.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import json
import logging
import threading

import pandas as pd

from ..events import SimulationEvent
from ..exceptions import ResultsNotFoundError, ResultsStoreError
from ..initial_conditions import InitialConditionSet


@dataclass
class StepResults:
    """Everything persisted for one model at one step."""
    step: int
    model: str
    window_start: pd.Timestamp
    variables: Dict[str, pd.DataFrame]
    objective_value: float
    solve_time: float
    cost_by_category: Dict[str, float] = field(default_factory=dict)
    build_stats: Dict[str, Any] = field(default_factory=dict)
    initial_conditions: InitialConditionSet = field(default_factory=InitialConditionSet)
    realized_steps: Optional[int] = None

    @classmethod
    def from_model(cls, step: int, model) -> "StepResults":
        """Harvest a solved ``DecisionModel``."""
        realized = int(model.interval / model.window.resolution)
        return cls(
            step=step,
            model=model.name,
            window_start=model.window.start,
            variables=model.extract_all(),
            objective_value=model.objective_value,
            solve_time=model.solve_time,
            cost_by_category=model.cost_by_category(),
            build_stats=dict(model.build_stats),
            initial_conditions=model.initial_conditions,
            realized_steps=min(realized, model.window.steps),
        )

    def metadata(self) -> Dict[str, Any]:
        return {
            "step": self.step,
            "model": self.model,
            "window_start": self.window_start.isoformat(),
            "families": sorted(self.variables),
            "objective_value": self.objective_value,
            "solve_time": self.solve_time,
            "cost_by_category": self.cost_by_category,
            "build_stats": self.build_stats,
            "initial_conditions": self.initial_conditions.to_records(),
            "realized_steps": self.realized_steps,
        }


class SimulationResults:
    """Read-only view of one simulation run."""

    def __init__(self, name: str, run_id: str, status: str,
                 steps: Dict[str, Dict[int, StepResults]],
                 events: Optional[List[SimulationEvent]] = None,
                 metadata: Optional[Dict[str, Any]] = None,
                 failure: Optional[Dict[str, Any]] = None):
        self.name = name
        self.run_id = run_id
        self.status = status
        self._steps = steps
        self._events = list(events or [])
        self.metadata = dict(metadata or {})
        self.failure = failure

    def __repr__(self) -> str:
        return (f"SimulationResults(name={self.name!r}, status={self.status}, "
                f"models={self.list_models()}, steps={len(self.list_steps())})")

    def _model(self, model: Optional[str]) -> str:
        if model is None:
            models = self.list_models()
            if len(models) != 1:
                raise ResultsNotFoundError(
                    f"Run '{self.name}' holds models {models}; name the model to read"
                )
            return models[0]
        if model not in self._steps:
            raise ResultsNotFoundError(f"Run '{self.name}' has no model '{model}'")
        return model

    def list_models(self) -> List[str]:
        return sorted(self._steps)

    def list_steps(self, model: Optional[str] = None) -> List[int]:
        if not self._steps:
            return []
        return sorted(self._steps[self._model(model)])

    def list_families(self, model: Optional[str] = None) -> List[str]:
        steps = self._steps.get(self._model(model), {}) if self._steps else {}
        return sorted({family for step in steps.values() for family in step.variables})

    def step_results(self, step: int, model: Optional[str] = None) -> StepResults:
        try:
            return self._steps[self._model(model)][step]
        except KeyError:
            raise ResultsNotFoundError(f"Run '{self.name}' has no step {step}") from None

    def read_variable(self, family: str, model: Optional[str] = None) -> Dict[int, pd.DataFrame]:
        """Values of ``family`` for every persisted step, keyed by step index."""
        model = self._model(model)
        if family not in self.list_families(model):
            raise ResultsNotFoundError(f"Run '{self.name}' has no family '{family}' for '{model}'")
        return {
            index: step.variables[family].copy()
            for index, step in sorted(self._steps[model].items())
        }

    def read_realized_variable(self, family: str, model: Optional[str] = None) -> pd.DataFrame:
        """Rows of each step that fall before the next window's start, concatenated."""
        model = self._model(model)
        frames = []
        for index, frame in self.read_variable(family, model).items():
            rows = self._steps[model][index].realized_steps
            frames.append(frame if rows is None else frame.iloc[:rows])
        return pd.concat(frames)

    def optimizer_stats(self, model: Optional[str] = None) -> pd.DataFrame:
        model = self._model(model)
        rows = []
        for index, step in sorted(self._steps[model].items()):
            rows.append({
                "step": index,
                "window_start": step.window_start,
                "objective_value": step.objective_value,
                "solve_time": step.solve_time,
                **{k: v for k, v in step.build_stats.items() if k.startswith("num_")},
            })
        return pd.DataFrame(rows).set_index("step") if rows else pd.DataFrame()

    def cost_by_category(self, model: Optional[str] = None) -> pd.DataFrame:
        model = self._model(model)
        data = {index: step.cost_by_category for index, step in sorted(self._steps[model].items())}
        frame = pd.DataFrame.from_dict(data, orient="index").fillna(0.0)
        frame.index.name = "step"
        return frame

    def initial_conditions(self, step: int, model: Optional[str] = None) -> InitialConditionSet:
        """Initial conditions the given step was built from."""
        return self.step_results(step, model).initial_conditions

    def events(self) -> List[SimulationEvent]:
        return list(self._events)


class RunHandle:
    """Write access to one open run."""

    def __init__(self, store: "ResultsStore", run_name: str, run_id: str):
        self.store = store
        self.run_name = run_name
        self.run_id = run_id
        self.closed = False

    def persist(self, step_index: int, results: StepResults) -> None:
        if self.closed:
            raise ResultsStoreError(f"Run '{self.run_name}' is closed")
        try:
            self.store._write_step(self.run_name, step_index, results)
        except OSError as e:
            raise ResultsStoreError(
                f"Could not persist step {step_index} of run '{self.run_name}': {e}"
            ) from e

    def close(self, status: str, events: List[SimulationEvent],
              failure: Optional[Dict[str, Any]] = None) -> None:
        if self.closed:
            raise ResultsStoreError(f"Run '{self.run_name}' is already closed")
        self.store._finish(self.run_name, status, events, failure)
        self.closed = True


class ResultsStore(ABC):
    """Destination of persisted step results."""

    def __init__(self):
        self.logger = logging.getLogger(f"pcsim.results.{type(self).__name__}")
        self._lock = threading.Lock()

    def open_run(self, run_name: str, run_id: str,
                 metadata: Optional[Dict[str, Any]] = None) -> RunHandle:
        """Start a new run. Raises ``ResultsStoreError`` if the name is taken."""
        with self._lock:
            if self.has_run(run_name):
                raise ResultsStoreError(
                    f"Run '{run_name}' already exists; use a new simulation name"
                )
            self._create_run(run_name, run_id, dict(metadata or {}))
        self.logger.info(f"Opened run '{run_name}' ({run_id})")
        return RunHandle(self, run_name, run_id)

    @abstractmethod
    def has_run(self, run_name: str) -> bool:
        pass

    @abstractmethod
    def list_runs(self) -> List[str]:
        pass

    @abstractmethod
    def load(self, run_name: str) -> SimulationResults:
        pass

    def load_all(self) -> Dict[str, SimulationResults]:
        return {name: self.load(name) for name in self.list_runs()}

    @abstractmethod
    def _create_run(self, run_name: str, run_id: str, metadata: Dict[str, Any]) -> None:
        pass

    @abstractmethod
    def _write_step(self, run_name: str, step_index: int, results: StepResults) -> None:
        pass

    @abstractmethod
    def _finish(self, run_name: str, status: str, events: List[SimulationEvent],
                failure: Optional[Dict[str, Any]]) -> None:
        pass


class InMemoryResultsStore(ResultsStore):
    """Keeps runs in process memory."""

    def __init__(self):
        super().__init__()
        self._runs: Dict[str, Dict[str, Any]] = {}

    def has_run(self, run_name: str) -> bool:
        return run_name in self._runs

    def list_runs(self) -> List[str]:
        return sorted(self._runs)

    def _create_run(self, run_name, run_id, metadata):
        self._runs[run_name] = {
            "run_id": run_id, "status": "EXECUTING", "metadata": metadata,
            "steps": {}, "events": [], "failure": None,
        }

    def _write_step(self, run_name, step_index, results):
        run = self._runs[run_name]
        run["steps"].setdefault(results.model, {})[step_index] = results

    def _finish(self, run_name, status, events, failure):
        run = self._runs[run_name]
        run.update(status=status, events=list(events), failure=failure)

    def load(self, run_name: str) -> SimulationResults:
        if run_name not in self._runs:
            raise ResultsNotFoundError(f"No run named '{run_name}'")
        run = self._runs[run_name]
        steps = {model: dict(entries) for model, entries in run["steps"].items()}
        return SimulationResults(run_name, run["run_id"], run["status"], steps,
                                 run["events"], run["metadata"], run["failure"])


class FileResultsStore(ResultsStore):
    """Writes runs below ``directory`` as CSV tables and JSON metadata."""

    RUN_FILE = "run.json"
    EVENTS_FILE = "events.json"
    STEP_FILE = "step.json"

    def __init__(self, directory: Union[str, Path]):
        super().__init__()
        self.directory = Path(directory)

    def _run_dir(self, run_name: str) -> Path:
        return self.directory / run_name

    def _step_dir(self, run_name: str, step_index: int, model: str) -> Path:
        return self._run_dir(run_name) / "steps" / f"step_{step_index:04d}" / model

    def has_run(self, run_name: str) -> bool:
        return self._run_dir(run_name).exists()

    def list_runs(self) -> List[str]:
        if not self.directory.exists():
            return []
        return sorted(p.name for p in self.directory.iterdir() if (p / self.RUN_FILE).exists())

    def _write_json(self, path: Path, data) -> None:
        with open(path, "w") as f:
            json.dump(data, f, indent=2, default=str)

    def _read_json(self, path: Path):
        with open(path, "r") as f:
            return json.load(f)

    def _create_run(self, run_name, run_id, metadata):
        run_dir = self._run_dir(run_name)
        try:
            run_dir.mkdir(parents=True)
        except FileExistsError:
            raise ResultsStoreError(f"Run directory {run_dir} already exists") from None
        self._write_json(run_dir / self.RUN_FILE, {
            "name": run_name, "run_id": run_id, "status": "EXECUTING",
            "metadata": metadata, "failure": None,
        })

    def _write_step(self, run_name, step_index, results):
        step_dir = self._step_dir(run_name, step_index, results.model)
        step_dir.mkdir(parents=True, exist_ok=True)
        for family, frame in results.variables.items():
            frame.to_csv(step_dir / f"{family}.csv", index_label="DateTime")
        self._write_json(step_dir / self.STEP_FILE, results.metadata())
        self.logger.debug(f"Persisted step {step_index} of '{run_name}' to {step_dir}")

    def _finish(self, run_name, status, events, failure):
        run_dir = self._run_dir(run_name)
        info = self._read_json(run_dir / self.RUN_FILE)
        info.update(status=status, failure=failure)
        self._write_json(run_dir / self.RUN_FILE, info)
        self._write_json(run_dir / self.EVENTS_FILE, [e.to_dict() for e in events])

    def _load_step(self, step_dir: Path) -> StepResults:
        meta = self._read_json(step_dir / self.STEP_FILE)
        variables = {}
        for family in meta["families"]:
            frame = pd.read_csv(step_dir / f"{family}.csv", index_col=0, parse_dates=True)
            frame.index = pd.DatetimeIndex(frame.index)
            frame.index.name = None
            variables[family] = frame.astype(float)
        return StepResults(
            step=meta["step"],
            model=meta["model"],
            window_start=pd.Timestamp(meta["window_start"]),
            variables=variables,
            objective_value=meta["objective_value"],
            solve_time=meta["solve_time"],
            cost_by_category=meta["cost_by_category"],
            build_stats=meta["build_stats"],
            initial_conditions=InitialConditionSet.from_records(meta["initial_conditions"]),
            realized_steps=meta.get("realized_steps"),
        )

    def load(self, run_name: str) -> SimulationResults:
        run_dir = self._run_dir(run_name)
        if not (run_dir / self.RUN_FILE).exists():
            raise ResultsNotFoundError(f"No run named '{run_name}' in {self.directory}")
        info = self._read_json(run_dir / self.RUN_FILE)

        steps: Dict[str, Dict[int, StepResults]] = {}
        steps_dir = run_dir / "steps"
        if steps_dir.exists():
            for step_file in sorted(steps_dir.glob(f"step_*/*/{self.STEP_FILE}")):
                result = self._load_step(step_file.parent)
                steps.setdefault(result.model, {})[result.step] = result

        events = []
        if (run_dir / self.EVENTS_FILE).exists():
            events = [SimulationEvent.from_dict(e) for e in self._read_json(run_dir / self.EVENTS_FILE)]
        return SimulationResults(run_name, info["run_id"], info["status"], steps, events,
                                 info.get("metadata"), info.get("failure"))


def load_all(directory: Union[str, Path]) -> Dict[str, SimulationResults]:
    """Every run found below ``directory``, keyed by run name."""
    return FileResultsStore(directory).load_all()
