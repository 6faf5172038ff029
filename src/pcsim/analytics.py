"""Metrics computed from persisted simulation results.

Metric functions only read from ``SimulationResults``; they never touch a
running simulation. Time-dependent metrics are built from the realized part
of each step (the rows before the next window starts).
"""

from typing import Callable, Dict, List, Mapping, Optional, Sequence, Union
from dataclasses import dataclass
import numpy as np
import pandas as pd

from .components import ComponentCategory
from .exceptions import AnalysisError, ResultsNotFoundError
from .optimization.container import family_key
from .simulation.results import SimulationResults


@dataclass(frozen=True)
class TimelessMetric:
    """A metric reducing a run to one number."""
    name: str
    description: str
    func: Callable[[SimulationResults, Optional[str]], float]

    def compute(self, results: SimulationResults, model: Optional[str] = None) -> float:
        return float(self.func(results, model))


@dataclass(frozen=True)
class TimedMetric:
    """A metric producing one value per realized timestamp."""
    name: str
    description: str
    func: Callable[[SimulationResults, Optional[str]], pd.Series]

    def compute(self, results: SimulationResults, model: Optional[str] = None) -> pd.Series:
        series = self.func(results, model)
        series.name = self.name
        return series


def _realized_total(results: SimulationResults, family: str,
                    model: Optional[str]) -> Optional[pd.Series]:
    """Sum over components of a realized family, or None if the run lacks it."""
    if family not in results.list_families(model):
        return None
    return results.read_realized_variable(family, model).sum(axis=1)


def _timestamps(results: SimulationResults, model: Optional[str]) -> pd.DatetimeIndex:
    families = results.list_families(model)
    if not families:
        raise AnalysisError(f"Run '{results.name}' has no persisted results")
    return results.read_realized_variable(families[0], model).index


def _zeros(results, model) -> pd.Series:
    return pd.Series(0.0, index=_timestamps(results, model))


def total_objective_value(results: SimulationResults, model: Optional[str] = None) -> float:
    stats = results.optimizer_stats(model)
    return float(stats["objective_value"].sum()) if not stats.empty else 0.0


def total_solve_time(results: SimulationResults, model: Optional[str] = None) -> float:
    stats = results.optimizer_stats(model)
    return float(stats["solve_time"].sum()) if not stats.empty else 0.0


def production_cost_series(results: SimulationResults, model: Optional[str] = None) -> pd.Series:
    """Realized production cost of all categories per timestamp."""
    total = _zeros(results, model)
    for family in results.list_families(model):
        if family.startswith("ProductionCostExpression__"):
            total = total.add(_realized_total(results, family, model), fill_value=0.0)
    return total


def generation_series(category: ComponentCategory) -> Callable:
    """Build a metric function for the realized output of ``category``."""
    def _generation(results: SimulationResults, model: Optional[str] = None) -> pd.Series:
        series = _realized_total(results, family_key("ActivePowerVariable", category), model)
        return series if series is not None else _zeros(results, model)
    _generation.__name__ = f"{category.name.lower()}_generation_series"
    return _generation


def curtailment_series(results: SimulationResults, model: Optional[str] = None) -> pd.Series:
    """Available minus dispatched renewable power per timestamp."""
    category = ComponentCategory.RENEWABLE_DISPATCH
    available = _realized_total(results, family_key("ActivePowerTimeSeriesParameter", category), model)
    dispatched = _realized_total(results, family_key("ActivePowerVariable", category), model)
    if available is None or dispatched is None:
        return _zeros(results, model)
    return (available - dispatched).clip(lower=0.0)


def renewable_share(results: SimulationResults, model: Optional[str] = None) -> float:
    """Fraction of generated energy that came from renewables."""
    renewable = sum(
        generation_series(c)(results, model).sum()
        for c in (ComponentCategory.RENEWABLE_DISPATCH, ComponentCategory.RENEWABLE_NON_DISPATCH)
    )
    thermal = generation_series(ComponentCategory.THERMAL)(results, model).sum()
    total = renewable + thermal
    return float(renewable / total) if total > 0 else 0.0


def thermal_starts(results: SimulationResults, model: Optional[str] = None) -> float:
    series = _realized_total(results, family_key("StartVariable", ComponentCategory.THERMAL), model)
    return float(np.round(series.sum())) if series is not None else 0.0


TOTAL_OBJECTIVE = TimelessMetric("TotalObjective", "Sum of step objective values", total_objective_value)
TOTAL_SOLVE_TIME = TimelessMetric("TotalSolveTime", "Sum of step solve times [s]", total_solve_time)
RENEWABLE_SHARE = TimelessMetric("RenewableShare", "Renewable share of generated energy", renewable_share)
THERMAL_STARTS = TimelessMetric("ThermalStarts", "Number of realized thermal starts", thermal_starts)

PRODUCTION_COST = TimedMetric("ProductionCost", "Realized production cost [$]", production_cost_series)
THERMAL_GENERATION = TimedMetric("ThermalGeneration", "Realized thermal output [MW]",
                                 generation_series(ComponentCategory.THERMAL))
RENEWABLE_GENERATION = TimedMetric("RenewableGeneration", "Realized renewable output [MW]",
                                   generation_series(ComponentCategory.RENEWABLE_DISPATCH))
CURTAILMENT = TimedMetric("Curtailment", "Curtailed renewable power [MW]", curtailment_series)

TIMELESS_METRICS: List[TimelessMetric] = [TOTAL_OBJECTIVE, TOTAL_SOLVE_TIME, RENEWABLE_SHARE,
                                          THERMAL_STARTS]
TIMED_METRICS: List[TimedMetric] = [PRODUCTION_COST, THERMAL_GENERATION, RENEWABLE_GENERATION,
                                    CURTAILMENT]


ResultsInput = Union[SimulationResults, Mapping[str, SimulationResults]]


def _as_mapping(results: ResultsInput) -> Dict[str, SimulationResults]:
    if isinstance(results, SimulationResults):
        return {results.name: results}
    return dict(results)


def compute_timeless_metrics(results: ResultsInput,
                             metrics: Sequence[TimelessMetric] = TIMELESS_METRICS,
                             model: Optional[str] = None) -> pd.DataFrame:
    """One row per run, one column per metric."""
    rows = {}
    for name, run in _as_mapping(results).items():
        try:
            rows[name] = {m.name: m.compute(run, model) for m in metrics}
        except (ResultsNotFoundError, KeyError, ValueError) as e:
            raise AnalysisError(f"Timeless metrics failed for run '{name}': {e}") from e
    frame = pd.DataFrame.from_dict(rows, orient="index", columns=[m.name for m in metrics])
    frame.index.name = "run"
    return frame


def compute_timed_metrics(results: ResultsInput,
                          metrics: Sequence[TimedMetric] = TIMED_METRICS,
                          model: Optional[str] = None) -> pd.DataFrame:
    """One row per realized timestamp, one column per metric.

    With several runs the columns are a ``(run, metric)`` MultiIndex.
    """
    frames = {}
    for name, run in _as_mapping(results).items():
        try:
            frames[name] = pd.concat([m.compute(run, model) for m in metrics], axis=1)
        except (ResultsNotFoundError, KeyError, ValueError) as e:
            raise AnalysisError(f"Timed metrics failed for run '{name}': {e}") from e
    if isinstance(results, SimulationResults):
        return frames[results.name]
    return pd.concat(frames, axis=1)
