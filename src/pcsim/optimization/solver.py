"""
Solver settings, invocation and termination mapping.

The MILP solver is driven through PuLP. Every run is bounded by a
caller-configured wall-clock limit and relative optimality gap. A solve that
stops on a limit is reported as ``TIME_LIMIT`` together with the best
incumbent objective, never as optimal.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional
import logging
import threading
import time

import pulp

from ..exceptions import (
    ConfigurationError, InfeasibleError, SolveCancelledError, SolveError,
    SolverNumericalError, SolverTimeoutError
)


class TerminationStatus(Enum):
    """Status of a solver run."""
    OPTIMAL = "optimal"
    TIME_LIMIT = "time_limit"
    INFEASIBLE = "infeasible"
    UNBOUNDED = "unbounded"
    NUMERICAL_ERROR = "numerical_error"
    CANCELLED = "cancelled"


_ERRORS = {
    TerminationStatus.TIME_LIMIT: SolverTimeoutError,
    TerminationStatus.INFEASIBLE: InfeasibleError,
    TerminationStatus.UNBOUNDED: SolverNumericalError,
    TerminationStatus.NUMERICAL_ERROR: SolverNumericalError,
    TerminationStatus.CANCELLED: SolveCancelledError,
}


@dataclass
class SolverSettings:
    """Caller-configurable solver options."""
    solver: str = "PULP_CBC_CMD"
    time_limit: Optional[float] = None  # seconds
    mip_gap: Optional[float] = None     # relative
    threads: Optional[int] = None
    msg: bool = False
    options: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.time_limit is not None and self.time_limit <= 0:
            raise ConfigurationError(f"Solver time limit must be > 0, got {self.time_limit}")
        if self.mip_gap is not None and not 0 <= self.mip_gap < 1:
            raise ConfigurationError(f"MIP gap must be in [0, 1), got {self.mip_gap}")

    def create_solver(self) -> pulp.LpSolver:
        kwargs: Dict[str, Any] = {"msg": self.msg}
        if self.time_limit is not None:
            kwargs["timeLimit"] = self.time_limit
        if self.mip_gap is not None:
            kwargs["gapRel"] = self.mip_gap
        if self.threads is not None:
            kwargs["threads"] = self.threads
        kwargs.update(self.options)
        try:
            return pulp.getSolver(self.solver, **kwargs)
        except pulp.PulpSolverError as e:
            raise ConfigurationError(f"Unknown solver '{self.solver}': {e}") from e


@dataclass
class SolveReport:
    """Result of one solver run."""
    status: TerminationStatus
    objective_value: Optional[float]
    solve_time: float
    best_objective: Optional[float] = None
    solver_info: Dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.status == TerminationStatus.OPTIMAL

    def raise_for_status(self, label: str) -> None:
        """Raise the typed error matching a failed status."""
        if self.success:
            return
        error_cls = _ERRORS.get(self.status, SolveError)
        detail = self.solver_info.get("message", self.status.value)
        raise error_cls(f"{label}: {detail}", best_objective=self.best_objective)


class PulpSolver:
    """Runs PuLP problems and maps the outcome to a ``SolveReport``."""

    def __init__(self, settings: Optional[SolverSettings] = None, name: str = "pulp"):
        self.settings = settings or SolverSettings()
        self.name = name
        self.logger = logging.getLogger(f"pcsim.optimization.{name}")

    def solve(self, problem: pulp.LpProblem,
              cancel_event: Optional[threading.Event] = None) -> SolveReport:
        if cancel_event is not None and cancel_event.is_set():
            return self._log(problem, SolveReport(
                TerminationStatus.CANCELLED, None, 0.0,
                solver_info={"message": "cancelled before solve"}
            ))

        solver = self.settings.create_solver()
        start_time = time.time()
        try:
            problem.solve(solver)
        except pulp.PulpSolverError as e:
            solve_time = time.time() - start_time
            self.logger.error(f"Solver {self.settings.solver} failed on {problem.name}: {e}")
            return self._log(problem, SolveReport(
                TerminationStatus.NUMERICAL_ERROR, None, solve_time,
                solver_info={"message": str(e)}
            ))
        solve_time = time.time() - start_time

        report = self._interpret(problem, solve_time)
        if cancel_event is not None and cancel_event.is_set():
            # A cancelled run is never reported as solved, even if it finished.
            report = SolveReport(
                TerminationStatus.CANCELLED, None, solve_time,
                best_objective=report.objective_value if report.success else report.best_objective,
                solver_info={"message": "cancelled during solve"}
            )
        return self._log(problem, report)

    def _interpret(self, problem: pulp.LpProblem, solve_time: float) -> SolveReport:
        status = problem.status
        sol_status = getattr(problem, "sol_status", None)
        info = {
            "solver": self.settings.solver,
            "lp_status": pulp.LpStatus.get(status, str(status)),
            "sol_status": sol_status,
        }

        if sol_status == pulp.LpSolutionIntegerFeasible:
            incumbent = self._objective(problem)
            info["message"] = f"stopped on limit with incumbent {incumbent}"
            return SolveReport(TerminationStatus.TIME_LIMIT, None, solve_time,
                               best_objective=incumbent, solver_info=info)

        if status == pulp.LpStatusOptimal:
            return SolveReport(TerminationStatus.OPTIMAL, self._objective(problem),
                               solve_time, solver_info=info)

        if status == pulp.LpStatusInfeasible:
            info["message"] = "problem is infeasible"
            return SolveReport(TerminationStatus.INFEASIBLE, None, solve_time, solver_info=info)

        if status == pulp.LpStatusUnbounded:
            info["message"] = "problem is unbounded"
            return SolveReport(TerminationStatus.UNBOUNDED, None, solve_time, solver_info=info)

        time_limit = self.settings.time_limit
        if status == pulp.LpStatusNotSolved and time_limit is not None and solve_time >= 0.95 * time_limit:
            info["message"] = f"no solution within the {time_limit}s time limit"
            return SolveReport(TerminationStatus.TIME_LIMIT, None, solve_time, solver_info=info)

        info["message"] = f"solver returned status {info['lp_status']}"
        return SolveReport(TerminationStatus.NUMERICAL_ERROR, None, solve_time, solver_info=info)

    @staticmethod
    def _objective(problem: pulp.LpProblem) -> Optional[float]:
        value = pulp.value(problem.objective)
        if value is None:
            return 0.0 if not problem.objective else None
        return float(value)

    def _log(self, problem: pulp.LpProblem, report: SolveReport) -> SolveReport:
        log = self.logger.debug if report.success else self.logger.warning
        log(f"{problem.name}: {report.status.value} in {report.solve_time:.3f}s")
        return report
