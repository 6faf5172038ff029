"""Custom exceptions for the production cost simulation engine."""

from typing import Optional


class PCSimError(Exception):
    """Base exception for pcsim errors."""
    kind = "PCSimError"


class ValidationError(PCSimError):
    """Exception raised for invalid component or configuration values."""
    kind = "ValidationError"


class ConfigurationError(PCSimError):
    """Exception raised for configuration errors."""
    kind = "ConfigurationError"


class ComponentNotFoundError(PCSimError):
    """Exception raised when a component is not found in a system."""
    kind = "ComponentNotFound"


# Build-time errors

class BuildError(PCSimError):
    """Base exception for errors raised while building a decision model."""
    kind = "BuildError"


class UnknownCategoryError(BuildError):
    """A template maps a category that has no components in the system."""
    kind = "UnknownCategory"


class FormulationMismatchError(BuildError):
    """A component category in the system has no template entry."""
    kind = "FormulationMismatch"


class WindowDataMissingError(BuildError):
    """Time series coverage for the requested window is missing."""
    kind = "WindowDataMissing"


# State errors

class NotSolvedError(PCSimError):
    """Results were requested from a model that is not solved."""
    kind = "NotSolved"


class StepDependencyError(NotSolvedError):
    """A simulation step was built before its predecessor was solved."""
    kind = "StepDependency"


class ModelStateError(PCSimError):
    """A decision model operation was attempted in the wrong lifecycle state."""
    kind = "ModelState"


# Solve-time errors

class SolveError(PCSimError):
    """Base exception for solver failures.

    ``best_objective`` holds the objective of the best feasible solution
    found before the failure, if the solver reported one.
    """
    kind = "SolveError"

    def __init__(self, message: str, best_objective: Optional[float] = None):
        super().__init__(message)
        self.best_objective = best_objective


class InfeasibleError(SolveError):
    """The optimization problem is infeasible."""
    kind = "Infeasible"


class SolverTimeoutError(SolveError):
    """The solver stopped on its time limit before proving optimality."""
    kind = "SolverTimeout"


class SolverNumericalError(SolveError):
    """The solver crashed, or reported an unbounded or undefined status."""
    kind = "SolverNumericalError"


class SolveCancelledError(SolveError):
    """The solve was cancelled by the caller."""
    kind = "SolveCancelled"


# Results errors

class ResultsNotFoundError(PCSimError, KeyError):
    """A requested result family or run does not exist."""
    kind = "ResultsNotFound"

    def __str__(self) -> str:
        return Exception.__str__(self)


class ResultsStoreError(PCSimError):
    """Exception raised for results store misuse, such as reopening a run."""
    kind = "ResultsStoreError"


class AnalysisError(PCSimError):
    """Exception raised when a metric cannot be computed from results."""
    kind = "AnalysisError"


# Simulation errors

class SimulationStateError(PCSimError):
    """An operation was attempted in the wrong simulation state."""
    kind = "SimulationState"


class SimulationBuildError(PCSimError):
    """Building a simulation failed; the cause is chained."""
    kind = "SimulationBuild"

    def __init__(self, message: str, step: int, cause_kind: str):
        super().__init__(message)
        self.step = step
        self.cause_kind = cause_kind


class SimulationExecutionError(PCSimError):
    """A simulation step failed to solve; the cause is chained."""
    kind = "SimulationExecution"

    def __init__(self, message: str, step: int, model: str, cause_kind: str,
                 best_objective: Optional[float] = None):
        super().__init__(message)
        self.step = step
        self.model = model
        self.cause_kind = cause_kind
        self.best_objective = best_objective
