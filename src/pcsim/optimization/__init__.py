"""
Optimization layer: the per-window problem container and the solver driver.

Formulations write variables, constraints and cost terms into an
``OptimizationContainer``; ``PulpSolver`` runs the assembled PuLP problem
under the configured time limit and MIP gap and maps the solver outcome to a
``TerminationStatus``.
"""

from .container import OptimizationContainer, family_key
from .solver import PulpSolver, SolveReport, SolverSettings, TerminationStatus

__all__ = [
    "OptimizationContainer",
    "family_key",
    "PulpSolver",
    "SolveReport",
    "SolverSettings",
    "TerminationStatus",
]
