"""
Rolling-horizon simulation: sequences, the orchestrator and results stores.
"""

from .sequence import SimulationModels, SimulationSequence
from .results import (
    FileResultsStore, InMemoryResultsStore, ResultsStore, RunHandle, SimulationResults,
    StepResults, load_all
)
from .simulation import Simulation, SimulationState, StepFailure, run_scenarios

__all__ = [
    "SimulationModels",
    "SimulationSequence",
    "ResultsStore",
    "RunHandle",
    "InMemoryResultsStore",
    "FileResultsStore",
    "SimulationResults",
    "StepResults",
    "load_all",
    "Simulation",
    "SimulationState",
    "StepFailure",
    "run_scenarios",
]
