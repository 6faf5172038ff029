"""Production cost simulation (pcsim) library initialization."""

from .components import (
    ComponentCategory, ACBus, ThermalStandard, RenewableDispatch, RenewableNonDispatch,
    EnergyReservoirStorage, PowerLoad
)
from .system import System
from .units import UnitSystem
from .decision_model import DecisionModel, ModelStatus
from .formulations import ProblemTemplate, template_unit_commitment, template_economic_dispatch
from .initial_conditions import InitialConditionKey, InitialConditionSet, InterProblemChronology
from .simulation import (
    Simulation, SimulationModels, SimulationSequence, InMemoryResultsStore, FileResultsStore,
    run_scenarios
)
from .config import SimulationConfig
from .exceptions import PCSimError

# Import advanced modules
from . import analytics
from . import formulations
from . import optimization

__version__ = "0.1.0"
__license__ = "MIT"

__all__ = [
    "ComponentCategory",
    "ACBus",
    "ThermalStandard",
    "RenewableDispatch",
    "RenewableNonDispatch",
    "EnergyReservoirStorage",
    "PowerLoad",
    "System",
    "UnitSystem",
    "DecisionModel",
    "ModelStatus",
    "ProblemTemplate",
    "template_unit_commitment",
    "template_economic_dispatch",
    "InitialConditionKey",
    "InitialConditionSet",
    "InterProblemChronology",
    "Simulation",
    "SimulationModels",
    "SimulationSequence",
    "InMemoryResultsStore",
    "FileResultsStore",
    "run_scenarios",
    "SimulationConfig",
    "PCSimError",
    "analytics",
    "formulations",
    "optimization",
]
