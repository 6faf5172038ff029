"""
Device and network formulations, and the templates that select them.
"""

from .base import (
    DeviceFormulation, FORMULATIONS, get_formulation, list_formulations, register_formulation
)
from .thermal import ThermalBasicUnitCommitment, ThermalDispatchNoMin, ThermalStandardUnitCommitment
from .renewable import FixedOutput, RenewableFullDispatch
from .storage import StorageBookKeeping
from .load import StaticPowerLoad
from .network import CopperPlatePowerModel, NETWORK_FORMULATIONS, get_network_formulation
from .template import (
    DeviceModel, NetworkModel, ProblemTemplate, template_economic_dispatch,
    template_unit_commitment
)

__all__ = [
    'DeviceFormulation',
    'FORMULATIONS',
    'get_formulation',
    'list_formulations',
    'register_formulation',
    'ThermalDispatchNoMin',
    'ThermalBasicUnitCommitment',
    'ThermalStandardUnitCommitment',
    'RenewableFullDispatch',
    'FixedOutput',
    'StorageBookKeeping',
    'StaticPowerLoad',
    'CopperPlatePowerModel',
    'NETWORK_FORMULATIONS',
    'get_network_formulation',
    'DeviceModel',
    'NetworkModel',
    'ProblemTemplate',
    'template_unit_commitment',
    'template_economic_dispatch',
]
