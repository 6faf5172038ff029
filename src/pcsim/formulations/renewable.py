"""Renewable generator formulations driven by a ``max_active_power`` profile."""

from typing import Dict, List

import numpy as np

from ..components import ComponentCategory
from .base import DeviceFormulation, register_formulation


MAX_ACTIVE_POWER = "max_active_power"


class _RenewableFormulation(DeviceFormulation):
    categories = frozenset({ComponentCategory.RENEWABLE_DISPATCH,
                            ComponentCategory.RENEWABLE_NON_DISPATCH})

    def required_time_series(self, device) -> List[str]:
        return [MAX_ACTIVE_POWER]

    def _available_power(self, container, grid, devices) -> Dict[str, np.ndarray]:
        """Available output in MW, registered as a parameter family."""
        available = {
            device.name: grid.get_time_series_values(device, MAX_ACTIVE_POWER, container.window,
                                                     multiply=True)
            for device in devices
        }
        container.add_parameters("ActivePowerTimeSeriesParameter", self.category, available)
        return available

    def _add_power(self, container, devices, available, fixed: bool) -> Dict:
        bound = lambda n, t: float(available[n][t])
        power = container.add_variables(
            "ActivePowerVariable", self.category, [d.name for d in devices],
            lower=bound if fixed else 0.0, upper=bound
        )
        for device in devices:
            for t in container.time_steps:
                container.add_to_balance(t, power[(device.name, t)])
        return power

    def _add_costs(self, container, devices, available, power) -> None:
        dt = container.resolution_hours
        container.register_cost_category(self.category)
        container.register_expression_family("ProductionCostExpression", self.category)
        for device in devices:
            cost = device.operation_cost
            for t in container.time_steps:
                p = power[(device.name, t)]
                expression = cost.variable * dt * p
                if cost.curtailment:
                    expression += cost.curtailment * dt * (float(available[device.name][t]) - p)
                container.add_expression("ProductionCostExpression", self.category,
                                         device.name, t, expression)
                container.add_cost(self.category, expression)


@register_formulation
class RenewableFullDispatch(_RenewableFormulation):
    """Output anywhere between zero and the available power; curtailment may be priced."""

    name = "RenewableFullDispatch"

    def build(self, container, grid, devices, initial_conditions):
        available = self._available_power(container, grid, devices)
        power = self._add_power(container, devices, available, fixed=False)
        self._add_costs(container, devices, available, power)


@register_formulation
class FixedOutput(_RenewableFormulation):
    """Output pinned to the available power."""

    name = "FixedOutput"

    def build(self, container, grid, devices, initial_conditions):
        available = self._available_power(container, grid, devices)
        power = self._add_power(container, devices, available, fixed=True)
        self._add_costs(container, devices, available, power)
