"""Load formulations."""

from typing import List

from ..components import ComponentCategory
from .base import DeviceFormulation, register_formulation


@register_formulation
class StaticPowerLoad(DeviceFormulation):
    """Demand taken as given: ``max_active_power`` scaled by its profile."""

    name = "StaticPowerLoad"
    categories = frozenset({ComponentCategory.POWER_LOAD})

    def required_time_series(self, device) -> List[str]:
        return ["max_active_power"]

    def build(self, container, grid, devices, initial_conditions):
        demand = {
            device.name: grid.get_time_series_values(device, "max_active_power", container.window,
                                                     multiply=True)
            for device in devices
        }
        container.add_parameters("ActivePowerTimeSeriesParameter", self.category, demand)
        for values in demand.values():
            for t in container.time_steps:
                container.add_to_balance(t, float(values[t]), sign=-1.0)
        self.logger.debug(
            f"Peak demand in window: {sum(demand.values()).max() if demand else 0.0:.1f} MW"
        )
