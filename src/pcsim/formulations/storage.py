"""
Energy storage formulation.

Book-keeping of the stored energy: the level at t is the level at t-1 plus
charged energy times the charge efficiency, minus discharged energy divided
by the discharge efficiency. The level before the first step comes from the
``INITIAL_ENERGY`` initial condition.
"""

from typing import List

from ..components import ComponentCategory, EnergyReservoirStorage
from ..initial_conditions import InitialCondition, InitialConditionKey as ICKey
from ..optimization.container import family_key
from ..units import UnitSystem
from .base import DeviceFormulation, register_formulation


STORAGE = ComponentCategory.STORAGE
_MW = UnitSystem.NATURAL_UNITS


@register_formulation
class StorageBookKeeping(DeviceFormulation):
    """Charge/discharge dispatch with an energy balance per step.

    Parameters:
        reservation: forbid simultaneous charging and discharging with a binary.
        energy_target: require the final level to be at least the initial level.
    """

    name = "StorageBookKeeping"
    categories = frozenset({STORAGE})
    initial_condition_keys = (ICKey.INITIAL_ENERGY,)
    default_parameters = {"reservation": True, "energy_target": False}

    def default_initial_conditions(self, device: EnergyReservoirStorage) -> List[InitialCondition]:
        return [self._condition(device, ICKey.INITIAL_ENERGY, device.initial_energy)]

    def extract_initial_conditions(self, extract, devices, previous, resolution_hours):
        energy = extract(family_key("EnergyVariable", STORAGE))
        return [
            self._condition(device, ICKey.INITIAL_ENERGY, energy[device.name].iloc[-1])
            for device in devices
        ]

    def build(self, container, grid, devices, initial_conditions):
        dt = container.resolution_hours
        names = [d.name for d in devices]
        limits_in = {d.name: grid.get_value(d, "input_active_power_limits", _MW) for d in devices}
        limits_out = {d.name: grid.get_value(d, "output_active_power_limits", _MW) for d in devices}
        capacity = {d.name: grid.get_value(d, "storage_capacity", _MW) for d in devices}

        charge = container.add_variables("ActivePowerInVariable", STORAGE, names,
                                         upper=lambda n, t: limits_in[n].max)
        discharge = container.add_variables("ActivePowerOutVariable", STORAGE, names,
                                            upper=lambda n, t: limits_out[n].max)
        energy = container.add_variables("EnergyVariable", STORAGE, names,
                                         upper=lambda n, t: capacity[n])
        reserve = None
        if self.parameters["reservation"]:
            reserve = container.add_variables("ReservationVariable", STORAGE, names, binary=True)

        container.register_cost_category(STORAGE)
        container.register_expression_family("ProductionCostExpression", STORAGE)
        for device in devices:
            name = device.name
            energy0 = self.initial_value(initial_conditions, device, ICKey.INITIAL_ENERGY)
            for t in container.time_steps:
                key = (name, t)
                if reserve is not None:
                    container.add_constraint(charge[key] <= limits_in[name].max * reserve[key],
                                             f"charge_{name}_{t}")
                    container.add_constraint(
                        discharge[key] <= limits_out[name].max * (1 - reserve[key]),
                        f"discharge_{name}_{t}"
                    )
                previous = energy[(name, t - 1)] if t > 0 else energy0
                container.add_constraint(
                    energy[key] == previous + dt * (device.efficiency.input * charge[key]
                                                    - (1.0 / device.efficiency.output) * discharge[key]),
                    f"energy_{name}_{t}"
                )
                container.add_to_balance(t, discharge[key] - charge[key])

                cost = device.operation_cost
                expression = dt * (cost.charge_variable * charge[key]
                                   + cost.discharge_variable * discharge[key])
                container.add_expression("ProductionCostExpression", STORAGE, name, t, expression)
                container.add_cost(STORAGE, expression)

            if self.parameters["energy_target"]:
                last = (name, container.time_steps[-1])
                container.add_constraint(energy[last] >= energy0, f"target_{name}")
