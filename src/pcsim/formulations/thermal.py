"""
Thermal generator formulations.

``ThermalDispatchNoMin`` is continuous dispatch between zero and the maximum
output. ``ThermalBasicUnitCommitment`` adds on/start/stop binaries with the
minimum output enforced while committed. ``ThermalStandardUnitCommitment``
further adds ramp limits and minimum up/down times.
"""

import math
from typing import Dict, List, Sequence

import pulp

from ..components import ComponentCategory, ThermalStandard
from ..initial_conditions import (
    InitialCondition, InitialConditionKey as ICKey, status_durations
)
from ..optimization.container import OptimizationContainer, family_key
from ..units import MinMax, UnitSystem
from .base import DeviceFormulation, register_formulation


THERMAL = ComponentCategory.THERMAL
_TOL = 1e-6


def _limits(grid, device: ThermalStandard) -> MinMax:
    return grid.get_value(device, "active_power_limits", UnitSystem.NATURAL_UNITS)


class _ThermalFormulation(DeviceFormulation):
    categories = frozenset({THERMAL})
    initial_condition_keys = (ICKey.DEVICE_STATUS, ICKey.DEVICE_POWER)

    def default_initial_conditions(self, device: ThermalStandard) -> List[InitialCondition]:
        on = 1.0 if device.status else 0.0
        return [
            self._condition(device, ICKey.DEVICE_STATUS, on),
            self._condition(device, ICKey.DEVICE_POWER, device.active_power * on),
        ]

    def extract_initial_conditions(self, extract, devices, previous, resolution_hours):
        power = extract(family_key("ActivePowerVariable", THERMAL))
        status = self._status_frame(extract, power)
        conditions = []
        for device in devices:
            conditions.append(self._condition(device, ICKey.DEVICE_STATUS,
                                              status[device.name].iloc[-1]))
            conditions.append(self._condition(device, ICKey.DEVICE_POWER,
                                              power[device.name].iloc[-1]))
        return conditions

    def _status_frame(self, extract, power):
        return (power > _TOL).astype(float)

    def _add_power(self, container: OptimizationContainer, grid,
                   devices: Sequence[ThermalStandard]) -> Dict:
        upper = {d.name: _limits(grid, d).max for d in devices}
        power = container.add_variables(
            "ActivePowerVariable", THERMAL, [d.name for d in devices],
            lower=0.0, upper=lambda n, t: upper[n]
        )
        for device in devices:
            for t in container.time_steps:
                container.add_to_balance(t, power[(device.name, t)])
        return power

    def _add_costs(self, container: OptimizationContainer, devices: Sequence[ThermalStandard],
                   power: Dict, on: Dict = None, start: Dict = None, stop: Dict = None) -> None:
        dt = container.resolution_hours
        container.register_cost_category(THERMAL)
        container.register_expression_family("ProductionCostExpression", THERMAL)
        for device in devices:
            cost = device.operation_cost
            for t in container.time_steps:
                key = (device.name, t)
                expression = cost.variable * dt * power[key]
                if on is not None:
                    expression += cost.fixed * dt * on[key]
                    expression += cost.start_up * start[key] + cost.shut_down * stop[key]
                container.add_expression("ProductionCostExpression", THERMAL, device.name, t,
                                         expression)
                container.add_cost(THERMAL, expression)


@register_formulation
class ThermalDispatchNoMin(_ThermalFormulation):
    """Continuous dispatch in [0, max]; no commitment decisions."""

    name = "ThermalDispatchNoMin"

    def build(self, container, grid, devices, initial_conditions):
        power = self._add_power(container, grid, devices)
        self._add_costs(container, devices, power)


@register_formulation
class ThermalBasicUnitCommitment(_ThermalFormulation):
    """Commitment binaries with minimum output while on."""

    name = "ThermalBasicUnitCommitment"

    def build(self, container, grid, devices, initial_conditions):
        power = self._add_power(container, grid, devices)
        names = [d.name for d in devices]
        on = container.add_variables("OnVariable", THERMAL, names, binary=True)
        start = container.add_variables("StartVariable", THERMAL, names, binary=True)
        stop = container.add_variables("StopVariable", THERMAL, names, binary=True)

        for device in devices:
            limits = _limits(grid, device)
            status0 = self.initial_value(initial_conditions, device, ICKey.DEVICE_STATUS)
            for t in container.time_steps:
                key = (device.name, t)
                container.add_constraint(power[key] <= limits.max * on[key], f"pmax_{device.name}_{t}")
                container.add_constraint(power[key] >= limits.min * on[key], f"pmin_{device.name}_{t}")
                previous = on[(device.name, t - 1)] if t > 0 else round(status0)
                container.add_constraint(on[key] - previous == start[key] - stop[key],
                                         f"commit_{device.name}_{t}")
                container.add_constraint(start[key] + stop[key] <= 1, f"startstop_{device.name}_{t}")

        self._add_costs(container, devices, power, on, start, stop)
        self._add_extra_constraints(container, grid, devices, initial_conditions,
                                    power, on, start, stop)

    def _add_extra_constraints(self, container, grid, devices, initial_conditions,
                               power, on, start, stop) -> None:
        pass

    def _status_frame(self, extract, power):
        return extract(family_key("OnVariable", THERMAL))


@register_formulation
class ThermalStandardUnitCommitment(ThermalBasicUnitCommitment):
    """Basic commitment plus ramp limits and minimum up/down times.

    Ramp limits are given in MW/min and scaled to the window resolution. A
    start (stop) relaxes the up (down) ramp by the minimum output so that a
    unit can always reach its minimum level. Minimum up/down times are
    rounded up to whole steps; the time already spent in the initial status
    counts towards them.
    """

    name = "ThermalStandardUnitCommitment"
    initial_condition_keys = (ICKey.DEVICE_STATUS, ICKey.DEVICE_POWER,
                              ICKey.TIME_DURATION_ON, ICKey.TIME_DURATION_OFF)
    default_parameters = {"use_ramp_limits": True, "use_time_limits": True}

    def default_initial_conditions(self, device: ThermalStandard) -> List[InitialCondition]:
        conditions = super().default_initial_conditions(device)
        on = bool(device.status)
        conditions.append(self._condition(device, ICKey.TIME_DURATION_ON,
                                          device.time_at_status if on else 0.0))
        conditions.append(self._condition(device, ICKey.TIME_DURATION_OFF,
                                          0.0 if on else device.time_at_status))
        return conditions

    def extract_initial_conditions(self, extract, devices, previous, resolution_hours):
        conditions = super().extract_initial_conditions(extract, devices, previous,
                                                        resolution_hours)
        status = extract(family_key("OnVariable", THERMAL))
        for device in devices:
            on_hours, off_hours = status_durations(
                status[device.name].to_numpy(), resolution_hours,
                prior_status=previous.get_value(THERMAL, device.name, ICKey.DEVICE_STATUS),
                prior_on=previous.get_value(THERMAL, device.name, ICKey.TIME_DURATION_ON, 0.0),
                prior_off=previous.get_value(THERMAL, device.name, ICKey.TIME_DURATION_OFF, 0.0),
            )
            conditions.append(self._condition(device, ICKey.TIME_DURATION_ON, on_hours))
            conditions.append(self._condition(device, ICKey.TIME_DURATION_OFF, off_hours))
        return conditions

    def _add_extra_constraints(self, container, grid, devices, initial_conditions,
                               power, on, start, stop) -> None:
        for device in devices:
            if self.parameters["use_ramp_limits"] and device.ramp_limits is not None:
                self._add_ramp_constraints(container, grid, device, initial_conditions,
                                           power, start, stop)
            if self.parameters["use_time_limits"] and device.time_limits is not None:
                self._add_duration_constraints(container, device, initial_conditions,
                                               on, start, stop)

    def _add_ramp_constraints(self, container, grid, device, initial_conditions,
                              power, start, stop) -> None:
        dt = container.resolution_hours
        ramp = grid.get_value(device, "ramp_limits", UnitSystem.NATURAL_UNITS)
        p_min = _limits(grid, device).min
        ramp_up, ramp_down = ramp.up * 60.0 * dt, ramp.down * 60.0 * dt

        status0 = round(self.initial_value(initial_conditions, device, ICKey.DEVICE_STATUS))
        power0 = self.initial_value(initial_conditions, device, ICKey.DEVICE_POWER) if status0 else 0.0
        for t in container.time_steps:
            key = (device.name, t)
            previous = power[(device.name, t - 1)] if t > 0 else power0
            container.add_constraint(power[key] - previous <= ramp_up + p_min * start[key],
                                     f"rampup_{device.name}_{t}")
            container.add_constraint(previous - power[key] <= ramp_down + p_min * stop[key],
                                     f"rampdn_{device.name}_{t}")

    def _add_duration_constraints(self, container, device, initial_conditions,
                                  on, start, stop) -> None:
        dt = container.resolution_hours
        steps = len(container.time_steps)
        up_steps = math.ceil(device.time_limits.up / dt - _TOL)
        down_steps = math.ceil(device.time_limits.down / dt - _TOL)

        for t in container.time_steps:
            key = (device.name, t)
            if up_steps > 1:
                window = range(max(0, t - up_steps + 1), t + 1)
                container.add_constraint(
                    pulp.lpSum(start[(device.name, s)] for s in window) <= on[key],
                    f"minup_{device.name}_{t}"
                )
            if down_steps > 1:
                window = range(max(0, t - down_steps + 1), t + 1)
                container.add_constraint(
                    pulp.lpSum(stop[(device.name, s)] for s in window) <= 1 - on[key],
                    f"mindn_{device.name}_{t}"
                )

        status0 = round(self.initial_value(initial_conditions, device, ICKey.DEVICE_STATUS))
        if status0:
            served = self.initial_value(initial_conditions, device, ICKey.TIME_DURATION_ON)
            remaining, forced = up_steps - math.floor(served / dt + _TOL), 1
        else:
            served = self.initial_value(initial_conditions, device, ICKey.TIME_DURATION_OFF)
            remaining, forced = down_steps - math.floor(served / dt + _TOL), 0
        for t in range(min(max(remaining, 0), steps)):
            container.add_constraint(on[(device.name, t)] == forced, f"initstatus_{device.name}_{t}")
