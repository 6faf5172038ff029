"""
Network formulations.

Only the copper plate is provided: the sum of injections equals the sum of
withdrawals at every step, ignoring topology. With slacks enabled a penalized
shortfall/surplus variable keeps the balance feasible.
"""

import logging
from typing import Dict, Type

from ..exceptions import ConfigurationError


SYSTEM_LABEL = "System"

NETWORK_FORMULATIONS: Dict[str, Type["NetworkFormulation"]] = {}


def register_network_formulation(cls):
    NETWORK_FORMULATIONS[cls.name] = cls
    return cls


def get_network_formulation(name: str) -> Type["NetworkFormulation"]:
    try:
        return NETWORK_FORMULATIONS[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown network model '{name}'. Available: {sorted(NETWORK_FORMULATIONS)}"
        ) from None


class NetworkFormulation:
    name = ""

    def __init__(self, use_slacks: bool = False, slack_penalty: float = 1e5):
        self.use_slacks = use_slacks
        self.slack_penalty = slack_penalty
        self.logger = logging.getLogger(f"pcsim.formulations.{self.name}")

    def build(self, container) -> None:
        raise NotImplementedError


@register_network_formulation
class CopperPlatePowerModel(NetworkFormulation):
    name = "CopperPlatePowerModel"

    def build(self, container) -> None:
        if self.use_slacks:
            dt = container.resolution_hours
            up = container.add_variables("SystemBalanceSlackUp", SYSTEM_LABEL, [SYSTEM_LABEL])
            down = container.add_variables("SystemBalanceSlackDown", SYSTEM_LABEL, [SYSTEM_LABEL])
            for t in container.time_steps:
                key = (SYSTEM_LABEL, t)
                container.add_to_balance(t, up[key] - down[key])
                container.add_cost(SYSTEM_LABEL, self.slack_penalty * dt * (up[key] + down[key]))

        for t in container.time_steps:
            container.add_constraint(container.power_balance[t] == 0, f"balance_{t}")
