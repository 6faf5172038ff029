"""
Initial conditions and the inter-problem chronology.

An initial condition is a value attached to a component that fixes the state
of a decision window at t=0: commitment status, output, time spent in the
current status, stored energy. ``InterProblemChronology`` produces the set for
window k+1 from the solved window k, reading the terminal state at the last
timestep of k's window.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

import numpy as np
import pandas as pd

from .components import ComponentCategory, as_category
from .exceptions import NotSolvedError


class InitialConditionKey(str, Enum):
    """Kinds of state carried between windows."""
    DEVICE_STATUS = "DeviceStatus"
    DEVICE_POWER = "DevicePower"
    TIME_DURATION_ON = "InitialTimeDurationOn"
    TIME_DURATION_OFF = "InitialTimeDurationOff"
    INITIAL_ENERGY = "InitialEnergyLevel"


_Key = Tuple[ComponentCategory, str, InitialConditionKey]


@dataclass(frozen=True)
class InitialCondition:
    category: ComponentCategory
    component: str
    key: InitialConditionKey
    value: float

    def __post_init__(self):
        object.__setattr__(self, "category", as_category(self.category))
        object.__setattr__(self, "key", InitialConditionKey(self.key))
        object.__setattr__(self, "value", float(self.value))


class InitialConditionSet(Mapping):
    """Immutable mapping ``(category, component, key) -> value``.

    Two sets holding the same entries compare and hash equal.
    """

    def __init__(self, conditions: Iterable[InitialCondition] = ()):
        values: Dict[_Key, float] = {}
        for condition in conditions:
            values[(condition.category, condition.component, condition.key)] = condition.value
        self._values = dict(sorted(values.items(), key=lambda item: (
            item[0][0].value, item[0][1], item[0][2].value
        )))

    def __getitem__(self, key: _Key) -> float:
        category, component, ic_key = key
        return self._values[(as_category(category), component, InitialConditionKey(ic_key))]

    def __iter__(self) -> Iterator[_Key]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other) -> bool:
        if not isinstance(other, InitialConditionSet):
            return NotImplemented
        return self._values == other._values

    def __hash__(self) -> int:
        return hash(tuple(self._values.items()))

    def __repr__(self) -> str:
        return f"InitialConditionSet({len(self)} entries)"

    def get_value(self, category, component: str, key: InitialConditionKey,
                  default: Optional[float] = None) -> Optional[float]:
        return self._values.get(
            (as_category(category), component, InitialConditionKey(key)), default
        )

    def conditions(self) -> List[InitialCondition]:
        return [InitialCondition(c, n, k, v) for (c, n, k), v in self._values.items()]

    def for_category(self, category) -> "InitialConditionSet":
        category = as_category(category)
        return InitialConditionSet(c for c in self.conditions() if c.category == category)

    def merged(self, other: "InitialConditionSet") -> "InitialConditionSet":
        """New set with the entries of ``other`` taking precedence."""
        return InitialConditionSet(list(self.conditions()) + list(other.conditions()))

    def to_records(self) -> List[Dict[str, object]]:
        return [
            {"category": c.value, "component": n, "key": k.value, "value": v}
            for (c, n, k), v in self._values.items()
        ]

    @classmethod
    def from_records(cls, records: Iterable[Mapping]) -> "InitialConditionSet":
        return cls(
            InitialCondition(r["category"], r["component"], r["key"], r["value"])
            for r in records
        )

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.to_records(), columns=["category", "component", "key", "value"])


def status_durations(status: np.ndarray, resolution_hours: float,
                     prior_status: Optional[float] = None,
                     prior_on: float = 0.0, prior_off: float = 0.0) -> Tuple[float, float]:
    """Hours spent on and off at the end of a window of commitment values.

    Counts backwards from the last step. When the status never changed in the
    window and matches ``prior_status``, the prior duration is added.
    """
    status = np.round(np.asarray(status, dtype=float))
    last = status[-1]
    run = 0
    for value in status[::-1]:
        if value != last:
            break
        run += 1
    hours = run * resolution_hours
    if run == len(status) and prior_status is not None and round(prior_status) == last:
        hours += prior_on if last >= 1 else prior_off
    if last >= 1:
        return hours, 0.0
    return 0.0, hours


class InterProblemChronology:
    """Hands the terminal state of a solved window to the next window."""

    name = "InterProblemChronology"

    def advance(self, model) -> InitialConditionSet:
        """Initial conditions for the window following ``model``'s window.

        Raises ``NotSolvedError`` unless the model solved successfully.
        """
        if not model.is_solved:
            raise NotSolvedError(
                f"Cannot advance from model '{model.name}' in status {model.status.name}"
            )
        conditions: List[InitialCondition] = []
        for formulation, devices in model.formulations():
            conditions.extend(formulation.extract_initial_conditions(
                model.extract, devices, model.initial_conditions, model.window.resolution_hours
            ))
        return InitialConditionSet(conditions)
