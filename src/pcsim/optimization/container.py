"""
Container for one window's optimization problem.

Holds the PuLP problem together with the variable, parameter and expression
families that formulations register, the system power balance and the
objective terms grouped by component category.
"""

import logging
import re
from typing import Callable, Dict, Iterable, List, Optional, Tuple, Union

import numpy as np
import pandas as pd
import pulp

from ..components import ComponentCategory
from ..exceptions import ResultsNotFoundError
from ..timeseries import WindowSpec


Bound = Union[None, float, Callable[[str, int], Optional[float]]]
_Index = Tuple[str, int]


def family_key(entry_type: str, category: Union[ComponentCategory, str]) -> str:
    """Name of a result family, e.g. ``ActivePowerVariable__ThermalStandard``."""
    label = category.value if isinstance(category, ComponentCategory) else str(category)
    return f"{entry_type}__{label}"


def _sanitize(label: str) -> str:
    return re.sub(r"[^A-Za-z0-9_]", "_", label)


class OptimizationContainer:
    """Variables, constraints and objective of a single decision window."""

    def __init__(self, name: str, window: WindowSpec):
        self.name = name
        self.window = window
        self.problem = pulp.LpProblem(_sanitize(name), pulp.LpMinimize)
        self.logger = logging.getLogger(f"pcsim.optimization.container.{name}")

        self.variables: Dict[str, Dict[_Index, pulp.LpVariable]] = {}
        self.parameters: Dict[str, Dict[_Index, float]] = {}
        self.expressions: Dict[str, Dict[_Index, pulp.LpAffineExpression]] = {}
        self._members: Dict[str, List[str]] = {}
        self._binary_families = set()

        self.power_balance: List[pulp.LpAffineExpression] = [
            pulp.LpAffineExpression() for _ in self.time_steps
        ]
        self.cost_terms: Dict[str, List[pulp.LpAffineExpression]] = {}
        self._constraint_count = 0
        self._family_count = 0

    @property
    def time_steps(self) -> range:
        return range(self.window.steps)

    @property
    def resolution_hours(self) -> float:
        return self.window.resolution_hours

    # -- registration ----------------------------------------------------

    def add_variables(self, entry_type: str, category: ComponentCategory, names: Iterable[str],
                      lower: Bound = 0.0, upper: Bound = None,
                      binary: bool = False) -> Dict[_Index, pulp.LpVariable]:
        """Create one variable per component and time step."""
        key = family_key(entry_type, category)
        names = list(names)
        self._family_count += 1
        prefix = f"v{self._family_count}_{_sanitize(entry_type)}"
        family: Dict[_Index, pulp.LpVariable] = {}
        for i, name in enumerate(names):
            for t in self.time_steps:
                low = lower(name, t) if callable(lower) else lower
                high = upper(name, t) if callable(upper) else upper
                family[(name, t)] = pulp.LpVariable(
                    f"{prefix}_{i}_{t}",
                    lowBound=0 if binary else low,
                    upBound=1 if binary else high,
                    cat=pulp.LpBinary if binary else pulp.LpContinuous,
                )
        self.variables[key] = family
        self._members[key] = names
        if binary:
            self._binary_families.add(key)
        return family

    def add_parameters(self, entry_type: str, category: ComponentCategory,
                       values: Dict[str, np.ndarray]) -> Dict[_Index, float]:
        key = family_key(entry_type, category)
        family = {
            (name, t): float(series[t]) for name, series in values.items() for t in self.time_steps
        }
        self.parameters[key] = family
        self._members[key] = list(values)
        return family

    def add_expression(self, entry_type: str, category: ComponentCategory, name: str, t: int,
                       expression) -> None:
        key = family_key(entry_type, category)
        self.expressions.setdefault(key, {})[(name, t)] = expression
        members = self._members.setdefault(key, [])
        if name not in members:
            members.append(name)

    def register_expression_family(self, entry_type: str, category: ComponentCategory) -> None:
        """Make an expression family extractable even when it has no members."""
        key = family_key(entry_type, category)
        self.expressions.setdefault(key, {})
        self._members.setdefault(key, [])

    def add_constraint(self, constraint: pulp.LpConstraint, label: str) -> None:
        self._constraint_count += 1
        self.problem += constraint, f"c{self._constraint_count}_{_sanitize(label)}"

    def add_to_balance(self, t: int, expression, sign: float = 1.0) -> None:
        """Add injections (positive) or withdrawals (negative) to the balance at ``t``."""
        self.power_balance[t] += sign * expression

    def add_cost(self, category: Union[ComponentCategory, str], expression) -> None:
        label = category.value if isinstance(category, ComponentCategory) else str(category)
        self.cost_terms.setdefault(label, []).append(expression)

    def register_cost_category(self, category: Union[ComponentCategory, str]) -> None:
        label = category.value if isinstance(category, ComponentCategory) else str(category)
        self.cost_terms.setdefault(label, [])

    def finalize(self) -> None:
        """Set the objective as the sum of all cost terms."""
        terms = [term for entries in self.cost_terms.values() for term in entries]
        self.problem.setObjective(pulp.lpSum(terms))
        self.logger.debug(f"Objective assembled from {len(terms)} cost terms")

    # -- inspection ------------------------------------------------------

    def families(self) -> List[str]:
        return sorted(set(self.variables) | set(self.parameters) | set(self.expressions))

    def members(self, key: str) -> List[str]:
        return list(self._members.get(key, []))

    def stats(self) -> Dict[str, int]:
        n_vars = sum(len(f) for f in self.variables.values())
        n_binary = sum(len(self.variables[k]) for k in self._binary_families)
        return {
            "num_variables": n_vars,
            "num_binary_variables": n_binary,
            "num_continuous_variables": n_vars - n_binary,
            "num_constraints": self._constraint_count,
            "num_time_steps": self.window.steps,
        }

    def values(self, key: str) -> pd.DataFrame:
        """Solved values of a family as a timestamp x component frame."""
        if key in self.variables:
            family = self.variables[key]
            # Variables absent from every constraint come back unset from the solver.
            getter = (lambda v: float(round(v.varValue or 0.0))) if key in self._binary_families \
                else (lambda v: float(v.varValue or 0.0))
        elif key in self.parameters:
            family = self.parameters[key]
            getter = float
        elif key in self.expressions:
            family = self.expressions[key]
            getter = lambda e: float(pulp.value(e) or 0.0)
        else:
            raise ResultsNotFoundError(f"Unknown result family '{key}'")

        names = self._members.get(key, [])
        data = {
            name: [getter(family[(name, t)]) for t in self.time_steps]
            for name in names
        }
        return pd.DataFrame(data, index=self.window.timestamps, columns=names, dtype=float)

    def cost_by_category(self) -> Dict[str, float]:
        result = {}
        for label, terms in self.cost_terms.items():
            value = pulp.value(pulp.lpSum(terms)) if terms else 0.0
            result[label] = float(value or 0.0)
        return result
