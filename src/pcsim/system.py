"""
Grid model: components, time series and the active unit base.

``System`` is the live, mutable model. ``SystemSnapshot`` is the frozen view
a decision model is built from: components are deep-copied and the unit
context is fixed, so changes made to the live system after a snapshot was
taken are invisible to it.
"""

import copy
import logging
from datetime import timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd

from .components import Component, ComponentCategory, STRUCTURAL_CATEGORIES, as_category
from .exceptions import ComponentNotFoundError, ValidationError, WindowDataMissingError
from .timeseries import (
    AnyTimeSeries, Deterministic, DeterministicSingleTimeSeries, SingleTimeSeries, WindowSpec
)
from .units import FIELD_UNITS, UnitContext, UnitSystem


_SeriesKey = Tuple[ComponentCategory, str]


class _GridModelView:
    """Read accessors shared by the live system and its snapshots."""

    def __init__(self, name: str, components: Dict[ComponentCategory, Dict[str, Component]],
                 time_series: Dict[_SeriesKey, Dict[str, AnyTimeSeries]],
                 unit_context: UnitContext):
        self.name = name
        self._components = components
        self._time_series = time_series
        self._unit_context = unit_context

    # -- components -------------------------------------------------------

    @property
    def base_power(self) -> float:
        return self._unit_context.system_base_power

    @property
    def unit_context(self) -> UnitContext:
        return self._unit_context

    @property
    def units_base(self) -> UnitSystem:
        return self._unit_context.unit_system

    def categories(self) -> List[ComponentCategory]:
        """Categories with at least one component."""
        return [c for c, items in self._components.items() if items]

    def device_categories(self) -> List[ComponentCategory]:
        return [c for c in self.categories() if c not in STRUCTURAL_CATEGORIES]

    def get_components(self, category, filter_func: Optional[Callable[[Component], bool]] = None,
                       available_only: bool = False) -> List[Component]:
        """Components of a category, ordered by name."""
        items = self._components.get(as_category(category), {})
        result = []
        for name in sorted(items):
            component = items[name]
            if available_only and not component.available:
                continue
            if filter_func is not None and not filter_func(component):
                continue
            result.append(component)
        return result

    def get_component(self, category, name: str) -> Component:
        category = as_category(category)
        try:
            return self._components[category][name]
        except KeyError:
            raise ComponentNotFoundError(f"No {category.value} named '{name}'") from None

    def has_component(self, category, name: str) -> bool:
        return name in self._components.get(as_category(category), {})

    def count(self, category) -> int:
        return len(self._components.get(as_category(category), {}))

    # -- unit-aware accessors ---------------------------------------------

    def get_value(self, component: Component, field: str,
                  units: Optional[UnitSystem] = None) -> Any:
        """Read a component field in the active unit base, or in ``units`` if given."""
        context = self._unit_context if units is None else self._unit_context.with_units(units)
        return context.to_context(field, getattr(component, field), component.base_power)

    # -- time series ------------------------------------------------------

    def _series_key(self, component: Component) -> _SeriesKey:
        return (component.category, component.name)

    def has_time_series(self, component: Component, name: str) -> bool:
        return name in self._time_series.get(self._series_key(component), {})

    def get_time_series(self, component: Component, name: str) -> AnyTimeSeries:
        try:
            return self._time_series[self._series_key(component)][name]
        except KeyError:
            raise WindowDataMissingError(
                f"{component.category.value} '{component.name}' has no time series '{name}'"
            ) from None

    def list_time_series(self, component: Component) -> List[str]:
        return sorted(self._time_series.get(self._series_key(component), {}))

    def get_time_series_values(self, component: Component, name: str,
                               window: WindowSpec, multiply: bool = False) -> np.ndarray:
        """Realized values of a series over ``window``.

        With ``multiply`` the values are scaled by the field named in the
        series' ``scaling_factor_multiplier``, read in natural units.
        """
        series = self.get_time_series(component, name)
        values = series.window_values(window)
        if multiply and series.scaling_factor_multiplier:
            values = values * self.get_value(
                component, series.scaling_factor_multiplier, UnitSystem.NATURAL_UNITS
            )
        return values

    def get_time_series_resolution(self) -> Optional[pd.Timedelta]:
        resolutions = {
            ts.resolution for entries in self._time_series.values() for ts in entries.values()
        }
        if len(resolutions) > 1:
            raise ValidationError(f"System mixes time series resolutions: {sorted(resolutions)}")
        return resolutions.pop() if resolutions else None

    def get_forecast_initial_times(self) -> List[pd.Timestamp]:
        """Initial times shared by every forecast in the system."""
        common = None
        for entries in self._time_series.values():
            for ts in entries.values():
                if isinstance(ts, (Deterministic, DeterministicSingleTimeSeries)):
                    times = set(ts.initial_times)
                    common = times if common is None else common & times
        return sorted(common) if common else []

    def get_time_series_initial_timestamp(self) -> Optional[pd.Timestamp]:
        """Earliest timestamp covered by any series in the system."""
        starts = []
        for entries in self._time_series.values():
            for ts in entries.values():
                if isinstance(ts, Deterministic):
                    starts.append(ts.initial_times[0])
                elif isinstance(ts, DeterministicSingleTimeSeries):
                    starts.append(ts.single.initial_timestamp)
                else:
                    starts.append(ts.initial_timestamp)
        return min(starts) if starts else None


class SystemSnapshot(_GridModelView):
    """Immutable view of a system taken at one point in time."""

    def __init__(self, system: "System"):
        super().__init__(
            system.name,
            copy.deepcopy(system._components),
            # Time series objects are never mutated in place; sharing them is safe.
            {key: dict(entries) for key, entries in system._time_series.items()},
            system.unit_context,
        )
        object.__setattr__(self, "_frozen", True)

    def __setattr__(self, name, value):
        if getattr(self, "_frozen", False):
            raise AttributeError("SystemSnapshot is read-only")
        super().__setattr__(name, value)


class System(_GridModelView):
    """Mutable grid model."""

    def __init__(self, base_power: float = 100.0, name: str = "system",
                 units: UnitSystem = UnitSystem.SYSTEM_BASE):
        super().__init__(name, {}, {}, UnitContext(unit_system=units, system_base_power=base_power))
        self.logger = logging.getLogger(f"pcsim.system.{name}")

    def __repr__(self) -> str:
        counts = ", ".join(f"{c.value}={len(v)}" for c, v in self._components.items() if v)
        return f"System(name={self.name!r}, base_power={self.base_power}, {counts})"

    # -- components -------------------------------------------------------

    def add_component(self, component: Component) -> None:
        category = component.category
        if category is None:
            raise ValidationError(f"{type(component).__name__} has no category")
        items = self._components.setdefault(category, {})
        if component.name in items:
            raise ValidationError(f"{category.value} '{component.name}' already exists")
        items[component.name] = component
        self.logger.debug(f"Added {category.value} '{component.name}'")

    def add_components(self, components: Iterable[Component]) -> None:
        for component in components:
            self.add_component(component)

    def remove_component(self, component: Component) -> None:
        items = self._components.get(component.category, {})
        if items.get(component.name) is not component:
            raise ComponentNotFoundError(
                f"{component.category.value} '{component.name}' is not in the system"
            )
        del items[component.name]
        self._time_series.pop(self._series_key(component), None)

    def set_available(self, component: Component, available: bool) -> None:
        """Toggle availability. Only models built after this call see the change."""
        self._require_member(component)
        component.available = bool(available)

    # -- units ------------------------------------------------------------

    def set_units_base(self, units: UnitSystem) -> None:
        """Switch the unit base for every accessor at once."""
        self._unit_context = self._unit_context.with_units(UnitSystem(units))

    def set_value(self, component: Component, field: str, value: Any,
                  units: Optional[UnitSystem] = None) -> None:
        """Write a component field expressed in the active unit base, or in ``units``."""
        self._require_member(component)
        if not hasattr(component, field):
            raise ValidationError(f"{type(component).__name__} has no field '{field}'")
        context = self._unit_context if units is None else self._unit_context.with_units(units)
        current = getattr(component, field)
        setattr(component, field,
                context.to_natural(field, value, component.base_power, current=current))

    # -- time series ------------------------------------------------------

    def add_time_series(self, component: Component, series: AnyTimeSeries) -> None:
        self._require_member(component)
        entries = self._time_series.setdefault(self._series_key(component), {})
        if series.name in entries:
            raise ValidationError(
                f"{component.category.value} '{component.name}' already has time series '{series.name}'"
            )
        if series.scaling_factor_multiplier and series.scaling_factor_multiplier not in FIELD_UNITS:
            raise ValidationError(
                f"Unknown scaling factor multiplier '{series.scaling_factor_multiplier}'"
            )
        entries[series.name] = series

    def remove_time_series(self, component: Component, name: str) -> None:
        entries = self._time_series.get(self._series_key(component), {})
        if name not in entries:
            raise WindowDataMissingError(
                f"{component.category.value} '{component.name}' has no time series '{name}'"
            )
        del entries[name]

    def transform_single_time_series(self, horizon: int, interval: timedelta) -> int:
        """Expose every single series as forecast windows of ``horizon`` steps every ``interval``.

        Returns the number of series transformed.
        """
        count = 0
        for entries in self._time_series.values():
            for name, series in list(entries.items()):
                if isinstance(series, DeterministicSingleTimeSeries):
                    series = series.single
                if isinstance(series, SingleTimeSeries):
                    entries[name] = DeterministicSingleTimeSeries(series, horizon, interval)
                    count += 1
        self.logger.info(
            f"Transformed {count} single time series (horizon={horizon}, interval={interval})"
        )
        return count

    # -- snapshots --------------------------------------------------------

    def snapshot(self) -> SystemSnapshot:
        return SystemSnapshot(self)

    def _require_member(self, component: Component) -> None:
        if self._components.get(component.category, {}).get(component.name) is not component:
            raise ComponentNotFoundError(
                f"{type(component).__name__} '{component.name}' is not part of system '{self.name}'"
            )


GridModel = _GridModelView
