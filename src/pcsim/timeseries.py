"""
Time series containers and window resolution.

Two storage forms are supported: a single continuous series over the whole
horizon, and deterministic forecasts made of fixed-length windows keyed by
their initial time. A single series can be exposed as forecasts through
``DeterministicSingleTimeSeries``. Requesting a window that the data cannot
cover without gaps raises ``WindowDataMissingError``.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from .exceptions import ValidationError, WindowDataMissingError


@dataclass(frozen=True)
class WindowSpec:
    """A window of ``steps`` timestamps starting at ``start``."""
    start: pd.Timestamp
    steps: int
    resolution: timedelta

    def __post_init__(self):
        object.__setattr__(self, "start", pd.Timestamp(self.start))
        if self.steps <= 0:
            raise ValidationError(f"Window steps must be > 0, got {self.steps}")
        if pd.Timedelta(self.resolution) <= pd.Timedelta(0):
            raise ValidationError(f"Window resolution must be positive, got {self.resolution}")

    @property
    def timestamps(self) -> pd.DatetimeIndex:
        return pd.date_range(self.start, periods=self.steps, freq=pd.Timedelta(self.resolution))

    @property
    def end(self) -> pd.Timestamp:
        """Timestamp of the last step in the window."""
        return self.start + (self.steps - 1) * pd.Timedelta(self.resolution)

    @property
    def resolution_hours(self) -> float:
        return pd.Timedelta(self.resolution).total_seconds() / 3600.0


class TimeSeries:
    """Base class for time series attached to a component."""

    def __init__(self, name: str, scaling_factor_multiplier: Optional[str] = None):
        if not name:
            raise ValidationError("Time series name cannot be empty")
        self.name = name
        self.scaling_factor_multiplier = scaling_factor_multiplier

    @property
    def resolution(self) -> pd.Timedelta:
        raise NotImplementedError

    def window_values(self, window: WindowSpec) -> np.ndarray:
        raise NotImplementedError

    def _check_resolution(self, window: WindowSpec) -> None:
        if pd.Timedelta(window.resolution) != self.resolution:
            raise WindowDataMissingError(
                f"Time series '{self.name}' has resolution {self.resolution}, "
                f"window requests {pd.Timedelta(window.resolution)}"
            )


class SingleTimeSeries(TimeSeries):
    """A continuous series with a regular DatetimeIndex."""

    def __init__(self, name: str, data: pd.Series,
                 scaling_factor_multiplier: Optional[str] = None):
        super().__init__(name, scaling_factor_multiplier)
        if not isinstance(data.index, pd.DatetimeIndex):
            raise ValidationError(f"Time series '{name}' must have a DatetimeIndex")
        if len(data) < 2:
            raise ValidationError(f"Time series '{name}' needs at least two samples")
        if not data.index.is_monotonic_increasing or data.index.has_duplicates:
            raise ValidationError(f"Time series '{name}' index must be strictly increasing")
        steps = np.unique(np.diff(data.index.values))
        if len(steps) != 1:
            raise ValidationError(f"Time series '{name}' has an irregular resolution")
        if data.isna().any():
            raise ValidationError(f"Time series '{name}' contains missing values")
        self._data = data.astype(float).copy()
        self._resolution = pd.Timedelta(steps[0])

    @classmethod
    def from_array(cls, name: str, values: Sequence[float], initial_time: datetime,
                   resolution: timedelta,
                   scaling_factor_multiplier: Optional[str] = None) -> "SingleTimeSeries":
        index = pd.date_range(initial_time, periods=len(values), freq=pd.Timedelta(resolution))
        return cls(name, pd.Series(np.asarray(values, dtype=float), index=index),
                   scaling_factor_multiplier)

    @property
    def data(self) -> pd.Series:
        return self._data.copy()

    @property
    def resolution(self) -> pd.Timedelta:
        return self._resolution

    @property
    def initial_timestamp(self) -> pd.Timestamp:
        return self._data.index[0]

    @property
    def last_timestamp(self) -> pd.Timestamp:
        return self._data.index[-1]

    def window_values(self, window: WindowSpec) -> np.ndarray:
        self._check_resolution(window)
        values = self._data.reindex(window.timestamps)
        if values.isna().any():
            missing = values.index[values.isna()]
            raise WindowDataMissingError(
                f"Time series '{self.name}' does not cover {len(missing)} timestamp(s) "
                f"of window starting {window.start} (first missing {missing[0]})"
            )
        return values.to_numpy(dtype=float)


class Deterministic(TimeSeries):
    """Forecast windows keyed by initial time, all with the same horizon."""

    def __init__(self, name: str, data: Dict[datetime, Sequence[float]], resolution: timedelta,
                 scaling_factor_multiplier: Optional[str] = None):
        super().__init__(name, scaling_factor_multiplier)
        if not data:
            raise ValidationError(f"Forecast '{name}' has no windows")
        windows = {pd.Timestamp(k): np.asarray(v, dtype=float) for k, v in data.items()}
        lengths = {len(v) for v in windows.values()}
        if len(lengths) != 1:
            raise ValidationError(f"Forecast '{name}' windows differ in length: {sorted(lengths)}")
        if any(np.isnan(v).any() for v in windows.values()):
            raise ValidationError(f"Forecast '{name}' contains missing values")
        self._windows = dict(sorted(windows.items()))
        self._resolution = pd.Timedelta(resolution)
        self._horizon = lengths.pop()

    @property
    def resolution(self) -> pd.Timedelta:
        return self._resolution

    @property
    def horizon(self) -> int:
        return self._horizon

    @property
    def initial_times(self) -> List[pd.Timestamp]:
        return list(self._windows)

    @property
    def interval(self) -> Optional[pd.Timedelta]:
        times = self.initial_times
        return times[1] - times[0] if len(times) > 1 else None

    def window_values(self, window: WindowSpec) -> np.ndarray:
        self._check_resolution(window)
        if window.start not in self._windows:
            raise WindowDataMissingError(
                f"Forecast '{self.name}' has no window starting at {window.start}"
            )
        if window.steps > self._horizon:
            raise WindowDataMissingError(
                f"Forecast '{self.name}' horizon {self._horizon} is shorter than "
                f"the requested {window.steps} steps"
            )
        return self._windows[window.start][:window.steps].copy()


class DeterministicSingleTimeSeries(TimeSeries):
    """Forecast windows derived from a single series with a fixed horizon and interval."""

    def __init__(self, single: SingleTimeSeries, horizon: int, interval: timedelta):
        super().__init__(single.name, single.scaling_factor_multiplier)
        interval = pd.Timedelta(interval)
        if horizon <= 0:
            raise ValidationError(f"Horizon must be > 0, got {horizon}")
        if interval <= pd.Timedelta(0) or interval % single.resolution != pd.Timedelta(0):
            raise ValidationError(
                f"Interval {interval} must be a positive multiple of the resolution {single.resolution}"
            )
        self.single = single
        self.horizon = horizon
        self.interval = interval

    @property
    def resolution(self) -> pd.Timedelta:
        return self.single.resolution

    @property
    def initial_times(self) -> List[pd.Timestamp]:
        times = []
        start = self.single.initial_timestamp
        span = (self.horizon - 1) * self.resolution
        while start + span <= self.single.last_timestamp:
            times.append(start)
            start += self.interval
        return times

    def window_values(self, window: WindowSpec) -> np.ndarray:
        self._check_resolution(window)
        offset = window.start - self.single.initial_timestamp
        if offset < pd.Timedelta(0) or offset % self.interval != pd.Timedelta(0):
            raise WindowDataMissingError(
                f"Forecast '{self.name}' has no window starting at {window.start}"
            )
        if window.steps > self.horizon:
            raise WindowDataMissingError(
                f"Forecast '{self.name}' horizon {self.horizon} is shorter than "
                f"the requested {window.steps} steps"
            )
        return self.single.window_values(window)


AnyTimeSeries = Union[SingleTimeSeries, Deterministic, DeterministicSingleTimeSeries]
