"""
Synthetic test systems.

``build_system("c_sys5_uc")`` returns a five-bus system with five thermal
units, three loads, one wind and one solar plant and a week of hourly
profiles. ``"c_sys5_bat"`` adds a battery. Profiles are smooth, deterministic
functions of the hour so every call returns identical data.
"""

from datetime import datetime, timedelta
from typing import Callable, Dict, Optional
import logging

import numpy as np

from .components import (
    ACBus, EnergyReservoirStorage, PowerLoad, RenewableDispatch, RenewableGenerationCost,
    StorageCost, ThermalGenerationCost, ThermalStandard
)
from .exceptions import ConfigurationError
from .system import System
from .timeseries import SingleTimeSeries
from .units import InOut, MinMax, UpDown


logger = logging.getLogger("pcsim.systems")

DEFAULT_START = datetime(2024, 1, 1)
RESOLUTION = timedelta(hours=1)


def load_profile(hours: np.ndarray) -> np.ndarray:
    """Per-unit demand: night valley, evening peak, lighter weekends."""
    hour_of_day = hours % 24
    day = hours // 24
    daily = 0.75 + 0.2 * np.sin(2 * np.pi * (hour_of_day - 10) / 24)
    weekend = np.where(day % 7 >= 5, 0.92, 1.0)
    return daily * weekend


def wind_profile(hours: np.ndarray) -> np.ndarray:
    hour_of_day = hours % 24
    day = hours // 24
    values = 0.4 + 0.25 * np.cos(2 * np.pi * hour_of_day / 24) + 0.15 * np.sin(2 * np.pi * day / 7)
    return np.clip(values, 0.0, 1.0)


def solar_profile(hours: np.ndarray) -> np.ndarray:
    hour_of_day = hours % 24
    return np.clip(0.9 * np.sin(np.pi * (hour_of_day - 6) / 12), 0.0, 1.0)


def _thermal_units():
    # name, bus, (min, max), ramp MW/min, (up, down) h, cost, initial output
    data = [
        ("Alta", "nodeA", (8.0, 40.0), 1.0, (1.0, 1.0), (14.0, 2.0, 50.0, 10.0), 0.0),
        ("Park City", "nodeA", (34.0, 170.0), 2.5, (2.0, 2.0), (15.0, 5.0, 300.0, 50.0), 150.0),
        ("Solitude", "nodeC", (104.0, 520.0), 4.0, (3.0, 2.0), (30.0, 8.0, 1000.0, 100.0), 0.0),
        ("Sundance", "nodeD", (40.0, 200.0), 3.5, (1.0, 1.0), (40.0, 4.0, 400.0, 40.0), 0.0),
        ("Brighton", "nodeE", (120.0, 600.0), 5.0, (4.0, 3.0), (10.0, 10.0, 1500.0, 150.0), 500.0),
    ]
    for name, bus, limits, ramp, times, cost, initial in data:
        yield ThermalStandard(
            name=name, bus=bus, base_power=limits[1], rating=limits[1],
            active_power=initial, status=initial > 0,
            active_power_limits=MinMax(*limits),
            ramp_limits=UpDown(ramp, ramp),
            time_limits=UpDown(*times),
            time_at_status=999.0,
            operation_cost=ThermalGenerationCost(*cost),
        )


def _c_sys5_uc(system: System, hours: np.ndarray, start: datetime) -> None:
    system.add_components(
        ACBus(name=f"node{letter}", number=i + 1, base_voltage=230.0)
        for i, letter in enumerate("ABCDE")
    )
    system.add_components(_thermal_units())

    for name, bus, peak in (("Bus2", "nodeB", 300.0), ("Bus3", "nodeC", 300.0),
                            ("Bus4", "nodeD", 400.0)):
        load = PowerLoad(name=name, bus=bus, base_power=100.0, max_active_power=peak)
        system.add_component(load)
        system.add_time_series(load, SingleTimeSeries.from_array(
            "max_active_power", load_profile(hours), start, RESOLUTION, "max_active_power"
        ))

    for name, bus, rating, profile, cost in (
        ("WindBusA", "nodeA", 120.0, wind_profile, RenewableGenerationCost(0.0, 0.0)),
        ("SolarBusC", "nodeC", 200.0, solar_profile, RenewableGenerationCost(0.0, 0.0)),
    ):
        plant = RenewableDispatch(name=name, bus=bus, base_power=rating, rating=rating,
                                  operation_cost=cost)
        system.add_component(plant)
        system.add_time_series(plant, SingleTimeSeries.from_array(
            "max_active_power", profile(hours), start, RESOLUTION, "rating"
        ))


def _c_sys5_bat(system: System, hours: np.ndarray, start: datetime) -> None:
    _c_sys5_uc(system, hours, start)
    system.add_component(EnergyReservoirStorage(
        name="Bat", bus="nodeC", base_power=50.0,
        storage_capacity=200.0, initial_energy=100.0,
        input_active_power_limits=MinMax(0.0, 50.0),
        output_active_power_limits=MinMax(0.0, 50.0),
        efficiency=InOut(0.9, 0.9),
        operation_cost=StorageCost(0.5, 0.5),
    ))


SYSTEM_BUILDERS: Dict[str, Callable[[System, np.ndarray, datetime], None]] = {
    "c_sys5_uc": _c_sys5_uc,
    "c_sys5_bat": _c_sys5_bat,
}


def build_system(name: str = "c_sys5_uc", days: int = 7, start: datetime = DEFAULT_START,
                 add_forecasts: bool = False, horizon: int = 24,
                 interval: Optional[timedelta] = None) -> System:
    """Build a named test system with ``days`` of hourly data from ``start``.

    With ``add_forecasts`` the single series are exposed as forecast windows
    of ``horizon`` steps every ``interval`` (default: one day).
    """
    if name not in SYSTEM_BUILDERS:
        raise ConfigurationError(f"Unknown test system '{name}'. Available: {sorted(SYSTEM_BUILDERS)}")
    if days < 1:
        raise ConfigurationError(f"Test system needs at least one day of data, got {days}")

    system = System(base_power=100.0, name=name)
    hours = np.arange(days * 24)
    SYSTEM_BUILDERS[name](system, hours, start)
    if add_forecasts:
        system.transform_single_time_series(horizon, interval or timedelta(days=1))
    logger.info(f"Built test system {system!r}")
    return system
