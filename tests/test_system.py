"""
Tests for the grid model, time series and the synthetic test systems.
"""

import sys
from pathlib import Path
import unittest
from datetime import datetime, timedelta

import numpy as np
import pandas as pd

# Add the src directory to the path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pcsim.components import ComponentCategory, PowerLoad, RenewableDispatch, ThermalStandard
from pcsim.exceptions import ConfigurationError, ValidationError, WindowDataMissingError
from pcsim.system import System
from pcsim.systems import build_system, load_profile
from pcsim.timeseries import Deterministic, SingleTimeSeries, WindowSpec


START = datetime(2024, 1, 1)
HOUR = timedelta(hours=1)


class TestSystemComponents(unittest.TestCase):

    def setUp(self):
        self.system = System(name="small")
        self.system.add_components([
            ThermalStandard(name="b", rating=10.0, active_power_limits=(0.0, 10.0)),
            ThermalStandard(name="a", rating=10.0, active_power_limits=(0.0, 10.0)),
        ])

    def test_components_ordered_by_name(self):
        names = [c.name for c in self.system.get_components(ComponentCategory.THERMAL)]
        self.assertEqual(names, ["a", "b"])
        self.assertEqual(self.system.count("ThermalStandard"), 2)

    def test_duplicate_names_rejected(self):
        with self.assertRaises(ValidationError):
            self.system.add_component(ThermalStandard(name="a"))

    def test_available_only_filter(self):
        self.system.set_available(self.system.get_component(ComponentCategory.THERMAL, "a"), False)
        available = self.system.get_components(ComponentCategory.THERMAL, available_only=True)
        self.assertEqual([c.name for c in available], ["b"])
        print("✓ Unavailable components are filtered")

    def test_snapshot_is_isolated_from_later_changes(self):
        snapshot = self.system.snapshot()
        component = self.system.get_component(ComponentCategory.THERMAL, "a")
        self.system.set_available(component, False)
        self.system.set_value(component, "rating", 0.05)

        frozen = snapshot.get_component(ComponentCategory.THERMAL, "a")
        self.assertTrue(frozen.available)
        self.assertEqual(frozen.rating, 10.0)
        with self.assertRaises(AttributeError):
            snapshot.name = "other"
        print("✓ Snapshots do not see later edits")

    def test_invalid_component_values(self):
        with self.assertRaises(ValidationError):
            ThermalStandard(name="bad", active_power_limits=(5.0, 1.0))
        with self.assertRaises(ValidationError):
            ThermalStandard(name="")


class TestTimeSeries(unittest.TestCase):

    def setUp(self):
        self.system = System()
        self.load = PowerLoad(name="L1", max_active_power=50.0)
        self.system.add_component(self.load)
        self.values = np.linspace(0.5, 1.0, 48)
        self.system.add_time_series(self.load, SingleTimeSeries.from_array(
            "max_active_power", self.values, START, HOUR, "max_active_power"
        ))

    def test_window_values_and_multiplier(self):
        window = WindowSpec(START + 2 * HOUR, 4, HOUR)
        raw = self.system.get_time_series_values(self.load, "max_active_power", window)
        np.testing.assert_allclose(raw, self.values[2:6])
        scaled = self.system.get_time_series_values(self.load, "max_active_power", window,
                                                    multiply=True)
        np.testing.assert_allclose(scaled, self.values[2:6] * 50.0)

    def test_window_beyond_data(self):
        window = WindowSpec(START + 40 * HOUR, 24, HOUR)
        with self.assertRaises(WindowDataMissingError):
            self.system.get_time_series_values(self.load, "max_active_power", window)

    def test_resolution_mismatch(self):
        window = WindowSpec(START, 4, timedelta(minutes=30))
        with self.assertRaises(WindowDataMissingError):
            self.system.get_time_series_values(self.load, "max_active_power", window)

    def test_missing_series(self):
        window = WindowSpec(START, 4, HOUR)
        with self.assertRaises(WindowDataMissingError):
            self.system.get_time_series_values(self.load, "other", window)

    def test_resolution_read_from_index(self):
        series = SingleTimeSeries.from_array("x", [1.0, 2.0, 3.0], START, HOUR)
        self.assertEqual(series.resolution, HOUR)
        quarter = SingleTimeSeries.from_array("y", [1.0, 2.0, 3.0], START, timedelta(minutes=15))
        self.assertEqual(quarter.resolution, timedelta(minutes=15))
        np.testing.assert_allclose(series.window_values(WindowSpec(START + HOUR, 2, HOUR)),
                                   [2.0, 3.0])

    def test_irregular_series_rejected(self):
        index = pd.DatetimeIndex([START, START + HOUR, START + 3 * HOUR])
        with self.assertRaises(ValidationError):
            SingleTimeSeries("x", pd.Series([1.0, 2.0, 3.0], index=index))

    def test_transform_to_forecasts(self):
        count = self.system.transform_single_time_series(24, timedelta(hours=12))
        self.assertEqual(count, 1)
        self.assertEqual(self.system.get_forecast_initial_times(),
                         [pd.Timestamp(START), pd.Timestamp(START + 12 * HOUR),
                          pd.Timestamp(START + 24 * HOUR)])
        with self.assertRaises(WindowDataMissingError):
            self.system.get_time_series_values(self.load, "max_active_power",
                                               WindowSpec(START + HOUR, 24, HOUR))
        print("✓ Single series exposed as forecast windows")

    def test_deterministic_forecast(self):
        plant = RenewableDispatch(name="W1", rating=10.0)
        self.system.add_component(plant)
        forecast = Deterministic("max_active_power",
                                 {START: [0.1, 0.2, 0.3], START + 3 * HOUR: [0.4, 0.5, 0.6]},
                                 HOUR, "rating")
        self.system.add_time_series(plant, forecast)
        values = self.system.get_time_series_values(plant, "max_active_power",
                                                    WindowSpec(START + 3 * HOUR, 2, HOUR),
                                                    multiply=True)
        np.testing.assert_allclose(values, [4.0, 5.0])
        with self.assertRaises(WindowDataMissingError):
            forecast.window_values(WindowSpec(START, 4, HOUR))

    def test_unknown_multiplier_rejected(self):
        plant = RenewableDispatch(name="W2", rating=10.0)
        self.system.add_component(plant)
        with self.assertRaises(ValidationError):
            self.system.add_time_series(plant, SingleTimeSeries.from_array(
                "max_active_power", [0.1, 0.2], START, HOUR, "not_a_field"
            ))


class TestTestSystems(unittest.TestCase):

    def test_c_sys5_uc_contents(self):
        system = build_system("c_sys5_uc", days=2)
        self.assertEqual(system.count(ComponentCategory.BUS), 5)
        self.assertEqual(system.count(ComponentCategory.THERMAL), 5)
        self.assertEqual(system.count(ComponentCategory.RENEWABLE_DISPATCH), 2)
        self.assertEqual(system.count(ComponentCategory.POWER_LOAD), 3)
        self.assertEqual(system.get_time_series_resolution(), pd.Timedelta(hours=1))
        self.assertEqual(system.get_time_series_initial_timestamp(), pd.Timestamp(START))
        self.assertEqual(system.get_forecast_initial_times(), [])

    def test_load_profile_is_deterministic_and_scaled(self):
        system = build_system(days=1)
        load = system.get_component(ComponentCategory.POWER_LOAD, "Bus4")
        values = system.get_time_series_values(load, "max_active_power",
                                               WindowSpec(START, 24, HOUR), multiply=True)
        np.testing.assert_allclose(values, load_profile(np.arange(24)) * 400.0)

    def test_battery_system_and_forecasts(self):
        system = build_system("c_sys5_bat", days=3, add_forecasts=True)
        self.assertEqual(system.count(ComponentCategory.STORAGE), 1)
        self.assertEqual(len(system.get_forecast_initial_times()), 3)

    def test_unknown_system(self):
        with self.assertRaises(ConfigurationError):
            build_system("c_sys14")


if __name__ == "__main__":
    unittest.main()
