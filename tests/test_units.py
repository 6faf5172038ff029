"""
Tests for unit bases and unit-aware field access.
"""

import sys
from pathlib import Path
import unittest

# Add the src directory to the path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pcsim.components import ThermalStandard
from pcsim.exceptions import ComponentNotFoundError, ValidationError
from pcsim.system import System
from pcsim.units import MinMax, UnitContext, UnitSystem, UpDown


def make_generator(name="G1"):
    return ThermalStandard(
        name=name, bus="b1", base_power=200.0, rating=200.0, active_power=100.0,
        active_power_limits=MinMax(40.0, 200.0), ramp_limits=UpDown(2.0, 3.0),
        time_limits=UpDown(2.0, 1.0),
    )


class TestUnitSystems(unittest.TestCase):
    """Reading and writing component fields in the three unit bases."""

    def setUp(self):
        self.system = System(base_power=100.0)
        self.generator = make_generator()
        self.system.add_component(self.generator)

    def test_default_base_is_system_base(self):
        self.assertEqual(self.system.units_base, UnitSystem.SYSTEM_BASE)
        self.assertAlmostEqual(self.system.get_value(self.generator, "rating"), 2.0)
        print("✓ System base is the default")

    def test_power_fields_in_every_base(self):
        expected = {
            UnitSystem.NATURAL_UNITS: 200.0,
            UnitSystem.DEVICE_BASE: 1.0,
            UnitSystem.SYSTEM_BASE: 2.0,
        }
        for units, value in expected.items():
            self.system.set_units_base(units)
            self.assertAlmostEqual(self.system.get_value(self.generator, "rating"), value)
        print("✓ Rating converted in all bases")

    def test_tuple_fields_keep_their_type(self):
        limits = self.system.get_value(self.generator, "active_power_limits")
        self.assertIsInstance(limits, MinMax)
        self.assertAlmostEqual(limits.min, 0.4)
        self.assertAlmostEqual(limits.max, 2.0)

        ramps = self.system.get_value(self.generator, "ramp_limits", UnitSystem.DEVICE_BASE)
        self.assertIsInstance(ramps, UpDown)
        self.assertAlmostEqual(ramps.down, 3.0 / 200.0)

    def test_dimensionless_fields_are_not_scaled(self):
        for units in UnitSystem:
            self.system.set_units_base(units)
            self.assertEqual(self.system.get_value(self.generator, "time_limits"), UpDown(2.0, 1.0))
            self.assertEqual(self.system.get_value(self.generator, "base_power"), 200.0)

    def test_set_value_stores_natural_units(self):
        self.system.set_value(self.generator, "active_power", 1.5)
        self.assertAlmostEqual(self.generator.active_power, 150.0)

        self.system.set_value(self.generator, "active_power", 0.25, UnitSystem.DEVICE_BASE)
        self.assertAlmostEqual(self.generator.active_power, 50.0)
        print("✓ Writes are converted to natural units")

    def test_round_trip_leaves_field_unchanged(self):
        for units in UnitSystem:
            self.system.set_units_base(units)
            for field in ("rating", "active_power", "active_power_limits", "ramp_limits"):
                before = getattr(self.generator, field)
                self.system.set_value(self.generator, field,
                                      self.system.get_value(self.generator, field))
                after = getattr(self.generator, field)
                self.assertEqual(before, after)
        print("✓ Read-then-write round trip is stable")

    def test_round_trip_is_exact_for_inexact_ratios(self):
        self.generator.base_power = 150.0
        self.generator.rating = 0.1
        self.generator.active_power_limits = MinMax(0.1, 0.7)
        for units in (UnitSystem.DEVICE_BASE, UnitSystem.SYSTEM_BASE):
            for field in ("rating", "active_power_limits"):
                before = getattr(self.generator, field)
                self.system.set_value(self.generator, field,
                                      self.system.get_value(self.generator, field, units), units)
                self.assertEqual(getattr(self.generator, field), before)
        self.assertEqual(self.generator.rating, 0.1)

        # A genuinely new value is still converted
        self.system.set_value(self.generator, "rating", 0.5, UnitSystem.DEVICE_BASE)
        self.assertEqual(self.generator.rating, 75.0)
        print("✓ Round trip keeps stored values bit-for-bit")

    def test_set_value_errors(self):
        with self.assertRaises(ValidationError):
            self.system.set_value(self.generator, "no_such_field", 1.0)
        with self.assertRaises(ComponentNotFoundError):
            self.system.set_value(make_generator("outsider"), "rating", 1.0)

    def test_context_rejects_non_positive_base(self):
        with self.assertRaises(ValidationError):
            UnitContext(system_base_power=0.0)
        with self.assertRaises(ValidationError):
            System(base_power=-1.0)


if __name__ == "__main__":
    unittest.main()
