"""
Tests for simulation configuration objects.
"""

import sys
from pathlib import Path
import tempfile
import unittest

# Add the src directory to the path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pcsim.config import (
    ConfigFormat, DeviceModelConfig, HorizonConfig, MonitoringConfig, SimulationConfig,
    SolverConfig, TemplateConfig, ValidationLevel, setup_logging
)
from pcsim.exceptions import ConfigurationError
from pcsim.formulations import template_unit_commitment
from pcsim.simulation import FileResultsStore, InMemoryResultsStore, SimulationState
from pcsim.systems import build_system


class TestSimulationConfig(unittest.TestCase):

    def test_defaults_are_valid(self):
        config = SimulationConfig()
        result = config.validate()
        self.assertTrue(result.is_valid, result.errors)
        self.assertEqual(config.template.to_template(), template_unit_commitment())

    def test_yaml_and_json_round_trip(self):
        config = SimulationConfig(
            name="week", steps=7, initial_time="2024-01-01T00:00:00",
            horizon=HorizonConfig(horizon=36, interval_minutes=1440),
            solver=SolverConfig(time_limit=60.0, mip_gap=1e-3, threads=2),
            template=TemplateConfig(
                use_slacks=True,
                device_models=[
                    DeviceModelConfig("ThermalStandard", "ThermalStandardUnitCommitment",
                                      {"use_ramp_limits": False}),
                    DeviceModelConfig("RenewableDispatch", "RenewableFullDispatch"),
                    DeviceModelConfig("PowerLoad", "StaticPowerLoad"),
                ],
                excluded=["EnergyReservoirStorage"],
            ),
        )
        with tempfile.TemporaryDirectory() as tmp:
            for suffix, fmt in ((".yaml", ConfigFormat.YAML), (".json", ConfigFormat.JSON)):
                path = Path(tmp) / f"config{suffix}"
                config.save_to_file(path, fmt)
                loaded = SimulationConfig.load_from_file(path)
                self.assertEqual(loaded.to_dict(), config.to_dict())
        print("✓ YAML and JSON round trips")

    def test_validation_errors(self):
        config = SimulationConfig(
            steps=0,
            solver=SolverConfig(mip_gap=1.5),
            template=TemplateConfig(device_models=[
                DeviceModelConfig("ThermalStandard", "NoSuchFormulation"),
                DeviceModelConfig("PowerLoad", "ThermalDispatchNoMin"),
            ]),
            monitoring=MonitoringConfig(log_level="LOUD"),
        )
        result = config.validate()
        self.assertFalse(result.is_valid)
        joined = " ".join(result.errors)
        for fragment in ("Steps", "MIP gap", "NoSuchFormulation", "does not apply", "log level"):
            self.assertIn(fragment, joined)

    def test_interval_mismatch_is_a_warning(self):
        config = SimulationConfig(horizon=HorizonConfig(horizon=48, interval_minutes=1440))
        result = config.validate()
        self.assertTrue(result.is_valid)
        self.assertTrue(any("Interval" in w for w in result.warnings))

    def test_strict_validation_blocks_simulation(self):
        config = SimulationConfig(steps=0)
        with self.assertRaises(ConfigurationError):
            config.create_simulation(build_system(days=1))
        config.validation_level = ValidationLevel.WARN
        self.assertFalse(config.validate_and_log())

    def test_merge(self):
        base = SimulationConfig(name="base")
        override = SimulationConfig.from_dict({"name": "override", "steps": 3})
        merged = base.merge(override)
        self.assertEqual(merged.name, "override")
        self.assertEqual(merged.steps, 3)

    def test_results_store_selection(self):
        self.assertIsInstance(SimulationConfig().create_results_store(), InMemoryResultsStore)
        with tempfile.TemporaryDirectory() as tmp:
            config = SimulationConfig(results_directory=tmp)
            self.assertIsInstance(config.create_results_store(), FileResultsStore)

    def test_create_and_run_simulation(self):
        config = SimulationConfig(name="from_config", steps=1,
                                  solver=SolverConfig(time_limit=120.0, mip_gap=1e-6))
        simulation = config.create_simulation(build_system(days=1))
        simulation.build()
        self.assertEqual(simulation.execute(), SimulationState.COMPLETED)
        self.assertEqual(simulation.results().list_models(), ["UC"])

    def test_setup_logging(self):
        logger = setup_logging(MonitoringConfig(log_level="WARNING"))
        self.assertEqual(logger.name, "pcsim")
        self.assertEqual(logger.level, 30)


if __name__ == "__main__":
    unittest.main()
