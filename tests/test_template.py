"""
Tests for problem templates and formulation selection.
"""

import sys
from pathlib import Path
import unittest

# Add the src directory to the path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pcsim.components import ComponentCategory
from pcsim.decision_model import DecisionModel
from pcsim.exceptions import ConfigurationError, FormulationMismatchError, UnknownCategoryError
from pcsim.formulations import (
    NetworkModel, ProblemTemplate, list_formulations, template_economic_dispatch,
    template_unit_commitment
)
from pcsim.systems import build_system


class TestProblemTemplate(unittest.TestCase):

    def setUp(self):
        self.system = build_system("c_sys5_uc", days=1)

    def test_validate_returns_models_in_category_order(self):
        models = template_unit_commitment().validate_against(self.system)
        self.assertEqual(list(models), [
            ComponentCategory.THERMAL,
            ComponentCategory.RENEWABLE_DISPATCH,
            ComponentCategory.POWER_LOAD,
        ])
        self.assertEqual(models[ComponentCategory.THERMAL].formulation, "ThermalBasicUnitCommitment")

    def test_unmapped_category_is_a_mismatch(self):
        system = build_system("c_sys5_bat", days=1)
        template = template_unit_commitment()
        with self.assertRaises(FormulationMismatchError):
            template.validate_against(system)

        template.exclude(ComponentCategory.STORAGE)
        self.assertNotIn(ComponentCategory.STORAGE, template.validate_against(system))
        print("✓ Unmapped categories must be excluded explicitly")

    def test_mapped_category_without_components(self):
        template = template_unit_commitment()
        template.set_device_model(ComponentCategory.STORAGE, "StorageBookKeeping")
        with self.assertRaises(UnknownCategoryError):
            template.validate_against(self.system)

    def test_invalid_entries(self):
        template = ProblemTemplate()
        with self.assertRaises(ConfigurationError):
            template.set_device_model("ThermalStandard", "NoSuchFormulation")
        with self.assertRaises(ConfigurationError):
            template.set_device_model("ThermalStandard", "StaticPowerLoad")
        with self.assertRaises(ConfigurationError):
            template.set_device_model("NotACategory", "StaticPowerLoad")
        with self.assertRaises(ConfigurationError):
            template.set_device_model("ThermalStandard", "ThermalStandardUnitCommitment",
                                      {"use_ramps": True})
        with self.assertRaises(ConfigurationError):
            NetworkModel("PTDFPowerModel")

    def test_clone_isolation(self):
        template = template_unit_commitment()
        model = DecisionModel(template, self.system, name="UC")
        template.set_device_model(ComponentCategory.THERMAL, "ThermalDispatchNoMin")

        self.assertEqual(model.template.get_device_model(ComponentCategory.THERMAL).formulation,
                         "ThermalBasicUnitCommitment")
        clone = template.clone()
        clone.exclude(ComponentCategory.RENEWABLE_DISPATCH)
        self.assertIsNotNone(template.get_device_model(ComponentCategory.RENEWABLE_DISPATCH))
        print("✓ Template edits do not reach existing models")

    def test_dict_round_trip(self):
        template = template_economic_dispatch(NetworkModel(use_slacks=True, slack_penalty=5e4))
        template.set_device_model(ComponentCategory.STORAGE, "StorageBookKeeping",
                                  {"energy_target": True})
        template.exclude(ComponentCategory.RENEWABLE_NON_DISPATCH)
        restored = ProblemTemplate.from_dict(template.to_dict())
        self.assertEqual(restored, template)
        self.assertTrue(restored.network_model.use_slacks)
        self.assertEqual(restored.excluded, {ComponentCategory.RENEWABLE_NON_DISPATCH})

    def test_formulation_listing(self):
        self.assertEqual(list_formulations(ComponentCategory.THERMAL), [
            "ThermalBasicUnitCommitment", "ThermalDispatchNoMin", "ThermalStandardUnitCommitment",
        ])
        self.assertIn("FixedOutput", list_formulations(ComponentCategory.RENEWABLE_NON_DISPATCH))


if __name__ == "__main__":
    unittest.main()
