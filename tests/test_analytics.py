"""
Tests for metrics computed from simulation results.
"""

import sys
from pathlib import Path
import unittest

import numpy as np
import pandas as pd

# Add the src directory to the path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pcsim.analytics import (
    CURTAILMENT, PRODUCTION_COST, RENEWABLE_SHARE, THERMAL_STARTS, TIMED_METRICS,
    TIMELESS_METRICS, TOTAL_OBJECTIVE, compute_timed_metrics, compute_timeless_metrics
)
from pcsim.components import ComponentCategory
from pcsim.decision_model import DecisionModel
from pcsim.exceptions import AnalysisError
from pcsim.formulations import template_economic_dispatch, template_unit_commitment
from pcsim.optimization import SolverSettings
from pcsim.simulation import (
    InMemoryResultsStore, Simulation, SimulationModels, SimulationResults, SimulationSequence
)
from pcsim.systems import build_system


SETTINGS = SolverSettings(time_limit=120.0, mip_gap=1e-6)


def run(store, name, template, renewables=True):
    system = build_system(days=2)
    if not renewables:
        for plant in system.get_components(ComponentCategory.RENEWABLE_DISPATCH):
            system.set_available(plant, False)
    model = DecisionModel(template, system, name="UC", solver_settings=SETTINGS)
    simulation = Simulation(name, 2, SimulationSequence(SimulationModels([model])), store)
    simulation.build()
    simulation.execute()
    return store.load(name)


class TestAnalytics(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        store = InMemoryResultsStore()
        cls.uc = run(store, "uc", template_unit_commitment())
        cls.ed_dark = run(store, "ed_dark", template_economic_dispatch(), renewables=False)

    def test_timeless_metrics_single_run(self):
        frame = compute_timeless_metrics(self.uc)
        self.assertEqual(list(frame.index), ["uc"])
        self.assertEqual(list(frame.columns), [m.name for m in TIMELESS_METRICS])
        self.assertAlmostEqual(frame.loc["uc", TOTAL_OBJECTIVE.name],
                               self.uc.optimizer_stats()["objective_value"].sum())
        share = frame.loc["uc", RENEWABLE_SHARE.name]
        self.assertGreater(share, 0.0)
        self.assertLessEqual(share, 1.0)
        print(f"✓ Renewable share {share:.2%}")

    def test_metrics_without_renewables_or_commitment(self):
        frame = compute_timeless_metrics({"ed_dark": self.ed_dark}, [RENEWABLE_SHARE, THERMAL_STARTS])
        self.assertEqual(frame.loc["ed_dark", RENEWABLE_SHARE.name], 0.0)
        self.assertEqual(frame.loc["ed_dark", THERMAL_STARTS.name], 0.0)

    def test_timed_metrics_single_run(self):
        frame = compute_timed_metrics(self.uc)
        self.assertEqual(list(frame.columns), [m.name for m in TIMED_METRICS])
        self.assertEqual(len(frame), 48)
        self.assertIsInstance(frame.index, pd.DatetimeIndex)
        self.assertTrue((frame[CURTAILMENT.name] >= 0).all())

        stats_total = self.uc.optimizer_stats()["objective_value"].sum()
        np.testing.assert_allclose(frame[PRODUCTION_COST.name].sum(), stats_total, rtol=1e-6)

    def test_timed_metrics_several_runs(self):
        frame = compute_timed_metrics({"uc": self.uc, "ed_dark": self.ed_dark},
                                      [PRODUCTION_COST, CURTAILMENT])
        self.assertIsInstance(frame.columns, pd.MultiIndex)
        self.assertIn(("ed_dark", CURTAILMENT.name), frame.columns)
        self.assertTrue((frame[("ed_dark", CURTAILMENT.name)] == 0).all())

    def test_empty_run_is_an_analysis_error(self):
        empty = SimulationResults("empty", "id", "FAILED", {})
        with self.assertRaises(AnalysisError):
            compute_timeless_metrics(empty)
        with self.assertRaises(AnalysisError):
            compute_timed_metrics(empty)


if __name__ == "__main__":
    unittest.main()
