"""
Tests for the rolling-horizon simulation orchestrator.
"""

import sys
from pathlib import Path
import unittest
from datetime import datetime, timedelta

import numpy as np
import pulp

# Add the src directory to the path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pcsim.components import ACBus, ComponentCategory, PowerLoad, ThermalStandard, ThermalGenerationCost
from pcsim.decision_model import DecisionModel
from pcsim.events import SimulationEventType
from pcsim.exceptions import (
    ConfigurationError, ResultsStoreError, SimulationBuildError, SimulationExecutionError,
    SimulationStateError, StepDependencyError, WindowDataMissingError
)
from pcsim.formulations import ProblemTemplate, template_economic_dispatch, template_unit_commitment
from pcsim.initial_conditions import InitialConditionKey as ICKey
from pcsim.optimization import PulpSolver, SolverSettings, family_key
from pcsim.simulation import (
    InMemoryResultsStore, Simulation, SimulationModels, SimulationSequence, SimulationState,
    run_scenarios
)
from pcsim.system import System
from pcsim.systems import build_system
from pcsim.timeseries import SingleTimeSeries


THERMAL = ComponentCategory.THERMAL
RENEWABLE = ComponentCategory.RENEWABLE_DISPATCH
SETTINGS = SolverSettings(time_limit=120.0, mip_gap=1e-6)
START = datetime(2024, 1, 1)


def make_simulation(name="sim", steps=2, template=None, system=None, store=None, days=3):
    system = system if system is not None else build_system("c_sys5_uc", days=days)
    model = DecisionModel(template or template_unit_commitment(), system, name="UC",
                          solver_settings=SETTINGS)
    sequence = SimulationSequence(SimulationModels([model]))
    return Simulation(name, steps, sequence, store or InMemoryResultsStore())


def without_renewables(days=3):
    system = build_system("c_sys5_uc", days=days)
    for plant in system.get_components(RENEWABLE):
        system.set_available(plant, False)
    return system


def overloaded_second_day():
    """One generator and one load whose second-day demand exceeds capacity."""
    system = System(name="overload")
    system.add_component(ACBus(name="b1"))
    system.add_component(ThermalStandard(
        name="G1", bus="b1", rating=100.0, active_power=50.0,
        active_power_limits=(0.0, 100.0), operation_cost=ThermalGenerationCost(10.0),
    ))
    load = PowerLoad(name="L1", bus="b1", max_active_power=100.0)
    system.add_component(load)
    profile = np.concatenate([np.full(24, 0.5), np.full(24, 2.0)])
    system.add_time_series(load, SingleTimeSeries.from_array(
        "max_active_power", profile, START, timedelta(hours=1), "max_active_power"
    ))
    template = ProblemTemplate()
    template.set_device_model(THERMAL, "ThermalDispatchNoMin")
    template.set_device_model(ComponentCategory.POWER_LOAD, "StaticPowerLoad")
    return system, template


class FailingWriteStore(InMemoryResultsStore):
    """Accepts a run but cannot write any step."""

    def _write_step(self, run_name, step_index, results):
        raise OSError("disk full")


class IncumbentOnlySolver(PulpSolver):
    """Reports every finished solve as stopped on a limit with an incumbent."""

    def solve(self, problem, cancel_event=None):
        report = super().solve(problem, cancel_event)
        problem.sol_status = pulp.LpSolutionIntegerFeasible
        return self._interpret(problem, report.solve_time)

class TestSimulation(unittest.TestCase):

    def test_three_steps_without_renewables(self):
        simulation = make_simulation(steps=3, system=without_renewables())
        simulation.build()
        self.assertEqual(simulation.execute(), SimulationState.COMPLETED)

        results = simulation.results()
        self.assertEqual(results.list_steps(), [0, 1, 2])
        for frame in results.read_variable(family_key("ActivePowerVariable", RENEWABLE)).values():
            self.assertTrue(frame.empty or (frame.to_numpy() == 0).all())
        costs = results.cost_by_category()
        self.assertTrue((costs["RenewableDispatch"] == 0.0).all())
        self.assertTrue((costs["ThermalStandard"] > 0.0).all())
        self.assertEqual(len(simulation.recorder.filter(SimulationEventType.STEP_SOLVED)), 3)
        print("✓ Three-step run without renewables completed")

    def test_initial_conditions_follow_previous_step(self):
        simulation = make_simulation(steps=2)
        simulation.build()
        simulation.execute()
        results = simulation.results()

        power = results.read_variable(family_key("ActivePowerVariable", THERMAL))[0]
        conditions = results.initial_conditions(1)
        for name in power.columns:
            self.assertAlmostEqual(conditions.get_value(THERMAL, name, ICKey.DEVICE_POWER),
                                   power[name].iloc[-1], places=6)

    def test_dispatch_cost_not_above_commitment_cost(self):
        commitment = ProblemTemplate.from_dict(template_unit_commitment().to_dict())
        commitment.set_device_model(THERMAL, "ThermalStandardUnitCommitment")
        totals = {}
        for name, template in (("ed", template_economic_dispatch()), ("uc", commitment)):
            simulation = make_simulation(name, steps=2, template=template)
            simulation.build()
            simulation.execute()
            totals[name] = simulation.results().optimizer_stats()["objective_value"].sum()
        self.assertLessEqual(totals["ed"], totals["uc"] + 1e-6)
        print(f"✓ Dispatch cost {totals['ed']:.0f} <= commitment cost {totals['uc']:.0f}")

    def test_step_dependency(self):
        simulation = make_simulation(steps=3)
        simulation.build()
        with self.assertRaises(StepDependencyError):
            simulation.build_step(2)
        with self.assertRaises(StepDependencyError):
            simulation.build_step(1, "UC")

    def test_build_fails_on_missing_window_data(self):
        simulation = make_simulation(steps=4, days=3)
        with self.assertRaises(SimulationBuildError) as ctx:
            simulation.build()
        self.assertEqual(ctx.exception.step, 3)
        self.assertIsInstance(ctx.exception.__cause__, WindowDataMissingError)
        self.assertEqual(simulation.state, SimulationState.FAILED)
        with self.assertRaises(SimulationStateError):
            simulation.execute()

    def test_failure_is_reported_and_earlier_steps_kept(self):
        system, template = overloaded_second_day()
        simulation = make_simulation(steps=2, template=template, system=system)
        simulation.build()
        with self.assertRaises(SimulationExecutionError) as ctx:
            simulation.execute()

        self.assertEqual(ctx.exception.step, 1)
        self.assertEqual(ctx.exception.model, "UC")
        self.assertEqual(simulation.state, SimulationState.FAILED)
        self.assertEqual(simulation.failure.step, 1)

        results = simulation.results()
        self.assertEqual(results.status, "FAILED")
        self.assertEqual(results.list_steps(), [0])
        self.assertEqual(results.failure["step"], 1)
        self.assertEqual(len(simulation.recorder.filter(SimulationEventType.STEP_FAILED)), 1)
        print("✓ Failing step reported, earlier steps persisted")

    def test_persist_failure_fails_the_run(self):
        store = FailingWriteStore()
        simulation = make_simulation(steps=2, store=store)
        simulation.build()
        with self.assertRaises(SimulationExecutionError) as ctx:
            simulation.execute()

        self.assertEqual(ctx.exception.step, 0)
        self.assertEqual(ctx.exception.cause_kind, "ResultsStoreError")
        self.assertIsInstance(ctx.exception.__cause__, ResultsStoreError)
        self.assertEqual(simulation.state, SimulationState.FAILED)
        results = store.load("sim")
        self.assertEqual(results.status, "FAILED")
        self.assertEqual(results.failure["kind"], "ResultsStoreError")
        print("✓ Failed write closes the run as failed")

    def test_timeout_best_objective_reaches_failure(self):
        simulation = make_simulation(steps=2)
        model = simulation.models["UC"]
        model.solver = IncumbentOnlySolver(SETTINGS)
        simulation.build()
        with self.assertRaises(SimulationExecutionError) as ctx:
            simulation.execute()

        self.assertEqual(ctx.exception.cause_kind, "SolverTimeout")
        self.assertEqual(ctx.exception.step, 0)
        self.assertIsNotNone(ctx.exception.best_objective)
        self.assertGreater(ctx.exception.best_objective, 0.0)
        self.assertEqual(simulation.failure.kind, "SolverTimeout")
        self.assertEqual(simulation.failure.best_objective, ctx.exception.best_objective)
        self.assertEqual(simulation.results().failure["best_objective"],
                         ctx.exception.best_objective)
        print("✓ Timeout with incumbent carries the best objective")

    def test_models_run_in_execution_order(self):
        system = without_renewables(days=2)
        first = DecisionModel(template_unit_commitment(), system, name="UC",
                              solver_settings=SETTINGS)
        second = DecisionModel(template_economic_dispatch(), system, name="ED",
                               solver_settings=SETTINGS)
        sequence = SimulationSequence(SimulationModels([first, second]))
        self.assertEqual(sequence.execution_order, ["UC", "ED"])
        simulation = Simulation("ordered", 1, sequence, InMemoryResultsStore())
        simulation.build()
        simulation.execute()
        solved = [e.model for e in simulation.recorder.filter(SimulationEventType.STEP_SOLVED)]
        self.assertEqual(solved, ["UC", "ED"])

    def test_execute_only_once(self):
        simulation = make_simulation(steps=1)
        with self.assertRaises(SimulationStateError):
            simulation.execute()
        simulation.build()
        simulation.execute()
        with self.assertRaises(SimulationStateError):
            simulation.execute()
        with self.assertRaises(SimulationStateError):
            simulation.build()

    def test_store_refuses_second_run_with_same_name(self):
        store = InMemoryResultsStore()
        first = make_simulation("repeat", steps=1, store=store)
        first.build()
        first.execute()

        second = make_simulation("repeat", steps=1, store=store)
        second.build()
        with self.assertRaises(ResultsStoreError):
            second.execute()
        self.assertEqual(second.state, SimulationState.FAILED)
        self.assertEqual(store.load("repeat").run_id, first.run_id)

    def test_cancel_before_execute(self):
        simulation = make_simulation(steps=2)
        simulation.build()
        simulation.cancel()
        with self.assertRaises(SimulationExecutionError) as ctx:
            simulation.execute()
        self.assertEqual(ctx.exception.cause_kind, "SolveCancelled")
        self.assertEqual(ctx.exception.step, 0)

    def test_invalid_construction(self):
        with self.assertRaises(ConfigurationError):
            make_simulation(steps=0)
        with self.assertRaises(ConfigurationError):
            SimulationModels([])
        model = DecisionModel(template_unit_commitment(), build_system(days=1))
        with self.assertRaises(ConfigurationError):
            SimulationModels([model, DecisionModel(template_unit_commitment(), build_system(days=1))])


class TestScenarios(unittest.TestCase):

    def test_concurrent_scenarios(self):
        store = InMemoryResultsStore()
        scenarios = [
            make_simulation("with_renewables", steps=2, store=store),
            make_simulation("without_renewables", steps=2, store=store, system=without_renewables()),
        ]
        states = run_scenarios(scenarios, max_workers=2)
        self.assertEqual(states, {
            "with_renewables": SimulationState.COMPLETED,
            "without_renewables": SimulationState.COMPLETED,
        })
        self.assertEqual(store.list_runs(), ["with_renewables", "without_renewables"])

        # First windows share their initial conditions.
        with_costs = store.load("with_renewables").optimizer_stats()["objective_value"].iloc[0]
        without_costs = store.load("without_renewables").optimizer_stats()["objective_value"].iloc[0]
        self.assertLessEqual(with_costs, without_costs + 1e-6)
        print("✓ Scenarios ran concurrently")

    def test_shared_models_rejected(self):
        simulation = make_simulation("a", steps=1)
        twin = Simulation("b", 1, simulation.sequence, InMemoryResultsStore())
        with self.assertRaises(ConfigurationError):
            run_scenarios([simulation, twin])
        with self.assertRaises(ConfigurationError):
            run_scenarios([simulation, make_simulation("a", steps=1)])


if __name__ == "__main__":
    unittest.main()
