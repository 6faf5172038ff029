"""
Scenario comparison example.
Runs the same commitment problem with and without the renewable plants,
concurrently, and compares cost and renewable share.
"""

from pcsim import ComponentCategory, DecisionModel, Simulation, SimulationModels, SimulationSequence
from pcsim.analytics import (
    RENEWABLE_SHARE, THERMAL_STARTS, TOTAL_OBJECTIVE, compute_timeless_metrics
)
from pcsim.formulations import template_unit_commitment
from pcsim.optimization import SolverSettings
from pcsim.simulation import InMemoryResultsStore, run_scenarios
from pcsim.systems import build_system


def create_scenario(name, store, renewables=True, steps=3):
    system = build_system("c_sys5_uc", days=steps)
    if not renewables:
        for plant in system.get_components(ComponentCategory.RENEWABLE_DISPATCH):
            system.set_available(plant, False)

    model = DecisionModel(template_unit_commitment(), system, name="UC",
                          solver_settings=SolverSettings(time_limit=60.0))
    return Simulation(name, steps, SimulationSequence(SimulationModels([model])), store)


def main():
    store = InMemoryResultsStore()
    scenarios = [
        create_scenario("with_renewables", store),
        create_scenario("without_renewables", store, renewables=False),
    ]

    states = run_scenarios(scenarios, max_workers=2)
    for name, state in states.items():
        print(f"{name}: {state.name}")

    metrics = compute_timeless_metrics(store.load_all(),
                                       [TOTAL_OBJECTIVE, RENEWABLE_SHARE, THERMAL_STARTS])
    print("\nScenario comparison:")
    print(metrics)

    saving = metrics.loc["without_renewables", "TotalObjective"] - \
        metrics.loc["with_renewables", "TotalObjective"]
    print(f"\nRenewables save ${saving:,.0f} over the horizon")


if __name__ == "__main__":
    main()
