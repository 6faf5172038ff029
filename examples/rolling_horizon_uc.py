"""
Rolling-horizon unit commitment example.
This example demonstrates:
- Building the five-bus test system
- Selecting formulations with a problem template
- Running a week of daily commitment windows
- Reading results and computing metrics
"""

from datetime import datetime
from pathlib import Path
import tempfile

from pcsim import ComponentCategory, DecisionModel, Simulation, SimulationModels, SimulationSequence
from pcsim.analytics import compute_timed_metrics, compute_timeless_metrics
from pcsim.config import MonitoringConfig, setup_logging
from pcsim.formulations import template_unit_commitment
from pcsim.optimization import SolverSettings, family_key
from pcsim.simulation import FileResultsStore, load_all
from pcsim.systems import build_system


def main():
    setup_logging(MonitoringConfig(log_level="INFO"))

    # Create the test system: one week of hourly data
    system = build_system("c_sys5_uc", days=7, start=datetime(2024, 1, 1))
    print(f"System: {system!r}")

    # Ramp limits and minimum up/down times for the thermal fleet
    template = template_unit_commitment()
    template.set_device_model(ComponentCategory.THERMAL, "ThermalStandardUnitCommitment")

    model = DecisionModel(
        template, system, name="UC", horizon=24,
        solver_settings=SolverSettings(time_limit=60.0, mip_gap=1e-4)
    )
    sequence = SimulationSequence(SimulationModels([model]))

    output = Path(tempfile.mkdtemp(prefix="pcsim_"))
    simulation = Simulation("week_uc", steps=7, sequence=sequence,
                            results_store=FileResultsStore(output))

    print("\nBuilding simulation...")
    simulation.build()
    print("Executing simulation...")
    simulation.execute()
    print(f"Finished in state {simulation.state.name}, results in {output}")

    # Results are read back from disk
    results = load_all(output)["week_uc"]
    print("\nOptimizer statistics:")
    print(results.optimizer_stats()[["objective_value", "solve_time", "num_binary_variables"]])

    commitment = results.read_realized_variable(family_key("OnVariable", ComponentCategory.THERMAL))
    print("\nCommitted hours per unit:")
    print(commitment.sum().round())

    print("\nRun metrics:")
    print(compute_timeless_metrics(results))
    print("\nDaily totals:")
    print(compute_timed_metrics(results).resample("1D").sum())


if __name__ == "__main__":
    main()
