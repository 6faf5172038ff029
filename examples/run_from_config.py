"""
Configuration-driven example.
Loads simulation.yaml, builds the named test system and runs it.
"""

from pathlib import Path

from pcsim.config import SimulationConfig, setup_logging
from pcsim.systems import build_system


def main():
    config = SimulationConfig.load_from_file(Path(__file__).parent / "simulation.yaml")
    setup_logging(config.monitoring)

    system = build_system(config.system, days=config.steps + 1)
    simulation = config.create_simulation(system)
    simulation.build()
    simulation.execute()

    results = simulation.results()
    print(results.optimizer_stats()[["objective_value", "solve_time"]])
    print(results.cost_by_category())


if __name__ == "__main__":
    main()
