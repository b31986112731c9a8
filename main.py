from junction_sim.config import SimulationConfig
from junction_sim.experiments.runner import run_comparison
from junction_sim.io.logging_utils import setup_logging, logger
from junction_sim.backends import BACKENDS


def choose_backend() -> str:
    print("=== Choose backend ===")
    for i, name in enumerate(BACKENDS.keys(), start=1):
        print(f"{i}. {name}")
    choice = input("Enter number: ").strip()

    try:
        idx = int(choice) - 1
        name = list(BACKENDS.keys())[idx]
    except (ValueError, IndexError):
        print("Invalid choice, falling back to 'sequential'")
        name = "sequential"
    return name


def main():
    setup_logging()

    print("=== Junction Simulation: traffic lights vs roundabout ===")

    backend_name = choose_backend()

    try:
        total_time = float(input("Total simulation time [s] (default 120): ") or "120")
        spawn_rate = float(input("Spawn rate [veh/s] (default 1.5): ") or "1.5")
        green = float(input("Green duration [s] (default 4): ") or "4")
        seed = int(input("Random seed (default 42): ") or "42")
    except ValueError:
        print("Invalid input, using defaults.")
        total_time, spawn_rate, green, seed = 120.0, 1.5, 4.0, 42

    cfg = SimulationConfig(
        backend=backend_name,
        total_time=total_time * 1000.0,
        spawn_rate=spawn_rate,
        green_duration=green * 1000.0,
        random_seed=seed,
    )

    results = run_comparison(cfg)

    logger.info("Simulation finished.")
    for kind, result in results.items():
        logger.info(f"--- {kind} ---")
        logger.info(f"Wall time: {result.wall_time_seconds:.4f} s")
        logger.info(f"Vehicles spawned: {result.vehicles_spawned}")
        logger.info(f"Vehicles completed: {result.vehicles_completed}")
        logger.info(f"Avg wait time: {result.avg_wait_time:.2f} s")
        logger.info(f"Throughput: {result.throughput_veh_per_min:.2f} veh/min")
        logger.info(f"Queue at end: {result.final_queue_length}")
        logger.info(f"Efficiency at end: {result.final_efficiency:.1f} %")


if __name__ == "__main__":
    main()
