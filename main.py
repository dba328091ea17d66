"""
Snake Simulation: CLI Entry Point

Runs headless sessions driven by a random input driver and writes the
per-session KPIs to a run directory.

Usage:
    python main.py --sessions 5 --seed 7
    python main.py --config config/default_config.json --max-seconds 120
"""

import argparse
import sys
import time


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Snake Simulation: headless runs of the grid snake game core",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --sessions 5 --seed 7                     Five seeded sessions
  python main.py --config config/default_config.json       Use a JSON config
  python main.py --max-seconds 60 --fps 30 --output runs   Cap play time per session
        """,
    )

    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to JSON config file (default: built-in defaults)",
    )
    parser.add_argument(
        "--sessions",
        type=int,
        default=1,
        help="Number of sessions to play (default: 1)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Base seed; session i uses seed + i (default: wall clock)",
    )
    parser.add_argument(
        "--max-seconds",
        type=float,
        default=300.0,
        help="Play-time limit per session in seconds (default: 300)",
    )
    parser.add_argument(
        "--fps",
        type=float,
        default=60.0,
        help="Simulated frames per second (default: 60)",
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Output directory for run logs (default: no files written)",
    )

    return parser.parse_args()


def run_sessions(config_path: str | None, sessions: int, seed: int | None,
                 max_seconds: float, fps: float, output_dir: str | None) -> None:
    """Play several headless sessions and report their results."""
    from snakesim.core.config import get_default_config, load_config
    from snakesim.simulation.driver import RandomDriver
    from snakesim.simulation.engine import GameEngine
    from snakesim.simulation.metrics import MetricsCollector
    from snakesim.logging.run_manager import RunManager

    config = load_config(config_path) if config_path else get_default_config()

    print("[Snake Simulation] Headless run")
    print(f"  Config: {config_path or 'defaults'}")
    print(f"  Grid: {config.grid.cols}x{config.grid.rows}")
    print(f"  Sessions: {sessions}")
    print(f"  Seed: {seed if seed is not None else 'wall clock'}")
    print(f"  Max seconds: {max_seconds}")
    print()

    metrics = MetricsCollector()
    run_manager = RunManager(config, base_dir=output_dir) if output_dir else None
    start_time = time.time()

    for i in range(sessions):
        session_seed = seed + i if seed is not None else None
        engine = GameEngine(config, seed=session_seed)
        driver = RandomDriver.for_engine(engine)
        result = engine.run(max_seconds=max_seconds, frame_dt=1.0 / fps, driver=driver)

        kpis = metrics.collect(engine, session=i)
        if run_manager is not None:
            run_manager.log_session(kpis)
            if result.summary is not None:
                run_manager.log_game_over(result.summary, session=i)

        reason = result.summary.reason if result.summary else "time limit"
        print(f"  Session {i:3d} | Seed: {result.seed:10d} | Score: {engine.score:5d} "
              f"| Length: {engine.snake.length:3d} | {result.elapsed:6.1f}s | {reason}")

    elapsed = time.time() - start_time
    summary = metrics.aggregate()

    print()
    print("[Result]")
    print(f"  Sessions: {summary['sessions']}")
    if summary["sessions"]:
        print(f"  Avg score: {summary['avg_score']:.1f} (max {summary['max_score']})")
        print(f"  Avg length: {summary['avg_length']:.1f}")
        print(f"  Avg survival: {summary['avg_elapsed']:.1f}s")
        print(f"  Death causes: {summary['death_causes']}")
    print(f"  Wall time: {elapsed:.1f}s")

    if run_manager is not None:
        run_manager.finalize(summary)
        print(f"  Output saved to: {run_manager.run_dir}")


def main() -> None:
    args = parse_args()

    if args.sessions < 1:
        print("Error: --sessions must be >= 1")
        sys.exit(1)
    if args.fps <= 0:
        print("Error: --fps must be > 0")
        sys.exit(1)

    try:
        run_sessions(
            args.config,
            sessions=args.sessions,
            seed=args.seed,
            max_seconds=args.max_seconds,
            fps=args.fps,
            output_dir=args.output,
        )
    except (FileNotFoundError, ValueError) as exc:
        print(f"Error: {exc}")
        sys.exit(1)


if __name__ == "__main__":
    main()
