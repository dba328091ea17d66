"""
KPI metrics collection for the snake simulation.

MetricsCollector gathers one flat row of Key Performance Indicators per
finished session from the engine state and its accumulated step counters,
suitable for CSV export. `aggregate()` summarizes all collected sessions.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from snakesim.simulation.engine import GameEngine


class MetricsCollector:
    """
    Collects and computes KPIs per session.

    Usage:
      1. After a session ends, call `collect(engine)`
      2. Resulting dict is appended to `history`
      3. Call `aggregate()` for cross-session statistics

    Attributes:
        history: List of KPI dicts, one per session.
    """

    def __init__(self):
        self.history: list[dict] = []

    def collect(self, engine: GameEngine, session: int = 0) -> dict:
        """
        Compute all KPIs for a session and append to history.

        Args:
            engine: Engine whose session has ended (or was stopped).
            session: Session index within the run.

        Returns:
            Dict of KPI_name -> value.
        """
        totals = engine.get_accumulated_stats()
        summary = engine.summary
        kpis: dict = {}

        # --- Session ---
        kpis["session"] = session
        kpis["seed"] = engine.rng.seed
        kpis["game_over"] = engine.is_over
        kpis["death_cause"] = engine.snake.death_cause or ""
        kpis["reason"] = summary.reason if summary is not None else ""

        # --- Score ---
        kpis["score"] = engine.score
        kpis["max_multiplier"] = engine.max_multiplier
        kpis["final_length"] = engine.snake.length
        kpis["elapsed"] = round(engine.elapsed, 4)
        kpis["steps"] = totals["steps"]
        kpis["final_steps_per_second"] = round(engine.steps_per_second, 4)

        # --- Apples ---
        kpis["apples_normal"] = totals["apples_normal"]
        kpis["apples_golden"] = totals["apples_golden"]
        kpis["apples_rotten"] = totals["apples_rotten"]
        kpis["apples_total"] = (
            kpis["apples_normal"] + kpis["apples_golden"] + kpis["apples_rotten"]
        )

        # --- World ---
        kpis["teleports"] = totals["teleported"]
        kpis["obstacles_spawned"] = totals["obstacles_spawned"]
        kpis["obstacles_final"] = engine.world.obstacle_count
        kpis["portal_reshuffles"] = totals["portal_reshuffles"]
        kpis["meteors_expired"] = totals["meteors_expired"]
        kpis["events_triggered"] = engine.events_triggered

        self.history.append(kpis)
        return kpis

    def aggregate(self) -> dict:
        """
        Cross-session summary of the collected history.

        Returns:
            Dict with session count, score mean/max/std, mean length and
            survival time, and deaths per cause.
        """
        if not self.history:
            return {"sessions": 0}

        scores = np.array([k["score"] for k in self.history], dtype=float)
        lengths = np.array([k["final_length"] for k in self.history], dtype=float)
        elapsed = np.array([k["elapsed"] for k in self.history], dtype=float)

        causes: dict[str, int] = {}
        for k in self.history:
            cause = k["death_cause"] or "alive"
            causes[cause] = causes.get(cause, 0) + 1

        return {
            "sessions": len(self.history),
            "avg_score": float(np.mean(scores)),
            "max_score": int(np.max(scores)),
            "std_score": float(np.std(scores)),
            "avg_length": float(np.mean(lengths)),
            "avg_elapsed": float(np.mean(elapsed)),
            "max_multiplier": max(k["max_multiplier"] for k in self.history),
            "death_causes": causes,
        }

    def get_last(self) -> Optional[dict]:
        """Return the last collected KPI row, or None."""
        return self.history[-1] if self.history else None

    @staticmethod
    def kpi_names() -> list[str]:
        """Return the ordered list of all KPI names."""
        return [
            "session",
            "seed",
            "game_over",
            "death_cause",
            "reason",
            "score",
            "max_multiplier",
            "final_length",
            "elapsed",
            "steps",
            "final_steps_per_second",
            "apples_normal",
            "apples_golden",
            "apples_rotten",
            "apples_total",
            "teleports",
            "obstacles_spawned",
            "obstacles_final",
            "portal_reshuffles",
            "meteors_expired",
            "events_triggered",
        ]
