"""
Output directory for one headless run of the snake simulation.

Layout:
    {base_dir}/{run_name}/
        config.json     - game config every session was played with
        sessions.csv    - one KPI row per session
        games.jsonl     - one game-over summary per finished session
        summary.json    - cross-session aggregate, written by finalize()

Seeds recorded in sessions.csv are enough to replay any session with the
saved config, so nothing else about world state is stored.
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import numpy as np

from snakesim.core.config import GameConfig, load_config, save_config
from snakesim.logging.csv_logger import CSVLogger
from snakesim.simulation.engine import GameOverSummary


class RunManager:
    """
    Owns a run directory and the files written into it.

    Attributes:
        run_dir: Path to this run's directory.
        csv_logger: Session KPI table.
        sessions_logged: Rows written through `log_session`.
    """

    def __init__(
        self,
        config: GameConfig,
        base_dir: str | Path = "runs",
        run_name: Optional[str] = None,
    ):
        """
        Create the run directory and save the config into it.

        Args:
            config: Game configuration for every session of the run.
            base_dir: Parent directory for runs.
            run_name: Subdirectory name. None = current timestamp.
        """
        run_name = run_name or datetime.now().strftime("%Y%m%d_%H%M%S")
        self.run_dir = Path(base_dir) / run_name
        self.run_dir.mkdir(parents=True, exist_ok=True)

        save_config(config, self.config_path)
        self.csv_logger = CSVLogger(self.run_dir / "sessions.csv")
        self.sessions_logged = 0

    @property
    def config_path(self) -> Path:
        return self.run_dir / "config.json"

    @property
    def sessions_path(self) -> Path:
        return self.csv_logger.file_path

    @property
    def games_path(self) -> Path:
        return self.run_dir / "games.jsonl"

    def log_session(self, kpi_dict: dict) -> None:
        self.csv_logger.log_row(kpi_dict)
        self.sessions_logged += 1

    def log_game_over(self, summary: GameOverSummary, session: int) -> None:
        """Append one finished session's summary as a JSON line."""
        record = {"session": session, **summary.to_dict()}
        with open(self.games_path, "a", encoding="utf-8") as f:
            f.write(json.dumps(record, default=_json_default) + "\n")

    def read_games(self) -> list[dict]:
        if not self.games_path.exists():
            return []
        with open(self.games_path, "r", encoding="utf-8") as f:
            return [json.loads(line) for line in f if line.strip()]

    def replay_seeds(self) -> list[int]:
        """Seeds of every logged session, in session order."""
        return [row["seed"] for row in self.csv_logger.read_back(parse=True)]

    def load_run_config(self) -> GameConfig:
        """Config as saved in the run directory (for replays)."""
        return load_config(self.config_path)

    def finalize(self, summary: Optional[dict] = None) -> None:
        """Write the cross-session aggregate, if one is given."""
        if summary is None:
            return
        with open(self.run_dir / "summary.json", "w", encoding="utf-8") as f:
            json.dump(summary, f, indent=2, ensure_ascii=False, default=_json_default)

    @staticmethod
    def list_runs(base_dir: str | Path) -> list[str]:
        """Sorted names of run directories (those holding a config.json)."""
        base = Path(base_dir)
        if not base.exists():
            return []
        return sorted(
            d.name for d in base.iterdir()
            if d.is_dir() and (d / "config.json").exists()
        )

    def __repr__(self) -> str:
        return f"RunManager(run_dir='{self.run_dir}', sessions={self.sessions_logged})"


def _json_default(obj: Any) -> Any:
    """JSON fallback for NumPy scalars and arrays."""
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, np.floating):
        return float(obj)
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    raise TypeError(f"Object of type {type(obj)} is not JSON serializable")
