"""
Random input driver for headless runs.

Stands in for the keyboard: once per frame it may queue a turn toward a
random direction, preferring cells that are not obviously deadly, and it
spends a held power-up when the cell ahead is blocked.

The driver owns its own NumPy generator so it never draws from the world's
random stream; a world seed still fully determines world behavior.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from snakesim.simulation.engine import GameEngine
from snakesim.utils.spatial import Direction, is_reverse, toroidal_wrap


class RandomDriver:
    """
    Picks a random safe-looking direction with a small probability per frame.

    Attributes:
        turn_chance: Probability of attempting a turn on a given frame.
        rng: Driver-local random generator.
    """

    def __init__(self, seed: Optional[int] = None, turn_chance: float = 0.08):
        self.turn_chance = turn_chance
        self.rng = np.random.default_rng(seed)

    @classmethod
    def for_engine(cls, engine: GameEngine, turn_chance: float = 0.08) -> RandomDriver:
        """Driver seeded from the session seed, so the seed alone replays a session."""
        return cls(seed=engine.rng.seed, turn_chance=turn_chance)

    def act(self, engine: GameEngine) -> None:
        """Inspect the engine and issue at most one intent."""
        snake = engine.snake
        ahead = self._next_cell(engine, snake.direction)

        if engine.power_up is not None and self._is_blocked(engine, ahead):
            engine.use_power_up()
            return

        if not self._is_blocked(engine, ahead) and self.rng.random() >= self.turn_chance:
            return

        safe = [
            d for d in Direction
            if not is_reverse(snake.direction, d.vector)
            and not self._is_blocked(engine, self._next_cell(engine, d.vector))
        ]
        if not safe:
            return
        choice = safe[int(self.rng.integers(0, len(safe)))]
        # Intent is negated by the engine while controls are inverted.
        engine.handle_direction(choice.inverted() if engine.invert_active else choice)

    @staticmethod
    def _next_cell(engine: GameEngine, vec: tuple[int, int]) -> tuple[int, int]:
        hx, hy = engine.snake.head
        world = engine.world
        return toroidal_wrap(hx + vec[0], hy + vec[1], world.cols, world.rows)

    @staticmethod
    def _is_blocked(engine: GameEngine, cell: tuple[int, int]) -> bool:
        world = engine.world
        x, y = cell
        return (
            cell in world.obstacles
            or world.snake.occupies(x, y)
            or world.meteor_at(x, y) is not None
        )
