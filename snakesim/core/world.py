"""
World (game board) for the snake simulation.

Owns the toroidal grid and everything on it: the snake, apples, static
obstacles, the portal pair and expiring meteors. Provides the spawn policy
(rejection sampling against every occupied-space category) and the
per-cell queries the engine needs each step.

Obstacles live in a NumPy occupancy grid for O(1) membership tests;
apples are keyed by (x, y) so there is at most one apple per cell.
"""

from __future__ import annotations

import math
from typing import Iterator, Optional

import numpy as np
from numpy.typing import NDArray

from snakesim.core.config import GameConfig
from snakesim.core.entities import Apple, AppleKind, Meteor, Portal, apple_value_table
from snakesim.core.snake import Snake
from snakesim.utils.rng import GameRNG
from snakesim.utils.spatial import decode_pos, encode_pos


class ObstacleField:
    """
    Set-like collection of permanent obstacle cells.

    Backed by a (rows, cols) boolean array; the flat index of a cell is its
    encoded position key.
    """

    def __init__(self, cols: int, rows: int):
        self.cols = cols
        self.rows = rows
        self._grid: NDArray[np.bool_] = np.zeros((rows, cols), dtype=bool)
        self._count = 0

    def add(self, pos: tuple[int, int]) -> bool:
        """Mark a cell as an obstacle. Returns False if it already was one."""
        x, y = pos
        if self._grid[y, x]:
            return False
        self._grid[y, x] = True
        self._count += 1
        return True

    def clear(self) -> None:
        self._grid[:] = False
        self._count = 0

    def __contains__(self, pos: object) -> bool:
        if not isinstance(pos, tuple) or len(pos) != 2:
            return False
        x, y = pos
        if not (0 <= x < self.cols and 0 <= y < self.rows):
            return False
        return bool(self._grid[y, x])

    def __len__(self) -> int:
        return self._count

    def keys(self) -> list[int]:
        """Encoded position keys of all obstacles, ascending."""
        return [int(k) for k in np.flatnonzero(self._grid)]

    def __iter__(self) -> Iterator[tuple[int, int]]:
        for key in self.keys():
            yield decode_pos(key, self.cols)

    @property
    def grid(self) -> NDArray[np.bool_]:
        """Read-only view of the occupancy grid (rows, cols)."""
        view = self._grid.view()
        view.flags.writeable = False
        return view

    def __repr__(self) -> str:
        return f"ObstacleField({self.cols}x{self.rows}, count={self._count})"


class World:
    """
    The game board: a 2D toroidal grid with the snake and all entities.

    Attributes:
        cols: Grid width.
        rows: Grid height.
        config: Game configuration.
        rng: Session random stream (shared with the engine).
        snake: The player's snake.
        apples: Dict of (x, y) -> Apple.
        obstacles: ObstacleField of permanent rocks.
        portal: Current portal pair, or None.
        meteors: Active meteors.
    """

    def __init__(self, config: GameConfig, rng: GameRNG):
        self.config = config
        self.cols = config.grid.cols
        self.rows = config.grid.rows
        self.rng = rng

        self.snake = Snake(config)
        self.apples: dict[tuple[int, int], Apple] = {}
        self.obstacles = ObstacleField(self.cols, self.rows)
        self.portal: Optional[Portal] = None
        self.meteors: list[Meteor] = []

        self._apple_values = apple_value_table(config.apples)

    def populate(self) -> None:
        """Seed the initial obstacles, apples and portal."""
        self.generate_obstacles()
        for _ in range(self.config.gameplay.initial_apples):
            self.spawn_apple()
        self.spawn_portal()

    # ------------------------------------------------------------------
    # Spawn policy
    # ------------------------------------------------------------------

    def can_place(self, x: int, y: int) -> bool:
        """True if (x, y) is free of obstacles, snake, portal endpoints and apples."""
        pos = (x, y)
        if pos in self.obstacles:
            return False
        if self.snake.occupies(x, y):
            return False
        if self.portal is not None and pos in self.portal:
            return False
        return pos not in self.apples

    def random_cell(self) -> tuple[int, int]:
        return self.rng.int(0, self.cols - 1), self.rng.int(0, self.rows - 1)

    def random_empty_cell(self) -> tuple[int, int]:
        """
        Draw a random free cell by rejection sampling.

        After `gameplay.spawn_max_attempts` rejected draws the last drawn
        cell is accepted as-is (best-effort placement on a crowded board).
        """
        cell = self.random_cell()
        for _ in range(self.config.gameplay.spawn_max_attempts - 1):
            if self.can_place(*cell):
                return cell
            cell = self.random_cell()
        return cell

    # ------------------------------------------------------------------
    # Apples
    # ------------------------------------------------------------------

    def roll_apple_kind(self) -> AppleKind:
        roll = self.rng.next()
        apples = self.config.apples
        if roll > apples.golden_threshold:
            return AppleKind.GOLDEN
        if roll < apples.rotten_threshold:
            return AppleKind.ROTTEN
        return AppleKind.NORMAL

    def make_apple(self, x: int, y: int, kind: AppleKind = AppleKind.NORMAL) -> Apple:
        return Apple(x=x, y=y, kind=kind, values=self._apple_values[kind])

    def add_apple(self, apple: Apple) -> None:
        """Place an apple. Replaces any apple already in that cell."""
        self.apples[apple.position] = apple

    def spawn_apple(self) -> Apple:
        """Spawn one apple of a randomly rolled kind in a free cell."""
        x, y = self.random_empty_cell()
        apple = self.make_apple(x, y, self.roll_apple_kind())
        self.add_apple(apple)
        return apple

    def replenish_apples(self, target: int) -> int:
        """
        Spawn apples until at least `target` are on the board.

        Placement is best effort: a spawn can land on a cell that already
        holds an apple (the spawn fallback on a crowded board), which does
        not raise the count. Attempts are therefore capped at four per
        missing apple, so a nearly full board can end below `target`.

        Returns:
            Number of apples spawned.
        """
        spawned = 0
        budget = max(0, target - len(self.apples)) * 4
        while len(self.apples) < target and budget > 0:
            self.spawn_apple()
            spawned += 1
            budget -= 1
        return spawned

    def apple_at(self, x: int, y: int) -> Optional[Apple]:
        return self.apples.get((x, y))

    def remove_apple(self, pos: tuple[int, int]) -> Optional[Apple]:
        return self.apples.pop(pos, None)

    # ------------------------------------------------------------------
    # Obstacles
    # ------------------------------------------------------------------

    def spawn_obstacle(self) -> tuple[int, int]:
        pos = self.random_empty_cell()
        self.obstacles.add(pos)
        return pos

    def generate_obstacles(self) -> int:
        """Seed the initial rock field. Returns the number of obstacles placed."""
        cells = math.floor(self.cols * self.rows * self.config.gameplay.obstacle_density)
        for _ in range(cells):
            self.spawn_obstacle()
        return len(self.obstacles)

    def target_obstacle_count(self, score: int) -> int:
        """Obstacle count the board grows toward at a given score."""
        g = self.config.gameplay
        return math.floor(
            self.cols * self.rows * (g.obstacle_density + score * g.extra_obstacle_per_score)
        )

    # ------------------------------------------------------------------
    # Portal
    # ------------------------------------------------------------------

    def spawn_portal(self, reshuffle: bool = False) -> Portal:
        """Create the portal pair, or replace both endpoints when reshuffling."""
        if reshuffle or self.portal is None:
            a = self.random_empty_cell()
            b = self.random_empty_cell()
            self.portal = Portal(a=a, b=b)
        return self.portal

    # ------------------------------------------------------------------
    # Meteors
    # ------------------------------------------------------------------

    def spawn_meteors(self, count: int, ttl_range: tuple[int, int]) -> list[Meteor]:
        """Drop `count` meteors in free cells, each with a random ttl (steps)."""
        spawned = []
        for _ in range(count):
            x, y = self.random_empty_cell()
            meteor = Meteor(x=x, y=y, ttl=self.rng.int(ttl_range[0], ttl_range[1]))
            self.meteors.append(meteor)
            spawned.append(meteor)
        return spawned

    def decay_meteors(self) -> int:
        """
        Tick all meteors and remove expired ones.

        Returns:
            Number of meteors that expired.
        """
        before = len(self.meteors)
        self.meteors = [m for m in self.meteors if not m.tick()]
        return before - len(self.meteors)

    def meteor_at(self, x: int, y: int) -> Optional[Meteor]:
        for meteor in self.meteors:
            if meteor.x == x and meteor.y == y:
                return meteor
        return None

    # ------------------------------------------------------------------
    # State queries
    # ------------------------------------------------------------------

    @property
    def apple_count(self) -> int:
        return len(self.apples)

    @property
    def obstacle_count(self) -> int:
        return len(self.obstacles)

    def obstacle_positions(self) -> set[tuple[int, int]]:
        return set(self.obstacles)

    def __repr__(self) -> str:
        return (
            f"World(size={self.cols}x{self.rows}, "
            f"snake_len={self.snake.length}, apples={self.apple_count}, "
            f"obstacles={self.obstacle_count}, meteors={len(self.meteors)}, "
            f"portal={self.portal is not None})"
        )
