"""
Snake (player agent) for the snake simulation.

The snake is an ordered body of grid cells (head first) that advances one
cell per simulation step on a toroidal grid. It carries a queued turn
buffer, pending growth, a hunger meter, and temporary status effects
(ghost immunity, inverted controls, teleport cooldown).

The snake dies on starvation, on a lethal collision, or when a shrink
leaves it with one segment or fewer.
"""

from __future__ import annotations

from collections import deque
from typing import Container, Optional

from snakesim.core.config import GameConfig
from snakesim.utils.spatial import toroidal_wrap, is_reverse


# Death causes
STARVATION = "starvation"
COLLISION = "collision"
METEOR = "meteor"
SHRINK = "shrink"


class Snake:
    """
    The player's snake on the simulation grid.

    Attributes:
        body: Segments as (x, y) tuples, head at index 0.
        direction: Current heading as a unit vector.
        pending_directions: Queued turns, one consumed per step.
        grow_by: Segments still to be added (one per step).
        hunger: Hunger meter in [0, 100].
        alive: Whether the snake is alive.
        death_cause: Cause of death string (None if alive).
        ghost_steps: Remaining steps of obstacle/self collision immunity.
        invert_controls: Whether directional input is inverted.
        teleport_cooldown: Steps until a portal may teleport the snake again.
        last_move_dir: Direction used by the most recent step.
    """

    __slots__ = (
        "cols", "rows", "body", "direction", "pending_directions", "grow_by",
        "hunger", "alive", "death_cause", "ghost_steps", "invert_controls",
        "teleport_cooldown", "last_move_dir", "_config",
    )

    def __init__(self, config: GameConfig):
        """
        Create a snake centered on the grid, heading right.

        Args:
            config: Game configuration (grid size, initial length, hunger rates).
        """
        self._config = config
        self.cols = config.grid.cols
        self.rows = config.grid.rows

        length = config.gameplay.initial_length
        if length < 1:
            raise ValueError(f"Snake length must be >= 1, got {length}")

        start_x = self.cols // 2
        start_y = self.rows // 2
        self.body: deque[tuple[int, int]] = deque(
            toroidal_wrap(start_x - i, start_y, self.cols, self.rows)
            for i in range(length)
        )

        self.direction: tuple[int, int] = (1, 0)
        self.pending_directions: deque[tuple[int, int]] = deque()
        self.grow_by: int = 0
        self.hunger: float = config.gameplay.initial_hunger
        self.alive: bool = True
        self.death_cause: Optional[str] = None
        self.ghost_steps: int = 0
        self.invert_controls: bool = False
        self.teleport_cooldown: int = 0
        self.last_move_dir: tuple[int, int] = (1, 0)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def head(self) -> tuple[int, int]:
        return self.body[0]

    @property
    def length(self) -> int:
        return len(self.body)

    @property
    def segments(self) -> list[tuple[int, int]]:
        """Snapshot of the body (head first)."""
        return list(self.body)

    @property
    def is_ghost(self) -> bool:
        return self.ghost_steps > 0

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def set_direction(self, vec: tuple[int, int]) -> bool:
        """
        Queue a turn.

        Rejected if it exactly reverses the most recently queued direction
        (or the current heading when the queue is empty).

        Returns:
            True if the turn was queued.
        """
        last = self.pending_directions[-1] if self.pending_directions else self.direction
        if is_reverse(last, vec):
            return False
        self.pending_directions.append(vec)
        return True

    # ------------------------------------------------------------------
    # Hunger and status effects
    # ------------------------------------------------------------------

    def apply_hunger_drain(self, dt: float) -> None:
        """Drain hunger for dt seconds. Reaching 0 kills the snake."""
        rate = self._config.timing.hunger_drain_per_second
        self.hunger = max(0.0, self.hunger - rate * dt)
        # Repeated float subtraction leaves residue just above zero.
        if self.hunger <= 1e-9:
            self.hunger = 0.0
        if self.hunger <= 0 and self.alive:
            self.die(STARVATION)

    def apply_refill(self, amount: float) -> None:
        """Refill hunger, capped at 100."""
        self.hunger = min(100.0, self.hunger + amount)

    def grant_ghost(self, steps: int) -> None:
        """Refresh ghost immunity to at least `steps` (does not stack)."""
        self.ghost_steps = max(self.ghost_steps, steps)

    def set_invert(self, active: bool) -> None:
        self.invert_controls = active

    # ------------------------------------------------------------------
    # Movement and growth
    # ------------------------------------------------------------------

    def advance_step(self) -> None:
        """
        Advance one simulation step.

        Consumes one queued turn, moves the head one cell (wrapped), keeps
        the tail while growth is pending, and ticks down status counters.
        """
        if not self.alive:
            return

        if self.pending_directions:
            self.direction = self.pending_directions.popleft()

        hx, hy = self.body[0]
        dx, dy = self.direction
        self.last_move_dir = self.direction
        self.body.appendleft(toroidal_wrap(hx + dx, hy + dy, self.cols, self.rows))

        if self.grow_by > 0:
            self.grow_by -= 1
        else:
            self.body.pop()

        if self.ghost_steps > 0:
            self.ghost_steps -= 1
        if self.teleport_cooldown > 0:
            self.teleport_cooldown -= 1

    def grow(self, n: int) -> None:
        """
        Grow or shrink the snake.

        n > 0 queues n segments (one per upcoming step). n < 0 removes up to
        |n| tail segments immediately; ending with one segment or fewer is fatal.
        """
        if n > 0:
            self.grow_by += n
        elif n < 0:
            for _ in range(min(len(self.body) - 1, -n)):
                self.body.pop()
            if len(self.body) <= 1:
                self.die(SHRINK)

    def relocate_head(self, pos: tuple[int, int]) -> None:
        """Move the head segment in place (portal teleport)."""
        self.body[0] = pos

    # ------------------------------------------------------------------
    # Collision
    # ------------------------------------------------------------------

    def occupies(self, x: int, y: int, skip_head: bool = False) -> bool:
        """True if any segment (optionally excluding the head) is at (x, y)."""
        for idx, seg in enumerate(self.body):
            if skip_head and idx == 0:
                continue
            if seg == (x, y):
                return True
        return False

    def collide_self_or_walls(self, obstacles: Container[tuple[int, int]]) -> bool:
        """
        Check the head against obstacles and the rest of the body.

        Lethal unless ghosted. While ghosted a hit is ignored.

        Returns:
            True if the snake died from this collision.
        """
        head = self.body[0]
        hit = head in obstacles or self.occupies(head[0], head[1], skip_head=True)
        if not hit or self.ghost_steps > 0:
            return False
        self.die(COLLISION)
        return True

    def die(self, cause: str) -> None:
        """Mark the snake dead. The first cause recorded wins."""
        if self.alive:
            self.death_cause = cause
        self.alive = False

    # ------------------------------------------------------------------
    # Representation
    # ------------------------------------------------------------------

    def __repr__(self) -> str:
        status = "alive" if self.alive else f"dead({self.death_cause})"
        return (
            f"Snake(head={self.head}, length={self.length}, "
            f"hunger={self.hunger:.1f}, ghost={self.ghost_steps}, status={status})"
        )

    def to_dict(self) -> dict:
        """Serialize snake state for snapshots/logging."""
        return {
            "segments": [list(p) for p in self.body],
            "direction": list(self.direction),
            "length": self.length,
            "hunger": round(self.hunger, 6),
            "alive": self.alive,
            "death_cause": self.death_cause,
            "ghost_steps": self.ghost_steps,
            "invert_controls": self.invert_controls,
            "teleport_cooldown": self.teleport_cooldown,
        }
