"""
Game Engine: the fixed-step simulation loop of the snake game.

Each rendered frame calls `update(dt)`. Continuous timers (hunger, combo,
events) advance by the clamped frame delta, then an accumulator converts
elapsed time into whole simulation steps at the current steps-per-second
rate. Simulation speed is therefore independent of frame rate.

Per-step order (strict):
  1. advance the snake
  2. portal teleport
  3. meteor decay
  4. meteor collision (lethal even while ghosted)
  5. obstacle / self collision (ghost immune)
  6. apple consumption, scoring and combo
  7. obstacle density top-up
  8. opportunistic portal reshuffle
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Callable, Optional, Protocol

from snakesim.core.config import GameConfig, raise_if_invalid
from snakesim.core.entities import Apple, AppleKind
from snakesim.core.snake import Snake, STARVATION, COLLISION, METEOR, SHRINK
from snakesim.core.world import World
from snakesim.simulation.events import EventDirector, EventKind
from snakesim.utils.rng import GameRNG
from snakesim.utils.spatial import Direction


POWERUP_GHOST = "ghost"

DEATH_REASONS = {
    STARVATION: "Starved: hunger ran out",
    COLLISION: "Crashed into an obstacle or itself",
    METEOR: "Hit by a meteor",
    SHRINK: "Shrank away after eating rotten apples",
}


class GameState(str, Enum):
    MENU = "menu"
    PLAYING = "playing"
    OVER = "over"


# ---------------------------------------------------------------------------
# Step statistics and session results
# ---------------------------------------------------------------------------

@dataclass
class StepStats:
    """Statistics collected during a single simulation step."""
    teleported: int = 0
    meteors_expired: int = 0
    apples_normal: int = 0
    apples_golden: int = 0
    apples_rotten: int = 0
    score_gained: int = 0
    obstacles_spawned: int = 0
    portal_reshuffles: int = 0


STEP_STAT_FIELDS = tuple(StepStats.__dataclass_fields__)


@dataclass
class GameOverSummary:
    """End-of-game statistics for the UI collaborator."""
    score: int
    max_multiplier: int
    length: int
    elapsed: float
    events_triggered: int
    reason: str
    death_cause: Optional[str] = None
    steps: int = 0
    seed: Optional[int] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class GameSnapshot:
    """Read-only view of everything a renderer needs for one frame."""
    state: str
    paused: bool
    score: int
    elapsed: float
    segments: list[tuple[int, int]]
    hunger: float
    length: int
    steps_per_second: float
    multiplier: int
    power_up: Optional[str]
    ghost_steps: int
    fog_active: bool
    invert_active: bool
    obstacles: set[tuple[int, int]]
    apples: list[tuple[tuple[int, int], str]]
    portal: Optional[tuple[tuple[int, int], tuple[int, int]]]
    meteors: list[tuple[tuple[int, int], int]]
    event_label: Optional[str] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["obstacles"] = sorted(self.obstacles)
        return data


@dataclass
class RunResult:
    """Result of a headless `run()`."""
    seed: int
    frames: int = 0
    steps: int = 0
    elapsed: float = 0.0
    game_over: bool = False
    summary: Optional[GameOverSummary] = None
    totals: dict[str, int] = field(default_factory=dict)


class Driver(Protocol):
    """Input source for headless runs (called once per frame)."""

    def act(self, engine: GameEngine) -> None: ...


# ---------------------------------------------------------------------------
# Game Engine
# ---------------------------------------------------------------------------

class GameEngine:
    """
    Simulation session: owns the RNG stream, the world and all timers.

    Attributes:
        config: Game configuration (validated on construction).
        rng: Session random stream.
        world: The game board (snake, apples, obstacles, portal, meteors).
        director: Randomized event system.
        state: MENU, PLAYING or OVER.
        paused: Whether frame updates are frozen.
        score: Current score.
        multiplier: Current combo multiplier.
        max_multiplier: Highest multiplier reached.
        combo_timer: Seconds left in the current combo window.
        steps_per_second: Current simulation rate.
        elapsed: Seconds of active play.
        accumulator: Fractional time carried toward the next step.
        fog_active: Blackout fog event flag.
        invert_active: Inverted controls event flag.
        power_up: Held power-up name, or None.
        step_count: Simulation steps executed.
        summary: Game-over summary once the session has ended.
        on_step: Optional callback(step_stats, engine) after each step.
        on_event: Optional callback(event_kind, engine) when an event fires.
        on_game_over: Optional callback(summary) when the session ends.
    """

    def __init__(self, config: GameConfig, seed: Optional[int] = None):
        """
        Create a session.

        Args:
            config: Game configuration.
            seed: Random seed override. None = use config.grid.seed, or the
                wall clock if that is None too.

        Raises:
            ValueError: If the configuration is invalid.
        """
        raise_if_invalid(config)
        self.config = config

        self.on_step: Optional[Callable[[StepStats, "GameEngine"], None]] = None
        self.on_event: Optional[Callable[[EventKind, "GameEngine"], None]] = None
        self.on_game_over: Optional[Callable[[GameOverSummary], None]] = None

        self.reset(seed)

    def reset(self, seed: Optional[int] = None) -> None:
        """Start a fresh session (new RNG stream, new world) in the MENU state."""
        if seed is None:
            seed = self.config.grid.seed
        self.rng = GameRNG(seed)

        timing = self.config.timing
        self.state = GameState.MENU
        self.paused = False
        self.score = 0
        self.multiplier = 1
        self.max_multiplier = 1
        self.combo_timer = 0.0
        self.steps_per_second = timing.base_steps_per_second
        self.elapsed = 0.0
        self.accumulator = 0.0
        self.fog_active = False
        self.invert_active = False
        self.power_up: Optional[str] = None
        self.step_count = 0
        self.summary: Optional[GameOverSummary] = None
        self._totals = StepStats()

        self.world = World(self.config, self.rng)
        self.director = EventDirector(self.config, self.rng)
        self.world.populate()

    def start(self) -> None:
        if self.state is GameState.MENU:
            self.state = GameState.PLAYING

    # ------------------------------------------------------------------
    # Frame update
    # ------------------------------------------------------------------

    def update(self, dt: float) -> int:
        """
        Advance the session by one rendered frame.

        Args:
            dt: Wall-clock seconds since the previous frame (clamped).

        Returns:
            Number of simulation steps executed during this frame.
        """
        if self.state is not GameState.PLAYING or self.paused:
            return 0

        dt = min(max(dt, 0.0), self.config.timing.max_frame_dt)
        self.elapsed += dt

        # --- Continuous timers ---
        self.snake.apply_hunger_drain(dt)
        if self.combo_timer > 0:
            self.combo_timer -= dt
        if self.combo_timer <= 0:
            self.multiplier = 1

        fired = self.director.update(dt, self)
        if fired is not None and self.on_event is not None:
            self.on_event(fired, self)

        # --- Step accumulator ---
        # Interval is fixed for the whole frame even if a step changes the rate.
        step_interval = 1.0 / self.steps_per_second
        steps = 0
        self.accumulator += dt
        while self.snake.alive and self.accumulator >= step_interval:
            self.step()
            self.accumulator -= step_interval
            steps += 1

        if not self.snake.alive:
            cause = self.snake.death_cause
            self.game_over(DEATH_REASONS.get(cause, "Snake died"))

        return steps

    # ------------------------------------------------------------------
    # Simulation step
    # ------------------------------------------------------------------

    def step(self) -> StepStats:
        """Execute one discrete simulation step."""
        stats = StepStats()
        snake = self.snake
        world = self.world
        gameplay = self.config.gameplay

        if not snake.alive:
            return stats

        # --- 1. Move ---
        snake.advance_step()

        # --- 2. Portal teleport ---
        if world.portal is not None and snake.teleport_cooldown <= 0:
            dest = world.portal.other_end(snake.head)
            if dest is not None:
                snake.relocate_head(dest)
                snake.teleport_cooldown = gameplay.portal_teleport_cooldown_steps
                stats.teleported = 1

        # --- 3. Meteor decay ---
        stats.meteors_expired = world.decay_meteors()

        hx, hy = snake.head

        # --- 4. Meteors are lethal regardless of ghost ---
        if world.meteor_at(hx, hy) is not None:
            snake.die(METEOR)
            return self._finish_step(stats)

        # --- 5. Obstacles / self ---
        if snake.collide_self_or_walls(world.obstacles):
            return self._finish_step(stats)

        # --- 6. Apples ---
        apple = world.apple_at(hx, hy)
        if apple is not None:
            stats.score_gained = self.consume_apple(apple)
            setattr(stats, f"apples_{apple.kind.value}", 1)

        # --- 7. Dynamic difficulty ---
        if (world.obstacle_count < world.target_obstacle_count(self.score)
                and self.rng.chance(gameplay.obstacle_spawn_chance)):
            world.spawn_obstacle()
            stats.obstacles_spawned = 1

        # --- 8. Occasional portal reshuffle ---
        if self.rng.chance(gameplay.portal_reshuffle_chance):
            world.spawn_portal(reshuffle=True)
            stats.portal_reshuffles = 1

        return self._finish_step(stats)

    def _finish_step(self, stats: StepStats) -> StepStats:
        self.step_count += 1
        for name in STEP_STAT_FIELDS:
            setattr(self._totals, name, getattr(self._totals, name) + getattr(stats, name))
        if self.on_step is not None:
            self.on_step(stats, self)
        return stats

    def consume_apple(self, apple: Apple) -> int:
        """
        Eat an apple at the head cell.

        Returns:
            Score gained.
        """
        timing = self.config.timing
        gameplay = self.config.gameplay

        self.world.remove_apple(apple.position)
        self.snake.grow(apple.growth)

        if self.combo_timer > 0:
            self.multiplier = min(self.multiplier + 1, gameplay.max_multiplier)
        else:
            self.multiplier = 1
        self.max_multiplier = max(self.max_multiplier, self.multiplier)

        gained = max(0, math.floor(apple.score * self.multiplier))
        self.score += gained
        self.combo_timer = timing.combo_window_sec

        if apple.values.refills_hunger:
            self.snake.apply_refill(timing.hunger_eat_refill)

        if apple.values.speed_delta:
            self.adjust_speed(apple.values.speed_delta)

        # Linear in the multiplier, uncapped.
        chance = gameplay.powerup_base_chance + gameplay.powerup_chance_per_multiplier * self.multiplier
        if self.power_up is None and self.rng.chance(chance):
            self.power_up = POWERUP_GHOST

        low, high = gameplay.apple_target_range
        self.world.replenish_apples(self.rng.int(low, high))
        return gained

    def adjust_speed(self, delta: float) -> float:
        """Nudge steps-per-second, clamped to the configured bounds."""
        t = self.config.timing
        self.steps_per_second = min(
            t.max_steps_per_second,
            max(t.min_steps_per_second, self.steps_per_second + delta),
        )
        return self.steps_per_second

    # ------------------------------------------------------------------
    # Input surface
    # ------------------------------------------------------------------

    def handle_direction(self, direction: Direction) -> bool:
        """
        Apply a directional intent (negated while controls are inverted).

        Returns:
            True if the turn was queued.
        """
        if self.state is not GameState.PLAYING:
            return False
        if self.invert_active:
            direction = direction.inverted()
        return self.snake.set_direction(direction.vector)

    def toggle_pause(self) -> bool:
        """Toggle pause while playing. Returns the new paused flag."""
        if self.state is GameState.PLAYING:
            self.paused = not self.paused
        return self.paused

    def use_power_up(self) -> bool:
        """Spend the held power-up. Returns True if one was used."""
        if self.state is not GameState.PLAYING or self.power_up is None:
            return False
        if self.power_up == POWERUP_GHOST:
            steps = round(self.config.timing.powerup_duration_sec * self.steps_per_second)
            self.snake.grant_ghost(steps)
        self.power_up = None
        return True

    def trigger_event(self, kind: EventKind) -> None:
        """Fire a specific world event immediately."""
        self.director.trigger(kind, self)
        if self.on_event is not None:
            self.on_event(kind, self)

    # ------------------------------------------------------------------
    # Termination
    # ------------------------------------------------------------------

    def game_over(self, reason: str) -> GameOverSummary:
        """Enter the terminal state and emit the summary (once)."""
        if self.summary is not None:
            return self.summary
        self.state = GameState.OVER
        self.summary = GameOverSummary(
            score=self.score,
            max_multiplier=self.max_multiplier,
            length=self.snake.length,
            elapsed=self.elapsed,
            events_triggered=self.director.events_triggered,
            reason=reason,
            death_cause=self.snake.death_cause,
            steps=self.step_count,
            seed=self.rng.seed,
        )
        if self.on_game_over is not None:
            self.on_game_over(self.summary)
        return self.summary

    # ------------------------------------------------------------------
    # Headless run
    # ------------------------------------------------------------------

    def run(
        self,
        max_seconds: Optional[float] = None,
        frame_dt: float = 1.0 / 60.0,
        driver: Optional[Driver] = None,
    ) -> RunResult:
        """
        Drive the session with fixed frame deltas until game over or time limit.

        Args:
            max_seconds: Stop after this much play time. None = until game over.
            frame_dt: Simulated seconds per frame.
            driver: Optional input source called before every frame.

        Returns:
            RunResult with summary statistics.
        """
        if frame_dt <= 0:
            raise ValueError(f"frame_dt must be > 0, got {frame_dt}")
        self.start()
        result = RunResult(seed=self.rng.seed)

        while self.state is GameState.PLAYING:
            if max_seconds is not None and self.elapsed >= max_seconds:
                break
            if driver is not None:
                driver.act(self)
            self.update(frame_dt)
            result.frames += 1

        result.steps = self.step_count
        result.elapsed = self.elapsed
        result.game_over = self.is_over
        result.summary = self.summary
        result.totals = self.get_accumulated_stats()
        return result

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_accumulated_stats(self) -> dict[str, int]:
        """Session totals of every StepStats counter, plus the step count."""
        totals = asdict(self._totals)
        totals["steps"] = self.step_count
        return totals

    def snapshot(self) -> GameSnapshot:
        world = self.world
        portal = world.portal
        return GameSnapshot(
            state=self.state.value,
            paused=self.paused,
            score=self.score,
            elapsed=self.elapsed,
            segments=self.snake.segments,
            hunger=self.snake.hunger,
            length=self.snake.length,
            steps_per_second=self.steps_per_second,
            multiplier=self.multiplier,
            power_up=self.power_up,
            ghost_steps=self.snake.ghost_steps,
            fog_active=self.fog_active,
            invert_active=self.invert_active,
            obstacles=world.obstacle_positions(),
            apples=[(a.position, a.kind.value) for a in world.apples.values()],
            portal=portal.endpoints if portal is not None else None,
            meteors=[(m.position, m.ttl) for m in world.meteors],
            event_label=self.director.label,
        )

    @property
    def snake(self) -> Snake:
        return self.world.snake

    @property
    def is_over(self) -> bool:
        return self.state is GameState.OVER

    @property
    def events_triggered(self) -> int:
        return self.director.events_triggered

    def apples_by_kind(self) -> dict[AppleKind, int]:
        return {
            kind: getattr(self._totals, f"apples_{kind.value}") for kind in AppleKind
        }

    def __repr__(self) -> str:
        return (
            f"GameEngine(state={self.state.value}, score={self.score}, "
            f"steps={self.step_count}, length={self.snake.length}, "
            f"sps={self.steps_per_second:.1f})"
        )
