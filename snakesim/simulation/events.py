"""
Event Director for the snake simulation.

Fires one of six randomized world-altering events whenever its cooldown
runs out, then re-rolls the cooldown:
  - invert controls (timed)
  - blackout fog (timed)
  - meteor shower
  - time shift: speed surge or slowdown, chosen by a coin flip (timed)
  - portal reshuffle
  - apple bloom

Timed effects are reverted through ActiveEffect countdowns that only advance
inside `update()`, so pausing the game freezes them and a seeded replay
reverts them at exactly the same step. Effects may overlap freely.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional

from snakesim.core.config import GameConfig
from snakesim.utils.rng import GameRNG

if TYPE_CHECKING:
    from snakesim.simulation.engine import GameEngine


class EventKind(str, Enum):
    INVERT_CONTROLS = "invert_controls"
    FOG = "fog"
    METEOR_SHOWER = "meteor_shower"
    TIME_SHIFT = "time_shift"
    PORTAL_SHUFFLE = "portal_shuffle"
    APPLE_BLOOM = "apple_bloom"


@dataclass
class ActiveEffect:
    """
    A pending reversal of a timed event.

    Attributes:
        kind: Event that created the effect.
        remaining: Seconds of active play until the effect is reverted.
        speed_delta: Steps-per-second change applied (time shift only).
    """
    kind: EventKind
    remaining: float
    speed_delta: float = 0.0


class EventDirector:
    """
    Cooldown-driven randomized event system.

    Attributes:
        config: Game configuration.
        rng: Session random stream.
        cooldown: Seconds until the next random event.
        active_effects: Timed effects awaiting reversal.
        events_triggered: Total events fired this session.
        counts: Events fired per kind.
        label: Short text describing the latest event (None once faded).
    """

    def __init__(self, config: GameConfig, rng: GameRNG):
        self.config = config
        self.rng = rng
        self.cooldown: float = self.roll_cooldown()
        self.active_effects: list[ActiveEffect] = []
        self.events_triggered: int = 0
        self.counts: dict[EventKind, int] = {kind: 0 for kind in EventKind}
        self.label: Optional[str] = None
        self._label_timer: float = 0.0

    def roll_cooldown(self) -> float:
        t = self.config.timing
        return self.rng.range(t.event_min_cooldown, t.event_max_cooldown)

    # ------------------------------------------------------------------
    # Per-frame update
    # ------------------------------------------------------------------

    def update(self, dt: float, engine: GameEngine) -> Optional[EventKind]:
        """
        Advance effect countdowns and the event cooldown by dt seconds.

        Returns:
            The event fired this frame, or None.
        """
        self._tick_effects(dt, engine)

        if self.label is not None:
            self._label_timer -= dt
            if self._label_timer <= 0:
                self.label = None

        self.cooldown -= dt
        if self.cooldown <= 0:
            kind = self.trigger_random(engine)
            self.cooldown = self.roll_cooldown()
            return kind
        return None

    def _tick_effects(self, dt: float, engine: GameEngine) -> None:
        still_active = []
        expired = []
        for effect in self.active_effects:
            effect.remaining -= dt
            if effect.remaining <= 0:
                expired.append(effect)
            else:
                still_active.append(effect)
        self.active_effects = still_active
        for effect in expired:
            self._revert(effect, engine)

    def _revert(self, effect: ActiveEffect, engine: GameEngine) -> None:
        if effect.kind is EventKind.INVERT_CONTROLS:
            if not self.is_active(EventKind.INVERT_CONTROLS):
                engine.invert_active = False
                engine.snake.set_invert(False)
        elif effect.kind is EventKind.FOG:
            if not self.is_active(EventKind.FOG):
                engine.fog_active = False
        elif effect.kind is EventKind.TIME_SHIFT:
            engine.adjust_speed(-effect.speed_delta)

    def is_active(self, kind: EventKind) -> bool:
        """True while any timed effect of this kind is pending reversal."""
        return any(e.kind is kind for e in self.active_effects)

    # ------------------------------------------------------------------
    # Firing
    # ------------------------------------------------------------------

    def trigger_random(self, engine: GameEngine) -> EventKind:
        """Fire one uniformly chosen event."""
        kind = self.rng.pick(list(EventKind))
        self.trigger(kind, engine)
        return kind

    def trigger(self, kind: EventKind, engine: GameEngine) -> None:
        """Apply one event to the engine and schedule its reversal if timed."""
        ev = self.config.events
        world = engine.world

        if kind is EventKind.INVERT_CONTROLS:
            engine.invert_active = True
            engine.snake.set_invert(True)
            self._schedule(kind, ev.invert_duration)
            self._set_label("Inverted Controls")

        elif kind is EventKind.FOG:
            engine.fog_active = True
            self._schedule(kind, ev.fog_duration)
            self._set_label("Blackout Fog")

        elif kind is EventKind.METEOR_SHOWER:
            count = self.rng.int(ev.meteor_count_range[0], ev.meteor_count_range[1])
            world.spawn_meteors(count, (ev.meteor_ttl_range[0], ev.meteor_ttl_range[1]))
            self._set_label("Meteor Shower")

        elif kind is EventKind.TIME_SHIFT:
            faster = self.rng.chance(0.5)
            delta = ev.time_shift_delta if faster else -ev.time_shift_delta
            engine.adjust_speed(delta)
            self._schedule(kind, ev.time_shift_duration, speed_delta=delta)
            self._set_label("Speed Surge" if faster else "Time Slow")

        elif kind is EventKind.PORTAL_SHUFFLE:
            world.spawn_portal(reshuffle=True)
            self._set_label("Portals Shift")

        elif kind is EventKind.APPLE_BLOOM:
            count = self.rng.int(ev.bloom_count_range[0], ev.bloom_count_range[1])
            for _ in range(count):
                world.spawn_apple()
            self._set_label("Apple Bloom")

        self.events_triggered += 1
        self.counts[kind] += 1

    def _schedule(self, kind: EventKind, duration: float, speed_delta: float = 0.0) -> None:
        self.active_effects.append(ActiveEffect(kind, duration, speed_delta))

    def _set_label(self, text: str) -> None:
        self.label = f"Event: {text}"
        self._label_timer = self.config.events.label_duration

    def get_status(self) -> dict:
        """Return a status dict for logging/UI."""
        return {
            "cooldown": round(self.cooldown, 4),
            "events_triggered": self.events_triggered,
            "active_effects": [e.kind.value for e in self.active_effects],
            "label": self.label,
        }

    def __repr__(self) -> str:
        return (
            f"EventDirector(cooldown={self.cooldown:.2f}, "
            f"triggered={self.events_triggered}, "
            f"active={len(self.active_effects)})"
        )
