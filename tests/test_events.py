"""
Unit tests for the Event Director.

Tests cover:
- Cooldown rolling and random firing through the engine frame update
- Timed effects: invert controls, fog, time shift (apply and revert)
- Pause freezing effect countdowns
- Overlapping effects
- Instant events: meteor shower, portal shuffle, apple bloom
- Event label lifecycle and status reporting
"""

import pytest

from snakesim.core.config import GameConfig
from snakesim.simulation.engine import GameEngine
from snakesim.simulation.events import ActiveEffect, EventDirector, EventKind
from snakesim.utils.rng import GameRNG
from snakesim.utils.spatial import Direction


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

def make_engine(cooldown: float = 1000.0, seed: int = 11) -> GameEngine:
    """Obstacle-free engine whose random events stay dormant unless requested."""
    cfg = GameConfig()
    cfg.gameplay.obstacle_density = 0.0
    cfg.gameplay.extra_obstacle_per_score = 0.0
    cfg.gameplay.portal_reshuffle_chance = 0.0
    cfg.gameplay.initial_apples = 0
    cfg.timing.event_min_cooldown = cooldown
    cfg.timing.event_max_cooldown = cooldown
    eng = GameEngine(cfg, seed=seed)
    eng.world.portal = None
    eng.start()
    return eng


def run_frames(engine: GameEngine, frames: int, dt: float = 0.05) -> None:
    for _ in range(frames):
        engine.update(dt)


@pytest.fixture
def engine() -> GameEngine:
    return make_engine()


# ---------------------------------------------------------------------------
# Cooldown
# ---------------------------------------------------------------------------

class TestCooldown:
    def test_cooldown_in_range(self):
        cfg = GameConfig()
        for seed in range(20):
            director = EventDirector(cfg, GameRNG(seed))
            assert 8.0 <= director.cooldown <= 16.0

    def test_fires_when_cooldown_runs_out(self):
        eng = make_engine(cooldown=1.0)
        fired = []
        eng.on_event = lambda kind, e: fired.append(kind)
        run_frames(eng, 16, dt=0.06)
        assert eng.events_triggered == 0
        eng.update(0.06)
        assert eng.events_triggered == 1
        assert len(fired) == 1
        assert isinstance(fired[0], EventKind)
        assert eng.director.cooldown == pytest.approx(1.0)

    def test_quiet_without_cooldown_expiry(self, engine):
        run_frames(engine, 40)
        assert engine.events_triggered == 0
        assert engine.director.label is None

    def test_counts_per_kind(self, engine):
        engine.trigger_event(EventKind.FOG)
        engine.trigger_event(EventKind.FOG)
        engine.trigger_event(EventKind.APPLE_BLOOM)
        assert engine.director.counts[EventKind.FOG] == 2
        assert engine.director.counts[EventKind.APPLE_BLOOM] == 1
        assert engine.events_triggered == 3


# ---------------------------------------------------------------------------
# Timed effects
# ---------------------------------------------------------------------------

class TestInvertControls:
    def test_invert_applies_and_reverts(self, engine):
        engine.trigger_event(EventKind.INVERT_CONTROLS)
        assert engine.invert_active
        assert engine.snake.invert_controls
        run_frames(engine, 119)
        assert engine.invert_active
        run_frames(engine, 6)
        assert not engine.invert_active
        assert not engine.snake.invert_controls

    def test_inverted_intent(self, engine):
        engine.trigger_event(EventKind.INVERT_CONTROLS)
        engine.handle_direction(Direction.DOWN)
        engine.step()
        assert engine.snake.head == (22, 16)

    def test_overlapping_invert_lasts_until_last(self, engine):
        engine.trigger_event(EventKind.INVERT_CONTROLS)
        run_frames(engine, 60)
        engine.trigger_event(EventKind.INVERT_CONTROLS)
        run_frames(engine, 65)
        assert engine.invert_active
        run_frames(engine, 60)
        assert not engine.invert_active


class TestFog:
    def test_fog_applies_and_reverts(self, engine):
        engine.trigger_event(EventKind.FOG)
        assert engine.fog_active
        assert engine.snapshot().fog_active
        run_frames(engine, 165)
        assert not engine.fog_active

    def test_fog_and_invert_coexist(self, engine):
        engine.trigger_event(EventKind.FOG)
        engine.trigger_event(EventKind.INVERT_CONTROLS)
        assert engine.fog_active and engine.invert_active
        run_frames(engine, 125)
        assert engine.fog_active
        assert not engine.invert_active

    def test_pause_freezes_countdown(self, engine):
        engine.trigger_event(EventKind.FOG)
        remaining = engine.director.active_effects[0].remaining
        engine.toggle_pause()
        run_frames(engine, 500)
        assert engine.director.active_effects[0].remaining == remaining
        assert engine.fog_active


class TestTimeShift:
    def test_shift_and_restore(self, engine):
        engine.trigger_event(EventKind.TIME_SHIFT)
        assert round(engine.steps_per_second, 6) in (10.0, 4.0)
        assert engine.director.is_active(EventKind.TIME_SHIFT)
        label = engine.director.label
        assert label in ("Event: Speed Surge", "Event: Time Slow")
        run_frames(engine, 125)
        assert engine.steps_per_second == pytest.approx(7.0)
        assert not engine.director.is_active(EventKind.TIME_SHIFT)

    def test_shift_clamped_at_bounds(self, engine):
        engine.steps_per_second = 17.0
        engine.director.trigger(EventKind.TIME_SHIFT, engine)
        assert 14.0 <= engine.steps_per_second <= 18.0

    def test_revert_applies_negated_delta(self, engine):
        engine.director.active_effects.append(
            ActiveEffect(EventKind.TIME_SHIFT, remaining=0.01, speed_delta=3.0)
        )
        engine.update(0.05)
        assert engine.steps_per_second == pytest.approx(4.0)


# ---------------------------------------------------------------------------
# Instant events
# ---------------------------------------------------------------------------

class TestInstantEvents:
    def test_meteor_shower(self, engine):
        engine.trigger_event(EventKind.METEOR_SHOWER)
        meteors = engine.world.meteors
        assert 6 <= len(meteors) <= 12
        assert all(4 <= m.ttl <= 8 for m in meteors)
        assert all(not engine.snake.occupies(m.x, m.y) for m in meteors)
        assert not engine.director.active_effects

    def test_portal_shuffle(self, engine):
        assert engine.world.portal is None
        engine.trigger_event(EventKind.PORTAL_SHUFFLE)
        portal = engine.world.portal
        assert portal is not None
        for x, y in portal.endpoints:
            assert not engine.snake.occupies(x, y)

    def test_apple_bloom(self, engine):
        engine.trigger_event(EventKind.APPLE_BLOOM)
        assert 3 <= engine.world.apple_count <= 6


# ---------------------------------------------------------------------------
# Label / status
# ---------------------------------------------------------------------------

class TestLabel:
    def test_label_set_and_fades(self, engine):
        engine.trigger_event(EventKind.APPLE_BLOOM)
        assert engine.director.label == "Event: Apple Bloom"
        assert engine.snapshot().event_label == "Event: Apple Bloom"
        run_frames(engine, 61)
        assert engine.director.label is None

    def test_status(self, engine):
        engine.trigger_event(EventKind.FOG)
        status = engine.director.get_status()
        assert status["events_triggered"] == 1
        assert status["active_effects"] == ["fog"]
        assert status["label"] == "Event: Blackout Fog"
        assert "EventDirector" in repr(engine.director)
