"""
Unit tests for the Game Engine (frame update and simulation step).

Tests cover:
- Construction (validation, initial world, MENU state)
- Fixed-step accumulator and frame delta clamp
- Per-step ordering: teleport, meteor decay, meteor collision, ghost immunity
- Apple consumption: score, combo multiplier, growth, hunger, speed
- Power-up grant and use
- Input surface (inversion, pause)
- Starvation end-to-end scenario and game-over summary
- Snapshot queries
- Deterministic replay and headless run
"""

import pytest

from snakesim.core.config import GameConfig
from snakesim.core.entities import AppleKind, Meteor, Portal
from snakesim.core.snake import COLLISION, METEOR
from snakesim.simulation.driver import RandomDriver
from snakesim.simulation.engine import (
    GameEngine,
    GameState,
    POWERUP_GHOST,
    StepStats,
)
from snakesim.utils.spatial import Direction


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

def make_quiet_engine(seed: int = 99, **gameplay) -> GameEngine:
    """
    Engine on the classic 45x35 board with all background randomness muted:
    no obstacles, no apples, no portal, no events within a test's horizon.
    """
    cfg = GameConfig()
    cfg.gameplay.obstacle_density = 0.0
    cfg.gameplay.extra_obstacle_per_score = 0.0
    cfg.gameplay.portal_reshuffle_chance = 0.0
    cfg.gameplay.initial_apples = 0
    cfg.timing.event_min_cooldown = 1000.0
    cfg.timing.event_max_cooldown = 1000.0
    for key, value in gameplay.items():
        setattr(cfg.gameplay, key, value)
    eng = GameEngine(cfg, seed=seed)
    eng.world.portal = None
    eng.start()
    return eng


@pytest.fixture
def engine() -> GameEngine:
    return make_quiet_engine()


def put_apple(engine: GameEngine, kind: AppleKind, x: int = 23, y: int = 17) -> None:
    engine.world.add_apple(engine.world.make_apple(x, y, kind))


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------

class TestEngineInit:
    def test_default_world(self):
        eng = GameEngine(GameConfig(), seed=1)
        assert eng.state is GameState.MENU
        assert eng.world.obstacle_count == 78
        assert eng.world.apple_count == 3
        assert eng.world.portal is not None
        assert eng.snake.length == 4
        assert eng.steps_per_second == 7.0

    def test_invalid_config_fails_fast(self):
        cfg = GameConfig()
        cfg.grid.cols = 0
        with pytest.raises(ValueError):
            GameEngine(cfg)

    def test_seed_override_and_config_seed(self):
        cfg = GameConfig()
        cfg.grid.seed = 5
        assert GameEngine(cfg).rng.seed == 5
        assert GameEngine(cfg, seed=6).rng.seed == 6

    def test_update_ignored_before_start(self):
        eng = GameEngine(GameConfig(), seed=1)
        assert eng.update(0.05) == 0
        assert eng.elapsed == 0.0

    def test_reset_restores_menu(self, engine):
        engine.score = 50
        engine.reset(seed=3)
        assert engine.state is GameState.MENU
        assert engine.score == 0
        assert engine.rng.seed == 3

    def test_repr(self, engine):
        assert "GameEngine" in repr(engine)


# ---------------------------------------------------------------------------
# Accumulator
# ---------------------------------------------------------------------------

class TestAccumulator:
    def test_steps_follow_rate(self, engine):
        assert engine.update(0.06) == 0
        assert engine.update(0.06) == 0
        assert engine.update(0.06) == 1
        assert engine.step_count == 1
        assert engine.snake.head == (23, 17)

    def test_frame_delta_clamped(self, engine):
        engine.update(5.0)
        assert engine.elapsed == pytest.approx(0.06)
        assert engine.step_count == 0

    def test_rate_independent_of_frame_size(self):
        coarse = make_quiet_engine()
        fine = make_quiet_engine()
        for _ in range(100):
            coarse.update(0.05)
        for _ in range(500):
            fine.update(0.01)
        assert coarse.step_count == pytest.approx(35, abs=1)
        assert fine.step_count == pytest.approx(35, abs=1)

    def test_faster_rate_more_steps(self, engine):
        engine.steps_per_second = 14.0
        for _ in range(100):
            engine.update(0.05)
        assert engine.step_count == pytest.approx(70, abs=1)


# ---------------------------------------------------------------------------
# Step ordering: portal, meteors, collisions
# ---------------------------------------------------------------------------

class TestTeleport:
    def test_teleport_and_cooldown(self, engine):
        engine.world.portal = Portal(a=(23, 17), b=(30, 10))
        stats = engine.step()
        assert stats.teleported == 1
        assert engine.snake.head == (30, 10)
        assert engine.snake.teleport_cooldown == 3

    def test_no_reteleport_during_cooldown(self, engine):
        engine.world.portal = Portal(a=(23, 17), b=(30, 10))
        engine.step()
        engine.world.portal = Portal(a=(31, 10), b=(5, 5))
        stats = engine.step()
        assert stats.teleported == 0
        assert engine.snake.head == (31, 10)

    def test_teleport_again_after_cooldown(self, engine):
        engine.world.portal = Portal(a=(23, 17), b=(30, 10))
        engine.step()
        engine.world.portal = Portal(a=(33, 10), b=(5, 5))
        engine.step()
        engine.step()
        engine.step()
        assert engine.snake.head == (5, 5)

    def test_entering_b_exits_a(self, engine):
        engine.world.portal = Portal(a=(2, 2), b=(23, 17))
        engine.step()
        assert engine.snake.head == (2, 2)


class TestHazards:
    def test_meteor_kills_through_ghost(self, engine):
        engine.snake.grant_ghost(10)
        engine.world.meteors.append(Meteor(23, 17, ttl=5))
        engine.step()
        assert not engine.snake.alive
        assert engine.snake.death_cause == METEOR

    def test_meteor_expiring_this_step_is_harmless(self, engine):
        engine.world.meteors.append(Meteor(23, 17, ttl=1))
        engine.step()
        assert engine.snake.alive
        assert engine.world.meteors == []

    def test_obstacle_kills(self, engine):
        engine.world.obstacles.add((23, 17))
        engine.step()
        assert not engine.snake.alive
        assert engine.snake.death_cause == COLLISION

    def test_ghost_passes_obstacle(self, engine):
        engine.snake.grant_ghost(5)
        engine.world.obstacles.add((23, 17))
        engine.step()
        assert engine.snake.alive

    def test_teleport_rescues_from_obstacle(self, engine):
        engine.world.obstacles.add((23, 17))
        engine.world.portal = Portal(a=(23, 17), b=(30, 10))
        engine.step()
        assert engine.snake.alive
        assert engine.snake.head == (30, 10)

    def test_collision_short_circuits_apple(self, engine):
        engine.world.obstacles.add((23, 17))
        put_apple(engine, AppleKind.GOLDEN)
        engine.step()
        assert engine.score == 0

    def test_death_ends_session_on_update(self, engine):
        engine.world.obstacles.add((23, 17))
        engine.step()
        engine.update(0.01)
        assert engine.is_over
        assert "Crashed" in engine.summary.reason

    def test_dead_snake_does_not_step(self, engine):
        engine.snake.die(COLLISION)
        stats = engine.step()
        assert stats == StepStats()
        assert engine.step_count == 0


# ---------------------------------------------------------------------------
# Apple consumption and scoring
# ---------------------------------------------------------------------------

class TestConsumption:
    def test_normal_apple_no_combo(self, engine):
        put_apple(engine, AppleKind.NORMAL)
        stats = engine.step()
        assert stats.apples_normal == 1
        assert stats.score_gained == 3
        assert engine.score == 3
        assert engine.multiplier == 1
        assert engine.snake.length == 4
        engine.world.apples.clear()
        engine.step()
        assert engine.snake.length == 5

    def test_apples_replenished(self, engine):
        put_apple(engine, AppleKind.NORMAL)
        engine.step()
        assert 3 <= engine.world.apple_count <= 5
        assert engine.world.apple_at(23, 17) is None

    def test_golden_with_multiplier_four(self, engine):
        engine.multiplier = 3
        engine.combo_timer = 1.0
        put_apple(engine, AppleKind.GOLDEN)
        engine.step()
        assert engine.multiplier == 4
        assert engine.score == 40
        assert engine.max_multiplier == 4
        assert engine.steps_per_second == pytest.approx(7.6)

    def test_combo_window_reset(self, engine):
        put_apple(engine, AppleKind.NORMAL)
        engine.step()
        assert engine.combo_timer == pytest.approx(3.0)

    def test_combo_chain(self, engine):
        put_apple(engine, AppleKind.NORMAL, 23, 17)
        engine.step()
        engine.world.apples.clear()
        put_apple(engine, AppleKind.NORMAL, 24, 17)
        engine.step()
        assert engine.multiplier == 2
        assert engine.score == 3 + 6

    def test_multiplier_capped(self, engine):
        engine.multiplier = 12
        engine.combo_timer = 1.0
        put_apple(engine, AppleKind.NORMAL)
        engine.step()
        assert engine.multiplier == 12
        assert engine.score == 36

    def test_combo_lapses(self, engine):
        engine.multiplier = 5
        engine.combo_timer = 0.1
        engine.update(0.06)
        assert engine.multiplier == 5
        engine.update(0.06)
        assert engine.multiplier == 1

    def test_rotten_apple(self, engine):
        engine.snake.hunger = 50.0
        put_apple(engine, AppleKind.ROTTEN)
        engine.step()
        assert engine.score == 0
        assert engine.snake.length == 2
        assert engine.snake.alive
        assert engine.snake.hunger == 50.0
        assert engine.steps_per_second == pytest.approx(6.6)

    def test_rotten_shrink_can_kill(self):
        eng = make_quiet_engine(initial_length=3)
        put_apple(eng, AppleKind.ROTTEN)
        eng.step()
        assert not eng.snake.alive
        eng.update(0.01)
        assert eng.is_over
        assert "rotten" in eng.summary.reason

    def test_hunger_refill(self, engine):
        engine.snake.hunger = 50.0
        put_apple(engine, AppleKind.NORMAL)
        engine.step()
        assert engine.snake.hunger == pytest.approx(78.0)

    def test_speed_clamped(self, engine):
        engine.steps_per_second = 17.8
        put_apple(engine, AppleKind.GOLDEN)
        engine.step()
        assert engine.steps_per_second == 18.0

    def test_powerup_granted_when_certain(self):
        eng = make_quiet_engine(powerup_base_chance=1.0)
        put_apple(eng, AppleKind.NORMAL)
        eng.step()
        assert eng.power_up == POWERUP_GHOST

    def test_powerup_never_granted_at_zero(self):
        eng = make_quiet_engine(powerup_base_chance=0.0, powerup_chance_per_multiplier=0.0)
        put_apple(eng, AppleKind.NORMAL)
        eng.step()
        assert eng.power_up is None


# ---------------------------------------------------------------------------
# Input surface
# ---------------------------------------------------------------------------

class TestInput:
    def test_direction_queued(self, engine):
        assert engine.handle_direction(Direction.UP)
        engine.step()
        assert engine.snake.head == (22, 16)

    def test_reverse_rejected(self, engine):
        assert not engine.handle_direction(Direction.LEFT)

    def test_inverted_controls(self, engine):
        engine.invert_active = True
        engine.handle_direction(Direction.UP)
        assert list(engine.snake.pending_directions) == [(0, 1)]

    def test_pause_freezes_everything(self, engine):
        engine.toggle_pause()
        assert engine.update(0.05) == 0
        assert engine.elapsed == 0.0
        assert engine.snake.hunger == 100.0
        engine.toggle_pause()
        engine.update(0.05)
        assert engine.elapsed == pytest.approx(0.05)

    def test_use_power_up(self, engine):
        engine.power_up = POWERUP_GHOST
        assert engine.use_power_up()
        assert engine.snake.ghost_steps == round(6.0 * 7.0)
        assert engine.power_up is None
        assert not engine.use_power_up()


# ---------------------------------------------------------------------------
# End-to-end scenarios
# ---------------------------------------------------------------------------

class TestScenarios:
    def test_starvation_after_25_seconds(self, engine):
        summaries = []
        engine.on_game_over = summaries.append
        for _ in range(1499):
            engine.update(1.0 / 60.0)
        assert not engine.is_over
        engine.update(1.0 / 60.0)
        assert engine.is_over
        assert engine.snake.hunger == 0.0
        assert engine.elapsed == pytest.approx(25.0)
        assert "starv" in engine.summary.reason.lower()
        assert summaries == [engine.summary]

    def test_summary_contents(self, engine):
        put_apple(engine, AppleKind.NORMAL)
        engine.step()
        engine.world.obstacles.add((25, 17))
        engine.world.apples.clear()
        engine.step()
        engine.step()
        engine.update(0.01)
        summary = engine.summary
        assert summary.score == 3
        assert summary.max_multiplier == 1
        assert summary.length == 5
        assert summary.events_triggered == 0
        assert summary.death_cause == COLLISION
        assert summary.seed == 99

    def test_updates_after_game_over_ignored(self, engine):
        engine.snake.die(COLLISION)
        engine.update(0.01)
        elapsed = engine.elapsed
        engine.update(0.05)
        assert engine.elapsed == elapsed
        assert engine.state is GameState.OVER


# ---------------------------------------------------------------------------
# World upkeep: obstacle top-up and portal reshuffle
# ---------------------------------------------------------------------------

class TestWorldUpkeep:
    def test_obstacles_topped_up_to_target(self):
        eng = make_quiet_engine(
            obstacle_density=0.002,
            extra_obstacle_per_score=0.001,
            obstacle_spawn_chance=1.0,
        )
        eng.snake.grant_ghost(100)
        assert eng.world.obstacle_count == 3
        eng.score = 2
        assert eng.world.target_obstacle_count(eng.score) == 6
        spawned = [eng.step().obstacles_spawned for _ in range(5)]
        assert spawned == [1, 1, 1, 0, 0]
        assert eng.world.obstacle_count == 6
        assert eng.get_accumulated_stats()["obstacles_spawned"] == 3

    def test_no_top_up_at_target(self):
        eng = make_quiet_engine(obstacle_density=0.002, obstacle_spawn_chance=1.0)
        eng.snake.grant_ghost(100)
        for _ in range(5):
            assert eng.step().obstacles_spawned == 0
        assert eng.world.obstacle_count == 3

    def test_portal_reshuffled_every_step(self):
        eng = make_quiet_engine(portal_reshuffle_chance=1.0)
        eng.world.spawn_portal()
        for _ in range(5):
            before = eng.world.portal.endpoints
            stats = eng.step()
            assert stats.portal_reshuffles == 1
            assert eng.world.portal.endpoints != before
        assert eng.get_accumulated_stats()["portal_reshuffles"] == 5

    def test_no_reshuffle_at_zero_chance(self, engine):
        engine.world.spawn_portal()
        portal = engine.world.portal
        for _ in range(5):
            assert engine.step().portal_reshuffles == 0
        assert engine.world.portal is portal


# ---------------------------------------------------------------------------
# Snapshot / callbacks / replay
# ---------------------------------------------------------------------------

class TestQueries:
    def test_snapshot(self):
        eng = GameEngine(GameConfig(), seed=4)
        eng.start()
        snap = eng.snapshot()
        assert snap.segments == eng.snake.segments
        assert snap.length == 4
        assert snap.hunger == 100.0
        assert snap.multiplier == 1
        assert snap.power_up is None
        assert not snap.fog_active and not snap.invert_active
        assert len(snap.obstacles) == 78
        assert len(snap.apples) == 3
        assert snap.portal is not None
        assert snap.meteors == []

    def test_snapshot_to_dict(self):
        eng = GameEngine(GameConfig(), seed=4)
        data = eng.snapshot().to_dict()
        assert isinstance(data["obstacles"], list)
        assert data["state"] == "menu"

    def test_on_step_callback(self, engine):
        seen = []
        engine.on_step = lambda stats, eng: seen.append(stats)
        engine.step()
        engine.step()
        assert len(seen) == 2

    def test_accumulated_stats(self, engine):
        put_apple(engine, AppleKind.GOLDEN)
        engine.step()
        totals = engine.get_accumulated_stats()
        assert totals["apples_golden"] == 1
        assert totals["steps"] == 1
        assert engine.apples_by_kind()[AppleKind.GOLDEN] == 1


class TestReplay:
    def test_same_seed_same_session(self):
        results = []
        for _ in range(2):
            eng = GameEngine(GameConfig(), seed=2024)
            result = eng.run(max_seconds=20.0, driver=RandomDriver(seed=1))
            results.append((result.steps, eng.score, eng.snake.segments,
                            eng.world.obstacle_positions(), result.totals))
        assert results[0] == results[1]

    def test_run_until_time_limit_or_death(self):
        eng = GameEngine(GameConfig(), seed=3)
        result = eng.run(max_seconds=5.0)
        assert result.frames > 0
        assert result.seed == 3
        if result.game_over:
            assert result.summary is not None
        else:
            assert eng.elapsed >= 5.0

    def test_run_rejects_bad_frame_dt(self):
        eng = GameEngine(GameConfig(), seed=3)
        with pytest.raises(ValueError):
            eng.run(max_seconds=1.0, frame_dt=0.0)
