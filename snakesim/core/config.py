"""
Configuration system for the snake simulation.

Provides a hierarchical dataclass-based config with JSON serialization,
validation, and defaults matching the classic game balance.
"""

from __future__ import annotations

import json
import warnings
from copy import deepcopy
from dataclasses import dataclass, field, fields, asdict
from pathlib import Path
from typing import Any, Optional


# ---------------------------------------------------------------------------
# Sub-config dataclasses (grouped by domain)
# ---------------------------------------------------------------------------

@dataclass
class GridConfig:
    """Board size and session seed."""
    cols: int = 45
    rows: int = 35
    seed: Optional[int] = None  # None = seeded from the wall clock per session

    def validate(self) -> list[str]:
        errors = []
        if self.cols < 1:
            errors.append(f"grid.cols must be >= 1, got {self.cols}")
        if self.rows < 1:
            errors.append(f"grid.rows must be >= 1, got {self.rows}")
        if self.seed is not None and self.seed < 0:
            errors.append(f"grid.seed must be >= 0 or null, got {self.seed}")
        return errors


@dataclass
class TimingConfig:
    """Step rate, hunger, combo and event timing (seconds unless noted)."""
    base_steps_per_second: float = 7.0
    min_steps_per_second: float = 3.5
    max_steps_per_second: float = 18.0
    hunger_drain_per_second: float = 4.0   # % per second
    hunger_eat_refill: float = 28.0        # %
    combo_window_sec: float = 3.0
    event_min_cooldown: float = 8.0
    event_max_cooldown: float = 16.0
    powerup_duration_sec: float = 6.0
    max_frame_dt: float = 0.06             # frame delta clamp

    def validate(self) -> list[str]:
        errors = []
        if self.min_steps_per_second <= 0:
            errors.append(f"timing.min_steps_per_second must be > 0, got {self.min_steps_per_second}")
        if self.min_steps_per_second > self.max_steps_per_second:
            errors.append("timing.min_steps_per_second must be <= max_steps_per_second")
        elif not (self.min_steps_per_second <= self.base_steps_per_second <= self.max_steps_per_second):
            errors.append(
                f"timing.base_steps_per_second must be in "
                f"[{self.min_steps_per_second}, {self.max_steps_per_second}], got {self.base_steps_per_second}"
            )
        if self.hunger_drain_per_second < 0:
            errors.append(f"timing.hunger_drain_per_second must be >= 0, got {self.hunger_drain_per_second}")
        if self.hunger_eat_refill < 0:
            errors.append(f"timing.hunger_eat_refill must be >= 0, got {self.hunger_eat_refill}")
        if self.combo_window_sec < 0:
            errors.append(f"timing.combo_window_sec must be >= 0, got {self.combo_window_sec}")
        if self.event_min_cooldown <= 0:
            errors.append(f"timing.event_min_cooldown must be > 0, got {self.event_min_cooldown}")
        if self.event_min_cooldown > self.event_max_cooldown:
            errors.append("timing.event_min_cooldown must be <= event_max_cooldown")
        if self.powerup_duration_sec < 0:
            errors.append(f"timing.powerup_duration_sec must be >= 0, got {self.powerup_duration_sec}")
        if self.max_frame_dt <= 0:
            errors.append(f"timing.max_frame_dt must be > 0, got {self.max_frame_dt}")
        return errors


@dataclass
class GameplayConfig:
    """Snake, obstacle, portal, combo and spawn parameters."""
    initial_length: int = 4
    initial_hunger: float = 100.0
    obstacle_density: float = 0.05          # fraction of the grid seeded with rocks
    extra_obstacle_per_score: float = 0.0025
    obstacle_spawn_chance: float = 0.2      # per step, while below target
    portal_teleport_cooldown_steps: int = 3
    portal_reshuffle_chance: float = 0.03   # per step
    max_multiplier: int = 12
    powerup_base_chance: float = 0.18
    powerup_chance_per_multiplier: float = 0.02
    initial_apples: int = 3
    apple_target_range: list[int] = field(default_factory=lambda: [3, 5])
    spawn_max_attempts: int = 2000

    def validate(self) -> list[str]:
        errors = []
        if self.initial_length < 2:
            errors.append(f"gameplay.initial_length must be >= 2, got {self.initial_length}")
        if not (0.0 < self.initial_hunger <= 100.0):
            errors.append(f"gameplay.initial_hunger must be in (0, 100], got {self.initial_hunger}")
        if not (0.0 <= self.obstacle_density < 1.0):
            errors.append(f"gameplay.obstacle_density must be in [0, 1), got {self.obstacle_density}")
        if self.extra_obstacle_per_score < 0:
            errors.append(f"gameplay.extra_obstacle_per_score must be >= 0, got {self.extra_obstacle_per_score}")
        for name in ("obstacle_spawn_chance", "portal_reshuffle_chance",
                     "powerup_base_chance", "powerup_chance_per_multiplier"):
            value = getattr(self, name)
            if not (0.0 <= value <= 1.0):
                errors.append(f"gameplay.{name} must be in [0, 1], got {value}")
        if self.portal_teleport_cooldown_steps < 0:
            errors.append(
                f"gameplay.portal_teleport_cooldown_steps must be >= 0, got {self.portal_teleport_cooldown_steps}"
            )
        if self.max_multiplier < 1:
            errors.append(f"gameplay.max_multiplier must be >= 1, got {self.max_multiplier}")
        if self.initial_apples < 0:
            errors.append(f"gameplay.initial_apples must be >= 0, got {self.initial_apples}")
        rng = self.apple_target_range
        if len(rng) != 2 or rng[0] < 0 or rng[0] > rng[1]:
            errors.append("gameplay.apple_target_range must be [low, high] with 0 <= low <= high")
        if self.spawn_max_attempts < 1:
            errors.append(f"gameplay.spawn_max_attempts must be >= 1, got {self.spawn_max_attempts}")
        return errors


@dataclass
class AppleConfig:
    """Per-variant apple payloads and the type-roll thresholds."""
    normal_score: int = 3
    normal_growth: int = 1
    golden_score: int = 10
    golden_growth: int = 3
    golden_speed_delta: float = 0.6
    rotten_score: int = -4
    rotten_growth: int = -2
    rotten_speed_delta: float = -0.4
    golden_threshold: float = 0.88   # roll > threshold -> golden
    rotten_threshold: float = 0.12   # roll < threshold -> rotten

    def validate(self) -> list[str]:
        errors = []
        if not (0.0 <= self.rotten_threshold <= self.golden_threshold <= 1.0):
            errors.append("apples: need 0 <= rotten_threshold <= golden_threshold <= 1")
        if self.normal_growth < 0:
            errors.append(f"apples.normal_growth must be >= 0, got {self.normal_growth}")
        return errors


@dataclass
class EventConfig:
    """Randomized world event parameters (durations in seconds)."""
    invert_duration: float = 6.0
    fog_duration: float = 8.0
    time_shift_delta: float = 3.0
    time_shift_duration: float = 6.0
    meteor_count_range: list[int] = field(default_factory=lambda: [6, 12])
    meteor_ttl_range: list[int] = field(default_factory=lambda: [4, 8])   # steps
    bloom_count_range: list[int] = field(default_factory=lambda: [3, 6])
    label_duration: float = 3.0

    def validate(self) -> list[str]:
        errors = []
        for name in ("invert_duration", "fog_duration", "time_shift_duration", "label_duration"):
            value = getattr(self, name)
            if value < 0:
                errors.append(f"events.{name} must be >= 0, got {value}")
        if self.time_shift_delta < 0:
            errors.append(f"events.time_shift_delta must be >= 0, got {self.time_shift_delta}")
        for name, rng in [("meteor_count_range", self.meteor_count_range),
                          ("meteor_ttl_range", self.meteor_ttl_range),
                          ("bloom_count_range", self.bloom_count_range)]:
            if len(rng) != 2 or rng[0] < 0 or rng[0] > rng[1]:
                errors.append(f"events.{name} must be [low, high] with 0 <= low <= high")
        if len(self.meteor_ttl_range) == 2 and self.meteor_ttl_range[0] < 1:
            errors.append("events.meteor_ttl_range must start at >= 1")
        return errors


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------

@dataclass
class GameConfig:
    """
    Top-level game configuration.

    Nested dataclasses group related settings.
    Load from JSON with `load_config()`, validate with `validate()`.
    """
    grid: GridConfig = field(default_factory=GridConfig)
    timing: TimingConfig = field(default_factory=TimingConfig)
    gameplay: GameplayConfig = field(default_factory=GameplayConfig)
    apples: AppleConfig = field(default_factory=AppleConfig)
    events: EventConfig = field(default_factory=EventConfig)

    def validate(self) -> list[str]:
        """Validate all config sections. Returns list of error messages (empty = valid)."""
        errors = []
        for f in fields(self):
            sub = getattr(self, f.name)
            if hasattr(sub, "validate"):
                errors.extend(sub.validate())
        if self.gameplay.initial_length > self.grid.cols:
            errors.append(
                f"gameplay.initial_length ({self.gameplay.initial_length}) "
                f"must fit in grid.cols ({self.grid.cols})"
            )
        return errors

    def to_dict(self) -> dict[str, Any]:
        """Convert to nested dict for JSON serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GameConfig:
        """Create GameConfig from nested dict, merging with defaults."""
        config = cls()
        _merge_into_dataclass(config, data)
        return config

    def copy(self) -> GameConfig:
        """Deep copy of this config."""
        return deepcopy(self)


# ---------------------------------------------------------------------------
# JSON I/O helpers
# ---------------------------------------------------------------------------

def _merge_into_dataclass(target: Any, source: dict[str, Any]) -> None:
    """
    Recursively merge a dict into a dataclass instance.
    Unknown keys emit a warning but don't raise.
    """
    if not isinstance(source, dict):
        return

    known_fields = {f.name for f in fields(target)}
    for key, value in source.items():
        if key not in known_fields:
            warnings.warn(
                f"Unknown config key '{key}' in section {type(target).__name__} - ignored.",
                UserWarning,
                stacklevel=3,
            )
            continue

        current = getattr(target, key)

        if hasattr(current, "__dataclass_fields__") and isinstance(value, dict):
            _merge_into_dataclass(current, value)
        else:
            setattr(target, key, value)


def raise_if_invalid(config: GameConfig) -> None:
    """Raise ValueError listing every validation problem, if any."""
    errors = config.validate()
    if errors:
        msg = "Invalid configuration:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ValueError(msg)


def load_config(path: str | Path) -> GameConfig:
    """
    Load config from a JSON file. Missing fields use defaults.

    Raises:
        FileNotFoundError: If path doesn't exist.
        json.JSONDecodeError: If JSON is malformed.
        ValueError: If config values are invalid.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    config = GameConfig.from_dict(data)
    raise_if_invalid(config)
    return config


def save_config(config: GameConfig, path: str | Path) -> None:
    """Save config to JSON file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(config.to_dict(), f, indent=2, ensure_ascii=False)


def get_default_config() -> GameConfig:
    """Return a fresh default config (all defaults, validated)."""
    config = GameConfig()
    errors = config.validate()
    assert not errors, f"Default config is invalid: {errors}"
    return config


def apply_param_override(config: GameConfig, dotted_key: str, value: Any) -> None:
    """
    Apply a single parameter override using dot notation.

    Example:
        apply_param_override(config, "grid.cols", 60)
        apply_param_override(config, "timing.combo_window_sec", 4.5)

    Raises:
        KeyError: If the path doesn't exist.
    """
    parts = dotted_key.split(".")
    obj = config
    for part in parts[:-1]:
        if not hasattr(obj, part):
            raise KeyError(f"Config path '{dotted_key}' invalid: '{part}' not found in {type(obj).__name__}")
        obj = getattr(obj, part)

    final_key = parts[-1]
    if not hasattr(obj, final_key):
        raise KeyError(f"Config path '{dotted_key}' invalid: '{final_key}' not found in {type(obj).__name__}")

    setattr(obj, final_key, value)
