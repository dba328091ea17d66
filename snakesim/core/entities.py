"""
World entities for the snake simulation: apples, portals and meteors.

Apple behavior is a tagged variant: AppleKind plus a per-kind value table
(score delta, growth delta, speed delta) built from the config. New
variants are added by extending the enum and the table.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from snakesim.core.config import AppleConfig


class AppleKind(str, Enum):
    NORMAL = "normal"
    GOLDEN = "golden"
    ROTTEN = "rotten"


@dataclass(frozen=True, slots=True)
class AppleValues:
    """Constant payload of one apple variant."""
    score: int
    growth: int
    speed_delta: float = 0.0
    refills_hunger: bool = True


def apple_value_table(config: AppleConfig) -> dict[AppleKind, AppleValues]:
    """Build the variant -> payload table from the apple config."""
    return {
        AppleKind.NORMAL: AppleValues(config.normal_score, config.normal_growth),
        AppleKind.GOLDEN: AppleValues(
            config.golden_score, config.golden_growth, config.golden_speed_delta,
        ),
        AppleKind.ROTTEN: AppleValues(
            config.rotten_score, config.rotten_growth, config.rotten_speed_delta,
            refills_hunger=False,
        ),
    }


@dataclass(slots=True)
class Apple:
    """
    An apple on the grid.

    Attributes:
        x: Grid x-coordinate.
        y: Grid y-coordinate.
        kind: Variant tag.
        values: Payload for this variant.
    """
    x: int
    y: int
    kind: AppleKind
    values: AppleValues

    @property
    def position(self) -> tuple[int, int]:
        return (self.x, self.y)

    @property
    def score(self) -> int:
        return self.values.score

    @property
    def growth(self) -> int:
        return self.values.growth

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y, "kind": self.kind.value}


@dataclass(slots=True)
class Portal:
    """
    A bidirectional portal pair. Entering either end exits at the other.

    Attributes:
        a: First endpoint.
        b: Second endpoint.
    """
    a: tuple[int, int]
    b: tuple[int, int]

    @property
    def endpoints(self) -> tuple[tuple[int, int], tuple[int, int]]:
        return (self.a, self.b)

    def other_end(self, pos: tuple[int, int]) -> Optional[tuple[int, int]]:
        """Paired endpoint if pos is one end of the portal, else None."""
        if pos == self.a:
            return self.b
        if pos == self.b:
            return self.a
        return None

    def __contains__(self, pos: object) -> bool:
        return pos == self.a or pos == self.b

    def to_dict(self) -> dict:
        return {"a": list(self.a), "b": list(self.b)}


@dataclass(slots=True)
class Meteor:
    """
    A short-lived lethal hazard cell.

    Attributes:
        x: Grid x-coordinate.
        y: Grid y-coordinate.
        ttl: Steps left before the meteor disappears.
    """
    x: int
    y: int
    ttl: int = 6

    @property
    def position(self) -> tuple[int, int]:
        return (self.x, self.y)

    @property
    def expired(self) -> bool:
        return self.ttl <= 0

    def tick(self) -> bool:
        """
        Advance one simulation step.

        Returns:
            True if the meteor has expired (should be removed).
        """
        self.ttl -= 1
        return self.expired

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y, "ttl": self.ttl}
