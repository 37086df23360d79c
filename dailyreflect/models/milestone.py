"""
Milestone definitions.

A fixed, ascending table of streak thresholds. Every unlock check walks the
whole table, so a single activity may cross several thresholds at once.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class MilestoneMeta:
    title: str
    description: str
    badge: str


@dataclass(frozen=True)
class MilestoneDefinition:
    threshold_days: int
    identifier: str
    display_meta: MilestoneMeta


MILESTONES: tuple[MilestoneDefinition, ...] = (
    MilestoneDefinition(3, "3d", MilestoneMeta("First Milestone", "3 consecutive days", "🎉")),
    MilestoneDefinition(7, "7d", MilestoneMeta("Golden Week", "One full week", "🏆")),
    MilestoneDefinition(21, "21d", MilestoneMeta("New Ritual", "21 days, the habit takes root", "💎")),
    MilestoneDefinition(66, "66d", MilestoneMeta("Habit Master", "66 days, fully automatic", "🚀")),
)

MILESTONES_BY_ID: dict[str, MilestoneDefinition] = {m.identifier: m for m in MILESTONES}


@dataclass(frozen=True)
class MilestoneStatus:
    definition: MilestoneDefinition
    achieved: bool
    days_to_go: int

    def to_dict(self) -> dict:
        meta = self.definition.display_meta
        return {
            "identifier": self.definition.identifier,
            "threshold_days": self.definition.threshold_days,
            "achieved": self.achieved,
            "days_to_go": self.days_to_go,
            "title": meta.title,
            "description": meta.description,
            "badge": meta.badge,
        }


@dataclass(frozen=True)
class MilestoneStats:
    total: int
    achieved: int
    achievement_rate: float
    next_milestone: Optional[str]
    days_to_next: Optional[int]

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "achieved": self.achieved,
            "achievement_rate": round(self.achievement_rate, 2),
            "next_milestone": self.next_milestone,
            "days_to_next": self.days_to_next,
        }
