"""Debuggee target identity."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Target:
    """Identity of one remote debuggee.

    Only ``id`` takes part in equality and hashing, so a Target built from a
    fresh target listing compares equal to the one a pool is keyed on.
    """

    id: str | int
    type: str | None = field(default=None, compare=False)
    title: str | None = field(default=None, compare=False)
    url: str | None = field(default=None, compare=False)

    @classmethod
    def from_target_info(cls, info: dict[str, Any]) -> Target:
        """Build from a ``Target.TargetInfo`` record."""
        return cls(
            id=info["targetId"],
            type=info.get("type"),
            title=info.get("title"),
            url=info.get("url"),
        )

    def __str__(self) -> str:
        return f"{self.type or 'target'}:{self.id}"


@dataclass(frozen=True)
class TargetInfo:
    """A target as reported by a backend's target listing."""

    target: Target
    attached: bool = False
