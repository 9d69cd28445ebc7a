"""Protocol descriptor models.

A descriptor enumerates the domains of the protocol together with their
commands and events. It has the shape of the JSON document a DevTools
endpoint serves at ``/json/protocol``:

    {
        "version": {"major": "1", "minor": "3"},
        "domains": [
            {
                "domain": "Page",
                "dependencies": ["Debugger", "DOM"],
                "commands": [{"name": "enable"}, {"name": "navigate"}],
                "events": [{"name": "loadEventFired"}]
            }
        ]
    }

Only names are needed to build bindings; parameter and type declarations
are accepted and ignored.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, model_validator


def _duplicates(names: list[str]) -> list[str]:
    seen: set[str] = set()
    dupes: list[str] = []
    for name in names:
        if name in seen and name not in dupes:
            dupes.append(name)
        seen.add(name)
    return dupes


class CommandDescriptor(BaseModel):
    """A request/reply operation of a domain."""

    name: str
    description: str | None = None
    experimental: bool = False
    deprecated: bool = False


class EventDescriptor(BaseModel):
    """A notification a domain may emit."""

    name: str
    description: str | None = None
    experimental: bool = False
    deprecated: bool = False


class DomainDescriptor(BaseModel):
    """One namespace of commands and events."""

    domain: str
    dependencies: list[str] = Field(default_factory=list)
    commands: list[CommandDescriptor] = Field(default_factory=list)
    # Not every domain defines events
    events: list[EventDescriptor] | None = None
    description: str | None = None
    experimental: bool = False
    deprecated: bool = False

    @model_validator(mode="after")
    def _check_unique_names(self) -> DomainDescriptor:
        dupes = _duplicates([c.name for c in self.commands])
        if dupes:
            raise ValueError(f"Duplicate commands in domain {self.domain}: {', '.join(dupes)}")
        dupes = _duplicates([e.name for e in self.events or []])
        if dupes:
            raise ValueError(f"Duplicate events in domain {self.domain}: {', '.join(dupes)}")
        return self

    @property
    def command_names(self) -> list[str]:
        return [c.name for c in self.commands]

    @property
    def event_names(self) -> list[str]:
        return [e.name for e in self.events or []]


class ProtocolVersion(BaseModel):
    major: str
    minor: str

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}"


class ProtocolDescriptor(BaseModel):
    """The full protocol schema: an ordered list of domains."""

    version: ProtocolVersion | None = None
    domains: list[DomainDescriptor] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_unique_domains(self) -> ProtocolDescriptor:
        dupes = _duplicates(self.names())
        if dupes:
            raise ValueError(f"Duplicate domains in protocol: {', '.join(dupes)}")
        return self

    def names(self) -> list[str]:
        """Domain names in descriptor order."""
        return [d.domain for d in self.domains]

    def get(self, name: str) -> DomainDescriptor | None:
        """Look up a domain by name."""
        for domain in self.domains:
            if domain.domain == name:
                return domain
        return None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProtocolDescriptor:
        return cls.model_validate(data)

    @classmethod
    def from_json(cls, text: str | bytes) -> ProtocolDescriptor:
        return cls.model_validate(json.loads(text))

    @classmethod
    def load(cls, path: str | Path) -> ProtocolDescriptor:
        """Load a descriptor from a JSON file (e.g. browser_protocol.json)."""
        return cls.from_json(Path(path).read_text(encoding="utf-8"))
