"""Data models for structured commits parsed from the git log."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class StructuredCommit:
    """One git log entry with its recognized trailers."""

    hash: str
    date: str
    type: str
    header_scope: str | None
    subject: str
    body: str
    intent: str | None = None
    scope: tuple[str, ...] = ()
    decided_against: tuple[str, ...] = ()
    session: str | None = None
    refs: tuple[str, ...] = ()
    context: dict[str, Any] | None = None
    breaking: str | None = None
    raw: str = field(default="", repr=False)

    @property
    def display_subject(self) -> str:
        """Conventional header as shown in listings, e.g. ``fix(auth): ...``."""
        return f"{self.type}({self.header_scope or '*'}): {self.subject}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "hash": self.hash,
            "date": self.date,
            "type": self.type,
            "headerScope": self.header_scope,
            "subject": self.subject,
            "body": self.body,
            "intent": self.intent,
            "scope": list(self.scope),
            "decidedAgainst": list(self.decided_against),
            "session": self.session,
            "refs": list(self.refs),
            "context": self.context,
            "breaking": self.breaking,
        }


@dataclass(frozen=True)
class ParseError:
    """A log block that could not be parsed into a StructuredCommit."""

    hash: str
    reason: str
    raw: str = field(default="", repr=False)


@dataclass(frozen=True)
class IndexedCommit:
    """Projection of a StructuredCommit stored in the trailer index (no body)."""

    hash: str
    date: str
    subject: str
    intent: str | None = None
    scope: tuple[str, ...] = ()
    session: str | None = None
    decided_against: tuple[str, ...] = ()

    @classmethod
    def from_commit(cls, commit: StructuredCommit) -> "IndexedCommit":
        return cls(
            hash=commit.hash,
            date=commit.date,
            subject=commit.display_subject,
            intent=commit.intent,
            scope=commit.scope,
            session=commit.session,
            decided_against=commit.decided_against,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "hash": self.hash,
            "date": self.date,
            "subject": self.subject,
            "intent": self.intent,
            "scope": list(self.scope),
            "session": self.session,
            "decidedAgainst": list(self.decided_against),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "IndexedCommit":
        return cls(
            hash=data["hash"],
            date=data.get("date", ""),
            subject=data.get("subject", ""),
            intent=data.get("intent"),
            scope=tuple(data.get("scope") or ()),
            session=data.get("session"),
            decided_against=tuple(data.get("decidedAgainst") or ()),
        )
