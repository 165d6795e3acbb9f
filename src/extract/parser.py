"""Parse raw git log blocks into structured commits.

Each block is produced by ``git log`` with the format in
``common.constants.LOG_FORMAT``::

    ---commit---
    Hash: <sha>
    Date: <iso date>
    Subject: feat(auth): add passkey registration
    <body>

    Intent: enable-capability
    Scope: auth/registration, identity/agent
    Decided-Against: OAuth2 client credentials (no hardware binding)

Only trailers in the final paragraph are recognized, and only keys listed
in ``KNOWN_TRAILER_KEYS``. Values outside a controlled vocabulary are
dropped rather than guessed.
"""

import json
import re

from common.constants import COMMIT_DELIMITER, CONVENTIONAL_TYPES, INTENT_TYPES, KNOWN_TRAILER_KEYS
from common.logger import get_logger

from .models import ParseError, StructuredCommit

logger = get_logger(__name__)

_HEADER_RE = re.compile(
    r"^(?P<type>[a-z]+)(?:\((?P<scope>[^)]*)\))?(?P<bang>!)?:\s+(?P<subject>\S.*)$"
)
_TRAILER_RE = re.compile(r"^(?P<key>[A-Za-z][A-Za-z0-9-]*):\s*(?P<value>.*)$")
_PARAGRAPH_RE = re.compile(r"\n[ \t]*\n")


class CommitParseError(ValueError):
    """A log block is not a structured commit."""

    def __init__(self, commit_hash: str, reason: str):
        super().__init__(f"{commit_hash or '<unknown>'}: {reason}")
        self.hash = commit_hash
        self.reason = reason


def is_intent_type(value: str) -> bool:
    return value in INTENT_TYPES


def split_log_blocks(raw: str) -> list[str]:
    """Split raw git log output into one block per commit."""
    return [block for block in raw.split(COMMIT_DELIMITER) if block.strip()]


def _split_list(value: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in value.split(",") if item.strip())


def _extract_trailers(body: str) -> tuple[str, list[tuple[str, str]]]:
    """
    Separate the trailer paragraph from the body.

    Returns:
        Tuple of (body without trailers, list of (lowercased key, value))
    """
    stripped = body.strip()
    if not stripped:
        return "", []

    paragraphs = _PARAGRAPH_RE.split(stripped)
    last = paragraphs[-1]

    trailers: list[tuple[str, str]] = []
    for line in last.splitlines():
        if not line.strip():
            continue
        # Continuation line of a folded trailer value
        if line[0] in " \t" and trailers:
            key, value = trailers[-1]
            trailers[-1] = (key, f"{value} {line.strip()}")
            continue
        match = _TRAILER_RE.match(line)
        if not match:
            return stripped, []
        trailers.append((match.group("key").lower(), match.group("value").strip()))

    if not any(key in KNOWN_TRAILER_KEYS for key, _ in trailers):
        return stripped, []

    remaining = "\n\n".join(paragraphs[:-1]).strip()
    return remaining, [(k, v) for k, v in trailers if k in KNOWN_TRAILER_KEYS]


def _parse_context(commit_hash: str, value: str) -> dict | None:
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError:
        logger.debug(f"{commit_hash[:8]}: ignoring non-JSON Context trailer")
        return None
    return parsed if isinstance(parsed, dict) else None


def parse_commit_block(block: str) -> StructuredCommit:
    """
    Parse one git log block into a StructuredCommit.

    Args:
        block: Text between two commit delimiters

    Returns:
        Parsed commit

    Raises:
        CommitParseError: If the block has no hash, no subject, or a subject
            that is not a conventional commit header
    """
    lines = block.strip("\n").split("\n")
    fields: dict[str, str] = {}
    body_start = 0
    for i, line in enumerate(lines[:3]):
        key, sep, value = line.partition(": ")
        if not sep and line.endswith(":"):
            key, value = line[:-1], ""
        elif not sep:
            break
        if key not in ("Hash", "Date", "Subject"):
            break
        fields[key] = value.strip()
        body_start = i + 1

    commit_hash = fields.get("Hash", "")
    if not commit_hash:
        raise CommitParseError("", "missing Hash line")

    subject_line = fields.get("Subject", "")
    if not subject_line:
        raise CommitParseError(commit_hash, "missing subject")

    header = _HEADER_RE.match(subject_line)
    if not header:
        raise CommitParseError(commit_hash, "subject is not a conventional commit header")
    commit_type = header.group("type")
    if commit_type not in CONVENTIONAL_TYPES:
        raise CommitParseError(commit_hash, f"unknown commit type '{commit_type}'")

    body, trailers = _extract_trailers("\n".join(lines[body_start:]))

    intent: str | None = None
    scope: tuple[str, ...] = ()
    decided_against: list[str] = []
    session: str | None = None
    refs: tuple[str, ...] = ()
    context: dict | None = None
    breaking: str | None = None

    for key, value in trailers:
        if key == "intent":
            if is_intent_type(value):
                intent = value
            else:
                logger.debug(f"{commit_hash[:8]}: dropping unknown intent '{value}'")
        elif key == "scope":
            scope = _split_list(value)
        elif key == "decided-against":
            if value:
                decided_against.append(value)
        elif key == "session":
            session = value or None
        elif key == "refs":
            refs = _split_list(value)
        elif key == "context":
            context = _parse_context(commit_hash, value)
        elif key == "breaking":
            breaking = value or None

    subject = header.group("subject").strip()
    if breaking is None and header.group("bang"):
        breaking = subject

    return StructuredCommit(
        hash=commit_hash,
        date=fields.get("Date", ""),
        type=commit_type,
        header_scope=(header.group("scope") or "").strip() or None,
        subject=subject,
        body=body,
        intent=intent,
        scope=scope,
        decided_against=tuple(decided_against),
        session=session,
        refs=refs,
        context=context,
        breaking=breaking,
        raw=block,
    )


def parse_log_output(raw: str) -> tuple[list[StructuredCommit], list[ParseError]]:
    """
    Parse raw git log output, keeping going past malformed records.

    Returns:
        Tuple of (parsed commits in log order, parse errors)
    """
    commits: list[StructuredCommit] = []
    errors: list[ParseError] = []

    for block in split_log_blocks(raw):
        try:
            commits.append(parse_commit_block(block))
        except CommitParseError as e:
            errors.append(ParseError(hash=e.hash, reason=e.reason, raw=block))

    if errors:
        logger.debug(f"Skipped {len(errors)} non-structured or malformed commit(s)")

    return commits, errors
