"""Moderation chat commands: ``public apps: 1, 2, 5-8`` and friends.

A command is ``<public|private> <apps|templates>: <ids>`` (case-insensitive)
where ``<ids>`` is a comma-separated list of positive ids and inclusive
``a-b`` ranges. Malformed parts are skipped rather than failing the command.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal

MAX_IDS = 1000

HELP_TEXT = (
    "Supported commands:\n"
    '- "public apps: 1, 2, 3" or "public apps: 1-10" - Make specified apps public\n'
    '- "public templates: 1, 2, 3" or "public templates: 1-10" - Make specified templates public\n'
    '- "private apps: 1, 2, 3" or "private apps: 1-10" - Make specified apps private\n'
    '- "private templates: 1, 2, 3" or "private templates: 1-10" - Make specified templates private'
)

_COMMAND_RE = re.compile(r"^\s*(public|private)\s+(apps|templates)\s*:(.*)$", re.IGNORECASE | re.DOTALL)
_RANGE_RE = re.compile(r"^(\d+)\s*-\s*(\d+)$")

Kind = Literal["apps", "templates"]


@dataclass(frozen=True)
class ModerationCommand:
    visibility: Literal["public", "private"]
    kind: Kind
    ids: list[int]

    @property
    def moderated(self) -> bool:
        return self.visibility == "public"

    @property
    def noun(self) -> str:
        return "app" if self.kind == "apps" else "template"

    def usage(self) -> str:
        """Reply for a command that named no valid ids."""
        prefix = f"{self.visibility} {self.kind}"
        return (
            f"No valid {self.noun} IDs provided. "
            f'Format should be "{prefix}: 1, 2, 3" or "{prefix}: 1-10"'
        )


def parse_ids(text: str) -> list[int]:
    """
    Expand ``"1, 3-5, x, 9"`` into ``[1, 3, 4, 5, 9]``.

    Duplicates are dropped, first occurrence wins. Reversed ranges, zero and
    non-numeric parts are ignored. At most ``MAX_IDS`` ids are returned.
    """
    ids: dict[int, None] = {}
    for raw in text.split(","):
        part = raw.strip()
        if not part:
            continue
        match = _RANGE_RE.match(part)
        if match:
            start, end = int(match.group(1)), int(match.group(2))
            if start > end or end - start >= MAX_IDS:
                continue
            candidates = range(start, end + 1)
        elif part.isascii() and part.isdigit():
            candidates = range(int(part), int(part) + 1)
        else:
            continue
        for value in candidates:
            if value > 0:
                ids.setdefault(value, None)
    return list(ids)[:MAX_IDS]


def parse_command(text: str) -> ModerationCommand | None:
    """Parse a chat message; None if it is not a moderation command."""
    match = _COMMAND_RE.match(text)
    if match is None:
        return None
    visibility, kind, rest = match.groups()
    return ModerationCommand(
        visibility=visibility.lower(),  # type: ignore[arg-type]
        kind=kind.lower(),  # type: ignore[arg-type]
        ids=parse_ids(rest),
    )
