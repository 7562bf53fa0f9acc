"""Verdicts, violation records and summary partitioning."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Iterable, Mapping


class Status(str, enum.Enum):
    PASS = "PASS"
    FAIL = "FAIL"
    GUARD_SKIPPED = "SKIP"


class SummaryType(enum.Flag):
    PASS = 1
    FAIL = 2
    SKIP = 4

    @classmethod
    def all(cls) -> "SummaryType":
        return cls.PASS | cls.FAIL | cls.SKIP


_STATUS_TO_SUMMARY = {
    Status.PASS: SummaryType.PASS,
    Status.FAIL: SummaryType.FAIL,
    Status.GUARD_SKIPPED: SummaryType.SKIP,
}


def parse_summary_types(values: Iterable[str]) -> SummaryType:
    """Parse ``pass``/``fail``/``skip``/``all``/``none`` (comma separated allowed)."""
    flags = SummaryType(0)
    for raw in values:
        for part in str(raw).split(","):
            word = part.strip().lower()
            if not word:
                continue
            if word == "all":
                flags |= SummaryType.all()
            elif word == "none":
                continue
            elif word.upper() in SummaryType.__members__:
                flags |= SummaryType[word.upper()]
            else:
                raise ValueError(f"unknown summary type {word!r} (expected pass, fail, skip, all or none)")
    return flags


def overall_status(statuses: Iterable[Status]) -> Status:
    seen = set(statuses)
    if Status.FAIL in seen:
        return Status.FAIL
    if Status.PASS in seen:
        return Status.PASS
    return Status.GUARD_SKIPPED


def partition(statuses: Mapping[str, Status], types: SummaryType) -> dict[Status, list[str]]:
    """Group rule names by verdict, keeping only the requested summary types.

    Failed rules come first, then passed, then skipped; declaration order is
    kept within each group.
    """
    groups: dict[Status, list[str]] = {}
    for status in (Status.FAIL, Status.PASS, Status.GUARD_SKIPPED):
        if _STATUS_TO_SUMMARY[status] & types:
            names = [name for name, s in statuses.items() if s is status]
            if names:
                groups[status] = names
    return groups


@dataclass(frozen=True)
class Violation:
    rule_name: str
    path: str
    message: str | None = None
    clause: str = ""
    value: Any = None
    line: int = 0

    def _tagged_line(self, tag: str) -> str | None:
        if not self.message:
            return None
        prefix = tag.lower() + ":"
        for line in self.message.splitlines():
            if line.lower().startswith(prefix):
                return line[len(prefix):].strip()
        return None

    @property
    def description(self) -> str:
        tagged = self._tagged_line("Violation")
        if tagged is not None:
            return tagged
        if self.message:
            return self.message
        return f"Check was not compliant: {self.clause}"

    @property
    def fix(self) -> str | None:
        return self._tagged_line("Fix")

    def to_dict(self) -> dict[str, Any]:
        return {
            "rule": self.rule_name,
            "path": self.path,
            "clause": self.clause,
            "line": self.line,
            "value": self.value,
            "message": self.message,
            "violation": self.description,
            "fix": self.fix,
        }

    def __str__(self) -> str:
        return f"[{self.rule_name}] {self.path} - {self.description}"


class ViolationReporter:
    """Accumulates violations in the order they are recorded."""

    def __init__(self) -> None:
        self._violations: list[Violation] = []

    def record(
        self,
        rule_name: str,
        failing_path: str,
        message: str | None,
        *,
        clause: str = "",
        value: Any = None,
        line: int = 0,
    ) -> None:
        self._violations.append(
            Violation(
                rule_name=rule_name,
                path=failing_path,
                message=message,
                clause=clause,
                value=value,
                line=line,
            )
        )

    def extend(self, violations: Iterable[Violation]) -> None:
        self._violations.extend(violations)

    def drain(self) -> list[Violation]:
        drained, self._violations = self._violations, []
        return drained

    def __len__(self) -> int:
        return len(self._violations)
