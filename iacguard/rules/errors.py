"""Error taxonomy for rule loading and evaluation.

Absent values and type mismatches are not errors: they flow through the
engine as empty selections and false predicates.
"""

from __future__ import annotations

from pathlib import Path


class GuardError(ValueError):
    """Base class for all rule engine errors."""


class RuleSyntaxError(GuardError):
    """Malformed rule text. Fatal to the file being loaded."""

    def __init__(self, message: str, *, file: Path | str | None = None, line: int = 0, column: int = 0):
        self.reason = message
        self.file = Path(file) if file is not None else None
        self.line = line
        self.column = column
        super().__init__(self._format())

    def _format(self) -> str:
        loc = str(self.file) if self.file is not None else "<rules>"
        if self.line:
            loc += f":{self.line}:{self.column}"
        return f"{loc}: {self.reason}"

    def with_file(self, file: Path | str) -> "RuleSyntaxError":
        return RuleSyntaxError(self.reason, file=file, line=self.line, column=self.column)


class UndefinedVariableError(GuardError):
    def __init__(self, name: str, *, line: int = 0):
        self.name = name
        self.line = line
        where = f" (line {line})" if line else ""
        super().__init__(f"undefined variable %{name}{where}")


class DuplicateVariableError(GuardError):
    def __init__(self, name: str, *, line: int = 0):
        self.name = name
        self.line = line
        where = f" (line {line})" if line else ""
        super().__init__(f"variable %{name} is already defined{where}")


class RuleLoadError(GuardError):
    """A file or a single rule that could not be loaded.

    `rule` is None when the whole file was rejected.
    """

    def __init__(self, file: Path | str | None, cause: Exception, *, rule: str | None = None):
        self.file = Path(file) if file is not None else None
        self.rule = rule
        self.cause = cause
        target = f"rule {rule}" if rule else "rule file"
        loc = f" in {self.file}" if self.file is not None else ""
        super().__init__(f"{target}{loc} not loaded: {cause}")


class DocumentError(GuardError):
    """Data document could not be read or parsed."""
