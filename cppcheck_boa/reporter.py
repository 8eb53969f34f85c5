"""
cppcheck_boa/reporter.py
════════════════════════

Append-only sink for structured analysis records.

A reporter is passed explicitly to the builder, generator and solver; no
component writes to a global stream.  Every generated constraint, every
skipped site and every unresolvable expression produces exactly one
:class:`AnalysisRecord` tagged with the ``file:line`` it came from.

Usage
─────
    rep = CollectingReporter()
    problem = ConstraintProblem(reporter=rep)
    ...
    for rec in rep.by_kind(RecordKind.SKIPPED_SITE):
        print(rec)
"""

from __future__ import annotations

import enum
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterator, List

from cppcheck_boa.diagnostics import SourceLocation

logger = logging.getLogger(__name__)


class RecordKind(enum.Enum):
    CONSTRAINT = "constraint"
    SKIPPED_SITE = "skipped"
    UNRESOLVED_EXPRESSION = "unresolved"
    BUFFER = "buffer"
    VERDICT = "verdict"


# Records at these kinds are the analysis audit trail; the rest are
# noteworthy enough for INFO.
_LOG_LEVELS = {
    RecordKind.CONSTRAINT: logging.DEBUG,
    RecordKind.BUFFER: logging.DEBUG,
    RecordKind.SKIPPED_SITE: logging.INFO,
    RecordKind.UNRESOLVED_EXPRESSION: logging.INFO,
    RecordKind.VERDICT: logging.INFO,
}


@dataclass(frozen=True)
class AnalysisRecord:
    kind: RecordKind
    message: str
    location: SourceLocation = SourceLocation()

    def __str__(self) -> str:
        if self.location.file:
            return f"{self.message} {self.location.text}"
        return self.message


class Reporter(ABC):
    """Receives analysis records."""

    @abstractmethod
    def record(self, rec: AnalysisRecord) -> None:
        ...

    def emit(self, kind: RecordKind, message: str,
             location: SourceLocation = SourceLocation()) -> AnalysisRecord:
        rec = AnalysisRecord(kind, message, location)
        self.record(rec)
        return rec


class CollectingReporter(Reporter):
    """Keeps every record in arrival order."""

    def __init__(self) -> None:
        self._records: List[AnalysisRecord] = []

    def record(self, rec: AnalysisRecord) -> None:
        self._records.append(rec)

    @property
    def records(self) -> List[AnalysisRecord]:
        return list(self._records)

    def by_kind(self, kind: RecordKind) -> List[AnalysisRecord]:
        return [r for r in self._records if r.kind is kind]

    def __iter__(self) -> Iterator[AnalysisRecord]:
        return iter(list(self._records))

    def __len__(self) -> int:
        return len(self._records)


class LoggingReporter(CollectingReporter):
    """Collects records and mirrors them to the package logger."""

    def __init__(self, log: logging.Logger = logger) -> None:
        super().__init__()
        self._log = log

    def record(self, rec: AnalysisRecord) -> None:
        super().record(rec)
        self._log.log(_LOG_LEVELS[rec.kind], "%s", rec)
