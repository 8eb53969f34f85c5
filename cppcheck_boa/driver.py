"""
cppcheck_boa/driver.py
══════════════════════

The per-unit analysis loop.

    ┌────────────────────┐   facts   ┌─────────────────────┐
    │ CppcheckFact-      │ ────────▶ │ ConstraintGenerator │
    │ Extractor          │           └──────────┬──────────┘
    └────────────────────┘                      │ constraints
                                     ┌──────────▼──────────┐
                                     │ ConstraintProblem   │──▶ unsafe buffers
                                     └─────────────────────┘

Each translation unit (a cppcheck *configuration*) gets its own
:class:`ConstraintProblem`; units share nothing and may be analysed in
any order.

Usage::

    analyzer = BufferOverrunAnalyzer(AnalysisConfig())
    for result in analyzer.analyze_dump("demo.c.dump"):
        print(result.summary())
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Optional

from cppcheck_boa.config import AnalysisConfig
from cppcheck_boa.constraint import (
    BufferVerdict,
    Constraint,
    ConstraintProblem,
    unsafe_storages,
)
from cppcheck_boa.diagnostics import (
    CWE_OUT_OF_BOUNDS,
    Diagnostic,
    DiagnosticSeverity,
)
from cppcheck_boa.errors import DumpLoadError
from cppcheck_boa.extractor import CppcheckFactExtractor
from cppcheck_boa.facts import Fact
from cppcheck_boa.generator import ConstraintGenerator
from cppcheck_boa.reporter import AnalysisRecord, CollectingReporter, LoggingReporter, Reporter
from cppcheck_boa.storage import Storage

logger = logging.getLogger(__name__)


@dataclass
class UnitResult:
    """Outcome of analysing one translation unit."""
    unit: str
    verdicts: List[BufferVerdict] = field(default_factory=list)
    unsafe: frozenset = frozenset()
    constraints: List[Constraint] = field(default_factory=list)
    records: List[AnalysisRecord] = field(default_factory=list)
    skipped_sites: int = 0
    time_seconds: float = 0.0

    @property
    def buffers(self) -> List[Storage]:
        return [v.storage for v in self.verdicts]

    @property
    def safe(self) -> bool:
        return not self.unsafe

    def diagnostics(self) -> List[Diagnostic]:
        """One cppcheck diagnostic per unsafe buffer, in declaration order."""
        out = []
        for verdict in self.verdicts:
            if verdict.safe:
                continue
            storage = verdict.storage
            out.append(Diagnostic(
                error_id="bufferOverrun",
                message=(f"Possible buffer overrun on '{storage.site.name}': "
                         + "; ".join(verdict.reasons)),
                severity=DiagnosticSeverity.ERROR,
                location=storage.location,
                cwe=CWE_OUT_OF_BOUNDS,
                extra=storage.unique_name,
                evidence={"buffer": storage.unique_name,
                          "kind": storage.kind.value,
                          "reasons": list(verdict.reasons)},
            ))
        return out

    def summary(self) -> str:
        lines = [f"unit {self.unit}: {len(self.verdicts)} buffer(s), "
                 f"{len(self.constraints)} constraint(s), "
                 f"{len(self.unsafe)} unsafe"]
        lines.extend(f"  {v}" for v in self.verdicts)
        return "\n".join(lines)


def analyze_facts(facts: Iterable[Fact], unit: str = "<default>",
                  config: Optional[AnalysisConfig] = None,
                  reporter: Optional[Reporter] = None) -> UnitResult:
    """Generate and solve constraints for one unit's facts."""
    t0 = time.monotonic()
    config = config or AnalysisConfig()
    reporter = reporter if reporter is not None else CollectingReporter()
    problem = ConstraintProblem(reporter=reporter, config=config)
    generator = ConstraintGenerator(problem, reporter)

    skipped = 0
    for fact in facts:
        if not generator.process(fact):
            skipped += 1

    verdicts = problem.judge()
    unsafe = unsafe_storages(verdicts)
    records = list(reporter) if isinstance(reporter, CollectingReporter) else []
    result = UnitResult(
        unit=unit,
        verdicts=verdicts,
        unsafe=unsafe,
        constraints=list(problem.constraints),
        records=records,
        skipped_sites=skipped,
        time_seconds=time.monotonic() - t0,
    )
    logger.info("%s: %d buffer(s), %d constraint(s), %d unsafe in %.3fs",
                unit, len(verdicts), len(result.constraints), len(unsafe),
                result.time_seconds)
    return result


class BufferOverrunAnalyzer:
    """Runs the analysis over cppcheck configurations and dump files."""

    def __init__(self, config: Optional[AnalysisConfig] = None,
                 reporter_factory: Callable[[], Reporter] = LoggingReporter) -> None:
        self._config = config or AnalysisConfig()
        self._reporter_factory = reporter_factory

    @property
    def config(self) -> AnalysisConfig:
        return self._config

    def analyze_configuration(self, cfg: Any) -> UnitResult:
        extractor = CppcheckFactExtractor(cfg, self._config)
        return analyze_facts(extractor.iter_facts(), extractor.unit_name,
                             self._config, self._reporter_factory())

    def analyze_data(self, data: Any) -> List[UnitResult]:
        return [self.analyze_configuration(cfg)
                for cfg in getattr(data, "configurations", None) or []]

    def analyze_dump(self, path: str) -> List[UnitResult]:
        return self.analyze_data(load_dump(path))


def load_dump(path: str) -> Any:
    """Parse a cppcheck ``.dump`` file with Cppcheck's ``cppcheckdata`` module.

    ``cppcheckdata`` ships with Cppcheck (``addons/cppcheckdata.py``) rather
    than on PyPI, so it is imported here, when a dump is actually read.
    """
    if not os.path.isfile(path):
        raise DumpLoadError(path, "no such file")
    try:
        import cppcheckdata  # type: ignore[import-untyped]
    except ImportError as exc:
        raise DumpLoadError(
            path, "cppcheckdata is not importable; install Cppcheck and add "
                  "its addons directory to PYTHONPATH") from exc
    try:
        return cppcheckdata.parsedump(path)
    except (OSError, ValueError, SyntaxError) as exc:
        # xml.etree ParseError is a SyntaxError
        raise DumpLoadError(path, str(exc)) from exc
