"""
cppcheck_boa/diagnostics.py
═══════════════════════════

Source locations and the cppcheck-compatible diagnostic model.

A :class:`Diagnostic` is the externally visible verdict for one unsafe
buffer.  It serialises to cppcheck's JSON addon protocol (one object per
line on stdout when the addon is run with ``--cli``) and to a GCC-style
one-liner for humans.

License: MIT
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict

ADDON_NAME = "boa"

#: CWE-787: Out-of-bounds Write
CWE_OUT_OF_BOUNDS = 787


class DiagnosticSeverity(Enum):
    """cppcheck severity levels the analyzer reports."""
    ERROR = "error"


@dataclass(frozen=True)
class SourceLocation:
    """A specific point in source code."""
    file: str = ""
    line: int = 0
    column: int = 0

    @property
    def text(self) -> str:
        """``file:line``, the form used in the diagnostic stream."""
        return f"{self.file}:{self.line}"

    def __str__(self) -> str:
        if self.column:
            return f"{self.file}:{self.line}:{self.column}"
        return f"{self.file}:{self.line}"


@dataclass(frozen=True)
class Diagnostic:
    """
    A single finding.

    Attributes
    ----------
    error_id   : Unique identifier (``bufferOverrun``)
    message    : Human-readable description
    severity   : DiagnosticSeverity
    location   : Declaration or allocation site of the buffer
    cwe        : CWE identifier (0 = none)
    extra      : Additional context string
    evidence   : Machine-readable evidence for downstream tooling
    """
    error_id: str
    message: str
    severity: DiagnosticSeverity
    location: SourceLocation
    cwe: int = 0
    addon: str = ADDON_NAME
    extra: str = ""
    evidence: Dict[str, Any] = field(default_factory=dict, compare=False)

    def to_cppcheck_json(self) -> Dict[str, Any]:
        """Serialize to cppcheck's JSON addon output format."""
        result: Dict[str, Any] = {
            "file": self.location.file,
            "linenr": self.location.line,
            "column": self.location.column,
            "severity": self.severity.value,
            "message": self.message,
            "addon": self.addon,
            "errorId": self.error_id,
            "extra": self.extra,
        }
        if self.cwe:
            result["cwe"] = self.cwe
        return result

    def to_json_str(self) -> str:
        """Single-line JSON string for cppcheck addon stdout."""
        return json.dumps(self.to_cppcheck_json())

    def to_gcc_format(self) -> str:
        """GCC-style diagnostic string: file:line:col: severity: message."""
        return (f"{self.location}: {self.severity.value}: "
                f"{self.message} [{self.error_id}]")

    def __str__(self) -> str:
        return self.to_gcc_format()
