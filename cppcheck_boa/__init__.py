"""
cppcheck_boa — Buffer Overrun Analysis for Cppcheck Dump Files
==============================================================

Proves character buffers in C programs free of overruns by bounding the
size each buffer is allocated with and the indices it is accessed with,
then solving the resulting inequalities symbolically.

Core modules
------------
expression
    Signed sums of literals and named bound atoms.
storage
    Storage classification and the unique naming scheme.
facts
    Tagged allocation, usage, alias and assignment facts.
builder
    Integer expression → bound expression, per bound direction.
generator
    Facts → constraints.
constraint
    Constraints, the per-unit problem and the solver.
extractor
    Fact extraction from a ``cppcheckdata.Configuration``.
driver
    One problem per translation unit; dump-file entry points.

Quick start
-----------
>>> from cppcheck_boa import BufferOverrunAnalyzer
>>> for unit in BufferOverrunAnalyzer().analyze_dump("demo.c.dump"):
...     print(unit.summary())

Package layout
--------------
::

    cppcheck_boa/
    ├── __init__.py            ← this file
    ├── expression.py
    ├── storage.py
    ├── facts.py
    ├── builder.py
    ├── generator.py
    ├── constraint.py
    ├── tokens.py
    ├── extractor.py
    ├── driver.py
    ├── reporter.py
    ├── diagnostics.py
    ├── config.py
    ├── errors.py
    └── cli.py
"""

from __future__ import annotations

import logging
from typing import List

__version__ = "0.1.0"
__license__ = "MIT"

logging.getLogger(__name__).addHandler(logging.NullHandler())

from cppcheck_boa.builder import ExpressionBuilder  # noqa: E402
from cppcheck_boa.config import DEFAULT_ALLOCATORS, AnalysisConfig  # noqa: E402
from cppcheck_boa.constraint import (  # noqa: E402
    BoundResolver,
    BufferVerdict,
    Constraint,
    ConstraintProblem,
)
from cppcheck_boa.diagnostics import Diagnostic, SourceLocation  # noqa: E402
from cppcheck_boa.driver import (  # noqa: E402
    BufferOverrunAnalyzer,
    UnitResult,
    analyze_facts,
)
from cppcheck_boa.errors import (  # noqa: E402
    BoaError,
    ConfigurationError,
    DumpLoadError,
    InternalConsistencyError,
)
from cppcheck_boa.expression import Atom, BoundKind, Expression, Role  # noqa: E402
from cppcheck_boa.extractor import CppcheckFactExtractor  # noqa: E402
from cppcheck_boa.generator import ConstraintGenerator  # noqa: E402
from cppcheck_boa.reporter import (  # noqa: E402
    AnalysisRecord,
    CollectingReporter,
    LoggingReporter,
    RecordKind,
    Reporter,
)
from cppcheck_boa.storage import Storage, StorageKind, classify  # noqa: E402

__all__: List[str] = [
    "__version__",
    "AnalysisConfig", "DEFAULT_ALLOCATORS",
    "Atom", "BoundKind", "Expression", "Role",
    "Storage", "StorageKind", "classify",
    "ExpressionBuilder", "ConstraintGenerator",
    "Constraint", "ConstraintProblem", "BoundResolver", "BufferVerdict",
    "CppcheckFactExtractor",
    "BufferOverrunAnalyzer", "UnitResult", "analyze_facts",
    "Reporter", "CollectingReporter", "LoggingReporter",
    "AnalysisRecord", "RecordKind",
    "Diagnostic", "SourceLocation",
    "BoaError", "ConfigurationError", "DumpLoadError",
    "InternalConsistencyError",
]
