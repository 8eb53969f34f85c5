"""
cppcheck_boa/errors.py
══════════════════════

Exception hierarchy.

    BoaError (base)
    ├── InternalConsistencyError  - analyzer bug (should never happen)
    ├── DumpLoadError             - dump file missing or unparsable
    └── ConfigurationError        - invalid option or allocator spec

Recoverable analysis conditions (unsupported expressions, untraceable
subscript bases, duplicate registrations) are never raised.  They become
reporter records and conservative "unknown" bounds instead.
"""

from __future__ import annotations

from typing import Optional


class BoaError(Exception):
    """Base class for all cppcheck-boa errors."""


class InternalConsistencyError(BoaError):
    """An invariant of the constraint model was violated.

    Raised when a constraint mentions an atom whose owning storage was never
    registered with the :class:`~cppcheck_boa.constraint.ConstraintProblem`.
    """

    def __init__(self, message: str, owner: Optional[str] = None) -> None:
        super().__init__(message)
        self.owner = owner


class DumpLoadError(BoaError):
    """A cppcheck dump file could not be read."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"cannot load dump file {path}: {reason}")
        self.path = path
        self.reason = reason


class ConfigurationError(BoaError):
    """An analysis option is malformed."""
