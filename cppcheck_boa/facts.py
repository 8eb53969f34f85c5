"""
cppcheck_boa/facts.py
═════════════════════

Host-independent facts handed from the extractor to the generator.

Integer expressions are a closed set of variants::

    IntLiteral | VariableRef | BinaryAdd | BinarySub | Unsupported

and sites are::

    AllocationSite  - a buffer comes into existence with a size
    UsageSite       - base[index]
    AliasSite       - a character pointer is bound to a buffer
    AssignmentSite  - an integer variable receives a value

The builder and generator dispatch on these types; nothing downstream of
the extractor looks at cppcheck tokens.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from cppcheck_boa.diagnostics import SourceLocation
from cppcheck_boa.storage import Storage


@dataclass(frozen=True)
class IntLiteral:
    value: int
    location: SourceLocation = SourceLocation()

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class VariableRef:
    storage: Storage
    location: SourceLocation = SourceLocation()

    def __str__(self) -> str:
        return self.storage.site.name


@dataclass(frozen=True)
class BinaryAdd:
    left: "IntExpr"
    right: "IntExpr"
    location: SourceLocation = SourceLocation()

    def __str__(self) -> str:
        return f"({self.left} + {self.right})"


@dataclass(frozen=True)
class BinarySub:
    left: "IntExpr"
    right: "IntExpr"
    location: SourceLocation = SourceLocation()

    def __str__(self) -> str:
        return f"({self.left} - {self.right})"


@dataclass(frozen=True)
class Unsupported:
    """An expression shape the builder cannot bound."""
    text: str
    location: SourceLocation = SourceLocation()

    def __str__(self) -> str:
        return self.text


IntExpr = Union[IntLiteral, VariableRef, BinaryAdd, BinarySub, Unsupported]


@dataclass(frozen=True)
class AllocationSite:
    """``size`` is a constant extent (int) or a byte-count expression."""
    storage: Storage
    size: Union[int, IntExpr]
    location: SourceLocation


@dataclass(frozen=True)
class UsageSite:
    """``base`` is ``None`` when the subscript base is not traceable."""
    base: Optional[Storage]
    index: IntExpr
    location: SourceLocation
    text: str = ""


@dataclass(frozen=True)
class AliasSite:
    """``source`` is ``None`` when the pointer's new target is unknown."""
    pointer: Storage
    source: Optional[Storage]
    location: SourceLocation
    text: str = ""


@dataclass(frozen=True)
class AssignmentSite:
    target: Storage
    value: IntExpr
    location: SourceLocation


Fact = Union[AllocationSite, UsageSite, AliasSite, AssignmentSite]
