"""
cppcheck_boa/storage.py
═══════════════════════

Storage classification and naming.

Classification is pure: it looks only at a :class:`DeclaredType` value
(built by the extractor from cppcheck's variable model) and decides
whether the location is a fixed-size character buffer, a character
pointer, a plain integer, or something the analysis ignores.

Naming turns a classified location into a :class:`Storage` handle whose
``unique_name`` is stable for one analysis run and distinct for distinct
locations.  Four atoms derive from every name::

    (MIN, ALLOC)  (MAX, ALLOC)  (MIN, USED)  (MAX, USED)

For integers only the USED pair is meaningful: it carries the bounds of
the variable's value.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import FrozenSet, Optional, Tuple

from cppcheck_boa.diagnostics import SourceLocation
from cppcheck_boa.expression import Atom, BoundKind, Expression, Role

CHARACTER_TYPES: FrozenSet[str] = frozenset({
    "char", "wchar_t", "char8_t", "char16_t", "char32_t",
})

INTEGER_TYPES: FrozenSet[str] = frozenset({
    "bool", "char", "short", "int", "long", "long long",
    "wchar_t", "char8_t", "char16_t", "char32_t",
    "size_t", "ssize_t", "ptrdiff_t", "intptr_t", "uintptr_t",
    "int8_t", "int16_t", "int32_t", "int64_t",
    "uint8_t", "uint16_t", "uint32_t", "uint64_t",
    "unsigned", "signed",
})


class TypeShape(enum.Enum):
    ARRAY = "array"
    POINTER = "pointer"
    SCALAR = "scalar"


@dataclass(frozen=True)
class DeclaredType:
    """The parts of a declared C type the classifier needs.

    ``base`` is the element type with qualifiers stripped (``"char"``,
    ``"unsigned int"`` is normalised to ``"int"`` by the extractor).
    ``extents`` lists array dimensions; ``None`` marks a dimension that is
    not a constant.
    """
    shape: TypeShape
    base: str
    extents: Tuple[Optional[int], ...] = ()
    pointer_depth: int = 0


class StorageKind(enum.Enum):
    FIXED_BUFFER = "buffer"
    ALLOCATED_BUFFER = "heap"
    POINTER = "pointer"
    INTEGER = "int"
    NOT_APPLICABLE = "n/a"

    @property
    def is_buffer(self) -> bool:
        """Kinds that own ALLOC/USED bounds and get a safety verdict."""
        return self in (StorageKind.FIXED_BUFFER,
                        StorageKind.ALLOCATED_BUFFER,
                        StorageKind.POINTER)


@dataclass(frozen=True)
class Classification:
    kind: StorageKind
    extent: Optional[int] = None

    @property
    def applicable(self) -> bool:
        return self.kind is not StorageKind.NOT_APPLICABLE


NOT_APPLICABLE = Classification(StorageKind.NOT_APPLICABLE)


def is_character_type(base: str,
                      character_types: FrozenSet[str] = CHARACTER_TYPES) -> bool:
    return base in character_types


def classify(declared: Optional[DeclaredType],
             character_types: FrozenSet[str] = CHARACTER_TYPES) -> Classification:
    """Classify a declared type.

    - one-dimensional constant-size array of a character type → FIXED_BUFFER
    - single-level pointer to a character type → POINTER
    - scalar integer → INTEGER
    - anything else → NOT_APPLICABLE
    """
    if declared is None:
        return NOT_APPLICABLE
    if declared.shape is TypeShape.ARRAY:
        if declared.pointer_depth or len(declared.extents) != 1:
            return NOT_APPLICABLE
        extent = declared.extents[0]
        if extent is None or not is_character_type(declared.base, character_types):
            return NOT_APPLICABLE
        return Classification(StorageKind.FIXED_BUFFER, extent)
    if declared.shape is TypeShape.POINTER:
        if declared.pointer_depth == 1 and is_character_type(declared.base, character_types):
            return Classification(StorageKind.POINTER)
        return NOT_APPLICABLE
    if declared.base in INTEGER_TYPES:
        return Classification(StorageKind.INTEGER)
    return NOT_APPLICABLE


def classify_allocation() -> Classification:
    """The result of a dynamic allocation call: size known only symbolically."""
    return Classification(StorageKind.ALLOCATED_BUFFER)


@dataclass(frozen=True)
class StorageLocation:
    """Identity of a declaration or allocation call site."""
    name: str
    location: SourceLocation

    def __str__(self) -> str:
        return f"{self.name}@{self.location}"


@dataclass(frozen=True)
class Storage:
    """A classified, named storage location.

    Equality and hashing follow the unique name, so handles created twice
    for the same declaration are interchangeable.
    """
    site: StorageLocation
    kind: StorageKind

    def __post_init__(self) -> None:
        if self.kind is StorageKind.NOT_APPLICABLE:
            raise ValueError(f"{self.site} is not a trackable storage location")

    @property
    def unique_name(self) -> str:
        loc = self.site.location
        return (f"{self.kind.value}:{self.site.name}"
                f"@{loc.file}:{loc.line}:{loc.column}")

    @property
    def is_buffer(self) -> bool:
        return self.kind.is_buffer

    @property
    def location(self) -> SourceLocation:
        return self.site.location

    def atom(self, kind: BoundKind, role: Role) -> Atom:
        return Atom(self.unique_name, kind, role)

    def bound(self, kind: BoundKind, role: Role) -> Expression:
        return Expression.of(self.atom(kind, role))

    def atoms(self) -> Tuple[Atom, ...]:
        return tuple(self.atom(k, r) for r in Role for k in BoundKind)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Storage):
            return NotImplemented
        return self.unique_name == other.unique_name

    def __hash__(self) -> int:
        return hash(self.unique_name)

    def __str__(self) -> str:
        return self.unique_name
