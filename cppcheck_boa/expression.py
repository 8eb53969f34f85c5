"""
cppcheck_boa/expression.py
══════════════════════════

Worst-case bound expressions.

An :class:`Expression` is an ordered sum of signed terms.  Each term is
either a non-negative integer literal or a symbolic :class:`Atom` naming
one bound (MIN or MAX) of one role (ALLOC or USED) of a storage location::

    buffer:buf@a.c:3:10#max_used - int:n@a.c:2:9#min_used + 1

An expression with no terms at all is *empty*: the builder could not
resolve the source expression.  Empty means "unknown", never zero; the
literal zero is the one-term expression ``0``.

Expressions are immutable values.  ``add`` and ``sub`` return new
expressions, so a :class:`~cppcheck_boa.constraint.Constraint` can hold
them without copying.
"""

from __future__ import annotations

import enum
from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterator, Optional, Tuple, Union


class BoundKind(enum.Enum):
    """Which worst-case direction a symbolic quantity represents."""
    MIN = "min"
    MAX = "max"

    def flip(self) -> "BoundKind":
        return BoundKind.MAX if self is BoundKind.MIN else BoundKind.MIN


class Role(enum.Enum):
    """Declared/allocated capacity versus index actually exercised."""
    ALLOC = "alloc"
    USED = "used"


@dataclass(frozen=True)
class Atom:
    """A named placeholder for one bound of one storage location.

    ``owner`` is the unique name of the storage the atom belongs to
    (see :attr:`cppcheck_boa.storage.Storage.unique_name`).  Two atoms are
    equal iff owner, kind and role all match.
    """
    owner: str
    kind: BoundKind
    role: Role

    def __str__(self) -> str:
        return f"{self.owner}#{self.kind.value}_{self.role.value}"


@dataclass(frozen=True)
class Term:
    """One signed summand: either ``literal`` or ``atom`` is set."""
    sign: int
    literal: Optional[int] = None
    atom: Optional[Atom] = None

    def __post_init__(self) -> None:
        if self.sign not in (1, -1):
            raise ValueError(f"term sign must be +1 or -1, got {self.sign!r}")
        if (self.literal is None) == (self.atom is None):
            raise ValueError("a term holds exactly one of literal or atom")
        if self.literal is not None and self.literal < 0:
            raise ValueError("literal terms are non-negative; use the sign")

    @property
    def is_literal(self) -> bool:
        return self.literal is not None

    def negated(self) -> "Term":
        return Term(-self.sign, self.literal, self.atom)

    def __str__(self) -> str:
        return str(self.literal) if self.atom is None else str(self.atom)


Operand = Union["Expression", Atom, int]


@dataclass(frozen=True)
class Expression:
    """An ordered list of signed terms (see module docstring)."""
    terms: Tuple[Term, ...] = ()

    # ── construction ────────────────────────────────────────────────

    @classmethod
    def empty(cls) -> "Expression":
        return cls()

    @classmethod
    def of(cls, value: Operand) -> "Expression":
        """Lift a literal, an atom or an expression into an expression."""
        if isinstance(value, Expression):
            return value
        if isinstance(value, Atom):
            return cls((Term(1, atom=value),))
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"cannot build an Expression from {value!r}")
        if value < 0:
            return cls((Term(-1, literal=-value),))
        return cls((Term(1, literal=value),))

    def add(self, other: Operand) -> "Expression":
        """Append the terms of *other*."""
        return Expression(self.terms + Expression.of(other).terms)

    def sub(self, other: Operand) -> "Expression":
        """Append the negated terms of *other*."""
        negated = tuple(t.negated() for t in Expression.of(other).terms)
        return Expression(self.terms + negated)

    __add__ = add
    __sub__ = sub

    # ── queries ─────────────────────────────────────────────────────

    @property
    def is_empty(self) -> bool:
        return not self.terms

    def __bool__(self) -> bool:
        return not self.is_empty

    def __iter__(self) -> Iterator[Term]:
        return iter(self.terms)

    def __len__(self) -> int:
        return len(self.terms)

    def atoms(self) -> FrozenSet[Atom]:
        return frozenset(t.atom for t in self.terms if t.atom is not None)

    @property
    def is_literal(self) -> bool:
        """True when non-empty and free of atoms."""
        return bool(self.terms) and all(t.is_literal for t in self.terms)

    def constant(self) -> int:
        """Signed sum of the literal terms."""
        return sum(t.sign * t.literal for t in self.terms if t.literal is not None)

    def coefficients(self) -> Dict[Atom, int]:
        """Net coefficient of each atom, in first-appearance order.

        Atoms whose occurrences cancel are dropped.
        """
        coeffs: Dict[Atom, int] = OrderedDict()
        for t in self.terms:
            if t.atom is not None:
                coeffs[t.atom] = coeffs.get(t.atom, 0) + t.sign
        return OrderedDict((a, c) for a, c in coeffs.items() if c != 0)

    def simplified(self) -> "Expression":
        """Collapse to ``Σ coeff·atom + constant`` (empty stays empty)."""
        if self.is_empty:
            return self
        out = Expression()
        for atom, coeff in self.coefficients().items():
            for _ in range(abs(coeff)):
                out = out.add(atom) if coeff > 0 else out.sub(atom)
        const = self.constant()
        if const or out.is_empty:
            out = out.add(const)
        return out

    def value(self) -> Optional[int]:
        """The integer value if all atoms cancel, else ``None``."""
        if self.is_empty or self.coefficients():
            return None
        return self.constant()

    # ── rendering ───────────────────────────────────────────────────

    def __str__(self) -> str:
        if self.is_empty:
            return "<unknown>"
        parts = []
        for i, t in enumerate(self.terms):
            if i == 0:
                parts.append(str(t) if t.sign > 0 else f"-{t}")
            else:
                parts.append(f"{'+' if t.sign > 0 else '-'} {t}")
        return " ".join(parts)
