"""
cppcheck_boa/builder.py
═══════════════════════

Integer expression → worst-case bound.

``build(expr, want_max)`` returns an :class:`Expression` for the largest
(``want_max=True``) or smallest value *expr* can take:

    literal      n        →  n
    variable     v        →  v#max_used   (or v#min_used)
    a + b                 →  build(a, d) + build(b, d)
    a - b                 →  build(a, d) - build(b, not d)

The subtrahend's direction is inverted: ``a - b`` is largest when ``a``
is largest and ``b`` smallest.  Every other shape yields the empty
expression and an UNRESOLVED_EXPRESSION record; an operand that is
unknown makes the whole sum unknown.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Set

from cppcheck_boa.expression import BoundKind, Expression, Role
from cppcheck_boa.facts import (
    BinaryAdd,
    BinarySub,
    IntExpr,
    IntLiteral,
    Unsupported,
    VariableRef,
)
from cppcheck_boa.reporter import RecordKind, Reporter

if TYPE_CHECKING:
    from cppcheck_boa.constraint import ConstraintProblem


class ExpressionBuilder:
    """Builds bound expressions, registering every variable it names."""

    def __init__(self, problem: "ConstraintProblem",
                 reporter: Optional[Reporter] = None) -> None:
        self._problem = problem
        self._reporter = reporter if reporter is not None else problem.reporter
        # each site is built once per direction; report it once
        self._reported: Set[Unsupported] = set()

    def build(self, expr: IntExpr, want_max: bool) -> Expression:
        if isinstance(expr, IntLiteral):
            return Expression.of(expr.value)

        if isinstance(expr, VariableRef):
            storage = self._problem.register(expr.storage)
            kind = BoundKind.MAX if want_max else BoundKind.MIN
            return storage.bound(kind, Role.USED)

        if isinstance(expr, (BinaryAdd, BinarySub)):
            left = self.build(expr.left, want_max)
            if isinstance(expr, BinaryAdd):
                right = self.build(expr.right, want_max)
            else:
                right = self.build(expr.right, not want_max)
            if left.is_empty or right.is_empty:
                return Expression.empty()
            if isinstance(expr, BinaryAdd):
                return left.add(right)
            return left.sub(right)

        if isinstance(expr, Unsupported):
            if expr not in self._reported:
                self._reported.add(expr)
                self._reporter.emit(
                    RecordKind.UNRESOLVED_EXPRESSION,
                    f"Can't generate integer expression '{expr.text}'",
                    expr.location,
                )
            return Expression.empty()

        raise TypeError(f"not an integer expression fact: {expr!r}")
