"""
cppcheck_boa/generator.py
═════════════════════════

Facts → constraints.

Every rule emits exactly two constraints, one per bound direction:

    allocation   X#max_alloc >= size_max        X#min_alloc <= size_min
    usage        B#max_used  >= index_max       B#min_used  <= index_min
    alias        P#max_alloc >= S#max_alloc     P#min_alloc <= S#min_alloc
    assignment   V#max_used  >= value_max       V#min_used  <= value_min

where ``*_max``/``*_min`` come from :class:`ExpressionBuilder`.  Each
constraint is logged as ``Adding - <quantity> >= <expr>`` (or ``<=``).
A usage site whose base is not a known buffer is skipped with a record.
"""

from __future__ import annotations

from typing import Optional

from cppcheck_boa.builder import ExpressionBuilder
from cppcheck_boa.constraint import Constraint, ConstraintProblem
from cppcheck_boa.diagnostics import SourceLocation
from cppcheck_boa.expression import BoundKind, Expression, Role
from cppcheck_boa.facts import (
    AliasSite,
    AllocationSite,
    AssignmentSite,
    Fact,
    IntExpr,
    UsageSite,
)
from cppcheck_boa.reporter import RecordKind, Reporter
from cppcheck_boa.storage import Storage

MAX, MIN = BoundKind.MAX, BoundKind.MIN


class ConstraintGenerator:
    """Turns extracted facts into constraints on a :class:`ConstraintProblem`."""

    def __init__(self, problem: ConstraintProblem,
                 reporter: Optional[Reporter] = None) -> None:
        self._problem = problem
        self._reporter = reporter if reporter is not None else problem.reporter
        self._builder = ExpressionBuilder(problem, self._reporter)

    @property
    def builder(self) -> ExpressionBuilder:
        return self._builder

    def process(self, fact: Fact) -> bool:
        """Dispatch one fact; returns ``False`` if the site was skipped."""
        if isinstance(fact, AllocationSite):
            return self.on_allocation(fact)
        if isinstance(fact, UsageSite):
            return self.on_usage(fact)
        if isinstance(fact, AliasSite):
            return self.on_alias(fact)
        if isinstance(fact, AssignmentSite):
            return self.on_assignment(fact)
        raise TypeError(f"unknown fact {fact!r}")

    # ── rules ───────────────────────────────────────────────────────

    def on_allocation(self, site: AllocationSite) -> bool:
        buf = self._problem.register_buffer(site.storage)
        if isinstance(site.size, int):
            size_max = size_min = Expression.of(site.size)
        else:
            size_max, size_min = self._bounds(site.size)
        self._emit_pair(buf, Role.ALLOC, size_max, size_min, site.location)
        return True

    def on_usage(self, site: UsageSite) -> bool:
        if site.base is None or not site.base.is_buffer:
            self._reporter.emit(
                RecordKind.SKIPPED_SITE,
                f"Can't resolve subscript base of '{site.text or site.index}'",
                site.location,
            )
            return False
        buf = self._problem.register_buffer(site.base)
        used_max, used_min = self._bounds(site.index)
        self._emit_pair(buf, Role.USED, used_max, used_min, site.location)
        return True

    def on_alias(self, site: AliasSite) -> bool:
        ptr = self._problem.register_buffer(site.pointer)
        if site.source is None or not site.source.is_buffer:
            self._reporter.emit(
                RecordKind.UNRESOLVED_EXPRESSION,
                f"Can't resolve target of pointer '{site.text or ptr.site.name}'",
                site.location,
            )
            src_max = src_min = Expression.empty()
        else:
            src = self._problem.register_buffer(site.source)
            src_max = src.bound(MAX, Role.ALLOC)
            src_min = src.bound(MIN, Role.ALLOC)
        self._emit_pair(ptr, Role.ALLOC, src_max, src_min, site.location)
        return True

    def on_assignment(self, site: AssignmentSite) -> bool:
        var = self._problem.register(site.target)
        value_max, value_min = self._bounds(site.value)
        self._emit_pair(var, Role.USED, value_max, value_min, site.location)
        return True

    # ── helpers ─────────────────────────────────────────────────────

    def _bounds(self, expr: IntExpr):
        return self._builder.build(expr, True), self._builder.build(expr, False)

    def _emit_pair(self, storage: Storage, role: Role, upper: Expression,
                   lower: Expression, location: SourceLocation) -> None:
        self._emit(Constraint.at_least(storage.bound(MAX, role), upper), location)
        self._emit(Constraint.at_most(storage.bound(MIN, role), lower), location)

    def _emit(self, constraint: Constraint, location: SourceLocation) -> None:
        if self._problem.add_constraint(constraint):
            self._reporter.emit(RecordKind.CONSTRAINT,
                                f"Adding - {constraint.describe()}", location)
