"""
cppcheck_boa/constraint.py
══════════════════════════

Constraints, the per-unit constraint problem, and the solver.

A :class:`Constraint` reads ``big >= small``.  The generator only ever
produces two shapes::

    atom#max_*  >=  e        (a lower bound on a MAX quantity)
    e           >=  atom#min_*   (an upper bound on a MIN quantity)

Solving
───────
Each MAX atom takes the largest of its lower bounds and each MIN atom the
smallest of its upper bounds, substituting recursively until only
literals and free atoms (atoms nothing defines) remain.  Free atoms stay
symbolic and cancel when the same atom appears on both sides of a
comparison, which is how ``p = malloc(n); p[n - 1]`` is proven safe.

A buffer is safe when

    MAX(ALLOC) - MAX(USED) >= 0      (>= 1 with strict bounds)
    MIN(ALLOC) - MIN(USED) >= 0
    MIN(USED)              >= 0      (only with negative-index checking)

each reduce to a literal that satisfies the comparison.  Anything left
symbolic, unknown (an empty expression), cyclic or incomparable makes
the buffer unsafe.  A buffer that is never subscripted is safe.
"""

from __future__ import annotations

import logging
from collections import OrderedDict, defaultdict
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Set, Tuple

from cppcheck_boa.config import AnalysisConfig
from cppcheck_boa.errors import InternalConsistencyError
from cppcheck_boa.expression import Atom, BoundKind, Expression, Role
from cppcheck_boa.reporter import CollectingReporter, RecordKind, Reporter
from cppcheck_boa.storage import Storage

logger = logging.getLogger(__name__)


def _sole_atom(expr: Expression) -> Optional[Atom]:
    """The atom of a one-term ``+atom`` expression, else ``None``."""
    if len(expr) == 1:
        term = expr.terms[0]
        if term.atom is not None and term.sign > 0:
            return term.atom
    return None


@dataclass(frozen=True)
class Constraint:
    """``big >= small``; immutable once created."""
    big: Expression
    small: Expression

    @classmethod
    def at_least(cls, quantity: Expression, bound: Expression) -> "Constraint":
        """``quantity >= bound``"""
        return cls(quantity, bound)

    @classmethod
    def at_most(cls, quantity: Expression, bound: Expression) -> "Constraint":
        """``quantity <= bound``"""
        return cls(bound, quantity)

    def atoms(self) -> FrozenSet[Atom]:
        return self.big.atoms() | self.small.atoms()

    def describe(self) -> str:
        """Render with the constrained quantity first."""
        small_atom = _sole_atom(self.small)
        if small_atom is not None and small_atom.kind is BoundKind.MIN:
            return f"{self.small} <= {self.big}"
        return f"{self.big} >= {self.small}"

    def __str__(self) -> str:
        return f"{self.big} >= {self.small}"


# ═════════════════════════════════════════════════════════════════════════
#  BOUND RESOLUTION
# ═════════════════════════════════════════════════════════════════════════

class BoundResolver:
    """Substitutes atom values until expressions are as concrete as possible."""

    def __init__(self, constraints: List[Constraint]) -> None:
        self._lower: Dict[Atom, List[Expression]] = defaultdict(list)
        self._upper: Dict[Atom, List[Expression]] = defaultdict(list)
        for c in constraints:
            big_atom = _sole_atom(c.big)
            if big_atom is not None and big_atom.kind is BoundKind.MAX:
                self._lower[big_atom].append(c.small)
            small_atom = _sole_atom(c.small)
            if small_atom is not None and small_atom.kind is BoundKind.MIN:
                self._upper[small_atom].append(c.big)
        self._memo: Dict[Atom, Expression] = {}
        self._active: Set[Atom] = set()

    def is_defined(self, atom: Atom) -> bool:
        return bool(self._bounds(atom))

    def _bounds(self, atom: Atom) -> List[Expression]:
        table = self._lower if atom.kind is BoundKind.MAX else self._upper
        return table.get(atom, [])

    def value_of(self, atom: Atom) -> Expression:
        """Resolved value of *atom*; the atom itself when nothing defines it."""
        if atom in self._memo:
            return self._memo[atom]
        bounds = self._bounds(atom)
        if not bounds:
            return Expression.of(atom)
        if atom in self._active:
            logger.debug("cyclic bound on %s", atom)
            return Expression.empty()

        self._active.add(atom)
        try:
            candidates = [self.resolve(b) for b in bounds]
        finally:
            self._active.discard(atom)

        value = self._extreme(candidates, atom.kind is BoundKind.MAX)
        self._memo[atom] = value
        return value

    def resolve(self, expr: Expression) -> Expression:
        if expr.is_empty:
            return expr
        out = Expression()
        for term in expr:
            if term.atom is None:
                out = out.add(term.literal) if term.sign > 0 else out.sub(term.literal)
                continue
            value = self.value_of(term.atom)
            if value.is_empty:
                return Expression.empty()
            out = out.add(value) if term.sign > 0 else out.sub(value)
        return out.simplified()

    @staticmethod
    def _extreme(candidates: List[Expression], want_max: bool) -> Expression:
        if any(c.is_empty for c in candidates):
            return Expression.empty()
        best = candidates[0]
        for cand in candidates[1:]:
            delta = cand.sub(best).simplified().value()
            if delta is None:
                # incomparable symbolic bounds
                return Expression.empty()
            if (want_max and delta > 0) or (not want_max and delta < 0):
                best = cand
        return best

    def difference(self, big: Expression, small: Expression) -> Expression:
        """Resolved ``big - small``; empty if either side is unknown."""
        rb = self.resolve(big)
        rs = self.resolve(small)
        if rb.is_empty or rs.is_empty:
            return Expression.empty()
        return rb.sub(rs).simplified()


# ═════════════════════════════════════════════════════════════════════════
#  VERDICTS
# ═════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class BufferVerdict:
    storage: Storage
    safe: bool
    reasons: Tuple[str, ...] = ()

    def __str__(self) -> str:
        status = "safe" if self.safe else "UNSAFE"
        detail = "; ".join(self.reasons)
        return f"{self.storage} {status}" + (f" ({detail})" if detail else "")


def unsafe_storages(verdicts: List[BufferVerdict]) -> FrozenSet[Storage]:
    return frozenset(v.storage for v in verdicts if not v.safe)


# ═════════════════════════════════════════════════════════════════════════
#  CONSTRAINT PROBLEM
# ═════════════════════════════════════════════════════════════════════════

class ConstraintProblem:
    """Known storage locations and accumulated constraints for one unit.

    Created at the start of a translation unit, fed by the generator,
    solved at the end and then discarded.
    """

    def __init__(self, reporter: Optional[Reporter] = None,
                 config: Optional[AnalysisConfig] = None) -> None:
        self._reporter = reporter if reporter is not None else CollectingReporter()
        self._config = config or AnalysisConfig()
        self._storages: Dict[str, Storage] = OrderedDict()
        self._constraints: Dict[Constraint, None] = OrderedDict()

    @property
    def reporter(self) -> Reporter:
        return self._reporter

    @property
    def config(self) -> AnalysisConfig:
        return self._config

    # ── registration ────────────────────────────────────────────────

    def register(self, storage: Storage) -> Storage:
        """Register *storage*; returns the handle already known under its name."""
        known = self._storages.get(storage.unique_name)
        if known is not None:
            return known
        self._storages[storage.unique_name] = storage
        if storage.is_buffer:
            self._reporter.emit(RecordKind.BUFFER,
                                f"Found buffer {storage.unique_name}",
                                storage.location)
        return storage

    def register_buffer(self, storage: Storage) -> Storage:
        if not storage.is_buffer:
            raise ValueError(f"{storage} is not a buffer or character pointer")
        return self.register(storage)

    def lookup(self, unique_name: str) -> Optional[Storage]:
        return self._storages.get(unique_name)

    @property
    def buffers(self) -> List[Storage]:
        return [s for s in self._storages.values() if s.is_buffer]

    # ── constraints ─────────────────────────────────────────────────

    def add_constraint(self, constraint: Constraint) -> bool:
        """Append *constraint*; returns ``False`` if it was already present.

        Raises :class:`InternalConsistencyError` if the constraint names a
        storage that was never registered.
        """
        for atom in constraint.atoms():
            if atom.owner not in self._storages:
                raise InternalConsistencyError(
                    f"constraint '{constraint}' references unregistered "
                    f"storage {atom.owner}", owner=atom.owner)
        if constraint in self._constraints:
            return False
        self._constraints[constraint] = None
        return True

    @property
    def constraints(self) -> Tuple[Constraint, ...]:
        return tuple(self._constraints)

    def constraints_for(self, storage: Storage) -> List[Constraint]:
        owned = set(storage.atoms())
        return [c for c in self._constraints if c.atoms() & owned]

    # ── solving ─────────────────────────────────────────────────────

    def verdicts(self) -> List[BufferVerdict]:
        """One verdict per registered buffer, in registration order."""
        resolver = BoundResolver(list(self._constraints))
        return [self._judge(buf, resolver) for buf in self.buffers]

    def judge(self) -> List[BufferVerdict]:
        """Solve once: every verdict, reporting the unsafe ones."""
        verdicts = self.verdicts()
        for verdict in verdicts:
            if not verdict.safe:
                self._reporter.emit(RecordKind.VERDICT, str(verdict),
                                    verdict.storage.location)
        return verdicts

    def solve(self) -> FrozenSet[Storage]:
        """Return the buffers that cannot be proven safe."""
        return unsafe_storages(self.judge())

    def _judge(self, buf: Storage, resolver: BoundResolver) -> BufferVerdict:
        max_used = buf.atom(BoundKind.MAX, Role.USED)
        min_used = buf.atom(BoundKind.MIN, Role.USED)
        if not (resolver.is_defined(max_used) or resolver.is_defined(min_used)):
            return BufferVerdict(buf, True, ("never subscripted",))

        reasons: List[str] = []
        upper = resolver.difference(buf.bound(BoundKind.MAX, Role.ALLOC),
                                    buf.bound(BoundKind.MAX, Role.USED))
        threshold = 1 if self._config.strict_bounds else 0
        self._check(reasons, upper, threshold, "maximum used index",
                    resolver, buf, BoundKind.MAX)

        lower = resolver.difference(buf.bound(BoundKind.MIN, Role.ALLOC),
                                    buf.bound(BoundKind.MIN, Role.USED))
        self._check(reasons, lower, 0, "minimum used index",
                    resolver, buf, BoundKind.MIN)

        if self._config.check_negative_index:
            floor = resolver.resolve(buf.bound(BoundKind.MIN, Role.USED))
            value = floor.value()
            if value is None:
                reasons.append(f"minimum used index {floor} may be negative")
            elif value < 0:
                reasons.append(f"minimum used index {value} is negative")

        return BufferVerdict(buf, not reasons, tuple(reasons))

    @staticmethod
    def _check(reasons: List[str], delta: Expression, threshold: int,
               label: str, resolver: BoundResolver, buf: Storage,
               kind: BoundKind) -> None:
        used = resolver.resolve(buf.bound(kind, Role.USED))
        alloc = resolver.resolve(buf.bound(kind, Role.ALLOC))
        value = delta.value()
        if delta.is_empty:
            reasons.append(f"{label} {used} cannot be compared with "
                           f"allocation {alloc}: unknown bound")
        elif value is None:
            reasons.append(f"{label} {used} cannot be compared with "
                           f"allocation {alloc}: unresolved {delta}")
        elif value < threshold:
            reasons.append(f"{label} {used} exceeds allocation {alloc}")
