"""
cppcheck_boa/extractor.py
═════════════════════════

Fact extraction from a ``cppcheckdata.Configuration``.

This is the only module that knows the Cppcheck object model.  A single
pass over ``cfg.tokenlist`` in source order yields:

    char buf[10];            AllocationSite(buffer:buf, 10)
    p = malloc(n);           AliasSite(pointer:p → heap:malloc)
                             AllocationSite(heap:malloc, n)
    buf[i + 1]               UsageSite(buffer:buf, i + 1)
    n = m - 1;               AssignmentSite(int:n, m - 1)
    n++;  n += 2;            AssignmentSite(int:n, <unsupported>)
    scanf("%d", &n);         AssignmentSite(int:n, <unsupported>)

Parameters and globals also hold values written outside the unit's
statements.  The first write to one is preceded by an unknown incoming
value, so assignments never narrow it.

Integer expressions are lowered to the closed variant set in
:mod:`cppcheck_boa.facts`; casts are transparent.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, List, Optional, Set

from cppcheck_boa.config import AnalysisConfig
from cppcheck_boa.facts import (
    AliasSite,
    AllocationSite,
    AssignmentSite,
    BinaryAdd,
    BinarySub,
    Fact,
    IntExpr,
    IntLiteral,
    Unsupported,
    UsageSite,
    VariableRef,
)
from cppcheck_boa.storage import (
    NOT_APPLICABLE,
    Classification,
    DeclaredType,
    Storage,
    StorageKind,
    StorageLocation,
    TypeShape,
    classify,
    classify_allocation,
)
from cppcheck_boa.tokens import (
    array_extents,
    base_type_name,
    expr_to_string,
    get_call_arguments,
    get_called_function_name,
    is_address_of,
    is_assignment,
    is_binary,
    is_function_call,
    is_increment_decrement,
    is_subscript,
    parse_int_literal,
    tok_location,
    tok_op1,
    tok_op2,
    tok_str,
    tok_variable,
    type_tokens,
    unwrap_casts,
)

logger = logging.getLogger(__name__)


class CppcheckFactExtractor:
    """Enumerates allocation, usage, alias and assignment facts of one unit."""

    def __init__(self, cfg: Any, config: Optional[AnalysisConfig] = None) -> None:
        self._cfg = cfg
        self._config = config or AnalysisConfig()
        self._classified: Dict[int, Classification] = {}
        self._incoming_seen: Set[Storage] = set()

    @property
    def unit_name(self) -> str:
        name = getattr(self._cfg, "name", "") or ""
        return name or "<default>"

    # ═════════════════════════════════════════════════════════════════════
    #  CLASSIFICATION
    # ═════════════════════════════════════════════════════════════════════

    def declared_type(self, variable: Any) -> Optional[DeclaredType]:
        """Rebuild the parts of *variable*'s C type the classifier needs."""
        base, depth = base_type_name(type_tokens(variable))
        if not base:
            vt = getattr(getattr(variable, "nameToken", None), "valueType", None)
            base = getattr(vt, "type", "") or ""
            depth = depth or int(getattr(vt, "pointer", 0) or 0)
        if not base:
            return None

        if getattr(variable, "isArray", False):
            extents = array_extents(variable)
            if getattr(variable, "isArgument", False):
                # array parameters decay to pointers
                return DeclaredType(TypeShape.POINTER, base,
                                    pointer_depth=depth + max(len(extents), 1))
            return DeclaredType(TypeShape.ARRAY, base, extents, depth)
        if getattr(variable, "isPointer", False) or depth:
            return DeclaredType(TypeShape.POINTER, base,
                                pointer_depth=max(depth, 1))
        return DeclaredType(TypeShape.SCALAR, base)

    def classify(self, variable: Any) -> Classification:
        if variable is None:
            return NOT_APPLICABLE
        key = id(variable)
        cached = self._classified.get(key)
        if cached is None:
            cached = classify(self.declared_type(variable),
                              self._config.character_types)
            self._classified[key] = cached
        return cached

    def storage_for(self, variable: Any) -> Optional[Storage]:
        """Named storage for a classified variable, else ``None``."""
        classification = self.classify(variable)
        if not classification.applicable:
            return None
        name_tok = getattr(variable, "nameToken", None)
        site = StorageLocation(tok_str(name_tok) or "<anonymous>",
                               tok_location(name_tok))
        return Storage(site, classification.kind)

    def heap_storage(self, call_tok: Any) -> Storage:
        """The buffer produced by an allocation call, named for its call site."""
        callee = tok_op1(call_tok)
        site = StorageLocation(tok_str(callee), tok_location(callee))
        return Storage(site, classify_allocation().kind)

    def _allocator_index(self, tok: Any) -> Optional[int]:
        if not is_function_call(tok):
            return None
        return self._config.allocators.get(get_called_function_name(tok))

    # ═════════════════════════════════════════════════════════════════════
    #  INTEGER EXPRESSIONS
    # ═════════════════════════════════════════════════════════════════════

    def int_expr(self, tok: Any) -> IntExpr:
        tok = unwrap_casts(tok)
        loc = tok_location(tok)
        if tok is None:
            return Unsupported("<missing>", loc)

        text = tok_str(tok)
        if getattr(tok, "isNumber", False) or text[:1].isdigit():
            value = parse_int_literal(text)
            if value is not None:
                return IntLiteral(value, loc)
            return Unsupported(text, loc)

        if is_binary(tok, "+"):
            return BinaryAdd(self.int_expr(tok_op1(tok)),
                             self.int_expr(tok_op2(tok)), loc)
        if is_binary(tok, "-"):
            return BinarySub(self.int_expr(tok_op1(tok)),
                             self.int_expr(tok_op2(tok)), loc)

        if tok_op1(tok) is None and tok_op2(tok) is None:
            storage = self.storage_for(tok_variable(tok))
            if storage is not None and storage.kind is StorageKind.INTEGER:
                return VariableRef(storage, loc)

        return Unsupported(expr_to_string(tok), loc)

    # ═════════════════════════════════════════════════════════════════════
    #  FACTS
    # ═════════════════════════════════════════════════════════════════════

    def iter_facts(self) -> Iterator[Fact]:
        """All facts of the unit, in token order."""
        self._incoming_seen.clear()
        for tok in getattr(self._cfg, "tokenlist", None) or []:
            yield from self._facts_at(tok)

    def enumerate_allocation_sites(self) -> Iterator[AllocationSite]:
        for fact in self.iter_facts():
            if isinstance(fact, AllocationSite):
                yield fact

    def enumerate_usage_sites(self) -> Iterator[UsageSite]:
        for fact in self.iter_facts():
            if isinstance(fact, UsageSite):
                yield fact

    def _facts_at(self, tok: Any) -> List[Fact]:
        variable = tok_variable(tok)
        if variable is not None and getattr(variable, "nameToken", None) is tok:
            return self._declaration(tok, variable)
        if self._allocator_index(tok) is not None:
            return [self._allocation(tok)]
        if is_subscript(tok) and tok_op1(tok) is not None and tok_op2(tok) is not None:
            return self._usage(tok)
        if is_assignment(tok) and tok_op1(tok) is not None and tok_op2(tok) is not None:
            return self._assignment(tok)
        if is_increment_decrement(tok) and tok_op1(tok) is not None:
            return self._update(tok)
        if is_address_of(tok):
            return self._address_taken(tok)
        return []

    def _declaration(self, tok: Any, variable: Any) -> List[Fact]:
        classification = self.classify(variable)
        if classification.kind is not StorageKind.FIXED_BUFFER:
            return []
        storage = self.storage_for(variable)
        return [AllocationSite(storage, classification.extent, tok_location(tok))]

    def _allocation(self, call_tok: Any) -> AllocationSite:
        index = self._allocator_index(call_tok)
        args = get_call_arguments(call_tok)
        if index < len(args):
            size = self.int_expr(args[index])
        else:
            size = Unsupported(expr_to_string(call_tok), tok_location(call_tok))
        return AllocationSite(self.heap_storage(call_tok), size,
                              tok_location(call_tok))

    def _usage(self, tok: Any) -> List[Fact]:
        base_tok = unwrap_casts(tok_op1(tok))
        if getattr(tok_variable(base_tok), "nameToken", None) is base_tok:
            # the brackets of a declaration, not an access
            return []
        base: Optional[Storage] = None
        if tok_op1(base_tok) is None and tok_op2(base_tok) is None:
            storage = self.storage_for(tok_variable(base_tok))
            if storage is not None and storage.is_buffer:
                base = storage
        return [UsageSite(base, self.int_expr(tok_op2(tok)), tok_location(tok),
                          expr_to_string(tok))]

    def _assignment(self, tok: Any) -> List[Fact]:
        lhs, rhs = tok_op1(tok), tok_op2(tok)
        if tok_op1(lhs) is not None or tok_op2(lhs) is not None:
            return []
        variable = tok_variable(lhs)
        target = self.storage_for(variable)
        if target is None:
            return []
        plain = tok_str(tok) == "="
        loc = tok_location(tok)

        if target.kind is StorageKind.POINTER:
            source = self._pointer_source(rhs) if plain else None
            return self._with_incoming(
                variable, target, [AliasSite(target, source, loc, expr_to_string(tok))])

        if target.kind is StorageKind.INTEGER and self._config.track_assignments:
            if plain:
                value = self.int_expr(rhs)
            else:
                value = Unsupported(expr_to_string(tok), loc)
            return self._with_incoming(
                variable, target, [AssignmentSite(target, value, loc)])
        return []

    def _update(self, tok: Any) -> List[Fact]:
        operand = tok_op1(tok)
        if tok_op1(operand) is not None:
            return []
        return self._clobber(tok, tok_variable(operand))

    def _address_taken(self, tok: Any) -> List[Fact]:
        operand = unwrap_casts(tok_op1(tok))
        if tok_op1(operand) is not None or tok_op2(operand) is not None:
            return []
        return self._clobber(tok, tok_variable(operand))

    def _clobber(self, tok: Any, variable: Any) -> List[Fact]:
        """*variable* takes a value the analysis cannot see."""
        target = self.storage_for(variable)
        if target is None:
            return []
        loc = tok_location(tok)
        if target.kind is StorageKind.POINTER:
            return [AliasSite(target, None, loc, expr_to_string(tok))]
        if target.kind is StorageKind.INTEGER and self._config.track_assignments:
            return [AssignmentSite(target, Unsupported(expr_to_string(tok), loc), loc)]
        return []

    def _with_incoming(self, variable: Any, target: Storage,
                       facts: List[Fact]) -> List[Fact]:
        if not _written_outside(variable) or target in self._incoming_seen:
            return facts
        self._incoming_seen.add(target)
        loc = target.location
        text = f"<incoming {target.site.name}>"
        if target.kind is StorageKind.POINTER:
            incoming: Fact = AliasSite(target, None, loc, text)
        else:
            incoming = AssignmentSite(target, Unsupported(text, loc), loc)
        return [incoming] + facts

    def _pointer_source(self, rhs: Any) -> Optional[Storage]:
        rhs = unwrap_casts(rhs)
        if self._allocator_index(rhs) is not None:
            return self.heap_storage(rhs)
        if tok_op1(rhs) is None and tok_op2(rhs) is None:
            storage = self.storage_for(tok_variable(rhs))
            if storage is not None and storage.is_buffer:
                return storage
        logger.debug("untraceable pointer source %s", expr_to_string(rhs))
        return None


def _written_outside(variable: Any) -> bool:
    """Parameters and externally visible globals start with unseen values."""
    if getattr(variable, "isArgument", False) or getattr(variable, "isExtern", False):
        return True
    return (bool(getattr(variable, "isGlobal", False))
            and not getattr(variable, "isStatic", False))
