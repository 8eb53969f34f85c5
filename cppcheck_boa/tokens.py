#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
cppcheck_boa/tokens.py
══════════════════════

Safe accessors and shape predicates over ``cppcheckdata`` tokens and
variables.

Every function accepts ``None`` and any duck-typed object, returning a
neutral default (``""``, ``0``, ``None``, ``False``) for missing
attributes, so the extractor can be driven by real dump files and by
lightweight mocks alike.

    ┌─────────────────────────────────────────────────────────────┐
    │  Accessors      tok_str, tok_op1, tok_op2, tok_variable ... │
    │  Predicates     is_cast, is_subscript, is_function_call ... │
    │  Calls          get_called_function_name, get_call_args    │
    │  Literals       parse_int_literal                          │
    │  Variables      type_tokens, array_extents                 │
    └─────────────────────────────────────────────────────────────┘

License: MIT
"""

from __future__ import annotations

import re
from typing import Any, List, Optional, Tuple

from cppcheck_boa.diagnostics import SourceLocation

Token = Any
Variable = Any

_INT_LITERAL_RE = re.compile(
    r"^(0[xX][0-9a-fA-F]+|0[bB][01]+|0[0-7]*|[1-9][0-9]*)([uU]?[lL]{0,2}|[lL]{1,2}[uU])$"
)

TYPE_QUALIFIERS = frozenset({
    "const", "volatile", "restrict", "static", "extern", "register",
    "signed", "unsigned", "struct", "enum", "union",
})


# ═══════════════════════════════════════════════════════════════════════════
#  PART 1 — SAFE ACCESSORS
# ═══════════════════════════════════════════════════════════════════════════

def tok_str(tok: Token) -> str:
    if tok is None:
        return ""
    return getattr(tok, "str", "") or ""


def tok_op1(tok: Token) -> Optional[Token]:
    if tok is None:
        return None
    return getattr(tok, "astOperand1", None)


def tok_op2(tok: Token) -> Optional[Token]:
    if tok is None:
        return None
    return getattr(tok, "astOperand2", None)


def tok_parent(tok: Token) -> Optional[Token]:
    if tok is None:
        return None
    return getattr(tok, "astParent", None)


def tok_next(tok: Token) -> Optional[Token]:
    if tok is None:
        return None
    return getattr(tok, "next", None)


def tok_variable(tok: Token) -> Optional[Variable]:
    """The Variable a name token refers to, or None."""
    if tok is None:
        return None
    return getattr(tok, "variable", None)


def tok_location(tok: Token) -> SourceLocation:
    if tok is None:
        return SourceLocation()
    return SourceLocation(
        file=getattr(tok, "file", "") or "",
        line=getattr(tok, "linenr", 0) or 0,
        column=getattr(tok, "column", 0) or 0,
    )


# ═══════════════════════════════════════════════════════════════════════════
#  PART 2 — SHAPE PREDICATES
# ═══════════════════════════════════════════════════════════════════════════

def is_cast(tok: Token) -> bool:
    if tok is None:
        return False
    return bool(getattr(tok, "isCast", False))


def is_subscript(tok: Token) -> bool:
    return tok_str(tok) == "["


def is_function_call(tok: Token) -> bool:
    """
    In the Cppcheck AST a call is a ``(`` token whose astOperand1 is the
    callee and which is not a cast.
    """
    if tok_str(tok) != "(":
        return False
    if tok_op1(tok) is None:
        return False
    return not is_cast(tok)


def is_binary(tok: Token, op: str) -> bool:
    return (tok_str(tok) == op
            and tok_op1(tok) is not None
            and tok_op2(tok) is not None)


def is_assignment(tok: Token) -> bool:
    return bool(getattr(tok, "isAssignmentOp", False)) or tok_str(tok) in (
        "=", "+=", "-=", "*=", "/=", "%=", "<<=", ">>=", "&=", "|=", "^=")


def is_increment_decrement(tok: Token) -> bool:
    return tok_str(tok) in ("++", "--")


def is_address_of(tok: Token) -> bool:
    """Unary ``&``; the binary form carries a second operand."""
    return (tok_str(tok) == "&"
            and tok_op1(tok) is not None
            and tok_op2(tok) is None)


def unwrap_casts(tok: Token) -> Token:
    """Strip conversion nodes: ``(size_t)(int)n`` → ``n``."""
    while is_cast(tok) and tok_op1(tok) is not None:
        tok = tok_op1(tok)
    return tok


# ═══════════════════════════════════════════════════════════════════════════
#  PART 3 — FUNCTION CALLS
# ═══════════════════════════════════════════════════════════════════════════

def get_called_function_name(call_tok: Token) -> str:
    """Name of a direct callee, or ``""`` for indirect calls."""
    if not is_function_call(call_tok):
        return ""
    callee = tok_op1(call_tok)
    name = tok_str(callee)
    if name.isidentifier() and tok_op1(callee) is None:
        return name
    return ""


def get_call_arguments(call_tok: Token) -> List[Token]:
    """
    Argument expression roots.  ``f(a, b, c)`` has astOperand2 as a tree
    of commas::

        (
         ├─ f
         └─ ,
             ├─ ,
             │   ├─ a
             │   └─ b
             └─ c
    """
    args: List[Token] = []
    _flatten_comma_args(tok_op2(call_tok), args)
    return args


def _flatten_comma_args(tok: Token, out: List[Token]) -> None:
    if tok is None:
        return
    if tok_str(tok) == ",":
        _flatten_comma_args(tok_op1(tok), out)
        _flatten_comma_args(tok_op2(tok), out)
    else:
        out.append(tok)


# ═══════════════════════════════════════════════════════════════════════════
#  PART 4 — LITERALS AND TEXT
# ═══════════════════════════════════════════════════════════════════════════

def parse_int_literal(text: str) -> Optional[int]:
    """Value of a C integer literal (``10``, ``0x1F``, ``017``, ``8UL``)."""
    m = _INT_LITERAL_RE.match(text or "")
    if m is None:
        return None
    digits = m.group(1)
    if digits[:2] in ("0x", "0X"):
        return int(digits[2:], 16)
    if digits[:2] in ("0b", "0B"):
        return int(digits[2:], 2)
    if len(digits) > 1 and digits[0] == "0":
        return int(digits[1:], 8)
    return int(digits)


def expr_to_string(tok: Token, max_depth: int = 30) -> str:
    """Re-render an AST subtree as compact C text."""
    if tok is None or max_depth <= 0:
        return "..."
    s = tok_str(tok)
    op1, op2 = tok_op1(tok), tok_op2(tok)
    if is_cast(tok):
        return f"({expr_to_string(op1, max_depth - 1)})"
    if s == "(" and op1 is not None:
        args = ", ".join(expr_to_string(a, max_depth - 1)
                         for a in get_call_arguments(tok))
        return f"{expr_to_string(op1, max_depth - 1)}({args})"
    if s == "[" and op1 is not None:
        return (f"{expr_to_string(op1, max_depth - 1)}"
                f"[{expr_to_string(op2, max_depth - 1)}]")
    if op1 is not None and op2 is not None:
        return (f"{expr_to_string(op1, max_depth - 1)} {s} "
                f"{expr_to_string(op2, max_depth - 1)}")
    if op1 is not None:
        if s in ("++", "--") and tok_parent(op1) is tok and _is_postfix(tok, op1):
            return f"{expr_to_string(op1, max_depth - 1)}{s}"
        return f"{s}{expr_to_string(op1, max_depth - 1)}"
    return s


def _is_postfix(op_tok: Token, operand: Token) -> bool:
    # operand precedes the operator in the token stream
    return getattr(operand, "next", None) is op_tok


# ═══════════════════════════════════════════════════════════════════════════
#  PART 5 — VARIABLES
# ═══════════════════════════════════════════════════════════════════════════

def type_tokens(variable: Variable) -> List[str]:
    """Strings of ``typeStartToken`` … ``typeEndToken``."""
    start = getattr(variable, "typeStartToken", None)
    end = getattr(variable, "typeEndToken", None)
    parts: List[str] = []
    tok = start
    while tok is not None:
        parts.append(tok_str(tok))
        if tok is end or end is None:
            break
        tok = tok_next(tok)
    return parts


def base_type_name(parts: List[str]) -> Tuple[str, int]:
    """``["const", "unsigned", "char", "*"]`` → ``("char", 1)``.

    Returns the element type with qualifiers dropped and the number of
    ``*`` in the declaration.  ``unsigned``/``signed`` alone mean ``int``;
    ``long long`` stays two words.
    """
    depth = sum(1 for p in parts if p == "*")
    words = [p for p in parts if p not in TYPE_QUALIFIERS and p not in ("*", "&")]
    if not words:
        return ("int" if any(p in ("signed", "unsigned") for p in parts) else "",
                depth)
    if words[:2] == ["long", "long"]:
        return "long long", depth
    if words[-1] == "int" and len(words) > 1 and words[0] in ("short", "long"):
        return words[0], depth
    return words[0], depth


def array_extents(variable: Variable) -> Tuple[Optional[int], ...]:
    """Declared array dimensions; ``None`` marks a non-constant one.

    Uses ``Variable.dimensions`` when the dump provides it, otherwise
    reads ``name [ N ] [ M ]`` from the token list.
    """
    dims = getattr(variable, "dimensions", None)
    if dims:
        extents: List[Optional[int]] = []
        for dim in dims:
            extents.append(_dimension_size(dim))
        return tuple(extents)

    extents = []
    tok = tok_next(getattr(variable, "nameToken", None))
    while tok_str(tok) == "[":
        size_tok = tok_next(tok)
        closing = tok_next(size_tok)
        if tok_str(size_tok) == "]":
            extents.append(None)
            tok = tok_next(size_tok)
            continue
        value = parse_int_literal(tok_str(size_tok))
        if tok_str(closing) != "]":
            # non-trivial dimension expression; skip to the matching bracket
            value = None
            closing = getattr(tok, "link", None)
            if closing is None:
                extents.append(None)
                break
        extents.append(value)
        tok = tok_next(closing)
    return tuple(extents)


def _dimension_size(dim: Any) -> Optional[int]:
    if isinstance(dim, bool):
        return None
    if isinstance(dim, int):
        return dim if dim > 0 else None
    for attr in ("num", "known", "size"):
        raw = getattr(dim, attr, None)
        if raw is None and isinstance(dim, dict):
            raw = dim.get(attr)
        if raw is not None:
            try:
                value = int(raw)
            except (TypeError, ValueError):
                return None
            return value if value > 0 else None
    return None
