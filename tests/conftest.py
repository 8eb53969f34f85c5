# tests/conftest.py
"""
Shared fixtures: duck-typed stand-ins for the ``cppcheckdata`` object
model, and a small builder that lays out C statements as cppcheck-shaped
token lists with ASTs.

    p = Program()
    buf = p.declare("char", "buf", extent=10)
    i = p.declare("int", "i")
    p.stmt(("[", buf, ("+", i, 12)))
    cfg = p.cfg()
"""

from __future__ import annotations

import pytest

from cppcheck_boa.config import AnalysisConfig
from cppcheck_boa.constraint import ConstraintProblem
from cppcheck_boa.diagnostics import SourceLocation
from cppcheck_boa.reporter import CollectingReporter
from cppcheck_boa.storage import Storage, StorageKind, StorageLocation


# ═══════════════════════════════════════════════════════════════════════════
#  MOCK OBJECT MODEL
# ═══════════════════════════════════════════════════════════════════════════

class MockToken:
    def __init__(self, str="", **kwargs):
        self.str = str
        self.next = None
        self.previous = None
        self.link = None
        self.astOperand1 = None
        self.astOperand2 = None
        self.astParent = None
        self.variable = None
        self.valueType = None
        self.isName = False
        self.isNumber = False
        self.isOp = False
        self.isCast = False
        self.isAssignmentOp = False
        self.file = "test.c"
        self.linenr = 1
        self.column = 0
        for key, value in kwargs.items():
            setattr(self, key, value)

    def __repr__(self):
        return f"MockToken({self.str!r} @{self.linenr}:{self.column})"


class MockDimension:
    def __init__(self, num=None, known=True):
        self.num = num
        self.known = known


class MockVariable:
    def __init__(self, nameToken=None, typeStartToken=None, typeEndToken=None,
                 isArray=False, isPointer=False, isArgument=False,
                 isGlobal=False, isStatic=False, isExtern=False,
                 dimensions=None):
        self.nameToken = nameToken
        self.typeStartToken = typeStartToken
        self.typeEndToken = typeEndToken
        self.isArray = isArray
        self.isPointer = isPointer
        self.isArgument = isArgument
        self.isGlobal = isGlobal
        self.isStatic = isStatic
        self.isExtern = isExtern
        self.dimensions = dimensions or []


class MockConfiguration:
    def __init__(self, tokenlist=None, variables=None, name=""):
        self.tokenlist = tokenlist or []
        self.variables = variables or []
        self.name = name


class MockCppcheckData:
    def __init__(self, configurations=None):
        self.configurations = configurations or []


def make_token_chain(specs):
    """Build linked tokens from a list of attribute dicts."""
    tokens = [MockToken(**spec) for spec in specs]
    for prev, nxt in zip(tokens, tokens[1:]):
        prev.next = nxt
        nxt.previous = prev
    return tokens


def make_cfg(tokens, variables=None, name=""):
    return MockConfiguration(tokens, variables, name)


def make_data(cfgs):
    return MockCppcheckData(cfgs)


def set_ast(op, lhs=None, rhs=None):
    op.astOperand1 = lhs
    op.astOperand2 = rhs
    for child in (lhs, rhs):
        if child is not None:
            child.astParent = op
    return op


# ═══════════════════════════════════════════════════════════════════════════
#  PROGRAM BUILDER
# ═══════════════════════════════════════════════════════════════════════════

class Program:
    """Emits tokens in source order, one statement per line.

    Expression trees are nested tuples:

        7, "x"                    number, unknown identifier
        MockVariable              reference to a declared variable
        (op, a, b)                binary operator (``+``, ``-``, ``=``, ``+=`` ...)
        ("[", base, index)        subscript
        ("call", name, *args)     function call
        ("cast", type, e)         C cast
        ("++", e) / ("--", e)     postfix increment / decrement
        ("&", e)                  address of
    """

    def __init__(self, file="test.c"):
        self.file = file
        self.tokens = []
        self.variables = []
        self._line = 1
        self._column = 1

    # ── tokens ──────────────────────────────────────────────────────

    def tok(self, s, **kwargs):
        tok = MockToken(s, file=self.file, linenr=self._line,
                        column=self._column, **kwargs)
        self._column += len(s) + 1
        if self.tokens:
            self.tokens[-1].next = tok
            tok.previous = self.tokens[-1]
        self.tokens.append(tok)
        return tok

    def newline(self):
        self._line += 1
        self._column = 1

    def expr(self, node):
        if isinstance(node, bool):
            raise TypeError(node)
        if isinstance(node, int):
            return self.tok(str(node), isNumber=True)
        if isinstance(node, MockVariable):
            return self.tok(node.nameToken.str, isName=True, variable=node)
        if isinstance(node, str):
            return self.tok(node, isName=True)

        op = node[0]
        if op == "[":
            base = self.expr(node[1])
            bracket = self.tok("[")
            index = self.expr(node[2])
            bracket.link = self.tok("]")
            return set_ast(bracket, base, index)
        if op == "call":
            callee = self.tok(node[1], isName=True)
            paren = self.tok("(")
            args = None
            for i, arg in enumerate(node[2:]):
                if i:
                    comma = self.tok(",", isOp=True)
                    root = self.expr(arg)
                    args = set_ast(comma, args, root)
                else:
                    args = self.expr(arg)
            paren.link = self.tok(")")
            return set_ast(paren, callee, args)
        if op == "cast":
            paren = self.tok("(", isCast=True)
            self.tok(node[1], isName=True)
            self.tok(")")
            return set_ast(paren, self.expr(node[2]))
        if op in ("++", "--") and len(node) == 2:
            operand = self.expr(node[1])
            return set_ast(self.tok(op, isOp=True), operand)
        if op == "&" and len(node) == 2:
            amp = self.tok("&", isOp=True)
            return set_ast(amp, self.expr(node[1]))

        lhs = self.expr(node[1])
        is_assign = op.endswith("=") and op not in ("==", "!=", "<=", ">=")
        op_tok = self.tok(op, isOp=True, isAssignmentOp=is_assign)
        rhs = self.expr(node[2])
        return set_ast(op_tok, lhs, rhs)

    # ── statements ──────────────────────────────────────────────────

    def declare(self, type_name, name, extent=None, pointer=False,
                argument=False, is_global=False, init=None,
                dims_from_tokens=False):
        """``type_name [*] name [extent] [= init];`` → the MockVariable."""
        start = end = None
        for word in type_name.split():
            end = self.tok(word, isName=True)
            start = start or end
        if pointer:
            end = self.tok("*", isOp=True)
        name_tok = self.tok(name, isName=True)
        var = MockVariable(nameToken=name_tok, typeStartToken=start,
                           typeEndToken=end, isPointer=pointer,
                           isArgument=argument, isGlobal=is_global)
        name_tok.variable = var

        if extent is not None:
            var.isArray = True
            bracket = self.tok("[")
            size_tok = self.tok(str(extent), isNumber=True)
            bracket.link = self.tok("]")
            # cppcheck gives declaration brackets an AST too
            set_ast(bracket, name_tok, size_tok)
            if not dims_from_tokens:
                var.dimensions = [MockDimension(num=extent)]

        if init is not None:
            eq = self.tok("=", isOp=True, isAssignmentOp=True)
            set_ast(eq, name_tok, self.expr(init))

        self.tok(";")
        self.newline()
        self.variables.append(var)
        return var

    def stmt(self, node):
        root = self.expr(node)
        self.tok(";")
        self.newline()
        return root

    def cfg(self, name=""):
        return make_cfg(self.tokens, self.variables, name)


# ═══════════════════════════════════════════════════════════════════════════
#  FIXTURES
# ═══════════════════════════════════════════════════════════════════════════

def make_storage(name, kind=StorageKind.FIXED_BUFFER, line=1, column=1,
                 file="test.c"):
    return Storage(StorageLocation(name, SourceLocation(file, line, column)), kind)


@pytest.fixture
def reporter():
    return CollectingReporter()


@pytest.fixture
def problem(reporter):
    return ConstraintProblem(reporter=reporter)


@pytest.fixture
def strict_problem(reporter):
    return ConstraintProblem(reporter=reporter,
                             config=AnalysisConfig(strict_bounds=True))


@pytest.fixture
def program():
    return Program()
