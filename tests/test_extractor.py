# tests/test_extractor.py
"""
Tests for fact extraction from cppcheck-shaped token lists: declarations,
allocation calls, subscripts, pointer bindings and integer assignments.
"""

import pytest

from cppcheck_boa.config import AnalysisConfig
from cppcheck_boa.extractor import CppcheckFactExtractor
from cppcheck_boa.facts import (
    AliasSite,
    AllocationSite,
    AssignmentSite,
    BinaryAdd,
    BinarySub,
    IntLiteral,
    Unsupported,
    UsageSite,
    VariableRef,
)
from cppcheck_boa.storage import StorageKind
from cppcheck_boa.tokens import (
    base_type_name,
    get_call_arguments,
    is_address_of,
    parse_int_literal,
)
from tests.conftest import MockVariable, make_token_chain


def facts_of(program, config=None):
    return list(CppcheckFactExtractor(program.cfg(), config).iter_facts())


class TestDeclarations:

    def test_char_array_allocation(self, program):
        program.declare("char", "buf", extent=10)
        site, = facts_of(program)
        assert isinstance(site, AllocationSite)
        assert site.size == 10
        assert site.storage.kind is StorageKind.FIXED_BUFFER
        assert site.storage.unique_name == "buffer:buf@test.c:1:6"

    def test_declaration_brackets_are_not_usage(self, program):
        program.declare("char", "buf", extent=10)
        extractor = CppcheckFactExtractor(program.cfg())
        assert list(extractor.enumerate_usage_sites()) == []
        assert len(list(extractor.enumerate_allocation_sites())) == 1

    def test_extent_from_tokens(self, program):
        program.declare("char", "buf", extent=16, dims_from_tokens=True)
        site, = facts_of(program)
        assert site.size == 16

    def test_qualified_char_array(self, program):
        program.declare("const unsigned char", "u", extent=4)
        site, = facts_of(program)
        assert site.storage.kind is StorageKind.FIXED_BUFFER

    def test_int_array_ignored(self, program):
        program.declare("int", "xs", extent=4)
        assert facts_of(program) == []

    def test_pointer_and_integer_declarations_emit_nothing(self, program):
        program.declare("char", "p", pointer=True)
        program.declare("size_t", "n")
        assert facts_of(program) == []

    def test_array_parameter_decays_to_pointer(self, program):
        s = program.declare("char", "s", extent=8, argument=True)
        program.stmt(("[", s, 2))
        site, = facts_of(program)
        assert isinstance(site, UsageSite)
        assert site.base.kind is StorageKind.POINTER

    def test_classification_is_cached(self, program):
        var = program.declare("char", "buf", extent=10)
        extractor = CppcheckFactExtractor(program.cfg())
        assert extractor.classify(var) is extractor.classify(var)


class TestUsage:

    def test_symbolic_index(self, program):
        buf = program.declare("char", "buf", extent=10)
        i = program.declare("int", "i")
        program.stmt(("[", buf, ("+", i, 1)))
        _, site = facts_of(program)
        assert isinstance(site, UsageSite)
        assert site.base.unique_name == "buffer:buf@test.c:1:6"
        assert isinstance(site.index, BinaryAdd)
        assert isinstance(site.index.left, VariableRef)
        assert site.index.left.storage.kind is StorageKind.INTEGER
        assert site.index.right.value == 1
        assert site.text == "buf[i + 1]"
        assert site.location.line == 3

    def test_cast_is_transparent(self, program):
        buf = program.declare("char", "buf", extent=10)
        n = program.declare("long", "n")
        program.stmt(("[", buf, ("cast", "int", n)))
        site = facts_of(program)[-1]
        assert isinstance(site.index, VariableRef)
        assert site.index.storage.site.name == "n"

    def test_hex_literal(self, program):
        buf = program.declare("char", "buf", extent=64)
        program.stmt(("[", buf, "0x1F"))
        # an identifier-shaped token that starts with a digit is a literal
        site = facts_of(program)[-1]
        assert site.index == IntLiteral(31, site.index.location)

    def test_unsupported_index(self, program):
        buf = program.declare("char", "buf", extent=10)
        n = program.declare("int", "n")
        program.stmt(("[", buf, ("*", n, 2)))
        site = facts_of(program)[-1]
        assert isinstance(site.index, Unsupported)
        assert site.index.text == "n * 2"

    def test_untraceable_base(self, program):
        program.stmt(("[", "s", 3))
        site, = facts_of(program)
        assert site.base is None
        assert site.text == "s[3]"

    def test_int_array_base_is_untraceable(self, program):
        xs = program.declare("int", "xs", extent=4)
        program.stmt(("[", xs, 1))
        site, = facts_of(program)
        assert site.base is None


class TestAllocationCalls:

    def test_malloc_binding(self, program):
        n = program.declare("int", "n")
        program.declare("char", "p", pointer=True, init=("call", "malloc", n))
        alias, alloc = facts_of(program)
        assert isinstance(alias, AliasSite)
        assert isinstance(alloc, AllocationSite)
        assert alias.pointer.kind is StorageKind.POINTER
        assert alias.source == alloc.storage
        assert alloc.storage.kind is StorageKind.ALLOCATED_BUFFER
        assert alloc.storage.unique_name.startswith("heap:malloc@test.c:2:")
        assert isinstance(alloc.size, VariableRef)

    def test_realloc_uses_second_argument(self, program):
        p = program.declare("char", "p", pointer=True)
        program.stmt(("=", p, ("call", "realloc", p, 32)))
        alias, alloc = facts_of(program)
        assert alias.source == alloc.storage
        assert alloc.size.value == 32

    def test_custom_allocator(self, program):
        p = program.declare("char", "p", pointer=True)
        program.stmt(("=", p, ("call", "xmalloc", 8)))
        plain = facts_of(program)
        assert [type(f) for f in plain] == [AliasSite]
        assert plain[0].source is None

        config = AnalysisConfig().with_allocators(["xmalloc"])
        alias, alloc = facts_of(program, config)
        assert alias.source == alloc.storage

    def test_missing_size_argument(self, program):
        program.stmt(("call", "realloc", "q"))
        alloc, = facts_of(program)
        assert isinstance(alloc.size, Unsupported)

    def test_cast_allocation_result(self, program):
        p = program.declare("char", "p", pointer=True)
        program.stmt(("=", p, ("cast", "char *", ("call", "malloc", 4))))
        alias, alloc = facts_of(program)
        assert alias.source == alloc.storage


class TestPointerBinding:

    def test_array_source(self, program):
        buf = program.declare("char", "buf", extent=10)
        p = program.declare("char", "p", pointer=True)
        program.stmt(("=", p, buf))
        alias = facts_of(program)[-1]
        assert alias.source.unique_name == "buffer:buf@test.c:1:6"

    def test_pointer_arithmetic_source_unknown(self, program):
        buf = program.declare("char", "buf", extent=10)
        p = program.declare("char", "p", pointer=True)
        program.stmt(("=", p, ("+", buf, 1)))
        alias = facts_of(program)[-1]
        assert isinstance(alias, AliasSite)
        assert alias.source is None
        assert alias.text == "p = buf + 1"

    def test_increment_unbinds(self, program):
        p = program.declare("char", "p", pointer=True)
        program.stmt(("++", p))
        alias, = facts_of(program)
        assert alias.source is None


class TestAssignments:

    def test_plain_assignment(self, program):
        n = program.declare("int", "n")
        m = program.declare("int", "m")
        program.stmt(("=", n, ("-", m, 1)))
        site, = facts_of(program)
        assert isinstance(site, AssignmentSite)
        assert site.target.site.name == "n"
        assert isinstance(site.value, BinarySub)

    def test_initializer(self, program):
        program.declare("int", "n", init=5)
        site, = facts_of(program)
        assert site.value.value == 5

    def test_compound_assignment_unsupported(self, program):
        n = program.declare("int", "n")
        program.stmt(("+=", n, 2))
        site, = facts_of(program)
        assert isinstance(site.value, Unsupported)
        assert site.value.text == "n += 2"

    def test_postfix_increment_unsupported(self, program):
        n = program.declare("int", "n")
        program.stmt(("++", n))
        site, = facts_of(program)
        assert isinstance(site.value, Unsupported)
        assert site.value.text == "n++"

    def test_parameter_gets_incoming_value_once(self, program):
        n = program.declare("int", "n", argument=True)
        program.stmt(("=", n, 3))
        program.stmt(("=", n, 4))
        incoming, first, second = facts_of(program)
        assert isinstance(incoming.value, Unsupported)
        assert incoming.value.text == "<incoming n>"
        assert incoming.location == incoming.target.location
        assert (first.value.value, second.value.value) == (3, 4)

    def test_incoming_value_on_every_pass(self, program):
        n = program.declare("int", "n", argument=True)
        program.stmt(("=", n, 3))
        extractor = CppcheckFactExtractor(program.cfg())
        assert len(list(extractor.iter_facts())) == 2
        assert len(list(extractor.iter_facts())) == 2

    def test_extern_global_gets_incoming_value(self, program):
        g = program.declare("int", "g")
        g.isGlobal = g.isExtern = True
        g.isStatic = False
        program.stmt(("=", g, 1))
        incoming, _ = facts_of(program)
        assert incoming.value.text == "<incoming g>"

    def test_local_has_no_incoming_value(self, program):
        program.declare("int", "n", init=5)
        site, = facts_of(program)
        assert site.value.value == 5

    def test_pointer_parameter_gets_unknown_target(self, program):
        buf = program.declare("char", "buf", extent=4)
        p = program.declare("char", "p", pointer=True, argument=True)
        program.stmt(("=", p, buf))
        _, incoming, alias = facts_of(program)
        assert isinstance(incoming, AliasSite)
        assert incoming.source is None
        assert alias.source.site.name == "buf"

    def test_address_of_integer(self, program):
        i = program.declare("int", "i")
        program.stmt(("call", "scanf", '"%d"', ("&", i)))
        site, = facts_of(program)
        assert isinstance(site, AssignmentSite)
        assert isinstance(site.value, Unsupported)
        assert site.value.text == "&i"

    def test_address_of_pointer_unbinds(self, program):
        p = program.declare("char", "p", pointer=True)
        program.stmt(("call", "init", ("&", p)))
        alias, = facts_of(program)
        assert isinstance(alias, AliasSite)
        assert alias.source is None

    def test_address_of_array_is_not_a_write(self, program):
        buf = program.declare("char", "buf", extent=4)
        program.stmt(("call", "fill", ("&", buf)))
        assert [type(f) for f in facts_of(program)] == [AllocationSite]

    def test_binary_and_is_not_address_of(self, program):
        i = program.declare("int", "i")
        program.stmt(("&", i, 1))
        assert facts_of(program) == []

    def test_tracking_disabled(self, program):
        n = program.declare("int", "n")
        program.stmt(("=", n, 3))
        assert facts_of(program, AnalysisConfig(track_assignments=False)) == []


class TestTokenHelpers:

    @pytest.mark.parametrize("text,value", [
        ("10", 10), ("0", 0), ("0x1F", 31), ("0b101", 5), ("017", 15),
        ("8UL", 8), ("12u", 12), ("3LL", 3),
    ])
    def test_parse_int_literal(self, text, value):
        assert parse_int_literal(text) == value

    @pytest.mark.parametrize("text", ["1.5", "abc", "", "0x", "09"])
    def test_parse_int_literal_rejects(self, text):
        assert parse_int_literal(text) is None

    @pytest.mark.parametrize("parts,expected", [
        (["char"], ("char", 0)),
        (["const", "char", "*"], ("char", 1)),
        (["unsigned"], ("int", 0)),
        (["unsigned", "long", "int"], ("long", 0)),
        (["long", "long"], ("long long", 0)),
        (["char", "*", "*"], ("char", 2)),
    ])
    def test_base_type_name(self, parts, expected):
        assert base_type_name(parts) == expected

    def test_call_arguments_flatten_commas(self, program):
        call = program.expr(("call", "f", 1, 2, 3))
        assert [t.str for t in get_call_arguments(call)] == ["1", "2", "3"]

    def test_address_of_shape(self, program):
        assert is_address_of(program.expr(("&", "x")))
        assert not is_address_of(program.expr(("&", "x", 1)))

    def test_token_chain_links(self):
        a, b = make_token_chain([{"str": "a"}, {"str": "b"}])
        assert a.next is b and b.previous is a

    def test_unnamed_variable_has_no_type(self):
        extractor = CppcheckFactExtractor(None)
        assert extractor.declared_type(MockVariable()) is None
        assert extractor.unit_name == "<default>"
