"""End-to-end tests for compile_query."""

import pytest

from core.query import (
    And,
    CycleDetectedError,
    InvalidPseudoTagError,
    Not,
    Or,
    PseudoTagCall,
    TagQuerySyntaxError,
    TagQueryTooLargeError,
    TagRef,
    compile_query,
)

DEFINITIONS = {"vehicle": "car OR truck"}


def test_compound_query_end_to_end(lookup):
    compiled = compile_query("vehicle AND NOT #no_tags", DEFINITIONS, lookup)
    assert compiled.expression == And((Or((TagRef("car"), TagRef("truck"))), Not(PseudoTagCall("no_tags"))))
    sql = compiled.query_text()
    assert "pt.tag_id = 1" in sql
    assert "pt.tag_id = 2" in sql
    assert "NOT (NOT EXISTS (SELECT 1 FROM picture_tag AS nt" in sql
    # Compound tags are never looked up directly.
    assert "pt.tag_id = 3" not in sql


def test_contradiction_is_pruned(lookup):
    compiled = compile_query("t AND NOT t", {}, lookup)
    assert compiled.query_text() is None
    assert compiled.is_empty


def test_contradiction_through_definition_is_pruned(lookup):
    assert compile_query("vehicle -car -truck", DEFINITIONS, lookup).is_empty


def test_tautology_still_queries_storage(lookup):
    compiled = compile_query("t OR NOT t", {}, lookup)
    assert compiled.query_text() is not None


def test_unknown_pseudo_tag(lookup):
    with pytest.raises(InvalidPseudoTagError):
        compile_query("#unknown_pseudo", {}, lookup)


def test_syntax_error(lookup):
    with pytest.raises(TagQuerySyntaxError):
        compile_query("(", {}, lookup)


def test_cycle(lookup):
    with pytest.raises(CycleDetectedError):
        compile_query("a", {"a": "b", "b": "a"}, lookup)


def test_expansion_limit(lookup):
    with pytest.raises(TagQueryTooLargeError):
        compile_query("vehicle", DEFINITIONS, lookup, max_nodes=2)


def test_case_sensitivity_default(lookup):
    assert "'png', 's'" in compile_query("#ext:png", {}, lookup, case_sensitive_default=True).sql
    assert "'png', 'i'" in compile_query("#ext:png", {}, lookup).sql


def test_type_symbols_come_from_lookup(make_lookup):
    lookup = make_lookup(tags={"alice": 1}, types={"%": 2})
    compiled = compile_query("%alice", {}, lookup)
    assert compiled.expression == TagRef("alice", "%")
    assert "t.type_id = 2" in compiled.sql


def test_compilation_is_deterministic(lookup):
    first = compile_query("vehicle -#ext:gif", DEFINITIONS, lookup)
    second = compile_query("vehicle -#ext:gif", DEFINITIONS, lookup)
    assert first == second


def test_wide_conjunction_compiles(lookup):
    text = " ".join(f"x{i}" for i in range(990))
    assert compile_query(text, {}, lookup).sql is not None


def test_wide_contradiction_is_pruned(lookup):
    text = " ".join(f"x{i}" for i in range(990)) + " -x0"
    assert compile_query(text, {}, lookup).is_empty


def test_long_definition_chain_is_too_large(lookup):
    definitions = {f"c{i}": f"c{i + 1}" for i in range(1500)}
    with pytest.raises(TagQueryTooLargeError) as info:
        compile_query("c0", definitions, lookup)
    assert not isinstance(info.value, CycleDetectedError)


@pytest.mark.parametrize("text", ["-" * 1500 + "t", "(" * 1500 + "t" + ")" * 1500])
def test_deep_nesting_is_a_syntax_error(lookup, text):
    with pytest.raises(TagQuerySyntaxError):
        compile_query(text, {}, lookup)


def test_invalid_pattern_is_a_syntax_error(lookup):
    with pytest.raises(TagQuerySyntaxError):
        compile_query('#name:"("', {}, lookup)
