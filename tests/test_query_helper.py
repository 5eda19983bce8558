import pytest

from conftest import FakeGenerator
from mongo_browser.query_helper import (
    GenerationKind,
    NoCollectionSelected,
    QueryHelper,
    parse_generated_query,
)
from mongo_browser.query_params import DEFAULT_PARAMS
from mongo_browser.schemas import ReadPreference


def test_parse_keeps_only_recognized_keys():
    params = parse_generated_query('{"query": {"age": {"$gt": 30}}, "limit": 5, "readPreference": "secondary"}')
    assert params.query == {"age": {"$gt": 30}}
    assert params.read_preference == ReadPreference.SECONDARY
    assert "limit" not in params.to_dict()


def test_parse_strips_code_fence():
    params = parse_generated_query('```json\n{"sort": {"name": 1}}\n```')
    assert params.sort == {"name": 1}


def test_parse_accepts_stringified_fields():
    params = parse_generated_query('{"query": "{\\"a\\": 1}", "pipeline": [{"$limit": 2}]}')
    assert params.query == {"a": 1}
    assert params.pipeline == [{"$limit": 2}]


@pytest.mark.parametrize("text", ["{not json", "[1, 2]", '{"query": [1]}', '{"readPreference": "closest"}'])
def test_parse_rejects(text):
    with pytest.raises(ValueError):
        parse_generated_query(text)


def test_success_reports_status():
    statuses = []
    helper = QueryHelper(FakeGenerator('{"query": {"x": 1}}'), notify=statuses.append)
    result = helper.generate("  x equals one  ", "items")
    assert result.ok
    assert result.params.query == {"x": 1}
    assert helper.generator.calls == [("x equals one", "items", False)]
    assert statuses == ["Generating query...", "Query Helper generated query successfully!"]


def test_requires_collection():
    helper = QueryHelper(FakeGenerator("{}"))
    with pytest.raises(NoCollectionSelected):
        helper.generate("anything", None)
    assert helper.generator.calls == []


def test_blank_prompt_skips_generator():
    helper = QueryHelper(FakeGenerator("{}"))
    result = helper.generate("   ", "items")
    assert result.kind is GenerationKind.EMPTY_PROMPT
    assert helper.generator.calls == []


@pytest.mark.parametrize("generator,kind,prefix", [
    (FakeGenerator(error="bad key"), GenerationKind.BACKEND_ERROR, "Query Helper Error: bad key"),
    (FakeGenerator(""), GenerationKind.NO_QUERY, "Query Helper did not return a query"),
    (FakeGenerator(raises=TimeoutError("timed out")), GenerationKind.COMMUNICATION, "Failed to communicate"),
])
def test_failure_kinds(generator, kind, prefix):
    result = QueryHelper(generator).generate("x", "items")
    assert result.kind is kind
    assert result.message.startswith(prefix)
    assert result.params is None


def test_invalid_json_resets_to_defaults():
    result = QueryHelper(FakeGenerator("{oops")).generate("x", "items")
    assert result.kind is GenerationKind.INVALID_JSON
    assert result.params == DEFAULT_PARAMS
