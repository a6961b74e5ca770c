import pytest

from contentcli.infrastructure.parsing.json_response import parse_json_response


@pytest.mark.parametrize("text", [None, "", 42, ["not", "text"]])
def test_empty_or_non_string_input(text):
    assert parse_json_response(text) is None


def test_plain_object():
    assert parse_json_response('{"searchVolume": 5000}') == {"searchVolume": 5000}


def test_fenced_json_block():
    text = 'Here you go:\n```json\n{"competition": "low", "cpc": 7.5}\n```\nAnything else?'
    assert parse_json_response(text) == {"competition": "low", "cpc": 7.5}


def test_fence_without_language_tag():
    assert parse_json_response("```\n[1, 2, 3]\n```") == [1, 2, 3]


def test_object_surrounded_by_prose():
    text = 'Sure! {"questions": ["What is SOC 2?"]} Hope this helps.'
    assert parse_json_response(text) == {"questions": ["What is SOC 2?"]}


def test_array_when_no_object_present():
    assert parse_json_response('Keywords: ["a", "b"] done') == ["a", "b"]


def test_array_of_one_object_stays_an_array():
    assert parse_json_response('[{"a": 1}]') == [{"a": 1}]


def test_array_of_objects():
    assert parse_json_response('[{"a": 1}, {"b": 2}]') == [{"a": 1}, {"b": 2}]


def test_array_of_objects_surrounded_by_prose():
    text = 'Here are the sections: [{"title": "Intro"}, {"title": "Costs"}] Let me know.'
    assert parse_json_response(text) == [{"title": "Intro"}, {"title": "Costs"}]


def test_fenced_array_of_objects():
    text = '```json\n[{"q": "What is SOC 2?"}, {"q": "Who needs it?"}]\n```'
    assert parse_json_response(text) == [{"q": "What is SOC 2?"}, {"q": "Who needs it?"}]


def test_object_containing_arrays_stays_an_object():
    text = 'Result: {"keywords": ["a", "b"], "questions": []}'
    assert parse_json_response(text) == {"keywords": ["a", "b"], "questions": []}


def test_invalid_json_returns_none():
    assert parse_json_response("{not: valid json}") is None
    assert parse_json_response("no json here at all") is None
