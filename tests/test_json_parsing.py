import pytest

from castmatch.core.exceptions import MatchParseError
from castmatch.services.json_payload import extract_json_array, parse_json_array, strip_markdown_fences


def test_strip_markdown_fences():
    assert strip_markdown_fences('```json\n[1, 2]\n```') == "[1, 2]"
    assert strip_markdown_fences("```\n[3]\n```") == "[3]"
    assert strip_markdown_fences("[4]") == "[4]"


def test_extract_array_ignores_brackets_in_strings():
    text = 'Here you go: [{"trait": "a ] b"}, {"trait": "c"}] thanks'
    assert extract_json_array(text) == '[{"trait": "a ] b"}, {"trait": "c"}]'


def test_extract_array_unbalanced():
    assert extract_json_array("[1, 2") is None


def test_parse_trailing_commas():
    assert parse_json_array('[{"candidateIndex": 0,},]') == [{"candidateIndex": 0}]


@pytest.mark.parametrize("text", ["", "   ", "no array", "[not json]"])
def test_parse_failures(text):
    with pytest.raises(MatchParseError):
        parse_json_array(text)
