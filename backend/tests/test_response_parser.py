from __future__ import annotations

import pytest

from learnpath.rationale_generator import RationaleEntry
from learnpath.response_parser import ParseError, align_by_index, parse_object_array, validate_entries


def test_strips_markdown_fences() -> None:
    text = '```json\n[{"courseIndex": 0, "reason": "Nền tảng"}]\n```'
    assert parse_object_array(text) == [{"courseIndex": 0, "reason": "Nền tảng"}]


def test_unwraps_single_list_envelope() -> None:
    assert parse_object_array('{"phases": [{"title": "A"}]}') == [{"title": "A"}]


def test_salvages_complete_objects_from_truncated_output() -> None:
    text = '[{"courseIndex": 0, "reason": "ok"}, {"courseIndex": 1, "rea'
    assert parse_object_array(text) == [{"courseIndex": 0, "reason": "ok"}]


def test_skips_leading_prose() -> None:
    text = 'Here is the result:\n[{"a": 1}, {"a": 2}]\nHope this helps.'
    assert parse_object_array(text) == [{"a": 1}, {"a": 2}]


def test_short_array_is_rejected() -> None:
    with pytest.raises(ParseError):
        parse_object_array('[{"a": 1}]', expected_length=2)


def test_extra_entries_are_trimmed() -> None:
    parsed = parse_object_array('[{"a": 1}, {"a": 2}, {"a": 3}]', expected_length=2)
    assert parsed == [{"a": 1}, {"a": 2}]


@pytest.mark.parametrize("text", [None, "", "   ", "no json here", "[1, 2]", '"just a string"'])
def test_unusable_responses_raise(text) -> None:
    with pytest.raises(ParseError):
        parse_object_array(text)


def _entries(raw):
    return validate_entries(RationaleEntry, raw)


def test_align_by_index_reorders_complete_permutation() -> None:
    entries = _entries([{"courseIndex": 1, "reason": "B"}, {"courseIndex": 0, "reason": "A"}])
    aligned = align_by_index(entries, lambda entry: entry.course_index)
    assert [entry.reason for entry in aligned] == ["A", "B"]


@pytest.mark.parametrize(
    "indexes",
    [[0, 0], [1, 2], [True, False], ["0", "1"], [0, None]],
)
def test_align_by_index_keeps_response_order_when_indexes_unusable(indexes) -> None:
    entries = _entries([{"courseIndex": value, "reason": str(position)} for position, value in enumerate(indexes)])
    aligned = align_by_index(entries, lambda entry: entry.course_index)
    assert [entry.reason for entry in aligned] == ["0", "1"]


def test_validate_entries_drops_only_the_invalid_fields() -> None:
    first, second = _entries(
        [
            {"courseIndex": 0, "reason": ["not", "text"]},
            {"courseIndex": 1.5, "reason": "Giữ lại", "extra": "ignored"},
        ]
    )
    assert (first.course_index, first.reason) == (0, "")
    assert (second.course_index, second.reason) == (None, "Giữ lại")


def test_nested_non_object_entries_are_rejected() -> None:
    with pytest.raises(ParseError):
        parse_object_array('[{"courseIndex": 0}, "loose text"]')


def test_validate_entries_accepts_field_names() -> None:
    [entry] = _entries([{"course_index": "zero", "reason": "Theo tên trường"}])
    assert entry.course_index is None
    assert entry.reason == "Theo tên trường"
