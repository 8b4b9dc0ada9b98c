"""Turn raw generative-text output into a list of JSON objects.

Model output is often wrapped in markdown fences, prefixed with prose, or cut
off mid-array when the token budget runs out. :func:`parse_object_array`
salvages every complete object it can find and reports anything else as a
:class:`ParseError`. :func:`validate_entries` then checks each entry against
a pydantic model so pipeline stages only ever see well-formed values.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

logger = logging.getLogger(__name__)

_FENCE_PATTERN = re.compile(r"^\s*```(?:json)?\s*|\s*```\s*$", re.IGNORECASE)
_DECODER = json.JSONDecoder()
_OBJECT_ARRAY = TypeAdapter(List[Dict[str, Any]])

EntryT = TypeVar("EntryT", bound=BaseModel)


class ParseError(ValueError):
    """Raised when a response cannot be turned into the expected array."""


def _strip_fences(text: str) -> str:
    return _FENCE_PATTERN.sub("", text.strip())


def _unwrap(value: Any) -> Any:
    # {"items": [...]} style envelopes around the array.
    if isinstance(value, dict):
        lists = [item for item in value.values() if isinstance(item, list)]
        if len(lists) == 1:
            return lists[0]
    return value


def _salvage_objects(text: str) -> List[Any]:
    """Decode complete objects from a possibly truncated ``[{...}, {...`` string."""
    start = text.find("[")
    if start < 0:
        raise ParseError("Response does not contain a JSON array")

    items: List[Any] = []
    position = start + 1
    length = len(text)
    while position < length:
        while position < length and text[position] in " \t\r\n,":
            position += 1
        if position >= length or text[position] == "]":
            break
        try:
            value, position = _DECODER.raw_decode(text, position)
        except json.JSONDecodeError:
            break
        items.append(value)
    return items


def parse_object_array(text: Optional[str], *, expected_length: Optional[int] = None) -> List[Dict[str, Any]]:
    """Parse ``text`` into a list of dicts.

    With ``expected_length`` the result must hold at least that many entries;
    extra trailing entries are dropped.
    """
    if text is None or not str(text).strip():
        raise ParseError("Response is empty")

    cleaned = _strip_fences(str(text))
    try:
        parsed = _unwrap(json.loads(cleaned))
    except json.JSONDecodeError:
        parsed = _salvage_objects(cleaned)
        logger.debug("Recovered %d entries from malformed response", len(parsed))

    try:
        entries = _OBJECT_ARRAY.validate_python(parsed)
    except ValidationError as exc:
        raise ParseError(f"Expected a JSON array of objects: {exc.error_count()} problem(s)") from exc

    if expected_length is not None:
        if len(entries) < expected_length:
            raise ParseError(f"Expected {expected_length} entries, got {len(entries)}")
        entries = entries[:expected_length]
    return entries


def validate_entries(model: Type[EntryT], entries: Sequence[Mapping[str, Any]]) -> List[EntryT]:
    """Validate each entry against ``model``.

    Fields that fail validation are dropped so the model default applies to
    them; the rest of the entry is kept.
    """
    validated: List[EntryT] = []
    for entry in entries:
        try:
            validated.append(model.model_validate(entry))
        except ValidationError as exc:
            rejected = {str(error["loc"][0]) for error in exc.errors() if error["loc"]}
            # A field can arrive under its alias or its name.
            for name, info in model.model_fields.items():
                if name in rejected or info.alias in rejected:
                    rejected.update(key for key in (name, info.alias) if key)
            logger.debug("Ignoring invalid %s fields: %s", model.__name__, sorted(str(name) for name in rejected))
            validated.append(model.model_validate({key: value for key, value in entry.items() if key not in rejected}))
    return validated


def align_by_index(entries: Sequence[EntryT], index_of: Callable[[EntryT], Optional[int]]) -> List[EntryT]:
    """Reorder ``entries`` by their 0-based index when it is usable.

    Entries are left in response order unless every one carries a distinct
    index in ``0..len(entries) - 1``.
    """
    indexes: List[int] = []
    for entry in entries:
        index = index_of(entry)
        if index is None:
            return list(entries)
        indexes.append(index)
    if sorted(indexes) != list(range(len(entries))):
        return list(entries)
    return [entry for _, entry in sorted(zip(indexes, entries), key=lambda pair: pair[0])]


__all__ = ["ParseError", "align_by_index", "parse_object_array", "validate_entries"]
