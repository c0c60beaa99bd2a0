import io
import json
from decimal import Decimal

import ijson

from . import config


def parse_content(text):
    """
    Parse a page body as a JSON document.

    Only the first top-level value is read. Integers come back as exact
    ints and every other number as a Decimal carrying its original digits.
    Raises ijson.JSONError on invalid or empty input.
    """
    stream = io.BytesIO(text.encode("utf-8"))
    for value in ijson.items(stream, ""):
        return value
    raise ijson.IncompleteJSONError("Empty document")


def _encode_decimal(value):
    if not value.is_finite():
        raise ValueError(f"Out of range number: {value}")
    return str(value)


def _iterencode(obj):
    if isinstance(obj, Decimal):
        yield _encode_decimal(obj)
    elif isinstance(obj, dict):
        yield "{"
        first = True
        for key, value in obj.items():
            if not isinstance(key, str):
                raise TypeError(f"Keys must be str, not {type(key).__name__}")
            if not first:
                yield config.JSON_SEPARATORS[0]
            first = False
            yield json.dumps(key, ensure_ascii=False)
            yield config.JSON_SEPARATORS[1]
            yield from _iterencode(value)
        yield "}"
    elif isinstance(obj, (list, tuple)):
        yield "["
        for idx, value in enumerate(obj):
            if idx:
                yield config.JSON_SEPARATORS[0]
            yield from _iterencode(value)
        yield "]"
    else:
        yield json.dumps(obj, ensure_ascii=False, allow_nan=False)


def dumps(obj):
    """Compact JSON text for obj, writing Decimals digit for digit."""
    return "".join(_iterencode(obj))


def page_record(page, body_key, body):
    """Envelope shared by the JSON outputs: title, ctitle, redirect, body."""
    return {
        "title": page.title,
        "ctitle": page.canonical_title,
        "redirect": {"title": page.redirect_title},
        body_key: body,
    }
