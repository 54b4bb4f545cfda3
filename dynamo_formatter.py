"""
Formats MongoDB documents as DynamoDB-style tagged items.

Every value is wrapped in a single-key dict whose key names its type:

    N     number, as text
    S     string (also timestamps, non-finite numbers and opaque BSON types)
    BOOL  boolean
    NULL  always True
    L     list of tagged values
    M     map of field name to tagged value

A formatted document looks like {"Item": {"name": {"S": "Ann"}, "age": {"N": "30"}}}.
"""
import json
import math
import re
from collections.abc import Mapping
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict

from bson import json_util
from bson.binary import UuidRepresentation
from bson.code import Code
from bson.decimal128 import Decimal128

ID_FIELD = "_id"
ITEM_KEY = "Item"

NAN_TEXT = "NaN"
INFINITY_TEXT = "Infinity"
NEGATIVE_INFINITY_TEXT = "-Infinity"

# Plain decimal or exponent notation, no whitespace or digit separators
NUMBER_PATTERN = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")

# Native uuid.UUID values need an explicit representation to be encoded
OPAQUE_JSON_OPTIONS = json_util.DEFAULT_JSON_OPTIONS.with_options(
    uuid_representation=UuidRepresentation.STANDARD
)


class ValueKind(Enum):
    NUMBER = "number"
    TEXT = "text"
    BOOLEAN = "boolean"
    TIMESTAMP = "timestamp"
    SEQUENCE = "sequence"
    NULL = "null"
    MAPPING = "mapping"
    OPAQUE = "opaque"


# --- Helper Functions ---

def classify_value(value: Any) -> ValueKind:
    """
    Maps a decoded BSON value onto the kind that decides its tag.

    The checks run in a fixed order and the first match wins. bool is a
    subclass of int, so it is kept out of NUMBER explicitly.
    """
    if isinstance(value, (int, float, Decimal, Decimal128)) and not isinstance(value, bool):
        return ValueKind.NUMBER
    # Code subclasses str but carries a scope
    if isinstance(value, Code):
        return ValueKind.OPAQUE
    if isinstance(value, str):
        return ValueKind.TEXT
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if isinstance(value, datetime):
        return ValueKind.TIMESTAMP
    if isinstance(value, (list, tuple)):
        return ValueKind.SEQUENCE
    if value is None:
        return ValueKind.NULL
    if isinstance(value, Mapping):
        return ValueKind.MAPPING
    return ValueKind.OPAQUE


def number_to_text(value) -> str:
    """
    Returns the decimal text of a number, or its canonical non-finite form
    ("NaN", "Infinity", "-Infinity").
    """
    if isinstance(value, Decimal128):
        value = value.to_decimal()

    if isinstance(value, Decimal):
        if value.is_nan():
            return NAN_TEXT
        if value.is_infinite():
            return NEGATIVE_INFINITY_TEXT if value.is_signed() else INFINITY_TEXT
        return str(value)

    if isinstance(value, float):
        if math.isnan(value):
            return NAN_TEXT
        if math.isinf(value):
            return NEGATIVE_INFINITY_TEXT if value < 0 else INFINITY_TEXT
        return repr(float(value))

    # Int64 and other int subclasses may override __repr__
    return str(int(value))


def is_finite_number(value) -> bool:
    if isinstance(value, Decimal128):
        value = value.to_decimal()
    if isinstance(value, Decimal):
        return value.is_finite()
    if isinstance(value, float):
        return math.isfinite(value)
    return True


def format_timestamp(dt: datetime) -> str:
    """
    Converts a datetime to ISO 8601 UTC text with millisecond precision,
    e.g. "2024-01-15T10:30:00.123Z". Naive datetimes are assumed to be UTC,
    which is how pymongo decodes BSON dates by default.
    """
    if dt.tzinfo is None or dt.tzinfo.utcoffset(dt) is None:
        dt = dt.replace(tzinfo=timezone.utc)
    else:
        dt = dt.astimezone(timezone.utc)
    return dt.replace(tzinfo=None).isoformat(timespec="milliseconds") + "Z"


def opaque_to_text(value: Any) -> str:
    # Extended JSON for BSON types (ObjectId -> {"$oid": ...}), str() for the rest
    try:
        return json_util.dumps(value, default=str, json_options=OPAQUE_JSON_OPTIONS)
    except (TypeError, ValueError):
        return json.dumps(str(value))


# --- Formatting Functions ---

def format_value(value: Any) -> Dict[str, Any]:
    """
    Wraps a single value in its DynamoDB type tag, recursing into lists and
    mappings.

    Args:
        value: Any value decoded from a BSON document

    Returns:
        Dict[str, Any]: A dict with exactly one tag key
    """
    kind = classify_value(value)

    if kind is ValueKind.NUMBER:
        if is_finite_number(value):
            return {"N": number_to_text(value)}
        return {"S": number_to_text(value)}
    if kind is ValueKind.TEXT:
        return {"S": value}
    if kind is ValueKind.BOOLEAN:
        return {"BOOL": value}
    if kind is ValueKind.TIMESTAMP:
        return {"S": format_timestamp(value)}
    if kind is ValueKind.SEQUENCE:
        return {"L": [format_value(item) for item in value]}
    if kind is ValueKind.NULL:
        return {"NULL": True}
    if kind is ValueKind.MAPPING:
        return {"M": {str(key): format_value(inner) for key, inner in value.items()}}
    return {"S": opaque_to_text(value)}


def format_document(document: Mapping, id_field: str = ID_FIELD) -> Dict[str, Dict[str, Any]]:
    """
    Formats a MongoDB document as {"Item": {...}}, dropping the identifier field.

    Args:
        document (Mapping): Document as returned by a pymongo cursor
        id_field (str): Name of the identifier field to leave out

    Returns:
        Dict[str, Dict[str, Any]]: The formatted item
    """
    item = {}
    for key, value in document.items():
        if key == id_field:
            continue
        item[key] = format_value(value)
    return {ITEM_KEY: item}


def validate_document(formatted_doc: Dict[str, Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    """
    Turns top-level "N" values that do not parse as a finite number into "S"
    values, printing a warning for each one. Nested L and M values are left
    as they are. The document is changed in place and returned.
    """
    item = formatted_doc[ITEM_KEY]
    for key, value in list(item.items()):
        if "N" not in value:
            continue
        text = value["N"]
        is_valid = isinstance(text, str) and NUMBER_PATTERN.fullmatch(text) is not None
        if is_valid:
            # "1e999" matches but overflows to inf
            is_valid = math.isfinite(float(text))
        if not is_valid:
            print(f'Warning: Non-numeric value found for key "{key}": {text}')
            item[key] = {"S": str(text)}
    return formatted_doc
