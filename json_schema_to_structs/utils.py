"""
Utility functions for JSON Schema to structs generator.
"""

import keyword
import re
from collections.abc import Container

# Regex pattern to split text into words, handling camelCase and acronym boundaries
_WORD_PATTERN = re.compile(r"[A-Z]+(?![a-z])|[A-Z]?[a-z]+|[0-9]+")

# Symbols that carry meaning in JSON property names (JSON-LD "@id", "$ref", ...)
_SYMBOL_WORDS = {"@": " at ", "$": " dollar "}


def _normalize_separators(text: str) -> str:
    """Normalize separators (underscores, hyphens, dots) and symbols to spaces."""
    for symbol, word in _SYMBOL_WORDS.items():
        text = text.replace(symbol, word)
    return text.replace("_", " ").replace("-", " ").replace(".", " ")


def _split_into_words(text: str) -> list[str]:
    """Split text into words, handling camelCase boundaries."""
    return _WORD_PATTERN.findall(_normalize_separators(text))


def _capitalize_and_join(words: list[str]) -> str:
    """Capitalize each word and join them together."""
    return "".join(word.capitalize() for word in words if word)


def snake_to_pascal_case(text: str) -> str:
    """Convert snake_case, camelCase, or space-separated text to PascalCase.

    Examples:
        "first_name" -> "FirstName"
        "FIRST_NAME" -> "FirstName"
        "actionTemplate" -> "ActionTemplate"
        "first 3 rows" -> "First3Rows"
        "ABC" -> "Abc"
        "@type" -> "AtType"

    Args:
        text: The text to convert (snake_case, camelCase, UPPER_SNAKE_CASE, or space-separated)

    Returns:
        PascalCase string
    """
    if not text:
        return ""
    return _capitalize_and_join(_split_into_words(text))


def to_snake_case(text: str) -> str:
    """Convert any property-like text to snake_case.

    Examples:
        "aWonderfulProperty" -> "a_wonderful_property"
        "a-Wonderful rustProperty" -> "a_wonderful_rust_property"
        "$type" -> "dollar_type"
        "HTTPServer" -> "http_server"
    """
    return "_".join(word.lower() for word in _split_into_words(text))


def to_type_name(text: str) -> str:
    """Convert a naming hint to a type identifier, or "" if nothing usable remains."""
    name = snake_to_pascal_case(text)
    if name and name[0].isdigit():
        name = f"Type{name}"
    return name


def to_field_name(text: str, reserved: Container[str] = ()) -> str:
    """Convert a JSON property name to a snake_case field identifier.

    Reserved words get a trailing underscore, names starting with a digit get
    a leading one.
    """
    name = to_snake_case(text) or "field"
    if name[0].isdigit():
        name = f"_{name}"
    if keyword.iskeyword(name) or name in reserved:
        name = f"{name}_"
    return name


def to_enum_member_name(value: object) -> str:
    """Derive an UPPER_SNAKE enum member name from a literal value.

    Examples:
        "in-progress" -> "IN_PROGRESS"
        None -> "NULL"
        -1 -> "MINUS_1"
        "3d" -> "V_3_D"
    """
    if value is None:
        text = "null"
    elif isinstance(value, bool):
        text = "true" if value else "false"
    else:
        text = str(value).replace("-", " minus ") if isinstance(value, (int, float)) else str(value)
    name = "_".join(word.upper() for word in _split_into_words(text)) or "VALUE"
    if name[0].isdigit():
        name = f"V_{name}"
    return name


def make_unique(base: str, taken: Container[str], start: int = 2) -> str:
    """Return base, or base suffixed with the first free integer from start."""
    if base not in taken:
        return base
    counter = start
    while f"{base}{counter}" in taken:
        counter += 1
    return f"{base}{counter}"
