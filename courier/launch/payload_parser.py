"""
Courier — Launch Payload Parser

Turns the raw argument vector handed over by the OS into a LaunchPayload.

The vector is rarely one clean JSON token. Explorer, PowerShell and
shell verbs wrap it in quotes, split it on spaces, or point at a file
with "@path" when the list of files is too long for a command line.
Strategies, first success wins:

    1. @file indirection   — "@C:\\tmp\\payload.json" (BOM tolerated)
    2. Whole-argument JSON — an argument that is itself {...}
    3. Joined brace scan   — join everything, parse first "{" .. last "}"

A failure inside strategy 1 is terminal: the caller asked for that file,
so silently trying the other strategies would hide the real problem.
"""
import json
from typing import Optional, Sequence

from ..core.errors import NoPayloadFound, ParseError
from ..core.types import LaunchPayload


UTF8_BOM = b"\xef\xbb\xbf"
_QUOTES = ("\"", "'")


def parse(args: Sequence[str]) -> LaunchPayload:
    """Resolve a LaunchPayload from raw launch arguments.

    Args:
        args: Argument vector as received at first launch or on a repeat
            activation (program name already removed).

    Returns:
        The resolved LaunchPayload.

    Raises:
        ParseError: Empty input, or an @file that could not be used.
        NoPayloadFound: No strategy yielded a payload.
    """
    if not args:
        raise ParseError("no launch arguments supplied")

    normalized = [normalize_arg(a) for a in args]

    # 1. File indirection
    for arg in normalized:
        if arg.startswith("@") and len(arg) > 1:
            return _parse_indirect(_unquote(arg[1:].strip()))

    # 2. An argument that is a complete JSON object
    for arg in normalized:
        if arg.startswith("{") and arg.endswith("}"):
            payload = _try_parse(arg)
            if payload is not None:
                return payload

    # 3. Shells that split the JSON across several arguments
    joined = " ".join(normalized)
    start = joined.find("{")
    end = joined.rfind("}")
    if start != -1 and end > start:
        payload = _try_parse(joined[start:end + 1])
        if payload is not None:
            return payload

    raise NoPayloadFound()


def normalize_arg(arg: str) -> str:
    """Strip whitespace and one layer of surrounding quotes."""
    return _unquote(arg.strip()).strip()


def _unquote(text: str) -> str:
    if len(text) >= 2 and text[0] == text[-1] and text[0] in _QUOTES:
        return text[1:-1]
    return text


def _parse_indirect(path: str) -> LaunchPayload:
    if not path:
        raise ParseError("empty path after '@'")
    try:
        with open(path, "rb") as f:
            data = f.read()
    except OSError as e:
        raise ParseError(f"failed to read payload file {path}") from e

    if data.startswith(UTF8_BOM):
        data = data[len(UTF8_BOM):]
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ParseError(f"payload file {path} is not valid UTF-8") from e

    try:
        return LaunchPayload.from_dict(json.loads(text.strip()))
    except (ValueError, RecursionError) as e:
        raise ParseError(f"payload file {path} does not hold a launch payload") from e


def _try_parse(text: str) -> Optional[LaunchPayload]:
    """Parse JSON text into a payload; None when it doesn't fit."""
    try:
        return LaunchPayload.from_dict(json.loads(text))
    except (ValueError, RecursionError):
        # json.JSONDecodeError is a ValueError; RecursionError comes from deep nesting
        return None
