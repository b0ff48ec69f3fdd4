"""
Tests for the launch payload parser.

Covers the three resolution strategies (@file, whole-argument JSON,
joined brace scan), quoting tolerance, and the error taxonomy.
"""
import json
import os
import shutil
import sys
import tempfile

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from courier.core.errors import NoPayloadFound, ParseError
from courier.core.types import Coords, FilesContext, ImagesContext, LaunchPayload
from courier.launch.payload_parser import normalize_arg, parse


test_dir = None


def setup_module(module):
    global test_dir
    test_dir = tempfile.mkdtemp(prefix="courier_parser_test_")


def teardown_module(module):
    if test_dir and os.path.exists(test_dir):
        shutil.rmtree(test_dir)


def _payload_file(name, data: bytes) -> str:
    path = os.path.join(test_dir, name)
    with open(path, "wb") as f:
        f.write(data)
    return path


FILES_JSON = '{"kind":"files","files":["C:\\\\docs\\\\a.txt","b.md"]}'


# ─── Normalization ───────────────────────────────────────────────────────────

def test_normalize_strips_one_quote_layer():
    """Whitespace and a single layer of matching quotes are removed."""
    assert normalize_arg('  "{\\"a\\":1}"  ') == '{\\"a\\":1}'
    assert normalize_arg("'@x.json'") == "@x.json"
    assert normalize_arg("\"'nested'\"") == "'nested'"
    assert normalize_arg('"unbalanced') == '"unbalanced'
    print("  PASS: normalize_strips_one_quote_layer")


# ─── Strategy 1: @file ───────────────────────────────────────────────────────

def test_indirect_file_plain():
    """@path reads and parses the file."""
    path = _payload_file("plain.json", FILES_JSON.encode("utf-8"))
    payload = parse(["@" + path])
    assert isinstance(payload.context, FilesContext)
    assert payload.context.files == ("C:\\docs\\a.txt", "b.md")
    assert payload.coords is None
    print("  PASS: indirect_file_plain")


def test_indirect_file_with_bom_and_whitespace():
    """A UTF-8 BOM and surrounding whitespace do not matter."""
    body = b"\xef\xbb\xbf\r\n  " + json.dumps(
        {"kind": "images", "images": ["x.png"], "coords": {"x": 10, "y": -4}}
    ).encode("utf-8") + b"\n"
    path = _payload_file("bom.json", body)
    payload = parse(["--flag", f'"@{path}"'])
    assert isinstance(payload.context, ImagesContext)
    assert payload.context.images == ("x.png",)
    assert payload.coords == Coords(x=10, y=-4)
    print("  PASS: indirect_file_with_bom_and_whitespace")


def test_indirect_file_missing_is_terminal():
    """A missing @file is an error even if a later argument has inline JSON."""
    with pytest.raises(ParseError) as info:
        parse(["@" + os.path.join(test_dir, "nope.json"), FILES_JSON])
    assert not isinstance(info.value, NoPayloadFound)
    assert isinstance(info.value.__cause__, OSError)
    print("  PASS: indirect_file_missing_is_terminal")


def test_indirect_file_bad_utf8_is_terminal():
    path = _payload_file("latin1.json", b'{"kind":"files","files":["caf\xe9.txt"]}')
    with pytest.raises(ParseError) as info:
        parse(["@" + path])
    assert isinstance(info.value.__cause__, UnicodeDecodeError)
    print("  PASS: indirect_file_bad_utf8_is_terminal")


def test_indirect_file_bad_json_is_terminal():
    path = _payload_file("broken.json", b'{"kind":"files","files":[')
    with pytest.raises(ParseError):
        parse(["@" + path, FILES_JSON])
    print("  PASS: indirect_file_bad_json_is_terminal")


def test_lone_at_sign_is_not_indirection():
    """"@" with nothing after it falls through to the other strategies."""
    payload = parse(["@", FILES_JSON])
    assert isinstance(payload.context, FilesContext)
    print("  PASS: lone_at_sign_is_not_indirection")


# ─── Strategy 2: whole-argument JSON ─────────────────────────────────────────

def test_inline_json_argument():
    payload = parse(["--open", FILES_JSON])
    assert payload.context.files == ("C:\\docs\\a.txt", "b.md")
    print("  PASS: inline_json_argument")


def test_inline_json_quoted_argument():
    """Explorer-style single-quoted JSON."""
    payload = parse(["'" + FILES_JSON + "'"])
    assert isinstance(payload.context, FilesContext)
    print("  PASS: inline_json_quoted_argument")


def test_inline_first_valid_wins():
    """An invalid {...} argument is skipped; the next valid one wins."""
    first = '{"kind":"videos","videos":[]}'
    second = '{"kind":"images","images":["1.png"]}'
    third = '{"kind":"files","files":["z.txt"]}'
    payload = parse([first, second, third])
    assert isinstance(payload.context, ImagesContext)
    print("  PASS: inline_first_valid_wins")


# ─── Strategy 3: joined brace scan ───────────────────────────────────────────

def test_joined_scan_reassembles_split_json():
    """A shell split the JSON on spaces."""
    args = ['{"kind":"files","files":["C:\\\\My', 'Docs\\\\report.txt"],', '"coords":{"x":1,"y":2}}']
    payload = parse(args)
    assert payload.context.files == ("C:\\My Docs\\report.txt",)
    assert payload.coords == Coords(1, 2)
    print("  PASS: joined_scan_reassembles_split_json")


def test_joined_scan_ignores_prefix_and_suffix_noise():
    args = ["courier.exe", "--payload=", '{"kind":"images",', '"images":["a.png"]}', "trailing"]
    payload = parse(args)
    assert payload.context.images == ("a.png",)
    print("  PASS: joined_scan_ignores_prefix_and_suffix_noise")


# ─── Failures ────────────────────────────────────────────────────────────────

def test_empty_input_is_parse_error():
    with pytest.raises(ParseError):
        parse([])
    print("  PASS: empty_input_is_parse_error")


@pytest.mark.parametrize("args", [
    ["hello", "world"],
    ["   "],
    ["}", "{"],
    ["'just text'", "--flag"],
])
def test_no_brace_span_is_no_payload_found(args):
    with pytest.raises(NoPayloadFound):
        parse(args)


def test_brace_span_with_wrong_shape_is_no_payload_found():
    """Valid JSON that is not a payload is the same as no payload."""
    with pytest.raises(NoPayloadFound):
        parse(['{"kind":"files","files":"not-a-list"}'])
    with pytest.raises(NoPayloadFound):
        parse(['{"files":["a.txt"]}'])
    with pytest.raises(NoPayloadFound):
        parse(['{"kind":"files","files":[],"coords":{"x":true,"y":0}}'])
    print("  PASS: brace_span_with_wrong_shape_is_no_payload_found")


DEEP_JSON = '{"kind":"files","files":' + "[" * 100000 + "]" * 100000 + "}"


def test_deeply_nested_json_is_no_payload():
    """Nesting past the decoder's recursion limit is malformed input, not a crash."""
    with pytest.raises(NoPayloadFound):
        parse([DEEP_JSON])
    with pytest.raises(NoPayloadFound):
        parse(["--open", DEEP_JSON[:40], DEEP_JSON[40:]])
    print("  PASS: deeply_nested_json_is_no_payload")


def test_deeply_nested_json_in_file_is_parse_error():
    path = _payload_file("deep.json", DEEP_JSON.encode("utf-8"))
    with pytest.raises(ParseError) as info:
        parse(["@" + path])
    assert not isinstance(info.value, NoPayloadFound)
    assert isinstance(info.value.__cause__, RecursionError)
    print("  PASS: deeply_nested_json_in_file_is_parse_error")


# ─── Payload model ───────────────────────────────────────────────────────────

def test_payload_roundtrip_dict():
    payload = LaunchPayload(context=ImagesContext(images=("a.png",)), coords=Coords(3, 4))
    assert payload.to_dict() == {"kind": "images", "images": ["a.png"], "coords": {"x": 3, "y": 4}}
    assert LaunchPayload.from_dict(payload.to_dict()) == payload
    print("  PASS: payload_roundtrip_dict")


def test_unknown_keys_and_null_coords_accepted():
    payload = LaunchPayload.from_dict({"kind": "files", "files": [], "coords": None, "extra": 1})
    assert payload.coords is None
    assert payload.context.files == ()
    print("  PASS: unknown_keys_and_null_coords_accepted")
