"""Tests for the store module."""

from datetime import datetime, timezone

import pytest

from cc_grep.models import OpaqueBlock, TextBlock, ThinkingBlock, parse_content_blocks
from cc_grep.store import extract_text, load_session, message_role, parse_timestamp


def test_load_valid_lines(temp_dir, message, write_jsonl):
    """Test that every valid line becomes a record and message."""
    path = write_jsonl(
        temp_dir / "valid.jsonl",
        [message("user", "hello"), message("assistant", "world")],
    )

    session = load_session(path)

    assert len(session.records) == 2
    assert len(session.messages) == 2


def test_load_skips_corrupt_lines(temp_dir, message, write_jsonl):
    """Test that a corrupt line is dropped and the rest still loads."""
    path = write_jsonl(
        temp_dir / "corrupt.jsonl",
        [
            message("user", "good line"),
            "{this is not valid json!!!",
            message("assistant", "also good"),
        ],
    )

    session = load_session(path)

    assert len(session.records) == 2
    assert [message_role(m) for m in session.messages] == ["user", "assistant"]


def test_load_truncated_last_line(temp_dir):
    """Test a file cut off mid-write keeps everything before the cut."""
    path = temp_dir / "truncated.jsonl"
    path.write_text(
        '{"type": "user", "message": {"role": "user", "content": "hi"}}\n'
        '{"type": "assistant", "message": {"role": "assis'
    )

    session = load_session(path)

    assert len(session.records) == 1
    assert len(session.messages) == 1


def test_load_empty_file(temp_dir):
    path = temp_dir / "empty.jsonl"
    path.write_text("")

    session = load_session(path)

    assert session.records == []
    assert session.messages == []


def test_load_ignores_blank_lines(temp_dir, message, write_jsonl):
    path = write_jsonl(temp_dir / "blanks.jsonl", ["", message("user", "hi"), "   ", ""])

    session = load_session(path)

    assert len(session.records) == 1


@pytest.mark.parametrize(
    "bad_line",
    ["1" * 5000, "[" * 100000],
    ids=["oversized-integer", "deep-nesting"],
)
def test_load_drops_lines_json_cannot_decode(temp_dir, message, write_jsonl, bad_line):
    """Test that lines json.loads rejects with non-JSONDecodeError errors are dropped."""
    path = write_jsonl(
        temp_dir / "bad.jsonl",
        [message("user", "before"), bad_line, message("assistant", "after")],
    )

    session = load_session(path)

    assert [extract_text(m["message"]["content"]) for m in session.messages] == [
        "before",
        "after",
    ]


def test_non_message_records_kept_in_records_only(temp_dir, message, write_jsonl):
    """Test records keep every object but messages only user/assistant, in order."""
    path = write_jsonl(
        temp_dir / "mixed.jsonl",
        [
            {"type": "system", "data": "metadata"},
            message("user", "first"),
            {"type": "tool_use", "name": "bash"},
            message("assistant", "second"),
            {"type": "summary", "summary": "x"},
        ],
    )

    session = load_session(path)

    assert len(session.records) == 5
    assert len(session.messages) == 2
    positions = [session.records.index(m) for m in session.messages]
    assert positions == sorted(positions)
    assert all(m["type"] in ("user", "assistant") for m in session.messages)


def test_only_corrupt_lines(temp_dir, write_jsonl):
    path = write_jsonl(temp_dir / "allcorrupt.jsonl", ["{broken", "not json at all", "}}}}"])

    session = load_session(path)

    assert session.records == []
    assert session.messages == []


def test_non_object_json_values_dropped(temp_dir, message, write_jsonl):
    path = write_jsonl(
        temp_dir / "scalars.jsonl", ["42", '"text"', "[1, 2]", message("user", "hi")]
    )

    session = load_session(path)

    assert len(session.records) == 1


def test_missing_file_raises(temp_dir):
    with pytest.raises(OSError):
        load_session(temp_dir / "does-not-exist.jsonl")


def test_session_id_and_first_timestamp(sample_session_jsonl):
    session = load_session(sample_session_jsonl)

    assert session.session_id == "test-session"
    assert session.first_timestamp == datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)


def test_first_timestamp_missing(temp_dir, message, write_jsonl):
    path = write_jsonl(
        temp_dir / "nots.jsonl",
        [{"type": "system"}, message("user", "hi", "2024-01-01T00:00:00Z")],
    )

    # Only the first record counts, and it has no timestamp.
    assert load_session(path).first_timestamp is None


def test_parse_timestamp():
    assert parse_timestamp("2024-01-15T10:00:00Z") == datetime(
        2024, 1, 15, 10, 0, tzinfo=timezone.utc
    )
    assert parse_timestamp("2024-01-15T12:00:00+02:00") == datetime(
        2024, 1, 15, 10, 0, tzinfo=timezone.utc
    )
    assert parse_timestamp("2024-01-15").tzinfo == timezone.utc
    assert parse_timestamp("yesterday") is None
    assert parse_timestamp(None) is None
    assert parse_timestamp(1700000000) is None


def test_extract_text_string_content():
    assert extract_text("  plain string  ") == "  plain string  "


def test_extract_text_joins_text_blocks():
    content = [
        {"type": "thinking", "thinking": "hidden"},
        {"type": "text", "text": "first"},
        {"type": "tool_use", "name": "bash", "input": {}},
        {"type": "text", "text": "second\n"},
    ]

    assert extract_text(content) == "first\nsecond"


def test_extract_text_other_shapes():
    assert extract_text(None) == ""
    assert extract_text({"type": "text", "text": "x"}) == ""


def test_message_role_falls_back_to_type():
    assert message_role({"type": "assistant", "message": {"role": "assistant"}}) == "assistant"
    assert message_role({"type": "user"}) == "user"


def test_parse_content_blocks_tagged_union():
    tool = {"type": "tool_use", "id": "t1", "name": "bash", "input": {"command": "ls"}}
    blocks = parse_content_blocks(
        [{"type": "text", "text": "hi"}, {"type": "thinking", "thinking": "hmm"}, tool, "junk"]
    )

    assert blocks == [
        TextBlock(text="hi"),
        ThinkingBlock(thinking="hmm"),
        OpaqueBlock(type="tool_use", data=tool),
    ]
    assert blocks[2].data is tool


def test_parse_content_blocks_string():
    assert parse_content_blocks("hello") == [TextBlock(text="hello")]
    assert parse_content_blocks(None) == []


def test_parse_content_blocks_non_string_values():
    blocks = parse_content_blocks(
        [{"type": "text", "text": 42}, {"type": "thinking", "thinking": ["x"]}, {"type": "text"}]
    )

    assert blocks == [TextBlock(text=""), ThinkingBlock(thinking=""), TextBlock(text="")]
    assert extract_text([{"type": "text", "text": 42}, {"type": "text", "text": "ok"}]) == "ok"
