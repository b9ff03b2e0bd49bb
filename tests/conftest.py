"""Pytest fixtures for cc-grep tests."""

import json
import tempfile
from pathlib import Path

import pytest


def _write_jsonl(path: Path, records: list) -> Path:
    """Write records (dicts, or raw strings for corrupt lines) one per line."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        for record in records:
            f.write(record if isinstance(record, str) else json.dumps(record))
            f.write("\n")
    return path


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def fake_home(temp_dir):
    return temp_dir / "home" / "alice"


@pytest.fixture
def sessions_dir(temp_dir):
    """An empty sessions root, like ~/.claude/projects."""
    root = temp_dir / "projects"
    root.mkdir()
    return root


@pytest.fixture
def message():
    """Build a user/assistant record: message("user", "hi", "2024-01-01T00:00:00Z")."""

    def _message(role, content, timestamp=None):
        record = {"type": role, "message": {"role": role, "content": content}}
        if timestamp:
            record["timestamp"] = timestamp
        return record

    return _message


@pytest.fixture
def write_session(sessions_dir):
    """Write records to <sessions_dir>/<slug>/<session_id>.jsonl."""

    def _write(slug, session_id, records):
        return _write_jsonl(sessions_dir / slug / f"{session_id}.jsonl", records)

    return _write


@pytest.fixture
def sample_session_jsonl(temp_dir):
    """Create a sample JSONL session file."""
    session_file = temp_dir / "test-session.jsonl"

    records = [
        {
            "type": "user",
            "uuid": "msg-001",
            "sessionId": "test-session-123",
            "timestamp": "2024-01-15T10:00:00Z",
            "message": {"role": "user", "content": "How do I implement authentication?"},
        },
        {
            "type": "assistant",
            "uuid": "msg-002",
            "sessionId": "test-session-123",
            "timestamp": "2024-01-15T10:00:05Z",
            "message": {
                "role": "assistant",
                "content": [
                    {"type": "text", "text": "For authentication, you can use JWT tokens..."},
                ],
            },
        },
        {
            "type": "file-history-snapshot",
            "snapshot": {"files": []},
        },
        {
            "type": "user",
            "uuid": "msg-003",
            "sessionId": "test-session-123",
            "timestamp": "2024-01-15T10:01:00Z",
            "message": {"role": "user", "content": "Can you show me an example?"},
        },
        {
            "type": "assistant",
            "uuid": "msg-004",
            "sessionId": "test-session-123",
            "timestamp": "2024-01-15T10:01:10Z",
            "message": {
                "role": "assistant",
                "content": [
                    {
                        "type": "thinking",
                        "thinking": "Let me think about a good example...\nA JWT decode helper.",
                    },
                    {
                        "type": "text",
                        "text": "Here's an example:\n```python\nimport jwt\njwt.decode(token)\n```",
                    },
                    {"type": "tool_use", "name": "bash", "input": {"command": "ls"}},
                ],
            },
        },
    ]

    return _write_jsonl(session_file, records)


@pytest.fixture
def write_jsonl():
    """Write records (dicts, or raw strings for corrupt lines) to a path."""
    return _write_jsonl
