"""
Shared test fixtures: an in-memory Supabase stand-in and httpx mock clients.

No test talks to the network or to a real Supabase project.
"""
import itertools
import json
import os
import sys
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import httpx
import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


# =============================================================================
# Fake Supabase client
# =============================================================================
class FakeQuery:
    """Subset of the supabase-py query builder used by the app."""

    def __init__(self, db, table):
        self.db = db
        self.table = table
        self.action = "select"
        self.payload = None
        self.filters = []
        self.order_by = None
        self.limit_n = None
        self.conflict_column = None

    def select(self, *_columns):
        self.action = "select"
        return self

    def insert(self, payload):
        self.action = "insert"
        self.payload = payload
        return self

    def upsert(self, payload, on_conflict=None):
        self.action = "upsert"
        self.payload = payload
        self.conflict_column = on_conflict
        return self

    def delete(self):
        self.action = "delete"
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def limit(self, n):
        self.limit_n = n
        return self

    def _matches(self, row):
        return all(row.get(col) == val for col, val in self.filters)

    def execute(self):
        if self.db.fail:
            raise RuntimeError("supabase unavailable")

        rows = self.db.tables.setdefault(self.table, [])

        if self.action in ("insert", "upsert"):
            new_rows = self.payload if isinstance(self.payload, list) else [self.payload]
            if self.action == "upsert" and self.conflict_column:
                keys = {row.get(self.conflict_column) for row in new_rows}
                rows[:] = [r for r in rows if r.get(self.conflict_column) not in keys]
            inserted = []
            for row in new_rows:
                row = dict(row)
                row.setdefault("id", str(next(self.db.ids)))
                row.setdefault("created_at", self.db.next_timestamp())
                rows.append(row)
                inserted.append(dict(row))
            return SimpleNamespace(data=inserted)

        if self.action == "delete":
            removed = [r for r in rows if self._matches(r)]
            self.db.tables[self.table] = [r for r in rows if not self._matches(r)]
            return SimpleNamespace(data=removed)

        found = [dict(r) for r in rows if self._matches(r)]
        if self.order_by:
            column, desc = self.order_by
            found.sort(key=lambda r: r.get(column) or "", reverse=desc)
        if self.limit_n is not None:
            found = found[: self.limit_n]
        return SimpleNamespace(data=found)


class FakeBucket:
    def __init__(self, db, name):
        self.db = db
        self.name = name

    def upload(self, path, data, file_options=None):
        if self.db.fail:
            raise RuntimeError("storage unavailable")
        self.db.uploads[f"{self.name}/{path}"] = (data, file_options)
        return {"path": path}

    def get_public_url(self, path):
        return f"https://fake.supabase.co/storage/v1/object/public/{self.name}/{path}"


class FakeSupabase:
    def __init__(self, fail=False):
        self.fail = fail
        self.tables = {}
        self.uploads = {}
        self.ids = itertools.count(1)
        self._clock = datetime(2024, 6, 1, tzinfo=timezone.utc)
        self.storage = SimpleNamespace(from_=lambda name: FakeBucket(self, name))

    def next_timestamp(self):
        self._clock += timedelta(seconds=1)
        return self._clock.isoformat()

    def table(self, name):
        return FakeQuery(self, name)


@pytest.fixture
def fake_supabase():
    return FakeSupabase()


@pytest.fixture
def broken_supabase():
    return FakeSupabase(fail=True)


# =============================================================================
# httpx mock transport helpers
# =============================================================================
class RecordingHandler:
    """Wraps a handler function and records every request it sees."""

    def __init__(self, handler):
        self.handler = handler
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        return self.handler(request)


def mock_client(handler):
    """AsyncClient whose every request is answered by ``handler``."""
    recorder = handler if isinstance(handler, RecordingHandler) else RecordingHandler(handler)
    client = httpx.AsyncClient(transport=httpx.MockTransport(recorder))
    client.recorder = recorder
    return client


def request_json(request):
    return json.loads(request.content.decode("utf-8"))


def chat_completion(content, model="gpt-4o"):
    """Minimal OpenAI-compatible chat completion body."""
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "created": 1700000000,
        "model": model,
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
    }


def claude_message(text):
    return {
        "id": "msg_test",
        "type": "message",
        "role": "assistant",
        "content": [{"type": "text", "text": text}],
    }


# Tiny base64 payload; adapters pass plain base64 through untouched
SAMPLE_IMAGE = "aGVsbG8gcGxhbnQgaW1hZ2U="
