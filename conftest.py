"""Shared fixtures: question builders and an in-memory stand-in for the Supabase client."""
import itertools
from types import SimpleNamespace

import pytest

from simulado.models import Question, QuestionOrigin

_numbers = itertools.count(1)


def make_question(subject="Português", correct="a", city="Curitiba", number=None, **kwargs):
    options = kwargs.pop("options", {"a": "A", "b": "B", "c": "C", "d": "D"})
    return Question(
        subject=subject,
        number=number if number is not None else next(_numbers),
        statement=kwargs.pop("statement", "Enunciado"),
        options=options,
        correct=correct,
        explanation=kwargs.pop("explanation", "Explicação"),
        origin=QuestionOrigin(city=city, year=2024, board="AOCP") if city else None,
        **kwargs,
    )


def make_corpus(counts):
    """{subject label: n} -> list of questions with distinct identities."""
    return [make_question(subject=subject) for subject, n in counts.items() for _ in range(n)]


class _Response:
    def __init__(self, data):
        self.data = data


class _Query:
    def __init__(self, db, table):
        self.db = db
        self.table = table
        self.filters = []
        self.order_by = None
        self.desc = False
        self.row_limit = None
        self.action = "select"
        self.payload = None
        self.on_conflict = None

    def select(self, *columns, **kwargs):
        self.action = "select"
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def order(self, column, desc=False):
        self.order_by = column
        self.desc = desc
        return self

    def limit(self, n):
        self.row_limit = n
        return self

    def insert(self, row):
        self.action = "insert"
        self.payload = row
        return self

    def upsert(self, row, on_conflict=None):
        self.action = "upsert"
        self.payload = row
        self.on_conflict = on_conflict
        return self

    def execute(self):
        if self.db.fail:
            raise RuntimeError("backend unavailable")
        rows = self.db.tables.setdefault(self.table, [])
        if self.action == "insert":
            row = dict(self.payload)
            row.setdefault("created_at", self.db.next_timestamp())
            rows.append(row)
            return _Response([row])
        if self.action == "upsert":
            keys = self.on_conflict.split(",")
            for existing in rows:
                if all(existing.get(k) == self.payload.get(k) for k in keys):
                    existing.update(self.payload)
                    return _Response([existing])
            row = dict(self.payload)
            row.setdefault("created_at", self.db.next_timestamp())
            rows.append(row)
            return _Response([row])
        out = [r for r in rows if all(r.get(c) == v for c, v in self.filters)]
        if self.order_by:
            out = sorted(out, key=lambda r: r.get(self.order_by) or "", reverse=self.desc)
        if self.row_limit is not None:
            out = out[: self.row_limit]
        return _Response([dict(r) for r in out])


class FakeSupabase:
    """Just enough of the supabase-py query builder for the progress store."""

    def __init__(self, user_id="user-1"):
        self.tables = {}
        self.fail = False
        self._clock = itertools.count()
        self.user_id = user_id
        self.auth = SimpleNamespace(get_user=self._get_user)

    def _get_user(self):
        if self.user_id is None:
            return None
        return SimpleNamespace(user=SimpleNamespace(id=self.user_id))

    def next_timestamp(self):
        return f"2026-01-01T00:00:{next(self._clock):02d}+00:00"

    def table(self, name):
        return _Query(self, name)


@pytest.fixture
def fake_supabase():
    return FakeSupabase()
