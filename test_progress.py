"""Progress stores: local JSON-backed and Supabase-backed."""
import itertools
import json

import pytest

from conftest import FakeSupabase, make_question
from simulado.errors import AuthenticationRequired, ProgressStoreError
from simulado.models import SimulationResult, SubjectScore
from simulado.progress import FREE_QUESTION_LIMIT, LocalProgressStore, SupabaseProgressStore, round_half_up

_minutes = itertools.count()


def _timestamp(n):
    return f"2026-03-01T{n // 60:02d}:{n % 60:02d}:00+00:00"


def _result(score, time_spent=600, passed=None):
    return SimulationResult(
        score=score,
        passed=score >= 50 if passed is None else passed,
        time_spent=time_spent,
        score_by_subject={"Português": SubjectScore(correct=2, total=5, score=3.0)},
        date=_timestamp(next(_minutes)),
    )


@pytest.fixture(params=["local", "supabase"])
def store(request, tmp_path):
    if request.param == "local":
        return LocalProgressStore(tmp_path / "progress.json")
    return SupabaseProgressStore(FakeSupabase())


def test_reanswering_replaces_record(store):
    q = make_question(city="Foz", number=3)
    store.record_answer(q, "b", False, "Português")
    store.record_answer(q, "a", True, "Português")
    answers = store.get_answers()
    assert len(answers) == 1
    assert answers[0].question_id == "Foz_3"
    assert answers[0].user_answer == "a"
    assert answers[0].is_correct
    assert store.total_answered() == 1
    assert store.total_correct() == 1


def test_correct_then_incorrect_does_not_double_count(store):
    q = make_question()
    store.record_answer(q, "a", True, "Português")
    store.record_answer(q, "c", False, "Português")
    assert store.total_answered() == 1
    assert store.total_correct() == 0


def test_missing_origin_uses_unknown_identity(store):
    store.record_answer(make_question(city=None, number=9), "a", True, "RLM")
    assert store.get_answers()[0].question_id == "unknown_9"


def test_incorrect_queue(store):
    q1, q2, q3 = make_question(), make_question(), make_question()
    store.record_answer(q1, "b", False, "Português")
    store.record_answer(q2, "a", True, "RLM")
    store.record_answer(q3, "c", False, "Informática")
    assert [r.question_id for r in store.get_incorrect()] == [q1.identity, q3.identity]
    store.record_answer(q1, "a", True, "Português")
    assert [r.question_id for r in store.get_incorrect()] == [q3.identity]


def test_subject_statistics(store):
    for correct in (True, True, False):
        store.record_answer(make_question(), "a" if correct else "b", correct, "RLM")
    store.record_answer(make_question(), "b", False, "Legislação")
    stats = store.get_subject_statistics()
    assert stats["RLM"] == {"correct": 2, "total": 3, "percentage": 67}
    assert stats["Legislação"] == {"correct": 0, "total": 1, "percentage": 0}


def test_empty_history_defaults(store):
    assert store.get_latest_simulation() is None
    assert store.get_average_score() == 0
    assert store.get_total_study_time() == 0
    assert store.get_subject_statistics() == {}
    assert store.get_incorrect() == []


def test_simulation_history(store):
    store.record_simulation(_result(40.5, 100))
    store.record_simulation(_result(61.0, 200))
    history = store.get_simulations()
    assert [s.score for s in history] == [40.5, 61.0]
    assert store.get_latest_simulation().score == 61.0
    assert store.get_latest_simulation().score_by_subject["Português"].correct == 2
    assert store.get_average_score() == 51  # 50.75 rounds up
    assert store.get_total_study_time() == 300


def test_free_limit(store):
    for _ in range(FREE_QUESTION_LIMIT - 1):
        store.record_answer(make_question(), "a", True, "Português")
    assert not store.has_reached_free_limit()
    store.record_answer(make_question(), "a", True, "Português")
    assert store.has_reached_free_limit()


def test_free_simulation_limit(store):
    assert not store.has_reached_free_simulation_limit()
    store.record_simulation(_result(10))
    assert store.has_reached_free_simulation_limit()


def test_round_half_up():
    assert round_half_up(50.5) == 51
    assert round_half_up(66.666) == 67
    assert round_half_up(0.4) == 0


# ----- local store -----

def test_premium_lifts_limits(tmp_path):
    store = LocalProgressStore(tmp_path / "p.json")
    store.set_premium(True)
    for _ in range(FREE_QUESTION_LIMIT + 5):
        store.record_answer(make_question(), "a", True, "Português")
    store.record_simulation(_result(70))
    assert not store.has_reached_free_limit()
    assert not store.has_reached_free_simulation_limit()
    assert store.get_progress().is_premium


def test_local_store_persists_across_instances(tmp_path):
    path = tmp_path / "p.json"
    store = LocalProgressStore(path)
    q = make_question(city="Lapa", number=1, supporting_text="Texto")
    store.record_answer(q, "b", False, "Português")
    store.record_simulation(_result(55))

    reopened = LocalProgressStore(path)
    progress = reopened.get_progress()
    assert progress.total_answered == 1
    assert progress.answers[0].question == q
    assert progress.simulations[0].passed
    raw = json.loads(path.read_text(encoding="utf-8"))
    assert raw["totalQuestionsAnswered"] == 1
    assert raw["totalCorrectAnswers"] == 0


def test_failed_write_leaves_state_unchanged(tmp_path, monkeypatch):
    store = LocalProgressStore(tmp_path / "p.json")
    store.record_answer(make_question(), "a", True, "Português")

    def broken_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr("simulado.progress.os.replace", broken_replace)
    with pytest.raises(ProgressStoreError):
        store.record_answer(make_question(), "a", True, "Português")
    assert store.total_answered() == 1
    assert [p.name for p in tmp_path.iterdir()] == ["p.json"]


def test_corrupt_progress_file(tmp_path):
    path = tmp_path / "p.json"
    path.write_text("[[[", encoding="utf-8")
    with pytest.raises(ProgressStoreError):
        LocalProgressStore(path)


def test_clear(tmp_path):
    path = tmp_path / "p.json"
    store = LocalProgressStore(path)
    store.record_answer(make_question(), "a", True, "Português")
    store.clear()
    assert store.total_answered() == 0
    assert not path.exists()


def test_memory_only_store():
    store = LocalProgressStore()
    store.record_answer(make_question(), "a", True, "Português")
    assert store.total_answered() == 1


# ----- supabase store -----

def test_supabase_upserts_on_user_and_question(fake_supabase):
    store = SupabaseProgressStore(fake_supabase)
    q = make_question(city="Colombo", number=4)
    store.record_answer(q, "b", False, "RLM")
    store.record_answer(q, "a", True, "RLM")
    rows = fake_supabase.tables["question_answers"]
    assert len(rows) == 1
    assert rows[0]["user_id"] == "user-1"
    assert rows[0]["question_id"] == "Colombo_4"
    assert rows[0]["question_data"]["correta"] == "a"
    assert rows[0]["is_correct"] is True


def test_supabase_partitions_by_user(fake_supabase):
    SupabaseProgressStore(fake_supabase, user_id="alice").record_answer(make_question(), "a", True, "RLM")
    bob = SupabaseProgressStore(fake_supabase, user_id="bob")
    assert bob.get_answers() == []
    assert bob.total_answered() == 0


def test_supabase_premium_from_profile(fake_supabase):
    fake_supabase.tables["profiles"] = [{"id": "user-1", "is_premium": True}]
    store = SupabaseProgressStore(fake_supabase)
    for _ in range(FREE_QUESTION_LIMIT):
        store.record_answer(make_question(), "a", True, "RLM")
    assert store.is_premium()
    assert not store.has_reached_free_limit()


def test_supabase_requires_authenticated_user():
    store = SupabaseProgressStore(FakeSupabase(user_id=None))
    with pytest.raises(AuthenticationRequired):
        store.record_answer(make_question(), "a", True, "RLM")
    with pytest.raises(AuthenticationRequired):
        store.record_simulation(_result(10))
    with pytest.raises(AuthenticationRequired):
        store.get_incorrect()


def test_supabase_auth_error_is_authentication_required():
    client = FakeSupabase()

    def raising():
        raise RuntimeError("session expired")

    client.auth.get_user = raising
    with pytest.raises(AuthenticationRequired):
        SupabaseProgressStore(client).get_answers()


def test_supabase_write_failure_raises(fake_supabase):
    fake_supabase.fail = True
    store = SupabaseProgressStore(fake_supabase)
    with pytest.raises(ProgressStoreError):
        store.record_answer(make_question(), "a", True, "RLM")
    with pytest.raises(ProgressStoreError):
        store.record_simulation(_result(10))


def test_supabase_read_failure_returns_defaults(fake_supabase):
    fake_supabase.fail = True
    store = SupabaseProgressStore(fake_supabase)
    assert store.get_answers() == []
    assert store.get_subject_statistics() == {}
    assert store.get_latest_simulation() is None
    assert store.get_average_score() == 0
    assert not store.is_premium()


def test_supabase_malformed_answer_row_is_skipped(fake_supabase):
    store = SupabaseProgressStore(fake_supabase)
    q1, q2, q3 = make_question(), make_question(), make_question()
    store.record_answer(q1, "b", False, "RLM")
    store.record_answer(q2, "b", False, "RLM")
    store.record_answer(q3, "a", True, "RLM")
    fake_supabase.tables["question_answers"][0]["question_data"]["correta"] = "z"
    assert [r.question_id for r in store.get_answers()] == [q2.identity, q3.identity]
    assert [r.question_id for r in store.get_incorrect()] == [q2.identity]


def test_supabase_malformed_simulation_row_is_skipped(fake_supabase):
    store = SupabaseProgressStore(fake_supabase)
    store.record_simulation(_result(40.0))
    store.record_simulation(_result(60.0))
    fake_supabase.tables["simulations"][0]["score"] = "n/a"
    assert [s.score for s in store.get_simulations()] == [60.0]
    assert store.get_latest_simulation().score == 60.0
