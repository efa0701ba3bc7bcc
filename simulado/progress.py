"""
Per-user progress: answered questions, mock exam history and the
aggregates shown on the dashboard.

Two interchangeable stores:
- LocalProgressStore keeps everything in memory, optionally mirrored to a
  JSON file (single user, single session).
- SupabaseProgressStore keeps rows in the `question_answers`, `simulations`
  and `profiles` tables, one partition per authenticated user.

Aggregate counts are always derived from the full answer set, so
re-answering a question can never double count.
"""
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from simulado.errors import AuthenticationRequired, ProgressStoreError
from simulado.models import (
    AnswerRecord,
    Question,
    SimulationResult,
    SubjectScore,
    UserProgress,
    question_identity,
)

logger = logging.getLogger(__name__)

FREE_QUESTION_LIMIT = 30
FREE_SIMULATION_LIMIT = 1


def round_half_up(value: float) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def subject_statistics(rows: Iterable[Tuple[str, bool]]) -> Dict[str, Dict[str, int]]:
    """{subject: {correct, total, percentage}} from (subject, is_correct) pairs."""
    stats: Dict[str, Dict[str, int]] = {}
    for subject, correct in rows:
        entry = stats.setdefault(subject, {"correct": 0, "total": 0, "percentage": 0})
        entry["total"] += 1
        if correct:
            entry["correct"] += 1
    for entry in stats.values():
        entry["percentage"] = round_half_up(entry["correct"] / entry["total"] * 100) if entry["total"] else 0
    return stats


class ProgressStore(ABC):
    """Operations shared by both storage variants."""

    @abstractmethod
    def record_answer(self, question: Question, chosen_key: str, is_correct: bool, subject: str) -> AnswerRecord:
        """Insert or replace the answer for the question's identity."""

    @abstractmethod
    def record_simulation(self, result: SimulationResult) -> None:
        """Append a finished mock exam to the history."""

    @abstractmethod
    def get_answers(self) -> List[AnswerRecord]:
        ...

    @abstractmethod
    def get_simulations(self) -> List[SimulationResult]:
        """Mock exam history, oldest first."""

    @abstractmethod
    def is_premium(self) -> bool:
        ...

    def get_incorrect(self) -> List[AnswerRecord]:
        return [r for r in self.get_answers() if not r.is_correct]

    def get_subject_statistics(self) -> Dict[str, Dict[str, int]]:
        return subject_statistics((r.subject, r.is_correct) for r in self.get_answers())

    def get_latest_simulation(self) -> Optional[SimulationResult]:
        history = self.get_simulations()
        return history[-1] if history else None

    def get_average_score(self) -> int:
        history = self.get_simulations()
        if not history:
            return 0
        return round_half_up(sum(s.score for s in history) / len(history))

    def get_total_study_time(self) -> int:
        """Seconds spent across all mock exams."""
        return sum(s.time_spent for s in self.get_simulations())

    def total_answered(self) -> int:
        return len(self.get_answers())

    def total_correct(self) -> int:
        return sum(1 for r in self.get_answers() if r.is_correct)

    def has_reached_free_limit(self) -> bool:
        if self.is_premium():
            return False
        return self.total_answered() >= FREE_QUESTION_LIMIT

    def has_reached_free_simulation_limit(self) -> bool:
        if self.is_premium():
            return False
        return len(self.get_simulations()) >= FREE_SIMULATION_LIMIT

    def get_progress(self) -> UserProgress:
        answers = self.get_answers()
        return UserProgress(
            answers=answers,
            simulations=self.get_simulations(),
            total_answered=len(answers),
            total_correct=sum(1 for r in answers if r.is_correct),
            is_premium=self.is_premium(),
        )


class LocalProgressStore(ProgressStore):
    """In-memory store, mirrored to `path` as JSON when a path is given."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else None
        self._answers: Dict[str, AnswerRecord] = {}
        self._simulations: List[SimulationResult] = []
        self._premium = False
        if self.path and self.path.exists():
            self._load()

    def _load(self):
        try:
            with self.path.open("r", encoding="utf-8") as f:
                raw = json.load(f)
            answers = [AnswerRecord.from_dict(r) for r in raw.get("questionsAnswered", [])]
            simulations = [SimulationResult.from_dict(s) for s in raw.get("simulationsCompleted", [])]
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            raise ProgressStoreError(f"Could not read progress file {self.path}: {e}") from e
        self._answers = {r.question_id: r for r in answers}
        self._simulations = simulations
        self._premium = bool(raw.get("isPremium", False))

    def _save(self, answers: Dict[str, AnswerRecord], simulations: List[SimulationResult], premium: bool):
        """Write the given state to disk, then make it current."""
        if self.path:
            payload = {
                "questionsAnswered": [r.to_dict() for r in answers.values()],
                "simulationsCompleted": [s.to_dict() for s in simulations],
                "totalQuestionsAnswered": len(answers),
                "totalCorrectAnswers": sum(1 for r in answers.values() if r.is_correct),
                "isPremium": premium,
            }
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".progress-", suffix=".json")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(payload, f, ensure_ascii=False)
                os.replace(tmp, self.path)
            except OSError as e:
                Path(tmp).unlink(missing_ok=True)
                raise ProgressStoreError(f"Could not write progress file {self.path}: {e}") from e
        self._answers = answers
        self._simulations = simulations
        self._premium = premium

    def record_answer(self, question, chosen_key, is_correct, subject):
        record = AnswerRecord(
            question_id=question_identity(question),
            question=question,
            user_answer=chosen_key,
            is_correct=is_correct,
            subject=subject,
        )
        answers = dict(self._answers)
        # Replacing an existing key keeps its original position.
        answers[record.question_id] = record
        self._save(answers, self._simulations, self._premium)
        logger.debug("Recorded answer %s (correct=%s)", record.question_id, is_correct)
        return record

    def record_simulation(self, result):
        self._save(self._answers, self._simulations + [result], self._premium)
        logger.debug("Recorded simulation: score=%.1f passed=%s", result.score, result.passed)

    def get_answers(self):
        return list(self._answers.values())

    def get_simulations(self):
        return list(self._simulations)

    def is_premium(self):
        return self._premium

    def set_premium(self, premium: bool) -> None:
        self._save(self._answers, self._simulations, bool(premium))

    def clear(self) -> None:
        """Forget all progress."""
        self._answers = {}
        self._simulations = []
        self._premium = False
        if self.path:
            self.path.unlink(missing_ok=True)


class SupabaseProgressStore(ProgressStore):
    """
    Progress rows in Supabase, scoped to one user.

    The user is taken from `user_id` when given, otherwise from the client's
    auth session on every call. Answers are written with a single upsert on
    the (user_id, question_id) unique constraint, so concurrent sessions
    resolve as last write wins.
    """

    def __init__(self, client, user_id: Optional[str] = None):
        self.client = client
        self._user_id = str(user_id) if user_id else None

    def _require_user(self) -> str:
        if self._user_id:
            return self._user_id
        try:
            response = self.client.auth.get_user()
        except Exception as e:
            raise AuthenticationRequired("User not authenticated") from e
        user = getattr(response, "user", None)
        if user is None:
            raise AuthenticationRequired("User not authenticated")
        return str(user.id)

    # ============= Writes =============

    def record_answer(self, question, chosen_key, is_correct, subject):
        user_id = self._require_user()
        record = AnswerRecord(
            question_id=question_identity(question),
            question=question,
            user_answer=chosen_key,
            is_correct=is_correct,
            subject=subject,
        )
        row = {
            "user_id": user_id,
            "question_id": record.question_id,
            "question_data": question.to_dict(),
            "user_answer": chosen_key,
            "is_correct": is_correct,
            "subject": subject,
            "updated_at": record.timestamp,
        }
        try:
            self.client.table("question_answers").upsert(row, on_conflict="user_id,question_id").execute()
        except Exception as e:
            logger.error("Error saving answer %s: %s", record.question_id, e)
            raise ProgressStoreError(f"Could not save answer {record.question_id}") from e
        logger.debug("Upserted answer %s for user %s", record.question_id, user_id)
        return record

    def record_simulation(self, result):
        user_id = self._require_user()
        row = {
            "user_id": user_id,
            "score": result.score,
            "passed": result.passed,
            "time_spent": result.time_spent,
            "score_by_subject": {k: v.to_dict() for k, v in result.score_by_subject.items()},
            "created_at": result.date,
        }
        try:
            self.client.table("simulations").insert(row).execute()
        except Exception as e:
            logger.error("Error saving simulation: %s", e)
            raise ProgressStoreError("Could not save simulation") from e

    # ============= Reads =============

    @staticmethod
    def _answer_from_row(row: dict) -> AnswerRecord:
        return AnswerRecord(
            question_id=row["question_id"],
            question=Question.from_dict(row["question_data"]),
            user_answer=row["user_answer"],
            is_correct=bool(row["is_correct"]),
            subject=row["subject"],
            timestamp=row.get("updated_at") or row.get("created_at") or "",
        )

    @staticmethod
    def _simulation_from_row(row: dict) -> SimulationResult:
        by_subject = row.get("score_by_subject") or {}
        return SimulationResult(
            score=float(row["score"]),
            passed=bool(row["passed"]),
            time_spent=int(row.get("time_spent") or 0),
            score_by_subject={
                k: SubjectScore(int(v["correct"]), int(v["total"]), float(v["score"])) for k, v in by_subject.items()
            },
            date=row.get("created_at") or datetime.now(timezone.utc).isoformat(),
        )

    @staticmethod
    def _decode_rows(rows, decode, table: str) -> list:
        """Decode rows one by one; a malformed row is logged and skipped."""
        out = []
        for row in rows or []:
            try:
                out.append(decode(row))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.error("Skipping malformed %s row %s: %s", table, row.get("id") if isinstance(row, dict) else "?", e)
        return out

    def _select_answers(self, only_incorrect: bool = False) -> List[AnswerRecord]:
        user_id = self._require_user()
        try:
            query = self.client.table("question_answers").select("*").eq("user_id", user_id)
            if only_incorrect:
                query = query.eq("is_correct", False)
            response = query.order("created_at").execute()
        except Exception as e:
            logger.error("Error fetching answers: %s", e)
            return []
        return self._decode_rows(response.data, self._answer_from_row, "question_answers")

    def get_answers(self):
        return self._select_answers()

    def get_incorrect(self):
        return self._select_answers(only_incorrect=True)

    def get_subject_statistics(self):
        user_id = self._require_user()
        try:
            response = (
                self.client.table("question_answers")
                .select("subject, is_correct")
                .eq("user_id", user_id)
                .execute()
            )
        except Exception as e:
            logger.error("Error fetching subject statistics: %s", e)
            return {}
        return subject_statistics((r["subject"], r["is_correct"]) for r in response.data or [])

    def get_simulations(self):
        user_id = self._require_user()
        try:
            response = (
                self.client.table("simulations")
                .select("*")
                .eq("user_id", user_id)
                .order("created_at")
                .execute()
            )
        except Exception as e:
            logger.error("Error fetching simulations: %s", e)
            return []
        return self._decode_rows(response.data, self._simulation_from_row, "simulations")

    def get_latest_simulation(self):
        user_id = self._require_user()
        try:
            response = (
                self.client.table("simulations")
                .select("*")
                .eq("user_id", user_id)
                .order("created_at", desc=True)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error("Error fetching latest simulation: %s", e)
            return None
        rows = self._decode_rows(response.data, self._simulation_from_row, "simulations")
        return rows[0] if rows else None

    def is_premium(self):
        user_id = self._require_user()
        try:
            response = self.client.table("profiles").select("is_premium").eq("id", user_id).limit(1).execute()
        except Exception as e:
            logger.error("Error fetching profile: %s", e)
            return False
        rows = response.data or []
        return bool(rows and rows[0].get("is_premium"))
