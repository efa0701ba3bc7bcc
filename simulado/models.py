"""Records shared by the loader, scoring and progress modules."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

from simulado.errors import InvalidQuestion

OPTION_KEYS = ("a", "b", "c", "d", "e")


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class QuestionOrigin:
    city: str
    year: Optional[int] = None
    board: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "QuestionOrigin":
        return cls(city=raw.get("cidade") or "", year=raw.get("ano"), board=raw.get("banca"))

    def to_dict(self) -> Dict[str, Any]:
        return {"cidade": self.city, "ano": self.year, "banca": self.board}


@dataclass(frozen=True)
class Question:
    """
    One multiple-choice question as found in the corpus files.

    `options` maps option keys ("a".."e") to text; `correct` is always one of
    those keys. `supporting_text` carries a reading passage shared by the
    question's batch, when the source file provides one.
    """

    subject: str
    number: int
    statement: str
    options: Mapping[str, str]
    correct: str
    explanation: str = ""
    origin: Optional[QuestionOrigin] = None
    supporting_text: Optional[str] = None

    def __post_init__(self):
        if self.correct not in self.options:
            raise InvalidQuestion(
                f"Question {self.number}: correct option {self.correct!r} not in {sorted(self.options)}"
            )
        object.__setattr__(self, "options", MappingProxyType(dict(self.options)))

    @property
    def identity(self) -> str:
        return question_identity(self)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any], supporting_text: Optional[str] = None) -> "Question":
        """Build a Question from a corpus record (Portuguese keys)."""
        try:
            alternatives = raw["alternativas"]
            options = {
                k.lower(): v for k, v in alternatives.items() if k.lower() in OPTION_KEYS and v is not None
            }
            origin = raw.get("origem")
            return cls(
                subject=raw.get("materia") or "",
                number=int(raw["numero"]),
                statement=raw.get("enunciado") or "",
                options=options,
                correct=str(raw["correta"]).strip().lower(),
                explanation=raw.get("explicacao") or "",
                origin=QuestionOrigin.from_dict(origin) if origin else None,
                supporting_text=raw.get("texto_apoio") or supporting_text,
            )
        except InvalidQuestion:
            raise
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise InvalidQuestion(f"Malformed question record: {e!r}") from e

    def to_dict(self) -> Dict[str, Any]:
        out = {
            "materia": self.subject,
            "numero": self.number,
            "enunciado": self.statement,
            "alternativas": dict(self.options),
            "correta": self.correct,
            "explicacao": self.explanation,
        }
        if self.origin is not None:
            out["origem"] = self.origin.to_dict()
        if self.supporting_text:
            out["texto_apoio"] = self.supporting_text
        return out


def question_identity(question: Question) -> str:
    """Deduplication key: origin city (or "unknown") and sequence number."""
    city = question.origin.city if question.origin and question.origin.city else "unknown"
    return f"{city}_{question.number}"


@dataclass(frozen=True)
class AnswerRecord:
    question_id: str
    question: Question
    user_answer: str
    is_correct: bool
    subject: str
    timestamp: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "questionId": self.question_id,
            "question": self.question.to_dict(),
            "userAnswer": self.user_answer,
            "isCorrect": self.is_correct,
            "subject": self.subject,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "AnswerRecord":
        return cls(
            question_id=raw["questionId"],
            question=Question.from_dict(raw["question"]),
            user_answer=raw["userAnswer"],
            is_correct=bool(raw["isCorrect"]),
            subject=raw["subject"],
            timestamp=raw.get("timestamp") or utc_now_iso(),
        )


@dataclass(frozen=True)
class SubjectScore:
    correct: int = 0
    total: int = 0
    score: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {"correct": self.correct, "total": self.total, "score": self.score}


@dataclass(frozen=True)
class SimulationResult:
    """A completed mock exam. `time_spent` is in seconds."""

    score: float
    passed: bool
    time_spent: int
    score_by_subject: Mapping[str, SubjectScore]
    date: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "score": self.score,
            "passed": self.passed,
            "timeSpent": self.time_spent,
            "scoreBySubject": {k: v.to_dict() for k, v in self.score_by_subject.items()},
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "SimulationResult":
        by_subject = raw.get("scoreBySubject") or {}
        return cls(
            score=float(raw["score"]),
            passed=bool(raw["passed"]),
            time_spent=int(raw.get("timeSpent") or 0),
            score_by_subject={
                k: SubjectScore(int(v["correct"]), int(v["total"]), float(v["score"]))
                for k, v in by_subject.items()
            },
            date=raw.get("date") or utc_now_iso(),
        )


@dataclass(frozen=True)
class UserProgress:
    """Read-only snapshot of a user's progress."""

    answers: List[AnswerRecord]
    simulations: List[SimulationResult]
    total_answered: int
    total_correct: int
    is_premium: bool
