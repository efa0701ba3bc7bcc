"""Weighted scoring of a finished mock exam. No I/O."""
import logging
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Sequence

from simulado.models import Question, SubjectScore
from simulado.subjects import normalize_subject, subject_weight

logger = logging.getLogger(__name__)

PASS_MARK = 50


@dataclass(frozen=True)
class ScoreReport:
    total: float
    by_subject: Dict[str, SubjectScore]
    passed: bool


def is_correct(question: Question, chosen: Optional[str]) -> bool:
    return chosen is not None and chosen == question.correct


def score(questions: Sequence[Question], answers: Mapping[int, str]) -> ScoreReport:
    """
    Score `questions` against `answers` (question index -> chosen option key).

    Each correct answer earns its subject's weight. Unanswered questions
    count toward their subject's total only; answers whose index is outside
    `questions` are ignored.
    """
    tallies: Dict[str, list] = {}
    total = 0.0
    for index, question in enumerate(questions):
        subject = normalize_subject(question.subject)
        tally = tallies.setdefault(subject, [0, 0, 0.0])
        tally[1] += 1
        if is_correct(question, answers.get(index)):
            weight = subject_weight(subject)
            tally[0] += 1
            tally[2] += weight
            total += weight

    by_subject = {s: SubjectScore(correct=c, total=t, score=pts) for s, (c, t, pts) in tallies.items()}
    report = ScoreReport(total=total, by_subject=by_subject, passed=total >= PASS_MARK)
    logger.debug("Scored %d questions: total=%.1f passed=%s", len(questions), total, report.passed)
    return report
