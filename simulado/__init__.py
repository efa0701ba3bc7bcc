"""Exam-preparation engine for the municipal guard civil-service test."""
from simulado.subjects import normalize_subject
from simulado.loader import QuestionRepository, filter_by_subject, sample_random
from simulado.composer import compose_simulation, draw_study_batch
from simulado.scoring import score

__all__ = [
    "QuestionRepository",
    "compose_simulation",
    "draw_study_batch",
    "filter_by_subject",
    "normalize_subject",
    "sample_random",
    "score",
]
