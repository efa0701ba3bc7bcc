"""
Mock exam composition: stratified random sample over the subject quotas.
Short buckets contribute everything they have; nothing is borrowed from
other buckets.
"""
import logging
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from simulado.loader import filter_by_subject, sample_random
from simulado.models import Question
from simulado.subjects import SIMULATION_QUOTAS, normalize_subject

logger = logging.getLogger(__name__)

SIMULATION_SIZE = sum(quota for _, quota in SIMULATION_QUOTAS)
MIN_SIMULATION_QUESTIONS = 30
STUDY_BATCH_SIZE = 20


@dataclass
class Composition:
    questions: List[Question]
    target: int
    shortfall: Dict[str, int] = field(default_factory=dict)

    @property
    def size(self) -> int:
        return len(self.questions)

    @property
    def missing(self) -> int:
        return sum(self.shortfall.values())

    @property
    def is_complete(self) -> bool:
        return self.missing == 0

    @property
    def is_playable(self) -> bool:
        return self.size >= MIN_SIMULATION_QUESTIONS


def compose_simulation(
    corpus: Sequence[Question],
    quotas: Sequence[Tuple[str, int]] = SIMULATION_QUOTAS,
    rng: Optional[random.Random] = None,
) -> Composition:
    """
    Build a mock exam from `corpus`, bucket by bucket in quota order.

    Returns a Composition; `shortfall` maps each short subject to the
    number of questions it could not supply.
    """
    by_subject: Dict[str, List[Question]] = {}
    for q in corpus:
        by_subject.setdefault(normalize_subject(q.subject), []).append(q)

    target = sum(quota for _, quota in quotas)
    composition = Composition(questions=[], target=target)
    for subject, quota in quotas:
        available = by_subject.get(subject, [])
        logger.info("%s: %d questions available, quota %d", subject, len(available), quota)
        if len(available) < quota:
            composition.shortfall[subject] = quota - len(available)
        composition.questions.extend(sample_random(available, quota, rng))

    if composition.missing:
        logger.warning(
            "Composed %d/%d questions (missing: %s)",
            composition.size,
            target,
            ", ".join(f"{s}={n}" for s, n in composition.shortfall.items()),
        )
    else:
        logger.info("Composed %d/%d questions", composition.size, target)
    return composition


def draw_study_batch(
    corpus: Sequence[Question],
    subject: str,
    count: int = STUDY_BATCH_SIZE,
    rng: Optional[random.Random] = None,
) -> List[Question]:
    """Random batch of up to `count` questions from one canonical subject."""
    return sample_random(filter_by_subject(corpus, subject), count, rng)
