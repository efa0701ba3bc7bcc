"""
Exam sessions: timed mock exams and untimed study batches.
Sessions hold UI-independent state; callers drive them from user actions
and a periodic tick.
"""
import logging
import random
import threading
import time
from typing import Callable, Dict, List, Optional, Sequence
from uuid import uuid4

from simulado.composer import STUDY_BATCH_SIZE, Composition, compose_simulation, draw_study_batch
from simulado.errors import InsufficientQuestions
from simulado.models import Question, SimulationResult
from simulado.progress import ProgressStore
from simulado.scoring import ScoreReport, is_correct, score
from simulado.subjects import normalize_subject

logger = logging.getLogger(__name__)

SIMULATION_DURATION_SECONDS = 4 * 60 * 60


class ExamTimer:
    """
    Countdown measured against a monotonic clock.

    `tick()` is meant to be called about once per second; it fires
    `on_expire` exactly once, the first time the remaining time is zero.
    """

    def __init__(
        self,
        duration_seconds: int = SIMULATION_DURATION_SECONDS,
        on_expire: Optional[Callable[[], None]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.duration_seconds = duration_seconds
        self.on_expire = on_expire
        self._clock = clock
        self._started_at: Optional[float] = None
        self._stopped_remaining: Optional[int] = None
        self._expired = False
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._started_at is not None and self._stopped_remaining is None

    @property
    def expired(self) -> bool:
        return self._expired

    def start(self):
        self._started_at = self._clock()
        self._stopped_remaining = None

    def remaining(self) -> int:
        """Whole seconds left."""
        if self._stopped_remaining is not None:
            return self._stopped_remaining
        if self._started_at is None:
            return self.duration_seconds
        elapsed = int(self._clock() - self._started_at)
        return max(0, self.duration_seconds - elapsed)

    def elapsed(self) -> int:
        return self.duration_seconds - self.remaining()

    def stop(self) -> int:
        """Freeze the countdown; returns the remaining seconds."""
        if self._stopped_remaining is None:
            self._stopped_remaining = self.remaining()
        return self._stopped_remaining

    def tick(self) -> int:
        remaining = self.remaining()
        if remaining == 0 and self.running:
            with self._lock:
                if self._expired:
                    return 0
                self._expired = True
            logger.info("Exam time is up")
            if self.on_expire:
                self.on_expire()
        return remaining

    @staticmethod
    def format(seconds: int) -> str:
        hours, rest = divmod(max(0, seconds), 3600)
        minutes, secs = divmod(rest, 60)
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"


class SimulationSession:
    """A timed 40-question mock exam, submitted exactly once."""

    def __init__(
        self,
        corpus: Sequence[Question],
        store: Optional[ProgressStore] = None,
        rng: Optional[random.Random] = None,
        duration_seconds: int = SIMULATION_DURATION_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.session_id = uuid4()
        self.corpus = corpus
        self.store = store
        self.rng = rng
        self.timer = ExamTimer(duration_seconds, on_expire=self.submit, clock=clock)

        self.composition: Optional[Composition] = None
        self.questions: List[Question] = []
        self.answers: Dict[int, str] = {}  # question index -> option key
        self.current_index = 0
        self.status = "pending"

        self.report: Optional[ScoreReport] = None
        self.result: Optional[SimulationResult] = None
        self.recorded = False
        self._submit_lock = threading.Lock()

    def start(self) -> Composition:
        """
        Compose the exam and start the clock.

        Raises InsufficientQuestions when the composition is too small to
        be a meaningful exam; a short but playable composition is accepted
        and its shortfall left on `composition` for the caller to report.
        """
        composition = compose_simulation(self.corpus, rng=self.rng)
        if not composition.is_playable:
            raise InsufficientQuestions(composition)
        self.composition = composition
        self.questions = composition.questions
        self.answers = {}
        self.current_index = 0
        self.status = "in_progress"
        self.timer.start()
        logger.info("Simulation %s started with %d questions", self.session_id, len(self.questions))
        return composition

    def _check_in_progress(self):
        if self.status != "in_progress":
            raise ValueError(f"Simulation is {self.status}")

    def answer(self, index: int, option_key: str) -> None:
        """Select (or change) the answer for question `index`."""
        self._check_in_progress()
        if not 0 <= index < len(self.questions):
            raise ValueError(f"No question at index {index}")
        key = option_key.strip().lower()
        if key not in self.questions[index].options:
            raise ValueError(f"Invalid option {option_key!r} for question {index + 1}")
        self.answers[index] = key

    def current_question(self) -> Optional[Question]:
        if not self.questions:
            return None
        return self.questions[self.current_index]

    def next(self) -> int:
        if self.current_index < len(self.questions) - 1:
            self.current_index += 1
        return self.current_index

    def previous(self) -> int:
        if self.current_index > 0:
            self.current_index -= 1
        return self.current_index

    def tick(self) -> int:
        """Advance the countdown; submits automatically when time runs out."""
        if self.status != "in_progress":
            return self.timer.remaining()
        return self.timer.tick()

    def submit(self) -> SimulationResult:
        """
        Score the exam and record it.

        The exam is scored once. Recording is retried on later calls until
        the store accepts it, so a failed write never loses the result.
        """
        with self._submit_lock:
            if self.result is None:
                self._check_in_progress()
                remaining = self.timer.stop()
                self.report = score(self.questions, self.answers)
                self.result = SimulationResult(
                    score=self.report.total,
                    passed=self.report.passed,
                    time_spent=self.timer.duration_seconds - remaining,
                    score_by_subject=self.report.by_subject,
                )
                self.status = "completed"
                logger.info(
                    "Simulation %s completed: score=%.1f passed=%s",
                    self.session_id,
                    self.result.score,
                    self.result.passed,
                )
            if self.store is not None and not self.recorded:
                self.store.record_simulation(self.result)
                self.recorded = True
        return self.result

    def summary(self) -> Dict:
        return {
            "session_id": str(self.session_id),
            "status": self.status,
            "answered_count": len(self.answers),
            "total_questions": len(self.questions),
            "time_remaining_sec": self.timer.remaining(),
        }


class StudySession:
    """A batch of questions from one subject, answered and recorded one by one."""

    def __init__(
        self,
        corpus: Sequence[Question],
        subject: str,
        store: ProgressStore,
        count: int = STUDY_BATCH_SIZE,
        rng: Optional[random.Random] = None,
    ):
        self.subject = subject
        self.store = store
        self.questions = draw_study_batch(corpus, subject, count, rng)
        self.current_index = 0
        self.answered_count = 0
        self.correct_count = 0

    @property
    def finished(self) -> bool:
        return self.current_index >= len(self.questions)

    def current_question(self) -> Optional[Question]:
        return None if self.finished else self.questions[self.current_index]

    def answer(self, option_key: str) -> bool:
        """Check and record the answer to the current question."""
        question = self.current_question()
        if question is None:
            raise ValueError("Study batch is finished")
        key = option_key.strip().lower()
        correct = is_correct(question, key)
        self.store.record_answer(question, key, correct, normalize_subject(question.subject))
        self.answered_count += 1
        if correct:
            self.correct_count += 1
        return correct

    def next(self) -> Optional[Question]:
        self.current_index += 1
        return self.current_question()

    @property
    def limit_reached(self) -> bool:
        return self.store.has_reached_free_limit()
