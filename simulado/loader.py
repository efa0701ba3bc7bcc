"""
Question corpus loading and the filter/sample helpers built on it.
Sources are read concurrently but appended in source-list order.
"""
import asyncio
import json
import logging
import random
from pathlib import Path
from typing import Any, List, Optional, Sequence

import requests

from simulado import config
from simulado.errors import InvalidQuestion
from simulado.models import Question
from simulado.subjects import normalize_subject

logger = logging.getLogger(__name__)


def _fetch_source(source: str, timeout: float) -> Any:
    if source.startswith(("http://", "https://")):
        response = requests.get(source, timeout=timeout)
        response.raise_for_status()
        return response.json()
    with Path(source).open("r", encoding="utf-8") as f:
        return json.load(f)


def parse_source(payload: Any, source: str = "<memory>") -> List[Question]:
    """
    Turn one decoded corpus file into questions.

    Accepts a JSON array of question records, or an object
    {"texto_apoio": ..., "questoes": [...]} whose reading text is attached
    to every question of the batch. Invalid records are skipped.
    """
    supporting_text = None
    if isinstance(payload, dict):
        supporting_text = payload.get("texto_apoio")
        payload = payload.get("questoes")
    if not isinstance(payload, list):
        raise ValueError(f"{source}: expected a list of questions, got {type(payload).__name__}")

    questions = []
    for i, raw in enumerate(payload):
        try:
            questions.append(Question.from_dict(raw, supporting_text=supporting_text))
        except InvalidQuestion as e:
            logger.warning("%s: skipping record %d: %s", source, i, e)
    return questions


class QuestionRepository:
    """Loads the question corpus once per process and serves it from memory."""

    def __init__(self, sources: Optional[Sequence[str]] = None, timeout: Optional[float] = None):
        self.sources = list(sources) if sources is not None else config.corpus_sources()
        self.timeout = timeout if timeout is not None else config.fetch_timeout()
        self._cache: Optional[List[Question]] = None

    @property
    def is_loaded(self) -> bool:
        return self._cache is not None

    async def _load_source(self, source: str) -> List[Question]:
        try:
            payload = await asyncio.to_thread(_fetch_source, source, self.timeout)
            questions = parse_source(payload, source)
        except (OSError, ValueError, requests.RequestException) as e:
            logger.error("Error loading %s: %s", source, e)
            return []
        logger.debug("Loaded %d questions from %s", len(questions), source)
        return questions

    async def load_all(self) -> List[Question]:
        """Return the full corpus, reading the sources on first use only."""
        if self._cache is not None:
            logger.debug("Corpus cache hit (%d questions)", len(self._cache))
            return self._cache

        per_source = await asyncio.gather(*(self._load_source(s) for s in self.sources))
        corpus = [q for batch in per_source for q in batch]
        logger.info("Loaded %d questions from %d sources", len(corpus), len(self.sources))
        if not corpus:
            # Nothing usable: leave the cache empty so the next call retries.
            logger.warning("Question corpus is empty")
            return corpus
        self._cache = corpus
        return corpus

    async def reload(self) -> List[Question]:
        self._cache = None
        return await self.load_all()

    def load_all_sync(self) -> List[Question]:
        """Blocking wrapper for scripts and Streamlit callbacks."""
        if self._cache is not None:
            return self._cache
        return asyncio.run(self.load_all())


_repository: Optional[QuestionRepository] = None


def get_repository() -> QuestionRepository:
    """Get or create the process-wide repository."""
    global _repository
    if _repository is None:
        _repository = QuestionRepository()
    return _repository


def reset_repository(repository: Optional[QuestionRepository] = None) -> None:
    """Replace (or drop) the process-wide repository; used by tests."""
    global _repository
    _repository = repository


def filter_by_subject(corpus: Sequence[Question], subject: str) -> List[Question]:
    """Questions whose normalized subject equals `subject`, in corpus order."""
    return [q for q in corpus if normalize_subject(q.subject) == subject]


def shuffle(items: Sequence, rng: Optional[random.Random] = None) -> list:
    """Uniformly shuffled copy of `items` (random.shuffle is Fisher-Yates)."""
    out = list(items)
    (rng or random).shuffle(out)
    return out


def sample_random(corpus: Sequence[Question], count: int, rng: Optional[random.Random] = None) -> List[Question]:
    """Uniform random sample of min(count, len(corpus)) questions."""
    if count <= 0:
        return []
    return shuffle(corpus, rng)[:count]
