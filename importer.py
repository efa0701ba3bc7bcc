"""Load the configured question files and report per-subject availability against the mock exam quotas."""
import argparse
import logging
from collections import Counter

from simulado.composer import MIN_SIMULATION_QUESTIONS, SIMULATION_SIZE
from simulado.loader import QuestionRepository
from simulado.subjects import SIMULATION_QUOTAS, normalize_subject


def availability(corpus) -> list[dict]:
    """One row per quota bucket: subject, available, quota, missing."""
    counts = Counter(normalize_subject(q.subject) for q in corpus)
    return [
        {
            "subject": subject,
            "available": counts.get(subject, 0),
            "quota": quota,
            "missing": max(0, quota - counts.get(subject, 0)),
        }
        for subject, quota in SIMULATION_QUOTAS
    ]


def uncatalogued(corpus) -> Counter:
    """Subjects that fall outside the quota buckets, with counts."""
    buckets = {s for s, _ in SIMULATION_QUOTAS}
    return Counter(s for s in (normalize_subject(q.subject) for q in corpus) if s not in buckets)


def run_report(sources: list[str] | None = None):
    repo = QuestionRepository(sources=sources or None)
    corpus = repo.load_all_sync()
    print(f"Total questions: {len(corpus)} from {len(repo.sources)} sources")
    rows = availability(corpus)
    for row in rows:
        flag = "" if not row["missing"] else f"  (short by {row['missing']})"
        print(f"  {row['subject']:<22} {row['available']:>5} / {row['quota']}{flag}")
    extra = uncatalogued(corpus)
    if extra:
        print("Outside the exam buckets:")
        for subject, n in extra.most_common():
            print(f"  {subject:<22} {n:>5}")
    composable = SIMULATION_SIZE - sum(r["missing"] for r in rows)
    if composable >= SIMULATION_SIZE:
        print(f"A full {SIMULATION_SIZE}-question mock exam can be composed.")
    elif composable >= MIN_SIMULATION_QUESTIONS:
        print(f"Mock exams will be short: {composable}/{SIMULATION_SIZE}.")
    else:
        print(f"Not enough questions for a mock exam: {composable}/{SIMULATION_SIZE}.")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    parser = argparse.ArgumentParser(description="Check question files against the mock exam quotas.")
    parser.add_argument(
        "sources",
        nargs="*",
        help="JSON files or URLs (default: SIMULADO_SOURCES or the built-in list under SIMULADO_DATA_DIR)",
    )
    args = parser.parse_args()
    run_report(args.sources)
