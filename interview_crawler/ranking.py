"""Cross-site deduplication and relevance ordering."""

from __future__ import annotations

from typing import Iterable, List

from .models import CrawledQuestion


def dedupe_questions(questions: Iterable[CrawledQuestion]) -> List[CrawledQuestion]:
    """Keep the first question for each normalised text, preserving input order."""
    seen = set()
    unique: List[CrawledQuestion] = []
    for question in questions:
        key = question.dedup_key
        if key in seen:
            continue
        seen.add(key)
        unique.append(question)
    return unique


def rank_questions(questions: Iterable[CrawledQuestion]) -> List[CrawledQuestion]:
    """Company-attributed questions first, then by descending tag count.

    `sorted` is stable, so ties keep their crawl order.
    """
    return sorted(questions, key=lambda q: (q.company is None, -len(q.tags)))


def dedupe_and_rank(questions: Iterable[CrawledQuestion], max_questions: int) -> List[CrawledQuestion]:
    if max_questions <= 0:
        return []
    return rank_questions(dedupe_questions(questions))[:max_questions]
