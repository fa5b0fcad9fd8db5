"""Pattern-based question mining and classification.

Everything here is a pure function of its text input: no browser, no network,
no sleeping. Extend the keyword tables below to tune classification.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional, Pattern, Sequence
from uuid import uuid4

from pydantic import ValidationError

from .errors import ExtractionError
from .models import CrawledQuestion, Difficulty, RawItem, now_millis

LOGGER = logging.getLogger(__name__)

RELEVANCE_KEYWORDS = ("面试", "面经", "笔试", "题目", "问题", "算法", "技术")

# Applied in this order; earlier patterns win when two yield the same text.
QUESTION_PATTERNS: Sequence[Pattern[str]] = (
    re.compile(r"\d+[.、]\s*([^。？\n]{10,200}[？?])"),
    re.compile(r"(?:问题?|题目)[:：]\s*([^。？\n]{10,200}[？?])"),
    re.compile(r"((?:什么是|如何|怎样|为什么|解释)[^。？?\n]{10,200})"),
    re.compile(r"面试官?问[:：]?\s*([^。？\n]{10,200}[？?])"),
)

MAX_CANDIDATES_PER_ITEM = 5
MIN_LENGTH = 10
MAX_LENGTH = 200

_LEADING_NOISE = re.compile(r"^[^一-龥a-zA-Z]+")
_TRAILING_NOISE = re.compile(r"[^一-龥a-zA-Z\s?？]+$")
_INTERROGATIVE_START = re.compile(r"^(什么|如何|怎样|为什么|哪些|怎么|是否)")

HARD_MARKERS = ("实现", "原理", "底层", "源码", "优化", "架构", "设计")
EASY_MARKERS = ("什么是", "简述", "概念", "定义", "区别")

# (label, markers) checked in order; the first hit decides the type.
QUESTION_TYPES = (
    ("算法题", ("算法", "数据结构")),
    ("项目经验", ("项目", "经验")),
    ("原理题", ("原理", "底层")),
    ("系统设计", ("设计", "架构")),
)
DEFAULT_QUESTION_TYPE = "技术问题"

COMPANIES = ("阿里", "腾讯", "字节", "百度", "美团", "京东", "网易", "华为", "小米", "滴滴")

TECH_TAGS = ("javascript", "react", "vue", "java", "spring", "mysql", "redis", "docker")
MAX_CONTENT_TAGS = 3


def is_interview_related(text: str) -> bool:
    lowered = text.lower()
    return any(keyword in lowered for keyword in RELEVANCE_KEYWORDS)


def clean_question(candidate: str) -> Optional[str]:
    """Normalise one matched clause; return None when it is not a usable question."""
    cleaned = " ".join(candidate.split())
    cleaned = _LEADING_NOISE.sub("", cleaned)
    cleaned = _TRAILING_NOISE.sub("", cleaned).strip()

    if not cleaned.endswith(("?", "？")) and _INTERROGATIVE_START.match(cleaned):
        cleaned += "？"

    if MIN_LENGTH <= len(cleaned) <= MAX_LENGTH:
        return cleaned
    return None


def extract_questions(title: str, content: str) -> List[str]:
    """Apply the ordered patterns to title and content, returning unique questions."""
    text = f"{title}\n{content}"
    found: List[str] = []

    for pattern in QUESTION_PATTERNS:
        for match in pattern.finditer(text):
            if len(found) >= MAX_CANDIDATES_PER_ITEM:
                return found
            question = clean_question(match.group(1))
            if question and question not in found:
                found.append(question)

    return found


def infer_difficulty(question: str) -> Difficulty:
    if any(marker in question for marker in HARD_MARKERS):
        return "hard"
    if any(marker in question for marker in EASY_MARKERS):
        return "easy"
    return "medium"


def infer_question_type(question: str) -> str:
    for label, markers in QUESTION_TYPES:
        if any(marker in question for marker in markers):
            return label
    return DEFAULT_QUESTION_TYPE


def extract_company(text: str) -> Optional[str]:
    for company in COMPANIES:
        if company in text:
            return company
    return None


def extract_tags(content: str) -> List[str]:
    lowered = content.lower()
    return [keyword for keyword in TECH_TAGS if keyword in lowered][:MAX_CONTENT_TAGS]


def generate_question_id() -> str:
    return f"q_{now_millis()}_{uuid4().hex[:9]}"


class QuestionExtractor:
    """Turns raw search-result items into classified `CrawledQuestion` objects."""

    def __init__(
        self,
        *,
        id_factory: Callable[[], str] = generate_question_id,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._id_factory = id_factory
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def build_questions(
        self,
        item: RawItem,
        *,
        category: str,
        keyword: str,
        source: str,
    ) -> List[CrawledQuestion]:
        """Extract and classify the questions contained in one raw item."""
        combined = item.text
        if not is_interview_related(combined):
            return []

        company = extract_company(combined)
        tags: List[str] = []
        for tag in [keyword, *extract_tags(item.content)]:
            if tag and tag not in tags:
                tags.append(tag)

        questions: List[CrawledQuestion] = []
        for text in extract_questions(item.title, item.content):
            try:
                questions.append(
                    CrawledQuestion(
                        id=self._id_factory(),
                        question=text,
                        category=category,
                        difficulty=infer_difficulty(text),
                        type=infer_question_type(text),
                        source=source,
                        company=company,
                        tags=list(tags),
                        url=item.url or None,
                        crawled_at=self._clock(),
                    )
                )
            except ValidationError as exc:
                raise ExtractionError(f"Rejected candidate {text!r}: {exc}", url=item.url) from exc
        return questions

    def extract_from_items(
        self,
        items: Iterable[RawItem],
        *,
        category: str,
        keyword: str,
        source: str,
    ) -> List[CrawledQuestion]:
        """Process every item; a failure on one item never affects its siblings."""
        collected: List[CrawledQuestion] = []
        for index, item in enumerate(items):
            try:
                collected.extend(
                    self.build_questions(item, category=category, keyword=keyword, source=source)
                )
            except Exception as exc:
                LOGGER.debug("Skipping item %d from %s: %s", index, source, exc)
        return collected
