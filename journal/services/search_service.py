"""
Cascading article search.

Three strategies are tried in order, each only when the previous one found
nothing: the keyword index (``text_search``), an OR-regex over the full text
(``regex_search``) and a looser regex over titles, excerpts and tags
(``permissive_search``). A failing tier is logged and skipped unless it is the
last one attempted, in which case ``SearchTierError`` is raised.
"""

import logging
import math
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Protocol, Sequence

from journal.config import settings
from journal.exceptions import SearchTierError, ValidationError
from journal.models.article import Article, Category
from journal.utils.text import (
    compile_any_word_pattern,
    split_query_words,
    tokenize,
    unique_tokens,
)

logger = logging.getLogger(__name__)

TEXT_SEARCH = "text_search"
REGEX_SEARCH = "regex_search"
PERMISSIVE_SEARCH = "permissive_search"

FIELD_WEIGHTS = {"title": 10, "tags": 8, "excerpt": 5, "body": 1}


class ArticleCorpus(Protocol):
    async def find_published(self, category: Optional[str] = None) -> List[Article]: ...

    async def find_published_by_keywords(
        self, tokens: List[str], category: Optional[str] = None) -> List[Article]: ...


@dataclass(frozen=True)
class SearchQuery:
    text: str
    category: Optional[str] = None
    page: int = 1
    limit: int = 10


class TierState(str, Enum):
    NOT_TRIED = "not_tried"
    EMPTY = "empty"
    NON_EMPTY = "non_empty"
    FAILED = "failed"


@dataclass
class TierOutcome:
    name: str
    state: TierState = TierState.NOT_TRIED
    count: int = 0


@dataclass
class SearchOutcome:
    articles: List[Article]
    total_count: int
    page: int
    page_count: int
    strategy_used: str
    query: str
    tiers: List[TierOutcome] = field(default_factory=list)


StrategyFn = Callable[[SearchQuery, ArticleCorpus], Awaitable[List[Article]]]


@dataclass(frozen=True)
class SearchStrategy:
    name: str
    run: StrategyFn


# ============================================
# FIELD EXTRACTION
# ============================================

def _titles(article: Article) -> List[str]:
    return [t.title for _, t in article.translations.items()]


def _excerpts(article: Article) -> List[str]:
    return [t.excerpt for _, t in article.translations.items()]


def _bodies(article: Article) -> List[str]:
    texts = []
    for _, translation in article.translations.items():
        texts.extend(translation.body_texts())
    return texts


def _published_sort_key(article: Article) -> float:
    return article.published_at.timestamp() if article.published_at else 0.0


def sort_by_recency(articles: Sequence[Article]) -> List[Article]:
    return sorted(articles, key=_published_sort_key, reverse=True)


def score_article(article: Article, tokens: Sequence[str]) -> int:
    """Weighted token frequency over titles, tags, excerpts and body text."""
    fields = {
        "title": _titles(article),
        "tags": article.tags,
        "excerpt": _excerpts(article),
        "body": _bodies(article),
    }
    score = 0
    for name, texts in fields.items():
        counts = Counter(tok for text in texts for tok in tokenize(text))
        score += FIELD_WEIGHTS[name] * sum(counts[tok] for tok in tokens)
    return score


# ============================================
# STRATEGIES
# ============================================

async def text_search(query: SearchQuery, corpus: ArticleCorpus) -> List[Article]:
    tokens = unique_tokens([query.text])
    if not tokens:
        return []
    candidates = await corpus.find_published_by_keywords(tokens, query.category)
    scored = [(score_article(a, tokens), a) for a in candidates]
    scored = [(s, a) for s, a in scored if s > 0]
    scored.sort(key=lambda pair: (pair[0], _published_sort_key(pair[1])), reverse=True)
    return [a for _, a in scored]


async def regex_search(query: SearchQuery, corpus: ArticleCorpus) -> List[Article]:
    pattern = compile_any_word_pattern(split_query_words(query.text))
    if pattern is None:
        return []
    candidates = await corpus.find_published(query.category)
    hits = [
        a for a in candidates
        if any(pattern.search(t) for t in _titles(a) + _excerpts(a) + _bodies(a) + a.tags)
    ]
    return sort_by_recency(hits)


async def permissive_search(query: SearchQuery, corpus: ArticleCorpus) -> List[Article]:
    pattern = compile_any_word_pattern(split_query_words(query.text, min_length=2))
    if pattern is None:
        return []
    candidates = await corpus.find_published(query.category)
    hits = [
        a for a in candidates
        if any(pattern.search(t) for t in _titles(a) + _excerpts(a) + a.tags)
    ]
    return sort_by_recency(hits)


DEFAULT_STRATEGIES = (
    SearchStrategy(TEXT_SEARCH, text_search),
    SearchStrategy(REGEX_SEARCH, regex_search),
    SearchStrategy(PERMISSIVE_SEARCH, permissive_search),
)


# ============================================
# COMBINATOR
# ============================================

class SearchEngine:
    def __init__(
        self,
        corpus: ArticleCorpus,
        strategies: Sequence[SearchStrategy] = DEFAULT_STRATEGIES,
        max_limit: Optional[int] = None,
    ):
        self.corpus = corpus
        self.strategies = list(strategies)
        self.max_limit = max_limit or settings.SEARCH_MAX_LIMIT

    def build_query(
        self, text: Optional[str], category: Optional[str], page: int, limit: int
    ) -> SearchQuery:
        text = (text or "").strip()
        if not text:
            raise ValidationError.for_field("q", "Search query is required")
        if category:
            try:
                category = Category(category).value
            except ValueError:
                raise ValidationError.for_field("category", f"Invalid category: {category}")
        if page < 1:
            raise ValidationError.for_field("page", "Page must be at least 1")
        if limit < 1:
            raise ValidationError.for_field("limit", "Limit must be at least 1")
        return SearchQuery(text=text, category=category or None, page=page,
                           limit=min(limit, self.max_limit))

    async def search(
        self,
        text: Optional[str],
        category: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> SearchOutcome:
        query = self.build_query(text, category, page, limit)
        tiers = [TierOutcome(s.name) for s in self.strategies]
        matched: List[Article] = []
        strategy_used = self.strategies[-1].name

        for index, strategy in enumerate(self.strategies):
            outcome = tiers[index]
            strategy_used = strategy.name
            try:
                matched = await strategy.run(query, self.corpus)
            except Exception as e:
                outcome.state = TierState.FAILED
                if index == len(self.strategies) - 1:
                    logger.error("Search tier %s failed for %r: %s", strategy.name, query.text, e)
                    raise SearchTierError(strategy.name) from e
                logger.warning("Search tier %s failed, falling back: %s", strategy.name, e)
                matched = []
                continue

            outcome.count = len(matched)
            outcome.state = TierState.NON_EMPTY if matched else TierState.EMPTY
            if matched:
                break

        logger.info("Search %r resolved by %s with %d result(s)",
                    query.text, strategy_used, len(matched))
        start = (query.page - 1) * query.limit
        return SearchOutcome(
            articles=matched[start:start + query.limit],
            total_count=len(matched),
            page=query.page,
            page_count=math.ceil(len(matched) / query.limit),
            strategy_used=strategy_used,
            query=query.text,
            tiers=tiers,
        )
