"""
Text helpers shared by the article model and the search engine
"""

import re
from typing import Iterable, List, Optional

_TOKEN_RE = re.compile(r"\w+", re.UNICODE)

# Firestore caps array_contains_any at 30 comparison values
MAX_KEYWORD_QUERY_TERMS = 30


def tokenize(text: Optional[str]) -> List[str]:
    """Split text into casefolded word tokens (works for Latin and Arabic script)."""
    if not text:
        return []
    return _TOKEN_RE.findall(text.casefold())


def unique_tokens(texts: Iterable[Optional[str]]) -> List[str]:
    seen = set()
    out = []
    for text in texts:
        for token in tokenize(text):
            if token not in seen:
                seen.add(token)
                out.append(token)
    return out


def build_search_keywords(translations, tags: Iterable[str]) -> List[str]:
    """Keyword array stored on each article document for the indexed search tier.

    Covers titles, excerpts and content block text of every translation plus
    the tags, which are exactly the fields the indexed tier scores.
    """
    texts: List[Optional[str]] = []
    for _, translation in translations.items():
        texts.append(translation.title)
        texts.append(translation.excerpt)
        texts.extend(translation.body_texts())
    texts.extend(tags or [])
    return sorted(unique_tokens(texts))


def split_query_words(query: str, min_length: int = 1) -> List[str]:
    """Whitespace split; words shorter than ``min_length`` are dropped."""
    return [w for w in query.split() if len(w) >= min_length]


def compile_any_word_pattern(words: List[str]) -> Optional[re.Pattern]:
    """Case-insensitive alternation matching any of ``words`` as a substring."""
    if not words:
        return None
    return re.compile("|".join(re.escape(w) for w in words), re.IGNORECASE)
