"""
Firestore persistence for articles.

Every write is field-level: content edits go through ``update()`` on the
changed paths only, and counters use server-side transforms, so a like or a
view never gets overwritten by a concurrent content save (and vice versa).
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple

from google.api_core.exceptions import NotFound
from google.cloud.firestore import (
    ArrayRemove,
    ArrayUnion,
    DELETE_FIELD,
    Increment,
    Query,
    transactional,
)

from journal.exceptions import NotFoundError
from journal.models.article import (
    Article,
    ArticleStatus,
    SharePlatform,
    firestore_article_to_model,
)
from journal.services.firebase_service import FirebaseService, firebase_service
from journal.utils.text import MAX_KEYWORD_QUERY_TERMS

logger = logging.getLogger(__name__)

ARTICLES = "articles"

# Re-exported so callers can drop a nested field without importing the SDK
REMOVE_FIELD = DELETE_FIELD


class ArticleRepository:
    def __init__(self, firebase: FirebaseService):
        self._firebase = firebase

    @property
    def collection(self):
        return self._firebase.db.collection(ARTICLES)

    @staticmethod
    def _to_models(docs) -> List[Article]:
        articles = []
        for doc_id, data in docs:
            try:
                articles.append(firestore_article_to_model(data, doc_id))
            except Exception as e:
                logger.warning("Skipping malformed article %s: %s", doc_id, e)
        return articles

    def _stream(self, query) -> List[Tuple[str, Dict[str, Any]]]:
        return [(doc.id, doc.to_dict()) for doc in query.stream()]

    # ============================================
    # READS
    # ============================================

    async def get(self, article_id: str) -> Optional[Article]:
        doc = await asyncio.to_thread(self.collection.document(article_id).get)
        if not doc.exists:
            return None
        return firestore_article_to_model(doc.to_dict(), doc.id)

    async def get_or_raise(self, article_id: str) -> Article:
        article = await self.get(article_id)
        if article is None:
            raise NotFoundError("Article not found")
        return article

    async def get_by_slug(self, slug: str) -> Optional[Article]:
        query = self.collection.where("slug", "==", slug).limit(1)
        found = self._to_models(await asyncio.to_thread(self._stream, query))
        return found[0] if found else None

    async def field_value_taken(
        self, field_path: str, value: str, exclude_id: Optional[str] = None
    ) -> bool:
        """True if another article already stores ``value`` at ``field_path``."""
        query = self.collection.where(field_path, "==", value)
        docs = await asyncio.to_thread(self._stream, query)
        return any(doc_id != exclude_id for doc_id, _ in docs)

    async def list_page(
        self,
        filters: Dict[str, Any],
        page: int,
        limit: int,
        order_by: str = "publishedAt",
    ) -> Tuple[List[Article], int]:
        docs, total = await self._firebase.query_collection(
            ARTICLES,
            filters=filters,
            order_by=order_by,
            direction=Query.DESCENDING,
            limit=limit,
            offset=(page - 1) * limit,
            get_total_count=True,
        )
        return self._to_models(docs), total

    async def find_by_author(self, author_id: str) -> List[Article]:
        query = self.collection.where("author", "==", author_id)
        return self._to_models(await asyncio.to_thread(self._stream, query))

    async def find_published(self, category: Optional[str] = None) -> List[Article]:
        query = self.collection.where("status", "==", ArticleStatus.PUBLISHED.value)
        if category:
            query = query.where("category", "==", category)
        return self._to_models(await asyncio.to_thread(self._stream, query))

    async def find_published_by_keywords(
        self, tokens: List[str], category: Optional[str] = None
    ) -> List[Article]:
        """Published articles whose keyword index contains any of ``tokens``."""
        if not tokens:
            return []
        query = self.collection.where("status", "==", ArticleStatus.PUBLISHED.value)
        if category:
            query = query.where("category", "==", category)
        query = query.where(
            "searchKeywords", "array_contains_any", tokens[:MAX_KEYWORD_QUERY_TERMS])
        return self._to_models(await asyncio.to_thread(self._stream, query))

    # ============================================
    # WRITES
    # ============================================

    async def insert(self, data: Dict[str, Any]) -> Article:
        doc_ref = self.collection.document()
        await asyncio.to_thread(doc_ref.set, data)
        return firestore_article_to_model(data, doc_ref.id)

    async def update_fields(self, article_id: str, fields: Dict[str, Any]) -> Article:
        doc_ref = self.collection.document(article_id)
        try:
            await asyncio.to_thread(doc_ref.update, fields)
        except NotFound:
            raise NotFoundError("Article not found")
        return await self.get_or_raise(article_id)

    async def delete(self, article_id: str) -> None:
        await asyncio.to_thread(self.collection.document(article_id).delete)

    # ============================================
    # COUNTERS
    # ============================================

    async def increment_views(self, article_id: str) -> None:
        doc_ref = self.collection.document(article_id)
        await asyncio.to_thread(doc_ref.update, {"views": Increment(1)})

    async def toggle_like(self, article_id: str, user_id: str) -> Tuple[bool, int]:
        """Flip ``user_id``'s like; returns (liked, like count) after the flip."""
        return await asyncio.to_thread(self._toggle_like_sync, article_id, user_id)

    def _toggle_like_sync(self, article_id: str, user_id: str) -> Tuple[bool, int]:
        db = self._firebase.db
        doc_ref = db.collection(ARTICLES).document(article_id)

        # Membership test and both writes commit together; Firestore retries
        # the function on contention, so concurrent toggles cannot double count.
        @transactional
        def _apply(transaction):
            snapshot = doc_ref.get(transaction=transaction)
            if not snapshot.exists:
                raise NotFoundError("Article not found")
            likes = (snapshot.to_dict() or {}).get("likes") or {}
            users = likes.get("users") or []
            count = likes.get("count") or 0
            if user_id in users:
                transaction.update(doc_ref, {
                    "likes.users": ArrayRemove([user_id]),
                    "likes.count": Increment(-1),
                })
                return False, max(count - 1, 0)
            transaction.update(doc_ref, {
                "likes.users": ArrayUnion([user_id]),
                "likes.count": Increment(1),
            })
            return True, count + 1

        return _apply(db.transaction())

    async def increment_share(self, article_id: str, platform: SharePlatform) -> Article:
        return await self.update_fields(article_id, {
            "shares.count": Increment(1),
            f"shares.platforms.{platform.value}": Increment(1),
        })


article_repository = ArticleRepository(firebase_service)
