import asyncio
import logging
from typing import Dict, Iterable

from journal.services.firebase_service import FirebaseService, firebase_service

logger = logging.getLogger(__name__)

COMMENTS = "comments"
ACTIVE = "active"


class CommentService:
    """Read-side view of the comments collection (comments are written elsewhere)."""

    def __init__(self, firebase: FirebaseService):
        self._firebase = firebase

    def _active_query(self, article_id: str):
        return (self._firebase.db.collection(COMMENTS)
                .where("articleId", "==", article_id)
                .where("status", "==", ACTIVE))

    async def count_active(self, article_id: str) -> int:
        query = self._active_query(article_id)
        return await asyncio.to_thread(lambda: sum(1 for _ in query.stream()))

    async def count_active_many(self, article_ids: Iterable[str]) -> Dict[str, int]:
        ids = list(dict.fromkeys(article_ids))
        counts = await asyncio.gather(*(self.count_active(i) for i in ids))
        return dict(zip(ids, counts))

    async def delete_for_article(self, article_id: str) -> int:
        """Remove every comment of a deleted article; returns how many went."""
        query = self._firebase.db.collection(COMMENTS).where("articleId", "==", article_id)

        def _delete():
            removed = 0
            for doc in query.stream():
                doc.reference.delete()
                removed += 1
            return removed

        removed = await asyncio.to_thread(_delete)
        if removed:
            logger.info("Deleted %d comment(s) of article %s", removed, article_id)
        return removed


comment_service = CommentService(firebase_service)
