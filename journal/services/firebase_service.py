"""
Firebase service for Firestore and Storage operations
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from datetime import timedelta
from typing import Any, Dict, List, Optional

import firebase_admin
from firebase_admin import credentials, firestore

from journal.config import settings
from journal.models.user import User, firestore_user_to_model

logger = logging.getLogger(__name__)


class FirebaseService:
    """Service for Firebase operations"""

    _instance = None

    def __new__(cls):
        """Singleton pattern to ensure only one Firebase instance"""
        if cls._instance is None:
            cls._instance = super(FirebaseService, cls).__new__(cls)
            cls._instance._db = None
        return cls._instance

    @property
    def db(self):
        """Firestore client, created on first use."""
        if self._db is None:
            self._initialize_firebase()
            self._db = firestore.client()
        return self._db

    @db.setter
    def db(self, value):
        self._db = value

    def _initialize_firebase(self):
        """Initialize Firebase Admin SDK with credentials"""
        try:
            # Check if already initialized
            firebase_admin.get_app()
            logger.debug("Firebase already initialized")
        except ValueError:
            if settings.DEV_MODE and settings.FIREBASE_EMULATOR_HOST:
                # Use emulator for development
                os.environ["FIRESTORE_EMULATOR_HOST"] = settings.FIREBASE_EMULATOR_HOST
                firebase_admin.initialize_app()
                logger.info(
                    "Firebase initialized with emulator: %s", settings.FIREBASE_EMULATOR_HOST)
                return

            if settings.FIREBASE_CREDENTIALS_JSON:
                try:
                    cred = credentials.Certificate(
                        json.loads(settings.FIREBASE_CREDENTIALS_JSON))
                except json.JSONDecodeError as e:
                    logger.error("Error parsing FIREBASE_CREDENTIALS_JSON: %s", e)
                    raise
                logger.info(
                    "Firebase initialized with credentials from FIREBASE_CREDENTIALS_JSON")
            else:
                # Fallback to file path
                cred = credentials.Certificate(settings.FIREBASE_CREDENTIALS_PATH)
                logger.info(
                    "Firebase initialized with credentials from %s", settings.FIREBASE_CREDENTIALS_PATH)

            options = {}
            if settings.FIREBASE_STORAGE_BUCKET:
                options["storageBucket"] = settings.FIREBASE_STORAGE_BUCKET
            firebase_admin.initialize_app(cred, options)
            logger.info("Firebase Admin SDK initialization successful.")

    # ============================================
    # USER LOOKUP
    # ============================================

    async def get_user_by_uid(self, uid: str) -> Optional[User]:
        """Get user by UID from the 'users' collection."""
        doc = await asyncio.to_thread(self.db.collection("users").document(uid).get)
        if not doc.exists:
            return None
        return firestore_user_to_model(doc.to_dict(), uid)

    # ============================================
    # STORAGE HELPERS
    # ============================================

    async def upload_file(self, path: str, content: bytes, content_type: str) -> str:
        """Upload bytes to Firebase Storage and return a usable URL.

        Tries to make the object public and return `public_url`. If that is
        not allowed a signed URL is attempted, then a gs:// path.
        """
        # import here to avoid module-level dependency at import time
        from firebase_admin import storage as fb_storage

        self._initialize_firebase()

        def _upload():
            bucket = fb_storage.bucket()
            blob = bucket.blob(path)
            blob.upload_from_string(content, content_type=content_type)
            try:
                blob.make_public()
                return blob.public_url
            except Exception:
                try:
                    return blob.generate_signed_url(expiration=timedelta(days=7))
                except Exception:
                    return f"gs://{bucket.name}/{path}"

        # Run blocking upload in a thread to avoid blocking the event loop
        return await asyncio.to_thread(_upload)

    async def delete_file(self, path: str) -> None:
        from firebase_admin import storage as fb_storage

        self._initialize_firebase()

        def _delete():
            fb_storage.bucket().blob(path).delete()

        await asyncio.to_thread(_delete)

    # ============================================
    # GENERIC QUERY OPERATIONS
    # ============================================

    async def query_collection(
        self,
        collection_name: str,
        filters: Optional[List[tuple]] = None,
        order_by: Optional[str] = None,
        direction: str = firestore.Query.ASCENDING,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        get_total_count: bool = False,
    ) -> tuple[List[tuple[str, Dict[str, Any]]], int]:
        """
        Queries a Firestore collection with filters, ordering, and pagination.

        Args:
            collection_name: The name of the Firestore collection.
            filters: A list of (field, op, value) tuples, or a {field: value} dict for equality.
            order_by: The field to order the results by.
            direction: The order direction ('ASCENDING' or 'DESCENDING').
            limit: The maximum number of documents to return.
            offset: The number of documents to skip.
            get_total_count: If True, also count the documents matching the filters
                (without limit/offset).

        Returns:
            A tuple of the (document_id, document_data) list and the total count
            (0 if get_total_count is False).
        """
        query = self.db.collection(collection_name)

        if filters:
            # allow dictionary of {field: value} which defaults to '==' comparison.
            if isinstance(filters, dict):
                filters = [(k, "==", v) for k, v in filters.items()]

            for f in filters:
                if len(f) != 3:
                    raise ValueError(
                        f"Invalid filter format: {f}. Expected (field, op, value)")
                query = query.where(f[0], f[1], f[2])

        def _get_stream_data(q):
            return [(doc.id, doc.to_dict()) for doc in q.stream()]

        total_count = 0
        if get_total_count:
            # Streams the matching documents; fine at journal scale.
            total_count = len(await asyncio.to_thread(_get_stream_data, query))

        if order_by:
            query = query.order_by(order_by, direction=direction)
        if offset is not None and offset > 0:
            query = query.offset(offset)
        if limit:
            query = query.limit(limit)

        docs = await asyncio.to_thread(_get_stream_data, query)
        return docs, total_count


# Global Firebase service instance
firebase_service = FirebaseService()
