"""
Article lifecycle: authoring, moderation, reading and engagement.

Routes hand this service already-authenticated users and raw form values; all
validation, permission checks and persistence decisions happen here and are
reported through ``journal.exceptions``.
"""

import json
import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError as PydanticValidationError

from journal.config import settings
from journal.exceptions import (
    AuthorizationError,
    NotFoundError,
    UpstreamServiceError,
    ValidationError,
)
from journal.models.article import (
    Article,
    ArticleStatus,
    Category,
    ContentBlockType,
    Shares,
    SharePlatform,
    TranslationSet,
    article_model_to_firestore,
    make_slug,
    normalize_tags,
    resolve_article_type,
    translations_to_firestore,
)
from journal.models.user import EDITORIAL_ROLES, User, utc_now
from journal.schemas.article import ArticleResponse, WriterStats
from journal.services.article_repository import (
    REMOVE_FIELD,
    ArticleRepository,
    article_repository,
)
from journal.services.comment_service import CommentService, comment_service
from journal.services.email_service import (
    EmailClient,
    NotifyResult,
    article_published_email,
)
from journal.services.file_service import FileService, file_service
from journal.services.image_resolver import ImageReferenceResolver, image_resolver
from journal.services.newsletter_service import NewsletterService, newsletter_service
from journal.services.storage_service import StorageService, storage_service
from journal.utils.presentation import absolute_url, format_display_date
from journal.utils.text import build_search_keywords

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp"}


@dataclass
class UploadedImage:
    filename: str
    content: bytes
    content_type: Optional[str] = None


# ============================================
# INPUT PARSING
# ============================================

def _from_pydantic(e: PydanticValidationError, prefix: str) -> ValidationError:
    errors = []
    for err in e.errors():
        path = ".".join(str(p) for p in err["loc"])
        errors.append({"field": f"{prefix}.{path}" if path else prefix, "message": err["msg"]})
    return ValidationError("Validation failed", errors=errors)


def parse_json_field(raw: Any, field: str) -> Any:
    """Multipart forms carry structured fields as JSON strings."""
    if not isinstance(raw, str):
        return raw
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        raise ValidationError.for_field(field, f"{field} must be valid JSON")


def parse_translations(raw: Any) -> TranslationSet:
    data = parse_json_field(raw, "translations")
    if not isinstance(data, dict):
        raise ValidationError.for_field("translations", "translations must be an object")
    try:
        return TranslationSet.model_validate(data)
    except PydanticValidationError as e:
        raise _from_pydantic(e, "translations")


def parse_category(raw: str) -> str:
    try:
        return Category(raw).value
    except ValueError:
        raise ValidationError.for_field("category", f"Invalid category: {raw}")


def parse_status(raw: str) -> str:
    try:
        return ArticleStatus(raw).value
    except ValueError:
        raise ValidationError.for_field("status", f"Invalid status: {raw}")


def parse_tags(raw: Any) -> List[str]:
    if raw is None or raw == "":
        return []
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            raw = raw.split(",")
    if not isinstance(raw, list):
        raise ValidationError.for_field("tags", "tags must be a list of strings")
    return normalize_tags(raw)


def media_urls(article: Article) -> List[str]:
    """Main image plus every image referenced from content blocks."""
    urls = [article.image] if article.image else []
    for _, translation in article.translations.items():
        for block in translation.content:
            if block.type in (ContentBlockType.IMAGE, ContentBlockType.IMAGE_GROUP):
                urls.extend(img.url for img in block.images if img.url)
    return list(dict.fromkeys(urls))


class ArticleService:
    def __init__(
        self,
        repository: ArticleRepository,
        storage: StorageService,
        files: FileService,
        comments: CommentService,
        newsletter: NewsletterService,
        email_client: EmailClient,
        resolver: ImageReferenceResolver = image_resolver,
    ):
        self.repository = repository
        self.storage = storage
        self.files = files
        self.comments = comments
        self.newsletter = newsletter
        self.email_client = email_client
        self.resolver = resolver

    # ============================================
    # HELPERS
    # ============================================

    @staticmethod
    def _validate_uploads(
        main_image: Optional[UploadedImage], content_images: Sequence[UploadedImage]
    ) -> None:
        if len(content_images) > settings.MAX_CONTENT_IMAGES:
            raise ValidationError.for_field(
                "contentImages",
                f"At most {settings.MAX_CONTENT_IMAGES} content images are allowed")
        uploads = [("image", main_image)] if main_image else []
        uploads += [("contentImages", img) for img in content_images]
        for field, image in uploads:
            if Path(image.filename or "").suffix.lower() not in ALLOWED_IMAGE_EXTENSIONS:
                raise ValidationError.for_field(
                    field, f"{image.filename}: only jpg, jpeg, png, gif and webp images are allowed")
            if len(image.content) > settings.MAX_UPLOAD_BYTES:
                raise ValidationError.for_field(field, f"{image.filename} exceeds the upload size limit")

    async def _ensure_unique(
        self,
        translations: TranslationSet,
        exclude_id: Optional[str] = None,
        check_en: bool = True,
        check_fr: bool = True,
    ) -> Optional[str]:
        """Reject duplicate titles or slugs; returns the slug when the English title was checked.

        Check-then-write: two concurrent saves of the same title can both pass.
        """
        slug = None
        if check_en:
            title = translations.en.title
            if await self.repository.field_value_taken("translations.en.title", title, exclude_id):
                raise ValidationError.for_field(
                    "translations.en.title", "An article with this English title already exists")
            slug = make_slug(title)
            if not slug:
                raise ValidationError.for_field(
                    "translations.en.title", "English title must contain letters or digits")
            if await self.repository.field_value_taken("slug", slug, exclude_id):
                raise ValidationError.for_field("slug", f"Slug '{slug}' is already in use")
        if check_fr and translations.fr is not None:
            if await self.repository.field_value_taken(
                    "translations.fr.title", translations.fr.title, exclude_id):
                raise ValidationError.for_field(
                    "translations.fr.title", "An article with this French title already exists")
        return slug

    async def _store_image(self, image: UploadedImage, folder: str = "articles") -> str:
        url = await self.storage.upload(image.content, image.filename, folder)
        if url is not None:
            return url
        try:
            return await self.files.save_upload(image.content, image.filename, folder)
        except OSError as e:
            logger.error("Local save of %s failed: %s", image.filename, e)
            raise UpstreamServiceError("Could not store uploaded image")

    async def _store_content_images(self, images: Sequence[UploadedImage]) -> List[str]:
        # Sequential so the URL order matches the upload order
        return [await self._store_image(img) for img in images]

    def _resolve_placeholders(
        self, translations: TranslationSet, urls: List[str], langs: Optional[Sequence[str]] = None
    ) -> TranslationSet:
        """Rewrite placeholders in ``langs`` (all languages when None); others pass through."""
        current = dict(translations.items())
        targets = current if langs is None else {
            lang: current[lang] for lang in langs if current.get(lang) is not None}
        result = self.resolver.resolve(targets, urls)
        current.update(result.translations)
        return TranslationSet.model_validate(
            {lang: t for lang, t in current.items() if t is not None})

    async def _discard_media(self, url: str) -> None:
        if self.storage.path_from_url(url):
            await self.storage.delete(url)
        elif self.files.get_file_path(url):
            await self.files.delete(url)

    async def _notify_subscribers(self, article: Article) -> Optional[NotifyResult]:
        try:
            recipients = await self.newsletter.verified_emails()
            subject, body = article_published_email(article)
            result = await self.email_client.notify(recipients, subject, body)
        except Exception as e:
            logger.error("Subscriber notification for article %s failed: %s", article.article_id, e)
            return None
        logger.info("Published-article email for %s: %s (%d sent, %d failed)",
                    article.article_id, result.status.value, result.sent, result.failed)
        return result

    def _check_can_modify(self, article: Article, user: User) -> None:
        if not article.can_be_modified_by(user):
            raise AuthorizationError("Not authorized to modify this article")

    # ============================================
    # PRESENTATION
    # ============================================

    async def present(
        self, articles: Sequence[Article], viewer: Optional[User] = None, lang: str = "en"
    ) -> List[ArticleResponse]:
        try:
            counts = await self.comments.count_active_many(a.article_id for a in articles)
        except Exception as e:
            logger.warning("Comment counts unavailable: %s", e)
            counts = {}
        viewer_uid = viewer.uid if viewer else None
        return [
            ArticleResponse(
                id=a.article_id,
                translations=a.translations,
                author=a.author,
                authorImage=absolute_url(a.author_image or settings.DEFAULT_AUTHOR_IMAGE),
                image=absolute_url(a.image),
                category=a.category,
                status=a.status,
                slug=a.slug,
                tags=a.tags or [],
                publishedAt=a.published_at,
                displayDate=format_display_date(a.published_at or a.created_at, lang),
                createdAt=a.created_at,
                updatedAt=a.updated_at,
                views=a.views or 0,
                likes=a.likes.count,
                comments=counts.get(a.article_id, 0),
                shares=a.shares,
                isLikedByCurrentUser=a.is_liked_by(viewer_uid),
            )
            for a in articles
        ]

    async def present_one(self, article: Article, viewer: Optional[User] = None,
                          lang: str = "en") -> ArticleResponse:
        return (await self.present([article], viewer, lang))[0]

    # ============================================
    # READS
    # ============================================

    async def list_articles(
        self,
        viewer: Optional[User] = None,
        category: Optional[str] = None,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Article], int, int]:
        """Returns (articles, total, total_pages). Writers and admins may filter by any status."""
        filters: Dict[str, Any] = {}
        if category:
            filters["category"] = parse_category(category)
        if viewer is not None and viewer.role in EDITORIAL_ROLES:
            if status:
                filters["status"] = parse_status(status)
        else:
            filters["status"] = ArticleStatus.PUBLISHED.value
        articles, total = await self.repository.list_page(filters, page, limit)
        return articles, total, math.ceil(total / limit)

    async def get_article(self, article_id: str, viewer: Optional[User] = None) -> Article:
        article = await self.repository.get_or_raise(article_id)
        if not article.can_be_viewed_by(viewer):
            raise AuthorizationError("Not authorized to view this article")
        return article

    async def get_article_by_slug(self, slug: str, viewer: Optional[User] = None) -> Article:
        article = await self.repository.get_by_slug(slug)
        if article is None:
            raise NotFoundError("Article not found")
        if not article.can_be_viewed_by(viewer):
            raise AuthorizationError("Not authorized to view this article")
        return article

    async def record_view(self, article_id: str) -> None:
        """Background view counter; failures are only logged."""
        try:
            await self.repository.increment_views(article_id)
        except Exception as e:
            logger.warning("View increment for %s failed: %s", article_id, e)

    async def get_articles_by_type(
        self, type_name: str, page: int = 1, limit: int = 10
    ) -> Tuple[List[Article], int, int]:
        category = resolve_article_type(type_name)
        if category is None:
            raise ValidationError.for_field("type", f"Invalid article type: {type_name}")
        filters = {"status": ArticleStatus.PUBLISHED.value, "category": category.value}
        articles, total = await self.repository.list_page(filters, page, limit)
        return articles, total, math.ceil(total / limit)

    async def writer_stats(self, author_id: str) -> WriterStats:
        articles = await self.repository.find_by_author(author_id)
        return WriterStats(
            totalArticles=len(articles),
            publishedArticles=sum(1 for a in articles if a.status == ArticleStatus.PUBLISHED),
            draftArticles=sum(1 for a in articles if a.status == ArticleStatus.DRAFT),
            archivedArticles=sum(1 for a in articles if a.status == ArticleStatus.ARCHIVED),
            totalViews=sum(a.views for a in articles),
            totalLikes=sum(a.likes.count for a in articles),
            totalShares=sum(a.shares.count for a in articles),
        )

    async def writer_drafts(
        self, author_id: str, page: int = 1, limit: int = 10
    ) -> Tuple[List[Article], int, int]:
        filters = {"author": author_id, "status": ArticleStatus.DRAFT.value}
        articles, total = await self.repository.list_page(filters, page, limit, order_by="updatedAt")
        return articles, total, math.ceil(total / limit)

    # ============================================
    # AUTHORING
    # ============================================

    async def create_article(
        self,
        author: User,
        translations: Any,
        category: str,
        image: Optional[UploadedImage],
        content_images: Sequence[UploadedImage] = (),
        status: Optional[str] = None,
        tags: Any = None,
    ) -> Article:
        translation_set = parse_translations(translations)
        category_value = parse_category(category)
        status_value = parse_status(status) if status else ArticleStatus.PUBLISHED.value
        tag_list = parse_tags(tags)
        if image is None:
            raise ValidationError.for_field("image", "Main article image is required")
        self._validate_uploads(image, content_images)
        slug = await self._ensure_unique(translation_set)

        image_url = await self._store_image(image)
        content_urls = await self._store_content_images(content_images)
        translation_set = self._resolve_placeholders(translation_set, content_urls)

        now = utc_now()
        article = Article(
            id="",
            translations=translation_set,
            author=author.uid,
            authorImage=author.profile_image or settings.DEFAULT_AUTHOR_IMAGE,
            image=image_url,
            category=category_value,
            status=status_value,
            publishedAt=now if status_value == ArticleStatus.PUBLISHED else None,
            tags=tag_list,
            slug=slug,
            createdAt=now,
            updatedAt=now,
        )
        try:
            created = await self.repository.insert(article_model_to_firestore(article))
        except Exception:
            logger.error("Insert of article '%s' failed; removing %d stored upload(s)",
                         slug, 1 + len(content_urls))
            for url in [image_url, *content_urls]:
                await self._discard_media(url)
            raise
        logger.info("Article %s created by %s (%s)", created.article_id, author.uid, status_value)
        if created.is_published:
            await self._notify_subscribers(created)
        return created

    async def update_article(
        self,
        article_id: str,
        user: User,
        translations: Any = None,
        category: Optional[str] = None,
        status: Optional[str] = None,
        tags: Any = None,
        image: Optional[UploadedImage] = None,
        content_images: Sequence[UploadedImage] = (),
    ) -> Article:
        article = await self.repository.get_or_raise(article_id)
        self._check_can_modify(article, user)

        fields: Dict[str, Any] = {}
        merged = article.translations
        changed_langs: List[str] = []
        if translations is not None:
            partial = parse_json_field(translations, "translations")
            if not isinstance(partial, dict):
                raise ValidationError.for_field("translations", "translations must be an object")
            current = translations_to_firestore(article.translations)
            for lang, value in partial.items():
                if value is None:
                    current.pop(lang, None)
                else:
                    current[lang] = value
            merged = parse_translations(current)
            changed_langs = list(partial)

        tag_list = parse_tags(tags) if tags is not None else article.tags
        category_value = parse_category(category) if category else None
        status_value = parse_status(status) if status else None
        self._validate_uploads(image, content_images)

        en_changed = merged.en.title != article.translations.en.title
        old_fr = article.translations.fr.title if article.translations.fr else None
        fr_changed = merged.fr is not None and merged.fr.title != old_fr
        if en_changed or fr_changed:
            slug = await self._ensure_unique(merged, exclude_id=article_id,
                                             check_en=en_changed, check_fr=fr_changed)
            if slug:
                fields["slug"] = slug

        if content_images:
            if translations is None:
                logger.info("Ignoring %d content image(s) sent without translations", len(content_images))
            else:
                # Uploads map onto the submitted languages only
                urls = await self._store_content_images(content_images)
                merged = self._resolve_placeholders(merged, urls, langs=changed_langs)

        if changed_langs:
            for lang in changed_langs:
                translation = getattr(merged, lang, None)
                fields[f"translations.{lang}"] = (
                    translation.model_dump(by_alias=True, exclude_none=True)
                    if translation is not None else REMOVE_FIELD)
        if tags is not None:
            fields["tags"] = tag_list
        if changed_langs or tags is not None:
            fields["searchKeywords"] = build_search_keywords(merged, tag_list)
        if category_value:
            fields["category"] = category_value
        if status_value:
            fields["status"] = status_value
            if status_value == ArticleStatus.PUBLISHED and article.published_at is None:
                fields["publishedAt"] = utc_now()
        old_image = None
        if image is not None:
            fields["image"] = await self._store_image(image)
            old_image = article.image

        fields["updatedAt"] = utc_now()
        updated = await self.repository.update_fields(article_id, fields)
        logger.info("Article %s updated by %s: %s", article_id, user.uid, sorted(fields))

        if old_image and old_image != updated.image:
            await self._discard_media(old_image)
        if updated.is_published and not article.is_published:
            await self._notify_subscribers(updated)
        return updated

    async def delete_article(self, article_id: str, user: User) -> None:
        article = await self.repository.get_or_raise(article_id)
        self._check_can_modify(article, user)
        await self.repository.delete(article_id)
        logger.info("Article %s deleted by %s", article_id, user.uid)
        try:
            await self.comments.delete_for_article(article_id)
        except Exception as e:
            logger.warning("Comment cleanup for article %s failed: %s", article_id, e)
        for url in media_urls(article):
            await self._discard_media(url)

    # ============================================
    # STATUS TRANSITIONS
    # ============================================

    async def publish_article(self, article_id: str, user: User) -> Article:
        article = await self.repository.get_or_raise(article_id)
        self._check_can_modify(article, user)
        now = utc_now()
        fields: Dict[str, Any] = {"status": ArticleStatus.PUBLISHED.value, "updatedAt": now}
        # First publication date is permanent
        if article.published_at is None:
            fields["publishedAt"] = now
        updated = await self.repository.update_fields(article_id, fields)
        if not article.is_published:
            logger.info("Article %s published by %s", article_id, user.uid)
            await self._notify_subscribers(updated)
        return updated

    async def archive_article(self, article_id: str, user: User) -> Article:
        article = await self.repository.get_or_raise(article_id)
        self._check_can_modify(article, user)
        return await self.repository.update_fields(article_id, {
            "status": ArticleStatus.ARCHIVED.value, "updatedAt": utc_now()})

    async def unpublish_article(self, article_id: str, user: User) -> Article:
        if not user.is_admin:
            raise AuthorizationError("Only admins can unpublish articles")
        await self.repository.get_or_raise(article_id)
        return await self.repository.update_fields(article_id, {
            "status": ArticleStatus.DRAFT.value, "updatedAt": utc_now()})

    # ============================================
    # ENGAGEMENT
    # ============================================

    async def toggle_like(self, article_id: str, user: User) -> Tuple[bool, int]:
        return await self.repository.toggle_like(article_id, user.uid)

    async def article_likes(self, article_id: str) -> Tuple[List[str], int]:
        article = await self.repository.get_or_raise(article_id)
        return article.likes.users, article.likes.count

    async def record_share(self, article_id: str, platform: str) -> Shares:
        try:
            share_platform = SharePlatform(platform)
        except ValueError:
            allowed = ", ".join(p.value for p in SharePlatform)
            raise ValidationError.for_field("platform", f"Invalid platform. Must be one of: {allowed}")
        article = await self.repository.increment_share(article_id, share_platform)
        return article.shares


def build_article_service(email_client: EmailClient) -> ArticleService:
    return ArticleService(
        repository=article_repository,
        storage=storage_service,
        files=file_service,
        comments=comment_service,
        newsletter=newsletter_service,
        email_client=email_client,
    )
