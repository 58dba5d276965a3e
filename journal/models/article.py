"""
Article content model and Firestore conversion helpers

An article holds one independently-authored translation per language. Each
translation is a title, an excerpt and an ordered list of typed content
blocks. English and Arabic are required, French is optional.
"""

from datetime import datetime
from enum import Enum
from typing import Iterator, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator
from slugify import slugify

from journal.models.user import User, utc_now
from journal.utils.text import build_search_keywords


# Fixed processing order for anything that walks every translation
LANGUAGE_ORDER: Tuple[str, ...] = ("en", "fr", "ar")


class ContentBlockType(str, Enum):
    PARAGRAPH = "paragraph"
    HEADING = "heading"
    QUOTE = "quote"
    IMAGE = "image"
    IMAGE_GROUP = "image-group"
    LIST = "list"


class Category(str, Enum):
    ETOILE_DU_SAHEL = "etoile-du-sahel"
    THE_BEAUTIFUL_GAME = "the-beautiful-game"
    ALL_SPORTS_HUB = "all-sports-hub"


class ArticleStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class SharePlatform(str, Enum):
    TWITTER = "twitter"
    FACEBOOK = "facebook"
    LINKEDIN = "linkedin"


class Alignment(str, Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"
    JUSTIFY = "justify"


class ListType(str, Enum):
    BULLET = "bullet"
    NUMBERED = "numbered"


# Logical article types exposed by the public site, mapped to categories
ARTICLE_TYPE_CATEGORIES = {
    "analysis": Category.ETOILE_DU_SAHEL,
    "story": Category.THE_BEAUTIFUL_GAME,
    "notable": Category.ALL_SPORTS_HUB,
}

# Client-local image URLs produced by the editor before upload
PLACEHOLDER_SCHEME = "blob:"


# ============================================
# CONTENT BLOCKS
# ============================================

class ImageRef(BaseModel):
    url: str
    caption: Optional[str] = None
    alignment: Optional[str] = None
    width: Optional[float] = None
    height: Optional[float] = None

    @property
    def is_placeholder(self) -> bool:
        return self.url.startswith(PLACEHOLDER_SCHEME)


class Margins(BaseModel):
    top: Optional[float] = None
    bottom: Optional[float] = None


class BlockStyle(BaseModel):
    margins: Optional[Margins] = None
    text_color: Optional[str] = Field(None, alias="textColor")
    background_color: Optional[str] = Field(None, alias="backgroundColor")

    model_config = ConfigDict(populate_by_name=True)


class BlockMetadata(BaseModel):
    level: Optional[int] = Field(None, ge=1, le=6)  # heading
    source: Optional[str] = None  # quote
    caption: Optional[str] = None
    alignment: Optional[Alignment] = None
    style: Optional[BlockStyle] = None
    list_type: Optional[ListType] = Field(None, alias="listType")  # list
    images: List[ImageRef] = Field(default_factory=list)  # image, image-group

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)


class ContentBlock(BaseModel):
    type: ContentBlockType
    content: str
    metadata: Optional[BlockMetadata] = None

    model_config = ConfigDict(use_enum_values=True)

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Content block text is required")
        return v

    @property
    def images(self) -> List[ImageRef]:
        return self.metadata.images if self.metadata else []


# ============================================
# TRANSLATIONS
# ============================================

class Translation(BaseModel):
    title: str
    excerpt: str
    content: List[ContentBlock]
    legacy_content: Optional[str] = Field(None, alias="legacyContent")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("title", "excerpt")
    @classmethod
    def strip_required_text(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("Field is required")
        return v

    def body_texts(self) -> List[str]:
        return [block.content for block in self.content]


class TranslationSet(BaseModel):
    en: Translation
    fr: Optional[Translation] = None
    ar: Translation

    model_config = ConfigDict(extra="forbid")

    def items(self) -> Iterator[Tuple[str, Translation]]:
        """Yield (language, translation) in the fixed en, fr, ar order."""
        for lang in LANGUAGE_ORDER:
            translation = getattr(self, lang)
            if translation is not None:
                yield lang, translation


# ============================================
# ARTICLE
# ============================================

class Likes(BaseModel):
    count: int = Field(0, ge=0)
    users: List[str] = Field(default_factory=list)


class SharePlatforms(BaseModel):
    twitter: int = Field(0, ge=0)
    facebook: int = Field(0, ge=0)
    linkedin: int = Field(0, ge=0)


class Shares(BaseModel):
    count: int = Field(0, ge=0)
    platforms: SharePlatforms = Field(default_factory=SharePlatforms)


class Article(BaseModel):
    article_id: str = Field(..., alias="id")
    translations: TranslationSet
    author: str
    author_image: str = Field(..., alias="authorImage")
    image: str
    category: Category
    status: ArticleStatus = ArticleStatus.PUBLISHED
    published_at: Optional[datetime] = Field(None, alias="publishedAt")
    views: int = Field(0, ge=0)
    likes: Likes = Field(default_factory=Likes)
    shares: Shares = Field(default_factory=Shares)
    tags: List[str] = Field(default_factory=list)
    slug: str
    created_at: Optional[datetime] = Field(default_factory=utc_now, alias="createdAt")
    updated_at: Optional[datetime] = Field(default_factory=utc_now, alias="updatedAt")

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    @property
    def is_published(self) -> bool:
        return self.status == ArticleStatus.PUBLISHED

    def is_owned_by(self, user: Optional[User]) -> bool:
        return user is not None and user.uid == self.author

    def can_be_viewed_by(self, user: Optional[User]) -> bool:
        """Unpublished articles are only visible to their author and admins."""
        if self.is_published:
            return True
        return self.is_owned_by(user) or (user is not None and user.is_admin)

    def can_be_modified_by(self, user: Optional[User]) -> bool:
        return self.is_owned_by(user) or (user is not None and user.is_admin)

    def is_liked_by(self, uid: Optional[str]) -> bool:
        return bool(uid) and uid in self.likes.users


def make_slug(title: str) -> str:
    """Lowercase, transliterated, hyphenated slug for an English title."""
    return slugify(title or "", lowercase=True)


def normalize_tags(tags: Optional[List[str]]) -> List[str]:
    return [t.strip() for t in (tags or []) if isinstance(t, str) and t.strip()]


def resolve_article_type(type_name: str) -> Optional[Category]:
    """Map a logical article type (or a raw category name) to a category."""
    if type_name in ARTICLE_TYPE_CATEGORIES:
        return ARTICLE_TYPE_CATEGORIES[type_name]
    try:
        return Category(type_name)
    except ValueError:
        return None


def translations_to_firestore(translations: TranslationSet) -> dict:
    return translations.model_dump(by_alias=True, exclude_none=True)


def firestore_article_to_model(doc: dict, doc_id: str) -> Article:
    data = {**doc, "id": doc_id}
    data.pop("searchKeywords", None)
    return Article.model_validate(data)


def article_model_to_firestore(article: Article) -> dict:
    data = article.model_dump(by_alias=True)
    data.pop("id", None)
    data["translations"] = translations_to_firestore(article.translations)
    data["searchKeywords"] = build_search_keywords(article.translations, article.tags)
    return data
