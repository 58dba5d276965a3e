"""
Article request/response schemas
"""

from pydantic import BaseModel, Field, ConfigDict
from typing import List, Optional
from datetime import datetime

from journal.models.article import Shares, TranslationSet


class ArticleResponse(BaseModel):
    article_id: str = Field(..., alias="id")
    translations: TranslationSet
    author: str
    author_image: Optional[str] = Field(None, alias="authorImage")
    image: Optional[str] = None
    category: str
    status: str
    slug: str
    tags: List[str] = Field(default_factory=list)
    published_at: Optional[datetime] = Field(None, alias="publishedAt")
    display_date: Optional[str] = Field(None, alias="displayDate")
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")
    views: int = 0
    likes: int = 0
    comments: int = 0
    shares: Shares = Field(default_factory=Shares)
    is_liked_by_current_user: bool = Field(False, alias="isLikedByCurrentUser")

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "id": "a1b2c3",
                "slug": "etoile-du-sahel-wins-the-derby",
                "category": "etoile-du-sahel",
                "status": "published",
                "displayDate": "October 19, 2026",
                "likes": 12,
                "comments": 3,
            }
        }
    )


class ArticleListResponse(BaseModel):
    articles: List[ArticleResponse]
    total: int
    page: int
    total_pages: int = Field(..., alias="totalPages")

    model_config = ConfigDict(populate_by_name=True)


class SearchResponse(BaseModel):
    results: List[ArticleResponse]
    total_count: int = Field(..., alias="totalCount")
    page: int
    page_count: int = Field(..., alias="pageCount")
    strategy_used: str = Field(..., alias="strategyUsed")
    query: str

    model_config = ConfigDict(populate_by_name=True)


class LikeResponse(BaseModel):
    liked: bool
    total_likes: int = Field(..., alias="totalLikes")

    model_config = ConfigDict(populate_by_name=True)


class ArticleLikesResponse(BaseModel):
    users: List[str]
    count: int


class ShareRequest(BaseModel):
    platform: str


class ShareResponse(BaseModel):
    message: str = "Share recorded"
    shares: Shares


class ArticleActionResponse(BaseModel):
    message: str
    article: ArticleResponse


class WriterStats(BaseModel):
    total_articles: int = Field(0, alias="totalArticles")
    published_articles: int = Field(0, alias="publishedArticles")
    draft_articles: int = Field(0, alias="draftArticles")
    archived_articles: int = Field(0, alias="archivedArticles")
    total_views: int = Field(0, alias="totalViews")
    total_likes: int = Field(0, alias="totalLikes")
    total_shares: int = Field(0, alias="totalShares")

    model_config = ConfigDict(populate_by_name=True)


class MessageResponse(BaseModel):
    message: str
