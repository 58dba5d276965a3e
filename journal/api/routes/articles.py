"""Articles API routes"""

from fastapi import (
    APIRouter,
    BackgroundTasks,
    Depends,
    File,
    Form,
    Query,
    UploadFile,
    status,
)
from typing import List, Optional

from journal.dependencies import (
    get_article_service,
    get_current_user,
    get_optional_user,
    get_search_engine,
    require_editor,
)
from journal.models.user import User
from journal.schemas.article import (
    ArticleActionResponse,
    ArticleLikesResponse,
    ArticleListResponse,
    ArticleResponse,
    LikeResponse,
    MessageResponse,
    SearchResponse,
    ShareRequest,
    ShareResponse,
    WriterStats,
)
from journal.services.article_service import ArticleService, UploadedImage
from journal.services.search_service import SearchEngine


router = APIRouter(prefix="/api/articles", tags=["Articles"])


async def _read_upload(upload: Optional[UploadFile]) -> Optional[UploadedImage]:
    if upload is None or not upload.filename:
        return None
    return UploadedImage(
        filename=upload.filename,
        content=await upload.read(),
        content_type=upload.content_type,
    )


async def _read_uploads(uploads: Optional[List[UploadFile]]) -> List[UploadedImage]:
    images = []
    for upload in uploads or []:
        image = await _read_upload(upload)
        if image is not None:
            images.append(image)
    return images


@router.get("/", response_model=ArticleListResponse)
async def list_articles(
    category: Optional[str] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    lang: str = Query("en"),
    current_user: Optional[User] = Depends(get_optional_user),
    service: ArticleService = Depends(get_article_service),
):
    """List articles, newest first. Non-admins only see published articles."""
    articles, total, total_pages = await service.list_articles(
        current_user, category, status_filter, page, limit)
    return ArticleListResponse(
        articles=await service.present(articles, current_user, lang),
        total=total,
        page=page,
        totalPages=total_pages,
    )


@router.get("/search", response_model=SearchResponse)
async def search_articles(
    q: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    page: int = Query(1),
    limit: int = Query(10),
    lang: str = Query("en"),
    current_user: Optional[User] = Depends(get_optional_user),
    engine: SearchEngine = Depends(get_search_engine),
    service: ArticleService = Depends(get_article_service),
):
    outcome = await engine.search(q, category, page, limit)
    return SearchResponse(
        results=await service.present(outcome.articles, current_user, lang),
        totalCount=outcome.total_count,
        page=outcome.page,
        pageCount=outcome.page_count,
        strategyUsed=outcome.strategy_used,
        query=outcome.query,
    )


@router.get("/type/{article_type}", response_model=ArticleListResponse)
async def get_articles_by_type(
    article_type: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    lang: str = Query("en"),
    current_user: Optional[User] = Depends(get_optional_user),
    service: ArticleService = Depends(get_article_service),
):
    """analysis, story and notable map to the three categories."""
    articles, total, total_pages = await service.get_articles_by_type(article_type, page, limit)
    return ArticleListResponse(
        articles=await service.present(articles, current_user, lang),
        total=total,
        page=page,
        totalPages=total_pages,
    )


@router.get("/slug/{slug}", response_model=ArticleResponse)
async def get_article_by_slug(
    slug: str,
    background_tasks: BackgroundTasks,
    lang: str = Query("en"),
    current_user: Optional[User] = Depends(get_optional_user),
    service: ArticleService = Depends(get_article_service),
):
    article = await service.get_article_by_slug(slug, current_user)
    background_tasks.add_task(service.record_view, article.article_id)
    return await service.present_one(article, current_user, lang)


@router.get("/stats/me", response_model=WriterStats)
async def get_writer_stats(
    current_user: User = Depends(require_editor),
    service: ArticleService = Depends(get_article_service),
):
    return await service.writer_stats(current_user.uid)


@router.get("/drafts/me", response_model=ArticleListResponse)
async def get_writer_drafts(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    current_user: User = Depends(require_editor),
    service: ArticleService = Depends(get_article_service),
):
    articles, total, total_pages = await service.writer_drafts(current_user.uid, page, limit)
    return ArticleListResponse(
        articles=await service.present(articles, current_user),
        total=total,
        page=page,
        totalPages=total_pages,
    )


@router.get("/{article_id}", response_model=ArticleResponse)
async def get_article(
    article_id: str,
    background_tasks: BackgroundTasks,
    lang: str = Query("en"),
    current_user: Optional[User] = Depends(get_optional_user),
    service: ArticleService = Depends(get_article_service),
):
    article = await service.get_article(article_id, current_user)
    background_tasks.add_task(service.record_view, article_id)
    return await service.present_one(article, current_user, lang)


@router.post("/", response_model=ArticleResponse, status_code=status.HTTP_201_CREATED)
async def create_article(
    translations: str = Form(...),
    category: str = Form(...),
    article_status: Optional[str] = Form(None, alias="status"),
    tags: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    content_images: Optional[List[UploadFile]] = File(None, alias="contentImages"),
    current_user: User = Depends(require_editor),
    service: ArticleService = Depends(get_article_service),
):
    """Create an article from a multipart form; ``translations`` and ``tags`` are JSON."""
    article = await service.create_article(
        author=current_user,
        translations=translations,
        category=category,
        image=await _read_upload(image),
        content_images=await _read_uploads(content_images),
        status=article_status,
        tags=tags,
    )
    return await service.present_one(article, current_user)


@router.put("/{article_id}", response_model=ArticleResponse)
async def update_article(
    article_id: str,
    translations: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    article_status: Optional[str] = Form(None, alias="status"),
    tags: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    content_images: Optional[List[UploadFile]] = File(None, alias="contentImages"),
    current_user: User = Depends(get_current_user),
    service: ArticleService = Depends(get_article_service),
):
    article = await service.update_article(
        article_id,
        current_user,
        translations=translations,
        category=category,
        status=article_status,
        tags=tags,
        image=await _read_upload(image),
        content_images=await _read_uploads(content_images),
    )
    return await service.present_one(article, current_user)


@router.delete("/{article_id}", response_model=MessageResponse)
async def delete_article(
    article_id: str,
    current_user: User = Depends(get_current_user),
    service: ArticleService = Depends(get_article_service),
):
    await service.delete_article(article_id, current_user)
    return MessageResponse(message="Article deleted")


@router.post("/{article_id}/like", response_model=LikeResponse)
async def toggle_like(
    article_id: str,
    current_user: User = Depends(get_current_user),
    service: ArticleService = Depends(get_article_service),
):
    liked, count = await service.toggle_like(article_id, current_user)
    return LikeResponse(liked=liked, totalLikes=count)


@router.get("/{article_id}/likes", response_model=ArticleLikesResponse)
async def get_article_likes(
    article_id: str,
    service: ArticleService = Depends(get_article_service),
):
    users, count = await service.article_likes(article_id)
    return ArticleLikesResponse(users=users, count=count)


@router.post("/{article_id}/share", response_model=ShareResponse)
async def share_article(
    article_id: str,
    payload: ShareRequest,
    service: ArticleService = Depends(get_article_service),
):
    """Anonymous share counter; platform must be twitter, facebook or linkedin."""
    shares = await service.record_share(article_id, payload.platform)
    return ShareResponse(shares=shares)


@router.post("/{article_id}/publish", response_model=ArticleActionResponse)
async def publish_article(
    article_id: str,
    current_user: User = Depends(get_current_user),
    service: ArticleService = Depends(get_article_service),
):
    article = await service.publish_article(article_id, current_user)
    return ArticleActionResponse(
        message="Article published", article=await service.present_one(article, current_user))


@router.post("/{article_id}/archive", response_model=ArticleActionResponse)
async def archive_article(
    article_id: str,
    current_user: User = Depends(get_current_user),
    service: ArticleService = Depends(get_article_service),
):
    article = await service.archive_article(article_id, current_user)
    return ArticleActionResponse(
        message="Article archived", article=await service.present_one(article, current_user))


@router.post("/{article_id}/unpublish", response_model=ArticleActionResponse)
async def unpublish_article(
    article_id: str,
    current_user: User = Depends(get_current_user),
    service: ArticleService = Depends(get_article_service),
):
    article = await service.unpublish_article(article_id, current_user)
    return ArticleActionResponse(
        message="Article unpublished", article=await service.present_one(article, current_user))
