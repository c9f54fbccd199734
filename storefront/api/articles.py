"""
Article endpoints

Reading is public (published only, unless the caller is an admin); authoring is admin-only.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from storefront.api.deps import current_user, require_admin
from storefront.models.base import get_db
from storefront.models.user import User
from storefront.schemas import ArticleCreate, ArticleUpdate
from storefront.services.article_service import ArticleService, article_out

router = APIRouter(prefix="/articles", tags=["articles"])


@router.get("")
async def list_articles(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[str] = None,
    category: Optional[str] = None,
    tag: Optional[str] = None,
    author: Optional[int] = None,
    search: Optional[str] = None,
    user: Optional[User] = Depends(current_user),
    db: Session = Depends(get_db),
):
    result = ArticleService(db).list_articles(
        user=user,
        page=page,
        limit=limit,
        status=status,
        category=category,
        tag=tag,
        author=author,
        search=search,
    )
    return {"success": True, **result}


@router.get("/analytics", dependencies=[Depends(require_admin)])
async def article_analytics(db: Session = Depends(get_db)):
    return {"success": True, "data": ArticleService(db).get_article_analytics()}


@router.get("/{slug_or_id}")
async def get_article(
    slug_or_id: str,
    user: Optional[User] = Depends(current_user),
    db: Session = Depends(get_db),
):
    article = ArticleService(db).get_article(slug_or_id, user=user)
    return {"success": True, "data": article_out(article)}


@router.post("", status_code=201)
async def create_article(
    body: ArticleCreate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    article = ArticleService(db).create_article(body.model_dump(), author=admin)
    return {"success": True, "message": "Article created successfully", "data": article_out(article)}


@router.put("/{article_id}", dependencies=[Depends(require_admin)])
async def update_article(article_id: int, body: ArticleUpdate, db: Session = Depends(get_db)):
    article = ArticleService(db).update_article(article_id, body.model_dump(exclude_unset=True))
    return {"success": True, "message": "Article updated successfully", "data": article_out(article)}


@router.delete("/{article_id}", dependencies=[Depends(require_admin)])
async def delete_article(article_id: int, db: Session = Depends(get_db)):
    ArticleService(db).delete_article(article_id)
    return {"success": True, "message": "Article deleted successfully"}
