"""
Article (blog) service
"""
from typing import Any, Dict, Optional
from datetime import datetime
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from storefront.models.article import Article, ARTICLE_STATUSES
from storefront.models.user import User
from storefront.config import get_settings
from storefront.exceptions import NotFound, PermissionDenied, ValidationError
from storefront.utils.cache import _MISS, clear_for_source, get_cached, set_cached
from storefront.utils.helpers import (
    json_list_contains,
    make_excerpt,
    paginate,
    pagination_meta,
    reading_time_minutes,
    slugify,
)
from storefront.utils.logger import log

settings = get_settings()


def article_out(a: Article, full: bool = True) -> Dict[str, Any]:
    data = {
        "id": a.id,
        "title": a.title,
        "slug": a.slug,
        "excerpt": a.excerpt,
        "featured_image": a.featured_image,
        "author": {"id": a.author.id, "username": a.author.username} if a.author else None,
        "status": a.status,
        "tags": a.tags or [],
        "categories": a.categories or [],
        "views": a.views,
        "likes": a.likes,
        "reading_time": a.reading_time,
        "seo_title": a.seo_title,
        "seo_description": a.seo_description,
        "published_at": a.published_at.isoformat() if a.published_at else None,
        "created_at": a.created_at.isoformat() if a.created_at else None,
        "updated_at": a.updated_at.isoformat() if a.updated_at else None,
    }
    if full:
        data["content"] = a.content
    return data


def _is_admin(user: Optional[User]) -> bool:
    return bool(user and user.is_admin)


class ArticleService:
    """Articles: public reading, admin authoring"""

    def __init__(self, db: Session):
        self.db = db

    def list_articles(
        self,
        user: Optional[User] = None,
        page: int = 1,
        limit: int = 10,
        status: Optional[str] = None,
        category: Optional[str] = None,
        tag: Optional[str] = None,
        author: Optional[int] = None,
        search: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Non-admins only ever see published articles, whatever status they ask for."""
        page, limit, offset = paginate(page, limit)
        query = self.db.query(Article)

        if not _is_admin(user):
            query = query.filter(Article.status == "published")
        elif status:
            if status not in ARTICLE_STATUSES:
                raise ValidationError("Invalid article status", field="status")
            query = query.filter(Article.status == status)

        if category:
            query = query.filter(json_list_contains(Article.categories, category))
        if tag:
            query = query.filter(json_list_contains(Article.tags, tag.strip().lower()))
        if author:
            query = query.filter(Article.author_id == author)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(Article.title.ilike(pattern), Article.content.ilike(pattern)))

        total = query.count()
        articles = (
            query.order_by(
                Article.published_at.is_(None),
                Article.published_at.desc(),
                Article.created_at.desc(),
            )
            .offset(offset)
            .limit(limit)
            .all()
        )
        return {
            "data": [article_out(a, full=False) for a in articles],
            "pagination": pagination_meta(total, page, limit),
        }

    def _find(self, slug_or_id: str) -> Optional[Article]:
        key = str(slug_or_id).strip()
        article = self.db.query(Article).filter(Article.slug == key.lower()).first()
        if not article and key.isdigit():
            article = self.db.query(Article).filter(Article.id == int(key)).first()
        return article

    def _get_by_id(self, article_id: int) -> Article:
        article = self.db.query(Article).filter(Article.id == article_id).first()
        if not article:
            raise NotFound("Article not found")
        return article

    def get_article(self, slug_or_id: str, user: Optional[User] = None) -> Article:
        """Fetch by slug, then id. Reading a published article counts a view."""
        article = self._find(slug_or_id)
        if not article:
            raise NotFound("Article not found")
        if article.status != "published" and not _is_admin(user):
            raise PermissionDenied("Access denied")

        if article.status == "published":
            article.views = (article.views or 0) + 1
            self.db.commit()
            self.db.refresh(article)
        return article

    def _check_unique(self, title: str, slug: str, exclude_id: Optional[int] = None):
        query = self.db.query(Article).filter(
            or_(func.lower(Article.title) == title.lower(), Article.slug == slug)
        )
        if exclude_id:
            query = query.filter(Article.id != exclude_id)
        if query.first():
            raise ValidationError("Article with this title already exists", field="title")

    @staticmethod
    def _apply_derived(article: Article, previous_status: Optional[str] = None):
        article.slug = slugify(article.title)
        article.reading_time = reading_time_minutes(article.content)
        if not article.excerpt:
            article.excerpt = make_excerpt(article.content)
        if article.status == "published" and previous_status != "published" and not article.published_at:
            article.published_at = datetime.utcnow()

    def create_article(self, data: Dict[str, Any], author: User) -> Article:
        data = dict(data)
        data["title"] = data["title"].strip()
        data["tags"] = [t.strip().lower() for t in data.get("tags") or [] if t and t.strip()]
        data["categories"] = [c.strip() for c in data.get("categories") or [] if c and c.strip()]

        slug = slugify(data["title"])
        if not slug:
            raise ValidationError("Title must contain letters or numbers", field="title")
        self._check_unique(data["title"], slug)

        article = Article(**data)
        article.author_id = author.id
        self._apply_derived(article)
        self.db.add(article)
        self.db.commit()
        self.db.refresh(article)

        clear_for_source("articles")
        log.info(f"Article {article.id} '{article.slug}' created by {author.username} ({article.status})")
        return article

    def update_article(self, article_id: int, changes: Dict[str, Any]) -> Article:
        """Author is immutable; derived fields follow title/content/status."""
        article = self._get_by_id(article_id)
        changes = {k: v for k, v in changes.items() if v is not None and k not in ("author", "author_id")}

        if "title" in changes:
            changes["title"] = changes["title"].strip()
            slug = slugify(changes["title"])
            if not slug:
                raise ValidationError("Title must contain letters or numbers", field="title")
            self._check_unique(changes["title"], slug, exclude_id=article.id)
        if "tags" in changes:
            changes["tags"] = [t.strip().lower() for t in changes["tags"] if t and t.strip()]
        if "categories" in changes:
            changes["categories"] = [c.strip() for c in changes["categories"] if c and c.strip()]

        # Regenerate an auto excerpt when content changes, keep a hand-written one
        if "content" in changes and "excerpt" not in changes:
            if article.excerpt == make_excerpt(article.content):
                article.excerpt = None

        previous_status = article.status
        for key, value in changes.items():
            setattr(article, key, value)
        self._apply_derived(article, previous_status)
        self.db.commit()
        self.db.refresh(article)

        clear_for_source("articles")
        log.info(f"Article {article.id} updated: {', '.join(sorted(changes)) or 'no changes'}")
        return article

    def delete_article(self, article_id: int) -> None:
        article = self._get_by_id(article_id)
        self.db.delete(article)
        self.db.commit()
        clear_for_source("articles")
        log.info(f"Article {article_id} deleted")

    def get_article_analytics(self) -> Dict[str, Any]:
        cached = get_cached("articles_analytics")
        if cached is not _MISS:
            return cached

        counts = dict(self.db.query(Article.status, func.count(Article.id)).group_by(Article.status).all())
        total_views, total_likes = self.db.query(
            func.coalesce(func.sum(Article.views), 0),
            func.coalesce(func.sum(Article.likes), 0),
        ).one()

        top = (
            self.db.query(Article)
            .filter(Article.status == "published")
            .order_by(Article.views.desc(), Article.id)
            .limit(5)
            .all()
        )
        result = {
            "total_articles": sum(counts.values()),
            "published_articles": counts.get("published", 0),
            "draft_articles": counts.get("draft", 0),
            "archived_articles": counts.get("archived", 0),
            "total_views": int(total_views),
            "total_likes": int(total_likes),
            "top_articles": [
                {
                    "id": a.id,
                    "title": a.title,
                    "slug": a.slug,
                    "views": a.views,
                    "likes": a.likes,
                    "published_at": a.published_at.isoformat() if a.published_at else None,
                    "author": a.author.username if a.author else None,
                }
                for a in top
            ],
        }
        set_cached("articles_analytics", result, settings.analytics_cache_seconds)
        return result
