"""
Articles: visibility rules, derived fields and analytics.
"""
import pytest

from storefront.exceptions import PermissionDenied, ValidationError
from storefront.services.article_service import ArticleService

CONTENT = "<p>" + " ".join(["sensor"] * 250) + "</p>"


def _article(**overrides):
    data = {
        "title": "Getting Started with Arduino",
        "content": CONTENT,
        "featured_image": "https://img.example.com/a.jpg",
        "status": "draft",
        "tags": ["Arduino", " Beginner "],
        "categories": ["tutorials"],
    }
    data.update(overrides)
    return data


class TestService:

    def test_derived_fields(self, db, admin):
        article = ArticleService(db).create_article(_article(), author=admin)
        assert article.slug == "getting-started-with-arduino"
        assert article.reading_time == 2
        assert article.excerpt.endswith("...")
        assert "<p>" not in article.excerpt
        assert article.tags == ["arduino", "beginner"]
        assert article.published_at is None
        assert article.author_id == admin.id

    def test_publishing_sets_published_at_once(self, db, admin):
        service = ArticleService(db)
        article = service.create_article(_article(), author=admin)
        published = service.update_article(article.id, {"status": "published"})
        first = published.published_at
        assert first is not None
        service.update_article(article.id, {"status": "archived"})
        again = service.update_article(article.id, {"status": "published"})
        assert again.published_at == first

    def test_author_is_immutable(self, db, admin):
        service = ArticleService(db)
        article = service.create_article(_article(), author=admin)
        updated = service.update_article(article.id, {"author_id": 999, "title": "Arduino for Beginners"})
        assert updated.author_id == admin.id
        assert updated.slug == "arduino-for-beginners"

    def test_duplicate_title(self, db, admin):
        service = ArticleService(db)
        service.create_article(_article(), author=admin)
        with pytest.raises(ValidationError) as exc:
            service.create_article(_article(title="getting started with arduino"), author=admin)
        assert exc.value.field == "title"

    def test_draft_hidden_from_public(self, db, admin):
        service = ArticleService(db)
        article = service.create_article(_article(), author=admin)
        with pytest.raises(PermissionDenied):
            service.get_article(article.slug)
        assert service.get_article(article.slug, user=admin).id == article.id

    def test_views_counted_for_published(self, db, admin):
        service = ArticleService(db)
        article = service.create_article(_article(status="published"), author=admin)
        service.get_article(article.slug)
        assert service.get_article(str(article.id)).views == 2

    def test_public_listing_ignores_status_filter(self, db, admin):
        service = ArticleService(db)
        service.create_article(_article(), author=admin)
        service.create_article(_article(title="Published piece", status="published"), author=admin)
        public = service.list_articles(status="draft")
        assert [a["title"] for a in public["data"]] == ["Published piece"]
        assert "content" not in public["data"][0]
        assert service.list_articles(user=admin, status="draft")["pagination"]["totalItems"] == 1

    def test_tag_filter(self, db, admin):
        service = ArticleService(db)
        service.create_article(_article(status="published"), author=admin)
        service.create_article(_article(title="Motors 101", status="published", tags=["motors"]), author=admin)
        assert service.list_articles(tag="ARDUINO")["pagination"]["totalItems"] == 1

    def test_analytics(self, db, admin):
        service = ArticleService(db)
        article = service.create_article(_article(status="published"), author=admin)
        service.create_article(_article(title="Draft piece"), author=admin)
        service.get_article(article.slug)
        stats = service.get_article_analytics()
        assert stats["total_articles"] == 2
        assert stats["published_articles"] == 1
        assert stats["draft_articles"] == 1
        assert stats["total_views"] == 1
        assert stats["top_articles"][0]["author"] == "admin"


class TestApi:

    def test_unpublished_is_403_for_public(self, client, db, admin):
        article = ArticleService(db).create_article(_article(), author=admin)
        response = client.get(f"/api/v1/articles/{article.slug}")
        assert response.status_code == 403

    def test_admin_sees_draft(self, client, db, admin, admin_headers):
        article = ArticleService(db).create_article(_article(), author=admin)
        response = client.get(f"/api/v1/articles/{article.slug}", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["data"]["content"] == CONTENT

    def test_create_sets_author(self, client, admin_headers):
        response = client.post("/api/v1/articles", json=_article(), headers=admin_headers)
        assert response.status_code == 201
        assert response.json()["data"]["author"]["username"] == "admin"

    def test_short_content_rejected(self, client, admin_headers):
        response = client.post("/api/v1/articles", json=_article(content="too short"), headers=admin_headers)
        assert response.status_code == 400
