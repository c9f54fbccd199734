"""
Article (blog/CMS) model
"""
from sqlalchemy import Column, Integer, String, DateTime, JSON, Text, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime

from storefront.models.base import Base

ARTICLE_STATUSES = ("draft", "published", "archived")


class Article(Base):
    __tablename__ = "articles"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), unique=True, nullable=False)
    slug = Column(String(220), unique=True, index=True, nullable=False)
    content = Column(Text, nullable=False)
    excerpt = Column(String(300), nullable=True)
    featured_image = Column(String, nullable=False)

    author_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    author = relationship("User")

    status = Column(String(20), index=True, default="draft", nullable=False)
    tags = Column(JSON, default=list)  # lowercased
    categories = Column(JSON, default=list)

    views = Column(Integer, default=0, nullable=False)
    likes = Column(Integer, default=0, nullable=False)
    reading_time = Column(Integer, default=1)  # minutes

    seo_title = Column(String(60), nullable=True)
    seo_description = Column(String(160), nullable=True)

    published_at = Column(DateTime, index=True, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
