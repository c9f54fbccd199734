"""
Product catalog service
"""
from typing import Any, Dict, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session

from storefront.models.order import OrderItem
from storefront.models.product import Product
from storefront.exceptions import NotFound, ValidationError
from storefront.utils.cache import clear_for_source
from storefront.utils.helpers import json_list_contains, paginate, pagination_meta, slugify
from storefront.utils.logger import log

NEW_PRODUCTS_LIMIT = 5
MAX_PAGE_SIZE = 100


def product_out(p: Product) -> Dict[str, Any]:
    return {
        "id": p.id,
        "title": p.title,
        "slug": p.slug,
        "description": p.description,
        "image": p.image,
        "categories": p.categories or [],
        "size": p.size,
        "color": p.color,
        "sku": p.sku,
        "price": p.price,
        "stock": p.stock,
        "active": p.active,
        "weight": p.weight,
        "length": p.length,
        "breadth": p.breadth,
        "height": p.height,
        "created_at": p.created_at.isoformat() if p.created_at else None,
        "updated_at": p.updated_at.isoformat() if p.updated_at else None,
    }


class ProductService:
    """Catalog listing, lookup and admin CRUD"""

    def __init__(self, db: Session):
        self.db = db

    def list_products(
        self,
        page: int = 1,
        limit: int = 10,
        category: Optional[str] = None,
        new: bool = False,
    ) -> Dict[str, Any]:
        """
        Paginated product listing.

        `new` returns the five most recent products and skips pagination.
        """
        if new:
            products = (
                self.db.query(Product)
                .order_by(Product.created_at.desc(), Product.id.desc())
                .limit(NEW_PRODUCTS_LIMIT)
                .all()
            )
            return {"data": [product_out(p) for p in products]}

        page, limit, offset = paginate(page, min(limit, MAX_PAGE_SIZE))
        query = self.db.query(Product)
        if category:
            query = query.filter(json_list_contains(Product.categories, category))

        total = query.count()
        products = query.order_by(Product.id).offset(offset).limit(limit).all()
        return {
            "data": [product_out(p) for p in products],
            "pagination": pagination_meta(total, page, limit),
        }

    def get_product(self, id_or_slug: str) -> Product:
        """Look up by numeric id, else by slug (falling back to the title the slug was made from)."""
        product = None
        key = str(id_or_slug).strip()

        if key.isdigit():
            product = self.db.query(Product).filter(Product.id == int(key)).first()
        else:
            product = self.db.query(Product).filter(Product.slug == key.lower()).first()
            if not product:
                title = key.replace("-", " ").lower()
                product = self.db.query(Product).filter(func.lower(Product.title) == title).first()

        if not product:
            raise NotFound("Product doesn't exist")
        return product

    def _get_by_id(self, product_id: int) -> Product:
        product = self.db.query(Product).filter(Product.id == product_id).first()
        if not product:
            raise NotFound("Product doesn't exist")
        return product

    def _check_unique(self, title: Optional[str], sku: Optional[str], exclude_id: Optional[int] = None):
        if title:
            query = self.db.query(Product).filter(func.lower(Product.title) == title.lower())
            if exclude_id:
                query = query.filter(Product.id != exclude_id)
            if query.first():
                raise ValidationError("A product with this title already exists", field="title")
        if sku:
            query = self.db.query(Product).filter(Product.sku == sku)
            if exclude_id:
                query = query.filter(Product.id != exclude_id)
            if query.first():
                raise ValidationError("A product with this SKU already exists", field="sku")

    def create_product(self, data: Dict[str, Any]) -> Product:
        data = dict(data)
        data["title"] = data["title"].strip()
        data["sku"] = (data.get("sku") or "").strip() or None
        self._check_unique(data["title"], data["sku"])

        product = Product(**data)
        product.slug = slugify(product.title)
        self.db.add(product)
        self.db.commit()
        self.db.refresh(product)

        clear_for_source("products")
        log.info(f"Created product {product.id} '{product.title}'")
        return product

    def update_product(self, product_id: int, changes: Dict[str, Any]) -> Product:
        product = self._get_by_id(product_id)
        changes = {k: v for k, v in changes.items() if v is not None}
        if "title" in changes:
            changes["title"] = changes["title"].strip()
        if "sku" in changes:
            changes["sku"] = changes["sku"].strip() or None
        self._check_unique(changes.get("title"), changes.get("sku"), exclude_id=product.id)

        for key, value in changes.items():
            setattr(product, key, value)
        if "title" in changes:
            product.slug = slugify(product.title)
        self.db.commit()
        self.db.refresh(product)

        clear_for_source("products")
        log.info(f"Updated product {product.id}: {', '.join(sorted(changes)) or 'no changes'}")
        return product

    def delete_product(self, product_id: int) -> bool:
        """
        Delete a product, or deactivate it when orders reference it.

        Returns True when the row was removed.
        """
        product = self._get_by_id(product_id)
        ordered = self.db.query(OrderItem.id).filter(OrderItem.product_id == product.id).first()
        if ordered:
            product.active = False
            self.db.commit()
            clear_for_source("products")
            log.info(f"Product {product_id} is referenced by orders, deactivated instead of deleted")
            return False

        self.db.delete(product)
        self.db.commit()
        clear_for_source("products")
        log.info(f"Deleted product {product_id}")
        return True
