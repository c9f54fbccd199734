"""
Product catalog endpoints
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from storefront.api.deps import require_admin
from storefront.models.base import get_db
from storefront.schemas import ProductCreate, ProductUpdate
from storefront.services.product_service import ProductService, product_out

router = APIRouter(prefix="/products", tags=["products"])


@router.get("")
async def list_products(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    category: Optional[str] = None,
    new: bool = Query(False, description="Five newest products, no pagination"),
    db: Session = Depends(get_db),
):
    result = ProductService(db).list_products(page=page, limit=limit, category=category, new=new)
    return {"success": True, **result}


@router.get("/{id_or_slug}")
async def get_product(id_or_slug: str, db: Session = Depends(get_db)):
    """Fetch a product by numeric id or slug"""
    product = ProductService(db).get_product(id_or_slug)
    return {"success": True, "data": product_out(product)}


@router.post("", status_code=201, dependencies=[Depends(require_admin)])
async def create_product(body: ProductCreate, db: Session = Depends(get_db)):
    product = ProductService(db).create_product(body.model_dump())
    return {"success": True, "message": "Product created successfully", "data": product_out(product)}


@router.put("/{product_id}", dependencies=[Depends(require_admin)])
async def update_product(product_id: int, body: ProductUpdate, db: Session = Depends(get_db)):
    product = ProductService(db).update_product(product_id, body.model_dump(exclude_unset=True))
    return {"success": True, "message": "Product updated successfully", "data": product_out(product)}


@router.delete("/{product_id}", dependencies=[Depends(require_admin)])
async def delete_product(product_id: int, db: Session = Depends(get_db)):
    if ProductService(db).delete_product(product_id):
        return {"success": True, "message": "Product has been deleted successfully"}
    return {"success": True, "message": "Product has orders and was deactivated instead"}
