# product database repository

from __future__ import annotations

from typing import Any, Dict, Optional
import logging

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from product_importer.catalog.product import Product, build_product
from product_importer.db.model.product import ProductRecord
from product_importer.services.importer.errors import ProductValidationError


logger = logging.getLogger(__name__)


'''
  主表单独成列的字段；其余字段全部进 data(JSON)
'''
_COLUMN_FIELDS = ("type", "status", "name", "slug", "sku", "parent_id")


def _to_entity(rec: ProductRecord, as_type: Optional[str] = None) -> Product:
    """
    ProductRecord -> 商品实体。
    as_type 用于"带 type 的行指向已有 id"的情况：按目标类型装载已有数据（类型转换）。
    """
    data: Dict[str, Any] = dict(rec.data or {})
    data.update(
        id=rec.id,
        status=rec.status,
        name=rec.name or "",
        slug=rec.slug or "",
        sku=rec.sku or "",
        parent_id=rec.parent_id or 0,
    )
    return build_product(as_type or rec.type, **data)


def _record_values(product: Product) -> Dict[str, Any]:
    payload = product.model_dump(mode="json", exclude={"id"})
    return {
        "type": product.type,
        "status": product.status,
        "name": product.name,
        "slug": product.slug or None,
        "sku": product.sku or None,       # 空 SKU 存 NULL，避免唯一约束冲突
        "parent_id": product.parent_id,
        "data": {k: v for k, v in payload.items() if k not in _COLUMN_FIELDS},
    }



# ========= 读取 =========
def get_product(db: Session, product_id: Any) -> Optional[Product]:
    try:
        pid = int(product_id or 0)
    except (TypeError, ValueError):
        return None
    if pid <= 0:
        return None
    rec = db.get(ProductRecord, pid)
    return _to_entity(rec) if rec is not None else None


def load_product_as(db: Session, product_id: int, product_type: str) -> Optional[Product]:
    rec = db.get(ProductRecord, int(product_id)) if product_id else None
    return _to_entity(rec, as_type=product_type) if rec is not None else None


def sku_taken(db: Session, sku: str, exclude_id: int = 0) -> bool:
    if not sku:
        return False
    stmt = select(func.count()).select_from(ProductRecord).where(ProductRecord.sku == sku)
    if exclude_id:
        stmt = stmt.where(ProductRecord.id != exclude_id)
    return db.execute(stmt).scalar_one() > 0



# ========= 写入 =========
def save_product(db: Session, product: Product) -> Product:
    """
    持久化商品实体并提交；新建时回填 id。
    SKU 重复在这里暴露为 ProductValidationError（product_invalid_sku）。
    """
    if product.sku and sku_taken(db, product.sku, exclude_id=product.id):
        raise ProductValidationError(
            "Invalid or duplicated SKU.",
            code="product_invalid_sku",
            data={"sku": product.sku, "status": 400},
        )

    product.refresh_price()
    values = _record_values(product)
    rec = db.get(ProductRecord, product.id) if product.id else None
    if rec is None:
        rec = ProductRecord(**values)
        if product.id:
            rec.id = product.id
        db.add(rec)
    else:
        for key, value in values.items():
            setattr(rec, key, value)

    try:
        db.flush()
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning("product save rejected: id=%s sku=%s err=%s", product.id, product.sku, e.orig)
        raise ProductValidationError(
            "Invalid or duplicated SKU.",
            code="product_invalid_sku",
            data={"sku": product.sku, "status": 400},
        ) from e

    product.id = rec.id
    return product
