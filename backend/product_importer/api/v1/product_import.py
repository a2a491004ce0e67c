# 商品行导入接口 -> 上游解析好的行直接 POST 进来

from __future__ import annotations
from typing import Any, Dict, List
import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from product_importer.db.session import get_db
from product_importer.repository import product_repo
from product_importer.services.importer import ImporterParams, ProductImporter, RowError
from product_importer.utils.serialization import to_jsonable


logger = logging.getLogger(__name__)

router = APIRouter(tags=["products"])


# ---------- Pydantic 模型 ----------
class ImportRequest(BaseModel):
    rows: List[Dict[str, Any]] = Field(default_factory=list)
    update_existing: bool = True


class ImportedRowOut(BaseModel):
    id: int
    updated: bool


class RowErrorOut(BaseModel):
    code: str
    message: str
    data: Dict[str, Any] = Field(default_factory=dict)


class ImportReportOut(BaseModel):
    imported: List[ImportedRowOut]
    updated: List[ImportedRowOut]
    failed: List[RowErrorOut]
    skipped: List[RowErrorOut]


def _error_out(err: RowError) -> RowErrorOut:
    return RowErrorOut(code=err.code, message=err.message, data=to_jsonable(err.data))



@router.post("/products/import", response_model=ImportReportOut)
def import_products(payload: ImportRequest, db: Session = Depends(get_db)):
    importer = ProductImporter(db, params=ImporterParams(update_existing=payload.update_existing))
    importer.add_rows(payload.rows)
    report = importer.import_rows()
    logger.info("api import: rows=%s failed=%s", len(payload.rows), len(report.failed))

    return ImportReportOut(
        imported=[ImportedRowOut(id=r.id, updated=r.updated) for r in report.imported],
        updated=[ImportedRowOut(id=r.id, updated=r.updated) for r in report.updated],
        failed=[_error_out(e) for e in report.failed],
        skipped=[_error_out(e) for e in report.skipped],
    )


@router.get("/products/{product_id}")
def get_product(product_id: int, db: Session = Depends(get_db)):
    product = product_repo.get_product(db, product_id)
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return to_jsonable(product.model_dump())
