# 健康检查：DB 探活 + 当前库里的商品 / 附件数量

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from product_importer.db.model import Attachment, ProductRecord
from product_importer.db.session import get_db

router = APIRouter(tags=["health"])

@router.get("/health")
def health(db: Session = Depends(get_db)):
    products = db.execute(select(func.count()).select_from(ProductRecord)).scalar_one()
    attachments = db.execute(select(func.count()).select_from(Attachment)).scalar_one()
    return {
        "status": "ok",
        "database": db.get_bind().dialect.name,
        "products": products,
        "attachments": attachments,
    }
