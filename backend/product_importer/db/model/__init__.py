# 聚合导入所有模型，供 create_all 发现

from .product import ProductRecord
from .taxonomy import AttributeTaxonomy, Term
from .attachment import Attachment

__all__ = [
    "ProductRecord",
    "AttributeTaxonomy", "Term",
    "Attachment",
]
