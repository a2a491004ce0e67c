"""
导入器专用异常类型。
映射阶段直接抛出；ProductImporter.process_item 是行边界，统一转换成 RowError，不再向上传播。
"""
from __future__ import annotations
from typing import Any, Dict, Optional

from pydantic import ValidationError


class ProductImporterError(Exception):
    """Base for all row-level import failures; carries a machine code and context data."""

    default_code = "product_importer_error"

    def __init__(self, message: str, code: Optional[str] = None, data: Optional[Dict[str, Any]] = None):
        self.message = message
        self.code = code or self.default_code
        self.data = data or {}
        super().__init__(self.message)


class InvalidTypeError(ProductImporterError):
    """Row `type` is not a registered product type."""
    default_code = "product_importer_invalid_type"


class InvalidIdError(ProductImporterError):
    """Row `id` does not resolve to a stored product."""
    default_code = "product_importer_invalid_id"


class MissingParentError(ProductImporterError):
    """Variation row without a resolvable parent."""
    default_code = "product_importer_missing_variation_parent_id"


class AttachmentFetchFailedError(ProductImporterError):
    """Image could not be fetched, or what came back is not an image."""
    default_code = "product_importer_attachment_failed"


class ProductValidationError(ProductImporterError):
    """A field value was rejected, either on assignment or by the store on save."""
    default_code = "product_invalid_data"


class UnknownImportError(ProductImporterError):
    """Any other collaborator failure."""
    default_code = "product_importer_error"


def from_pydantic(exc: ValidationError) -> ProductValidationError:
    # 只取第一条，和 setter 逐个赋值的语义一致
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ())) or "value"
    msg = first.get("msg") or str(exc)
    return ProductValidationError(
        f"Invalid value for {field}: {msg}",
        code=f"product_invalid_{field.split('.')[0]}" if field != "value" else None,
        data={"field": field, "status": 400},
    )


class RowSkipped(ProductImporterError):
    """Row intentionally not applied (e.g. existing product while update_existing is off)."""
    default_code = "product_importer_error"
