"""
对外统一入口：导入器、结果类型、钩子和异常从这里 import。
"""

from .errors import (
    ProductImporterError, InvalidTypeError, InvalidIdError, MissingParentError,
    AttachmentFetchFailedError, ProductValidationError, UnknownImportError, RowSkipped,
)
from .hooks import ImportHooks, HOOK_NAMES
from .results import ImporterParams, ImportedRow, RowError, RowResult, ImportReport
from .row_importer import ProductImporter


__all__ = [
    "ProductImporter", "ImporterParams", "ImportedRow", "RowError", "RowResult", "ImportReport",
    "ImportHooks", "HOOK_NAMES",
    "ProductImporterError", "InvalidTypeError", "InvalidIdError", "MissingParentError",
    "AttachmentFetchFailedError", "ProductValidationError", "UnknownImportError", "RowSkipped",
]
