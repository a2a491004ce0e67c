from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Union


@dataclass
class ImporterParams:
    # False 时：指向已有商品的行记为 skipped，不覆盖
    update_existing: bool = True


@dataclass
class ImportedRow:
    id: int
    updated: bool


@dataclass
class RowError:
    code: str
    message: str
    data: Dict[str, Any] = field(default_factory=dict)
    skipped: bool = False


RowResult = Union[ImportedRow, RowError]


@dataclass
class ImportReport:
    imported: List[ImportedRow] = field(default_factory=list)
    updated: List[ImportedRow] = field(default_factory=list)
    failed: List[RowError] = field(default_factory=list)
    skipped: List[RowError] = field(default_factory=list)

    def add(self, result: RowResult) -> None:
        if isinstance(result, RowError):
            (self.skipped if result.skipped else self.failed).append(result)
        elif result.updated:
            self.updated.append(result)
        else:
            self.imported.append(result)

    @property
    def total(self) -> int:
        return len(self.imported) + len(self.updated) + len(self.failed) + len(self.skipped)
