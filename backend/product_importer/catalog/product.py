"""
商品实体（内存对象）+ 类型注册表。

实体用 pydantic 建模并开启 validate_assignment：导入器逐字段赋值时即做规范化/校验，
非法值（未知状态、坏日期……）当场抛 pydantic.ValidationError，由导入器在行边界统一转换。
持久化由 repository/product_repo.py 负责，这里不碰数据库。
"""

from __future__ import annotations
import hashlib
from decimal import Decimal
from datetime import datetime
from typing import Any, ClassVar, Dict, List, Literal, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from product_importer.core.config import settings
from product_importer.utils.clock import now_utc, parse_store_datetime
from product_importer.utils.text import absint, format_decimal, sanitize_title, to_bool


ProductStatus = Literal["importing", "draft", "pending", "private", "publish"]
CatalogVisibility = Literal["visible", "catalog", "search", "hidden"]
TaxStatus = Literal["taxable", "shipping", "none"]
StockStatus = Literal["instock", "outofstock", "onbackorder"]
Backorders = Literal["no", "notify", "yes"]


def _id_list(value: Any) -> List[int]:
    # 去重、去 0、保持顺序；坏 id 直接报错
    if value in (None, ""):
        return []
    if not isinstance(value, (list, tuple, set)):
        value = [value]
    out: List[int] = []
    for v in value:
        i = absint(v, strict=True)
        if i and i not in out:
            out.append(i)
    return out



class ProductAttribute(BaseModel):
    """One attribute on a product; `id > 0` links it to a global taxonomy."""

    model_config = ConfigDict(validate_assignment=True)

    id: int = 0
    name: str
    options: List[str] = Field(default_factory=list)
    position: int = 0
    visible: bool = True
    variation: bool = False

    @field_validator("visible", "variation", mode="before")
    @classmethod
    def _bool(cls, v: Any) -> bool:
        return to_bool(v)

    @field_validator("options", mode="before")
    @classmethod
    def _options(cls, v: Any) -> List[str]:
        if v is None:
            return []
        if not isinstance(v, (list, tuple)):
            v = [v]
        return [str(o) for o in v]

    @property
    def is_taxonomy(self) -> bool:
        return self.id > 0



class ProductDownload(BaseModel):
    id: str = ""
    name: str = ""
    file: str

    @model_validator(mode="after")
    def _stable_id(self) -> "ProductDownload":
        # 同一文件重复导入保持同一个下载 id
        if not self.id:
            self.id = hashlib.md5(self.file.encode("utf-8")).hexdigest()
        return self



class Product(BaseModel):
    """Fields shared by every product variant; see the subclasses for the type tags."""

    model_config = ConfigDict(validate_assignment=True, extra="ignore")

    product_type: ClassVar[str] = "simple"

    id: int = 0
    type: str = "simple"
    status: ProductStatus = "importing"
    slug: str = ""
    name: str = ""
    description: str = ""
    short_description: str = ""
    purchase_note: str = ""
    menu_order: int = 0
    sku: str = ""

    featured: bool = False
    catalog_visibility: CatalogVisibility = "visible"
    reviews_allowed: bool = True
    virtual: bool = False
    downloadable: bool = False
    sold_individually: bool = False
    tax_status: TaxStatus = "taxable"
    tax_class: str = ""

    # 价格：字符串，"" 表示空
    price: str = ""
    regular_price: str = ""
    sale_price: str = ""
    date_on_sale_from: Optional[datetime] = None
    date_on_sale_to: Optional[datetime] = None

    # 库存
    manage_stock: bool = False
    stock_quantity: Optional[Union[int, float]] = None
    stock_status: StockStatus = "instock"
    backorders: Backorders = "no"

    # 物流
    weight: str = ""
    length: str = ""
    width: str = ""
    height: str = ""
    shipping_class_id: int = 0

    # 关联
    parent_id: int = 0
    category_ids: List[int] = Field(default_factory=list)
    tag_ids: List[int] = Field(default_factory=list)
    upsell_ids: List[int] = Field(default_factory=list)
    cross_sell_ids: List[int] = Field(default_factory=list)

    # 媒体 / 下载
    image_id: int = 0
    gallery_image_ids: List[int] = Field(default_factory=list)
    downloads: List[ProductDownload] = Field(default_factory=list)
    download_limit: int = -1
    download_expiry: int = -1

    attributes: List[ProductAttribute] = Field(default_factory=list)
    default_attributes: Dict[str, str] = Field(default_factory=dict)
    meta_data: Dict[str, Any] = Field(default_factory=dict)


    # ---------- validators ----------
    @field_validator("status", "catalog_visibility", "tax_status", "stock_status", mode="before")
    @classmethod
    def _lower(cls, v: Any) -> Any:
        return str(v).strip().lower() if isinstance(v, str) else v

    @field_validator("backorders", mode="before")
    @classmethod
    def _backorders(cls, v: Any) -> Any:
        if isinstance(v, bool):
            return "yes" if v else "no"
        if v in (None, ""):
            return "no"
        return str(v).strip().lower()

    @field_validator(
        "featured", "reviews_allowed", "virtual", "downloadable", "sold_individually", "manage_stock",
        mode="before",
    )
    @classmethod
    def _bool(cls, v: Any) -> bool:
        return to_bool(v)

    @field_validator("price", "regular_price", "sale_price", "weight", "length", "width", "height", mode="before")
    @classmethod
    def _decimal(cls, v: Any) -> str:
        return format_decimal(v)

    @field_validator("date_on_sale_from", "date_on_sale_to", mode="before")
    @classmethod
    def _date(cls, v: Any) -> Optional[datetime]:
        return parse_store_datetime(v)

    @field_validator("stock_quantity", mode="before")
    @classmethod
    def _stock_quantity(cls, v: Any) -> Any:
        return None if v == "" else v

    @field_validator("id", "parent_id", "image_id", "shipping_class_id", mode="before")
    @classmethod
    def _int(cls, v: Any) -> int:
        # 坏值要变成 ValidationError，不能悄悄归 0
        return absint(v, strict=True)

    @field_validator("menu_order", mode="before")
    @classmethod
    def _menu_order(cls, v: Any) -> int:
        return 0 if v in (None, "") else int(v)

    @field_validator("category_ids", "tag_ids", "upsell_ids", "cross_sell_ids", "gallery_image_ids", mode="before")
    @classmethod
    def _ids(cls, v: Any) -> List[int]:
        return _id_list(v)

    @field_validator("download_limit", "download_expiry", mode="before")
    @classmethod
    def _unlimited(cls, v: Any) -> int:
        if v in (None, ""):
            return -1
        i = int(v)
        return -1 if i < 0 else i

    @field_validator("sku", "slug", "tax_class", "name", "purchase_note", mode="before")
    @classmethod
    def _str(cls, v: Any) -> str:
        return "" if v is None else str(v)


    # ---------- helpers ----------
    def is_type(self, *tags: str) -> bool:
        return self.type in tags

    def attributes_by_key(self) -> Dict[str, ProductAttribute]:
        """Attributes keyed by their sanitized name, which is how variations reference them."""
        return {sanitize_title(a.name): a for a in self.attributes}

    def update_meta_data(self, key: str, value: Any) -> None:
        self.meta_data = {**self.meta_data, str(key): value}

    def get_meta(self, key: str, default: Any = None) -> Any:
        return self.meta_data.get(key, default)

    def is_on_sale(self, now: Optional[datetime] = None) -> bool:
        if self.sale_price == "" or self.regular_price == "":
            return False
        if Decimal(self.regular_price) <= Decimal(self.sale_price):
            return False
        now = now or now_utc()
        if self.date_on_sale_from and self.date_on_sale_from > now:
            return False
        if self.date_on_sale_to and self.date_on_sale_to < now:
            return False
        return True

    def refresh_price(self, now: Optional[datetime] = None) -> None:
        """Recompute the active price; variable and grouped products carry none of their own."""
        if self.is_type("variable", "grouped"):
            self.price = ""
            return
        self.price = self.sale_price if self.is_on_sale(now) else self.regular_price



class SimpleProduct(Product):
    product_type: ClassVar[str] = "simple"
    type: Literal["simple"] = "simple"


class VariableProduct(Product):
    product_type: ClassVar[str] = "variable"
    type: Literal["variable"] = "variable"


class GroupedProduct(Product):
    product_type: ClassVar[str] = "grouped"
    type: Literal["grouped"] = "grouped"

    children: List[int] = Field(default_factory=list)

    @field_validator("children", mode="before")
    @classmethod
    def _children(cls, v: Any) -> List[int]:
        return _id_list(v)


class ExternalProduct(Product):
    product_type: ClassVar[str] = "external"
    type: Literal["external"] = "external"

    product_url: str = ""
    button_text: str = ""


class ProductVariation(Product):
    """A purchasable variation of a variable product; `attributes` is `{attribute key: option}`."""

    product_type: ClassVar[str] = "variation"
    type: Literal["variation"] = "variation"

    attributes: Dict[str, str] = Field(default_factory=dict)  # type: ignore[assignment]

    def attributes_by_key(self) -> Dict[str, ProductAttribute]:
        return {}



# ===================== 类型注册表 =====================
# 已知类型（可由 EXTRA_PRODUCT_TYPES 扩展）与已绑定实现类分开登记：
# 登记了但没有实现类的类型按 simple 构造
BASE_PRODUCT_TYPES: Dict[str, str] = {
    "simple": "Simple product",
    "grouped": "Grouped product",
    "external": "External/Affiliate product",
    "variable": "Variable product",
}

PRODUCT_CLASSES: Dict[str, Type[Product]] = {
    "simple": SimpleProduct,
    "variable": VariableProduct,
    "grouped": GroupedProduct,
    "external": ExternalProduct,
    "variation": ProductVariation,
}


def get_product_types() -> Dict[str, str]:
    return {**BASE_PRODUCT_TYPES, **(settings.EXTRA_PRODUCT_TYPES or {})}


def get_product_class(tag: str) -> Optional[Type[Product]]:
    return PRODUCT_CLASSES.get(tag)


def build_product(tag: str, **data: Any) -> Product:
    """Instantiate the class bound to `tag`, falling back to SimpleProduct."""
    cls = get_product_class(tag) or SimpleProduct
    data.pop("type", None)
    return cls(**data)
