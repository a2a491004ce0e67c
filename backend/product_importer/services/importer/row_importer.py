"""
行导入器：一行已解析的数据 -> 一个持久化的商品。

流程（process_item）：
  1) get_product_object：按 id / type 解析出要写入的商品实体（新建 / 已有 / 类型转换）
  2) 映射：普通商品走 _save_product_data，variation 走 _save_variation_data
  3) pre_insert_product_object 钩子
  4) 保存：variation 涉及的父商品先存，再存本行商品

行边界：任何异常都在 process_item 内转换成 RowError，不向上抛；
已经单独提交的副作用（附件、父商品属性）不回滚。
"""

from __future__ import annotations
import logging
import os
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from pydantic import ValidationError
from sqlalchemy.orm import Session

from product_importer.catalog.product import (
    Product,
    ProductAttribute,
    ProductDownload,
    SimpleProduct,
    build_product,
    get_product_types,
)
from product_importer.core.config import settings
from product_importer.repository import product_repo, taxonomy_repo
from product_importer.services.importer.attachments import AttachmentResolver
from product_importer.services.importer.errors import (
    InvalidIdError,
    InvalidTypeError,
    MissingParentError,
    ProductImporterError,
    ProductValidationError,
    RowSkipped,
    UnknownImportError,
    from_pydantic,
)
from product_importer.services.importer.hooks import (
    FILE_DOWNLOAD_PATH,
    PARSED_DATA,
    PRE_INSERT_PRODUCT_OBJECT,
    PRODUCT_OBJECT,
    ImportHooks,
)
from product_importer.services.importer.results import (
    ImportedRow,
    ImporterParams,
    ImportReport,
    RowError,
    RowResult,
)
from product_importer.utils.clock import parse_gmt_datetime
from product_importer.utils.text import (
    absint,
    clean_text,
    filename_from_url,
    filter_post_html,
    sanitize_term_text,
    sanitize_title,
    stock_amount,
)


logger = logging.getLogger(__name__)

Row = Dict[str, Any]


# 这些字段直接赋值，规范化交给实体的校验器
_PASSTHROUGH_FIELDS = (
    "reviews_allowed",
    "virtual",
    "tax_status",
    "tax_class",
    "catalog_visibility",
    "featured",
    "menu_order",
)
_POST_HTML_FIELDS = ("name", "description", "short_description")
_RELATION_FIELDS = ("upsell_ids", "cross_sell_ids", "category_ids", "tag_ids")
_SALE_FIELDS = ("regular_price", "sale_price", "date_on_sale_from", "date_on_sale_to")
_DIMENSION_FIELDS = ("weight", "length", "width", "height")


def _has(data: Row, key: str) -> bool:
    # 字段存在且不是 None 才算提供；"" / 0 / False 都算提供
    return data.get(key) is not None


def _truthy(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in ("", "0", "false", "no")
    return bool(value)


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]



class ProductImporter:
    """
    Applies parsed rows to the catalogue, one unit of work per row.

    The reader that produced the rows is outside this class: feed rows in with
    `add_rows` (optionally with the raw rows and the reader's byte offset) and
    drive them with `import_rows`, or call `process_item` for a single row.
    """

    def __init__(
        self,
        db: Session,
        *,
        file_path: Optional[str] = None,
        params: Optional[ImporterParams] = None,
        hooks: Optional[ImportHooks] = None,
        downloader: Optional[Any] = None,
        manage_stock: Optional[bool] = None,
    ) -> None:
        self.db = db
        self.file = file_path or ""
        self.file_position = 0
        self.params = params or ImporterParams()
        self.hooks = hooks or ImportHooks()
        self.attachments = AttachmentResolver(db, downloader=downloader)
        self._manage_stock = manage_stock

        self.raw_keys: List[str] = []
        self.mapped_keys: List[str] = []
        self.raw_data: List[Any] = []
        self.parsed_data: List[Row] = []


    # ========= 数据输入 / 进度 =========
    def add_rows(
        self,
        parsed_rows: Iterable[Row],
        raw_rows: Optional[Iterable[Any]] = None,
        file_position: Optional[int] = None,
    ) -> None:
        parsed_rows = list(parsed_rows)
        self.parsed_data.extend(parsed_rows)
        if raw_rows is not None:
            self.raw_data.extend(raw_rows)
        for row in parsed_rows:
            for key in row:
                if key not in self.mapped_keys:
                    self.mapped_keys.append(key)
        if file_position is not None:
            self.file_position = int(file_position)

    def set_raw_keys(self, keys: Sequence[str]) -> None:
        self.raw_keys = list(keys)

    def get_raw_keys(self) -> List[str]:
        return self.raw_keys

    def get_mapped_keys(self) -> List[str]:
        return self.mapped_keys or self.raw_keys

    def get_raw_data(self) -> List[Any]:
        return self.raw_data

    def get_parsed_data(self) -> List[Row]:
        return self.hooks.apply(PARSED_DATA, self.parsed_data, self.get_raw_data())

    def get_file_position(self) -> int:
        return self.file_position

    current_offset = get_file_position

    def get_percent_complete(self) -> int:
        size = os.path.getsize(self.file) if self.file and os.path.isfile(self.file) else 0
        if not size:
            return 0
        return abs(min(round(self.file_position / size * 100), 100))

    def is_stock_management_enabled(self) -> bool:
        if self._manage_stock is None:
            return bool(settings.STORE_MANAGE_STOCK)
        return bool(self._manage_stock)


    # ========= 批量 / 单行 =========
    def import_rows(self) -> ImportReport:
        report = ImportReport()
        for index, row in enumerate(self.get_parsed_data()):
            result = self.process_item(row)
            if isinstance(result, RowError):
                result.data.setdefault("row", index)
            report.add(result)
        logger.info(
            "import finished: imported=%s updated=%s failed=%s skipped=%s",
            len(report.imported), len(report.updated), len(report.failed), len(report.skipped),
        )
        return report

    def import_row(self, data: Row) -> RowResult:
        return self.process_item(data)

    def process_item(self, data: Row) -> RowResult:
        try:
            product = self.get_product_object(data)
            # 新建占位（importing）不算更新
            updating = bool(product.id) and product.status != "importing"

            if updating and not self.params.update_existing:
                raise RowSkipped(
                    "A product with this ID already exists.",
                    data={"id": product.id, "status": 400},
                )

            parent_updates: List[Product] = []
            if product.is_type("variation"):
                product, parent_updates = self._save_variation_data(product, data)
            else:
                product = self._save_product_data(product, data)

            for parent in parent_updates:
                product_repo.save_product(self.db, parent)
                logger.info("parent attributes updated: parent=%s", parent.id)

            product = self.hooks.apply(PRE_INSERT_PRODUCT_OBJECT, product, data)
            product_repo.save_product(self.db, product)

        except ProductImporterError as e:
            return self._row_error(e, data)
        except ValidationError as e:
            return self._row_error(from_pydantic(e), data)
        except Exception as e:  # 行边界：协作方的任何异常都只记为本行失败
            logger.exception("unexpected error importing row id=%s sku=%s", data.get("id"), data.get("sku"))
            return self._row_error(UnknownImportError(str(e) or e.__class__.__name__, data={"status": 500}), data)

        logger.info("row imported: id=%s type=%s updated=%s", product.id, product.type, updating)
        return ImportedRow(id=product.id, updated=updating)

    def _row_error(self, err: ProductImporterError, data: Row) -> RowError:
        self.db.rollback()
        skipped = isinstance(err, RowSkipped)
        log = logger.info if skipped else logger.warning
        log("row %s: code=%s id=%s sku=%s msg=%s",
            "skipped" if skipped else "failed", err.code, data.get("id"), data.get("sku"), err.message)
        return RowError(code=err.code, message=err.message, data=dict(err.data), skipped=skipped)


    # ========= 商品对象解析 =========
    def get_product_object(self, data: Row) -> Product:
        # 非数字 id 按 0 处理（当作新建）
        product_id = absint(data.get("id")) if _has(data, "id") else 0

        if _has(data, "type"):
            product_type = str(data["type"])
            if product_type not in get_product_types() and product_type != "variation":
                raise InvalidTypeError("Invalid product type.", data={"status": 401})

            if product_id:
                product = product_repo.load_product_as(self.db, product_id, product_type)
                if product is None:
                    raise InvalidIdError(
                        f"Invalid product ID {product_id}.", data={"id": product_id, "status": 401}
                    )
            else:
                product = build_product(product_type)

        elif _has(data, "id"):
            product = product_repo.get_product(self.db, product_id)
            if product is None:
                raise InvalidIdError(f"Invalid product ID {product_id}.", data={"id": product_id, "status": 401})

        else:
            product = SimpleProduct()

        return self.hooks.apply(PRODUCT_OBJECT, product, data)


    # ========= 普通商品 =========
    def _save_product_data(self, product: Product, data: Row) -> Product:
        for key in _POST_HTML_FIELDS:
            if _has(data, key):
                setattr(product, key, filter_post_html(data[key]))

        self._apply_status(product, data)

        if _has(data, "slug"):
            product.slug = data["slug"]

        for key in _PASSTHROUGH_FIELDS:
            if _has(data, key):
                setattr(product, key, data[key])

        if _has(data, "purchase_note"):
            product.purchase_note = filter_post_html(data["purchase_note"])

        self._save_product_shipping_data(product, data)

        if _has(data, "sku"):
            product.sku = clean_text(data["sku"])

        if _has(data, "attributes"):
            attributes, default_attributes = self._assemble_attributes(_as_list(data["attributes"]))
            product.attributes = attributes
            if product.is_type("variable"):
                product.default_attributes = default_attributes

        # variable / grouped 没有自己的价格
        if product.is_type("variable", "grouped"):
            product.regular_price = ""
            product.sale_price = ""
            product.date_on_sale_to = None
            product.date_on_sale_from = None
            product.price = ""
        else:
            for key in _SALE_FIELDS:
                if _has(data, key):
                    setattr(product, key, data[key])

        if _has(data, "parent_id"):
            product.parent_id = data["parent_id"]

        if _has(data, "sold_individually"):
            product.sold_individually = data["sold_individually"]

        self._save_stock_data(product, data)

        for key in _RELATION_FIELDS:
            if _has(data, key):
                setattr(product, key, data[key])

        if product.is_type("grouped") and _has(data, "children"):
            product.children = data["children"]

        if _has(data, "downloadable"):
            product.downloadable = data["downloadable"]

        if product.downloadable:
            if _has(data, "downloads"):
                self._save_downloadable_files(product, _as_list(data["downloads"]))
            if _has(data, "download_limit"):
                product.download_limit = data["download_limit"]
            if _has(data, "download_expiry"):
                product.download_expiry = data["download_expiry"]

        if product.is_type("external"):
            if _has(data, "external_url"):
                product.product_url = str(data["external_url"])
            if _has(data, "button_text"):
                product.button_text = str(data["button_text"])

        self._save_images(product, data)
        self._save_meta_data(product, data)
        return product

    def _apply_status(self, product: Product, data: Row) -> None:
        if _has(data, "published"):
            product.status = "publish" if _truthy(data["published"]) else "draft"
        elif product.status == "importing":
            # 新建占位：没给 published 也要上架
            product.status = "publish"

    def _save_stock_data(self, product: Product, data: Row) -> None:
        if _has(data, "stock_status"):
            stock_status = "instock" if _truthy(data["stock_status"]) else "outofstock"
        else:
            stock_status = product.stock_status

        if not self.is_stock_management_enabled():
            # 全店不管库存：只写状态，不碰 manage_stock / quantity / backorders
            if not product.is_type("variable"):
                product.stock_status = stock_status
            return

        if _has(data, "manage_stock"):
            product.manage_stock = data["manage_stock"]
        if _has(data, "backorders"):
            product.backorders = data["backorders"]

        if product.is_type("grouped"):
            product.manage_stock = False
            product.backorders = "no"
            product.stock_quantity = None
            product.stock_status = stock_status
        elif product.is_type("external"):
            product.manage_stock = False
            product.backorders = "no"
            product.stock_quantity = None
            product.stock_status = "instock"
        elif product.manage_stock:
            if not product.is_type("variable"):
                product.stock_status = stock_status
            if _has(data, "stock_quantity"):
                product.stock_quantity = stock_amount(
                    data["stock_quantity"], as_float=settings.STOCK_AMOUNT_AS_FLOAT
                )
        else:
            product.manage_stock = False
            product.stock_quantity = None
            product.stock_status = stock_status

    def _save_images(self, product: Product, data: Row) -> None:
        if _has(data, "image_id"):
            product.image_id = self.attachments.get_attachment_id(data["image_id"], product.id)

        if _has(data, "gallery_image_ids"):
            gallery_ids = []
            for url in _as_list(data["gallery_image_ids"]):
                attachment_id = self.attachments.get_attachment_id(url, product.id)
                if attachment_id:
                    gallery_ids.append(attachment_id)
            product.gallery_image_ids = gallery_ids

    def _save_meta_data(self, product: Product, data: Row) -> None:
        if not _has(data, "meta_data"):
            return
        for meta in _as_list(data["meta_data"]):
            if not isinstance(meta, dict) or meta.get("key") in (None, ""):
                continue
            product.update_meta_data(meta["key"], meta.get("value"))


    # ========= 属性 =========
    def _attribute_key(self, name: Any) -> str:
        """Key a row attribute name the way parent attributes are keyed."""
        attribute_id = taxonomy_repo.attribute_taxonomy_id_by_name(self.db, name or "")
        if attribute_id:
            return taxonomy_repo.attribute_taxonomy_name_by_id(self.db, attribute_id)
        return sanitize_title(name)

    def _term_slug(self, taxonomy: str, name: Any) -> str:
        slug = taxonomy_repo.get_term_slug_by_name(self.db, taxonomy, name)
        return slug or sanitize_title(name)

    def _assemble_attributes(self, rows: List[Row]) -> Tuple[List[ProductAttribute], Dict[str, str]]:
        """
        Build the product's attribute list and default selections.

        Taxonomy-backed attributes store term slugs and need at least one value;
        local attributes keep their raw values. Naming a valid default marks
        the attribute as used for variations.
        """
        attributes: List[ProductAttribute] = []
        default_attributes: Dict[str, str] = {}

        for position, attribute in enumerate(rows):
            if not isinstance(attribute, dict):
                continue
            name = attribute.get("name") or ""
            is_visible = attribute["visible"] if _has(attribute, "visible") else True
            is_variation = False
            default = attribute.get("default")

            attribute_id = taxonomy_repo.attribute_taxonomy_id_by_name(self.db, name)
            if attribute_id:
                attribute_name = taxonomy_repo.attribute_taxonomy_name_by_id(self.db, attribute_id)
                values = [sanitize_term_text(v) for v in _as_list(attribute.get("value"))]
                values = [v for v in values if v]

                if default and default in values:
                    default_attributes[attribute_name] = self._term_slug(attribute_name, default)
                    is_variation = True

                if values:
                    attributes.append(ProductAttribute(
                        id=attribute_id,
                        name=attribute_name,
                        options=[self._term_slug(attribute_name, v) for v in values],
                        position=position,
                        visible=is_visible,
                        variation=is_variation,
                    ))

            elif _has(attribute, "value"):
                values = [str(v) for v in _as_list(attribute["value"])]

                if default and default in values:
                    default_attributes[sanitize_title(name)] = default
                    is_variation = True

                attributes.append(ProductAttribute(
                    name=name,
                    options=values,
                    position=position,
                    visible=is_visible,
                    variation=is_variation,
                ))

        return attributes, default_attributes


    # ========= variation =========
    def get_variation_parent_attributes(
        self, attributes: List[Row], parent: Product
    ) -> Tuple[Dict[str, ProductAttribute], List[Product]]:
        """
        Parent attributes keyed by sanitized name, with every attribute the row
        references flagged as a variation attribute.

        Returns the parent in the second slot when a flag had to change, so the
        caller persists it before the variation.
        """
        parent_attributes = parent.attributes_by_key()
        require_save = False

        for attribute in attributes:
            if not isinstance(attribute, dict):
                continue
            key = self._attribute_key(attribute.get("name"))
            current = parent_attributes.get(key)
            if current is not None and not current.variation:
                parent_attributes[key] = current.model_copy(update={"variation": True})
                require_save = True

        if not require_save:
            return parent_attributes, []

        parent.attributes = list(parent_attributes.values())
        return parent_attributes, [parent]

    def _save_variation_data(self, variation: Product, data: Row) -> Tuple[Product, List[Product]]:
        parent = product_repo.get_product(self.db, data["parent_id"]) if _has(data, "parent_id") else None
        if parent is None:
            raise MissingParentError(
                "Missing parent ID or parent does not exist.",
                data={"parent_id": data.get("parent_id"), "status": 401},
            )
        variation.parent_id = parent.id

        self._apply_status(variation, data)

        if _has(data, "sku"):
            variation.sku = clean_text(data["sku"])

        if _has(data, "image_id"):
            variation.image_id = self.attachments.get_attachment_id(data["image_id"], variation.id)

        if _has(data, "virtual"):
            variation.virtual = data["virtual"]

        if _has(data, "downloadable"):
            variation.downloadable = data["downloadable"]

        if variation.downloadable:
            if _has(data, "downloads"):
                self._save_downloadable_files(variation, _as_list(data["downloads"]))
            if _has(data, "download_limit"):
                variation.download_limit = data["download_limit"]
            if _has(data, "download_expiry"):
                variation.download_expiry = data["download_expiry"]

        self._save_product_shipping_data(variation, data)

        if _has(data, "stock_status"):
            variation.stock_status = "instock" if _truthy(data["stock_status"]) else "outofstock"

        if self.is_stock_management_enabled():
            if _has(data, "manage_stock"):
                variation.manage_stock = data["manage_stock"]
            if _has(data, "backorders"):
                variation.backorders = data["backorders"]

            if variation.manage_stock:
                if _has(data, "stock_quantity"):
                    variation.stock_quantity = stock_amount(
                        data["stock_quantity"], as_float=settings.STOCK_AMOUNT_AS_FLOAT
                    )
            else:
                variation.backorders = "no"
                variation.stock_quantity = None

        for key in _SALE_FIELDS:
            if _has(data, key):
                setattr(variation, key, data[key])

        # GMT 字段在本地时间之后处理：两者都给时以 GMT 为准
        for key in ("date_on_sale_from", "date_on_sale_to"):
            gmt_key = f"{key}_gmt"
            if _has(data, gmt_key):
                try:
                    setattr(variation, key, parse_gmt_datetime(data[gmt_key]) if data[gmt_key] else None)
                except ValueError as e:
                    raise ProductValidationError(
                        f"Invalid value for {gmt_key}: {e}",
                        code=f"product_invalid_{key}",
                        data={"field": gmt_key, "status": 400},
                    ) from e

        if _has(data, "tax_class"):
            variation.tax_class = data["tax_class"]

        if _has(data, "description"):
            variation.description = filter_post_html(data["description"])

        parent_updates: List[Product] = []
        if _has(data, "attributes"):
            rows = _as_list(data["attributes"])
            parent_attributes, parent_updates = self.get_variation_parent_attributes(rows, parent)

            selected: Dict[str, str] = {}
            for attribute in rows:
                if not isinstance(attribute, dict):
                    continue
                parent_attribute = parent_attributes.get(self._attribute_key(attribute.get("name")))
                if parent_attribute is None or not parent_attribute.variation:
                    continue

                values = _as_list(attribute.get("value"))
                value = values[0] if values else ""
                if parent_attribute.is_taxonomy:
                    value = self._term_slug(parent_attribute.name, value)
                selected[sanitize_title(parent_attribute.name)] = str(value)

            variation.attributes = selected

        self._save_meta_data(variation, data)
        return variation, parent_updates


    # ========= 物流 / 下载 =========
    def _save_product_shipping_data(self, product: Product, data: Row) -> None:
        if product.virtual:
            for key in _DIMENSION_FIELDS:
                setattr(product, key, "")
        else:
            for key in _DIMENSION_FIELDS:
                if _has(data, key):
                    setattr(product, key, data[key])

        if _has(data, "shipping_class_id"):
            product.shipping_class_id = data["shipping_class_id"]

    def _save_downloadable_files(self, product: Product, downloads: List[Any]) -> None:
        files: List[ProductDownload] = []
        for index, item in enumerate(downloads):
            if not isinstance(item, dict) or not item.get("url"):
                continue
            url = str(item["url"])
            files.append(ProductDownload(
                name=str(item.get("name") or filename_from_url(url)),
                file=self.hooks.apply(FILE_DOWNLOAD_PATH, url, product, index),
            ))
        product.downloads = files
