from __future__ import annotations

import hashlib

from product_importer.repository import product_repo
from product_importer.services.importer import ImportedRow, RowError
from product_importer.services.importer.hooks import FILE_DOWNLOAD_PATH, PRE_INSERT_PRODUCT_OBJECT


def test_widget_row_with_stock_management_disabled(db, make_importer) -> None:
    importer = make_importer(manage_stock=False)

    result = importer.process_item(
        {"type": "simple", "name": "Widget", "regular_price": "9.99", "stock_status": True}
    )

    assert isinstance(result, ImportedRow)
    widget = product_repo.get_product(db, result.id)
    assert widget.status == "publish"
    assert widget.stock_status == "instock"
    assert widget.regular_price == "9.99"
    assert widget.price == "9.99"
    assert widget.manage_stock is False


def test_absent_fields_are_left_alone(db, importer, seed_product) -> None:
    existing = seed_product(name="Keep", description="long text", regular_price="5", weight="1.5")

    importer.process_item({"id": existing.id, "sku": "ABS-1"})

    stored = product_repo.get_product(db, existing.id)
    assert stored.description == "long text"
    assert stored.regular_price == "5"
    assert stored.weight == "1.5"
    assert stored.sku == "ABS-1"


def test_explicit_empty_value_clears_the_field(db, importer, seed_product) -> None:
    existing = seed_product(sale_price="3")

    importer.process_item({"id": existing.id, "sale_price": ""})

    assert product_repo.get_product(db, existing.id).sale_price == ""


def test_variable_and_grouped_prices_are_always_empty(db, importer) -> None:
    for product_type in ("variable", "grouped"):
        result = importer.process_item({
            "type": product_type,
            "name": f"{product_type} parent",
            "regular_price": "10",
            "sale_price": "5",
            "date_on_sale_from": "2024-01-01",
        })
        stored = product_repo.get_product(db, result.id)
        assert stored.regular_price == ""
        assert stored.sale_price == ""
        assert stored.price == ""
        assert stored.date_on_sale_from is None


def test_sale_price_becomes_active_price(db, importer) -> None:
    result = importer.process_item({"name": "On sale", "regular_price": "20", "sale_price": "15"})

    assert product_repo.get_product(db, result.id).price == "15"


def test_published_flag_drives_status(db, importer, seed_product) -> None:
    existing = seed_product()

    importer.process_item({"id": existing.id, "published": False})
    assert product_repo.get_product(db, existing.id).status == "draft"

    importer.process_item({"id": existing.id, "published": 1})
    assert product_repo.get_product(db, existing.id).status == "publish"


def test_html_fields_drop_script_blocks(db, importer) -> None:
    result = importer.process_item({
        "name": "Safe",
        "description": '<p onclick="x()">Hi</p><script>alert(1)</script>',
        "short_description": "<style>p{}</style><b>short</b>",
    })

    stored = product_repo.get_product(db, result.id)
    assert stored.description == "<p>Hi</p>"
    assert stored.short_description == "<b>short</b>"


def test_sku_is_cleaned_and_duplicates_rejected(db, importer) -> None:
    first = importer.process_item({"name": "A", "sku": " <b>SKU-1</b> "})
    assert product_repo.get_product(db, first.id).sku == "SKU-1"

    second = importer.process_item({"name": "B", "sku": "SKU-1"})

    assert isinstance(second, RowError)
    assert second.code == "product_invalid_sku"
    assert second.message == "Invalid or duplicated SKU."


def test_bad_enum_value_surfaces_as_validation_error(importer) -> None:
    result = importer.process_item({"name": "Bad", "tax_status": "sometimes"})

    assert isinstance(result, RowError)
    assert result.code == "product_invalid_tax_status"
    assert result.data["field"] == "tax_status"


def test_meta_data_last_write_wins(db, importer, seed_product) -> None:
    existing = seed_product(meta_data={"colour_code": "old", "other": 1})

    importer.process_item({
        "id": existing.id,
        "meta_data": [{"key": "colour_code", "value": "A"}, {"key": "colour_code", "value": "B"}],
    })

    stored = product_repo.get_product(db, existing.id)
    assert stored.meta_data == {"colour_code": "B", "other": 1}


def test_relations_and_flags(db, importer) -> None:
    result = importer.process_item({
        "name": "Related",
        "category_ids": [3, 3, 4],
        "tag_ids": [7],
        "upsell_ids": [11],
        "cross_sell_ids": ["12"],
        "featured": "yes",
        "catalog_visibility": "Hidden",
        "reviews_allowed": 0,
        "menu_order": 5,
    })

    stored = product_repo.get_product(db, result.id)
    assert stored.category_ids == [3, 4]
    assert stored.tag_ids == [7]
    assert stored.upsell_ids == [11]
    assert stored.cross_sell_ids == [12]
    assert stored.featured is True
    assert stored.catalog_visibility == "hidden"
    assert stored.reviews_allowed is False
    assert stored.menu_order == 5


def test_external_fields_only_apply_to_external_products(db, importer) -> None:
    external = importer.process_item({
        "type": "external", "name": "Aff", "external_url": "https://partner.example/p", "button_text": "Buy",
    })
    simple = importer.process_item({"name": "Local", "external_url": "https://partner.example/q"})

    stored = product_repo.get_product(db, external.id)
    assert stored.product_url == "https://partner.example/p"
    assert stored.button_text == "Buy"
    assert not hasattr(product_repo.get_product(db, simple.id), "product_url")


def test_virtual_product_drops_dimensions(db, importer) -> None:
    result = importer.process_item({
        "name": "Ebook", "virtual": True, "weight": "2", "length": "10", "shipping_class_id": 4,
    })

    stored = product_repo.get_product(db, result.id)
    assert (stored.weight, stored.length, stored.width, stored.height) == ("", "", "", "")
    assert stored.shipping_class_id == 4


def test_downloads_replace_existing_list(db, importer) -> None:
    row = {
        "name": "Pack",
        "downloadable": True,
        "downloads": [
            {"url": "https://files.example/media/manual.pdf"},
            {"name": "Empty", "url": ""},
            {"name": "Drivers", "url": "https://files.example/media/drivers.zip"},
        ],
        "download_limit": 3,
        "download_expiry": -5,
    }
    result = importer.process_item(row)

    stored = product_repo.get_product(db, result.id)
    assert [d.name for d in stored.downloads] == ["manual.pdf", "Drivers"]
    assert stored.downloads[0].id == hashlib.md5(b"https://files.example/media/manual.pdf").hexdigest()
    assert stored.download_limit == 3
    assert stored.download_expiry == -1

    importer.process_item({"id": result.id, "downloads": [{"url": "https://files.example/media/v2.pdf"}]})
    assert [d.file for d in product_repo.get_product(db, result.id).downloads] == [
        "https://files.example/media/v2.pdf"
    ]


def test_downloads_ignored_when_not_downloadable(db, importer) -> None:
    result = importer.process_item({"name": "Plain", "downloads": [{"url": "https://files.example/a.pdf"}]})

    assert product_repo.get_product(db, result.id).downloads == []


def test_file_download_path_hook_rewrites_files(db, importer) -> None:
    seen = []

    def _rewrite(path, product, index):
        seen.append(index)
        return path.replace("https://files.example/", "https://cdn.example/")

    importer.hooks.register(FILE_DOWNLOAD_PATH, _rewrite)
    result = importer.process_item({
        "name": "Cdn",
        "downloadable": True,
        "downloads": [{"url": "https://files.example/a.pdf"}, {"url": "https://files.example/b.pdf"}],
    })

    files = [d.file for d in product_repo.get_product(db, result.id).downloads]
    assert files == ["https://cdn.example/a.pdf", "https://cdn.example/b.pdf"]
    assert seen == [0, 1]


def test_pre_insert_hooks_run_in_registration_order(db, importer) -> None:
    importer.hooks.register(PRE_INSERT_PRODUCT_OBJECT, lambda p, row: p.model_copy(update={"name": p.name + "-a"}))
    importer.hooks.register(PRE_INSERT_PRODUCT_OBJECT, lambda p, row: p.model_copy(update={"name": p.name + "-b"}))
    importer.hooks.register(PRE_INSERT_PRODUCT_OBJECT, lambda p, row: None)

    result = importer.process_item({"name": "base"})

    assert product_repo.get_product(db, result.id).name == "base-a-b"
