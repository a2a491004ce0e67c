from __future__ import annotations

from datetime import datetime, timezone

from product_importer.catalog.product import ProductAttribute, ProductVariation
from product_importer.db.model import ProductRecord
from product_importer.repository import product_repo
from product_importer.services.importer import ImportedRow, RowError


def _variable_parent(seed_product, **attrs):
    return seed_product(
        "variable",
        name="Tee",
        attributes=[ProductAttribute(**a).model_dump() for a in attrs.get("attributes", [])],
    )


def test_variation_without_parent_is_rejected(db, importer) -> None:
    missing = importer.process_item({"type": "variation", "sku": "V-1"})
    unknown = importer.process_item({"type": "variation", "parent_id": 404, "sku": "V-2"})

    for result in (missing, unknown):
        assert isinstance(result, RowError)
        assert result.code == "product_importer_missing_variation_parent_id"
    assert db.query(ProductRecord).count() == 0


def test_color_attribute_uses_taxonomy_slugs(db, importer, seed_color_taxonomy) -> None:
    result = importer.process_item({
        "type": "variable",
        "name": "Tee",
        "attributes": [{"name": "Color", "value": ["Red", "Blue"], "default": "Red"}],
    })

    parent = product_repo.get_product(db, result.id)
    assert len(parent.attributes) == 1
    color = parent.attributes[0]
    assert color.name == seed_color_taxonomy == "color"
    assert color.is_taxonomy
    assert color.options == ["red", "blue"]
    assert color.variation is True
    assert color.visible is True
    assert parent.default_attributes == {"color": "red"}


def test_taxonomy_attribute_without_values_is_dropped(db, importer, seed_color_taxonomy) -> None:
    result = importer.process_item({
        "type": "variable",
        "name": "Bare",
        "attributes": [{"name": "Color", "value": [" ", ""]}, {"name": "Material", "value": ["Cotton"]}],
    })

    parent = product_repo.get_product(db, result.id)
    assert [a.name for a in parent.attributes] == ["Material"]
    assert parent.attributes[0].position == 1


def test_custom_attribute_defaults_only_for_variable(db, importer) -> None:
    row = {"name": "Custom", "attributes": [{"name": "Pack Size", "value": ["1", "6"], "default": "6", "visible": 0}]}

    simple = product_repo.get_product(db, importer.process_item(row).id)
    variable = product_repo.get_product(db, importer.process_item({**row, "type": "variable"}).id)

    assert simple.default_attributes == {}
    assert simple.attributes[0].options == ["1", "6"]
    assert simple.attributes[0].visible is False
    assert variable.default_attributes == {"pack-size": "6"}
    assert variable.attributes[0].variation is True


def test_variation_reconciles_parent_attributes_first(db, importer, seed_product) -> None:
    parent = _variable_parent(seed_product, attributes=[
        {"name": "Size", "options": ["S", "M"], "variation": False},
        {"name": "Fit", "options": ["Slim"], "variation": False},
    ])

    result = importer.process_item({
        "type": "variation",
        "parent_id": parent.id,
        "sku": "TEE-M",
        "regular_price": "12",
        "attributes": [{"name": "Size", "value": ["M"]}, {"name": "Sleeve", "value": ["Long"]}],
    })

    assert isinstance(result, ImportedRow)
    stored_parent = product_repo.get_product(db, parent.id)
    by_name = {a.name: a for a in stored_parent.attributes}
    assert by_name["Size"].variation is True
    assert by_name["Fit"].variation is False
    assert [a.name for a in stored_parent.attributes] == ["Size", "Fit"]

    variation = product_repo.get_product(db, result.id)
    assert isinstance(variation, ProductVariation)
    assert variation.parent_id == parent.id
    assert variation.attributes == {"size": "M"}
    assert variation.price == "12"


def test_variation_taxonomy_value_resolves_to_term_slug(db, importer, seed_color_taxonomy) -> None:
    parent = importer.process_item({
        "type": "variable",
        "name": "Tee",
        "attributes": [{"name": "Color", "value": ["Red", "Blue"], "default": "Red"}],
    })

    result = importer.process_item({
        "type": "variation",
        "parent_id": parent.id,
        "attributes": [{"name": "Color", "value": ["Blue"]}],
    })

    assert product_repo.get_product(db, result.id).attributes == {"color": "blue"}


def test_gmt_sale_dates_override_local_ones(db, importer, seed_product, store_settings) -> None:
    store_settings(STORE_TIMEZONE="Australia/Melbourne")
    parent = _variable_parent(seed_product)

    result = importer.process_item({
        "type": "variation",
        "parent_id": parent.id,
        "regular_price": "20",
        "sale_price": "15",
        "date_on_sale_from": "2024-01-01 00:00:00",
        "date_on_sale_from_gmt": "2024-06-01T12:00:00",
        "date_on_sale_to": "2024-12-31 00:00:00",
        "date_on_sale_to_gmt": "",
    })

    variation = product_repo.get_product(db, result.id)
    assert variation.date_on_sale_from == datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
    assert variation.date_on_sale_to is None


def test_local_sale_dates_use_store_timezone(db, importer, seed_product, store_settings) -> None:
    store_settings(STORE_TIMEZONE="Australia/Melbourne")
    parent = _variable_parent(seed_product)

    result = importer.process_item({
        "type": "variation", "parent_id": parent.id, "date_on_sale_from": "2024-06-01 10:00:00",
    })

    # 墨尔本 6 月为 UTC+10
    assert product_repo.get_product(db, result.id).date_on_sale_from == datetime(2024, 6, 1, 0, 0, tzinfo=timezone.utc)


def test_bad_gmt_date_is_a_validation_error(importer, seed_product) -> None:
    parent = _variable_parent(seed_product)

    result = importer.process_item({"type": "variation", "parent_id": parent.id, "date_on_sale_to_gmt": "soon"})

    assert isinstance(result, RowError)
    assert result.code == "product_invalid_date_on_sale_to"


def test_variation_stock_without_management_resets_backorders(db, importer, seed_product) -> None:
    parent = _variable_parent(seed_product)

    result = importer.process_item({
        "type": "variation",
        "parent_id": parent.id,
        "manage_stock": False,
        "backorders": "yes",
        "stock_quantity": 9,
        "stock_status": False,
    })

    variation = product_repo.get_product(db, result.id)
    assert variation.backorders == "no"
    assert variation.stock_quantity is None
    assert variation.stock_status == "outofstock"


def test_variation_managed_stock_and_fields(db, importer, seed_product) -> None:
    parent = _variable_parent(seed_product)

    result = importer.process_item({
        "type": "variation",
        "parent_id": parent.id,
        "manage_stock": True,
        "stock_quantity": "3",
        "virtual": False,
        "weight": "0.4",
        "tax_class": "reduced-rate",
        "description": "<em>Variant</em><script>x</script>",
        "meta_data": [{"key": "barcode", "value": "0123"}],
    })

    variation = product_repo.get_product(db, result.id)
    assert variation.manage_stock is True
    assert variation.stock_quantity == 3
    assert variation.weight == "0.4"
    assert variation.tax_class == "reduced-rate"
    assert variation.description == "<em>Variant</em>"
    assert variation.get_meta("barcode") == "0123"
