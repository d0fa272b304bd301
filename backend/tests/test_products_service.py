"""
Product catalog service tests.

Covers create/update validation, defaults, listing filters and order,
low-stock evaluation, categories and sample data.
"""

import pytest
from sqlalchemy import text

from grocer.models import Product
from grocer.services import products_service
from grocer.services.tenant_service import NotFoundError
from grocer.validation import ConflictError, ValidationError

from conftest import product_payload


class TestCreateProduct:

    def test_defaults_applied(self, db_session, user_a):
        payload = product_payload()
        del payload["quantity"]
        del payload["reorder_level"]

        product = products_service.create_product(user_a.id, payload)

        assert product.quantity == 0
        assert product.reorder_level == 10
        assert product.description == ""
        assert product.owner_id == user_a.id

    def test_owner_in_payload_ignored(self, db_session, user_a, user_b):
        product = products_service.create_product(user_a.id, product_payload(owner_id=user_b.id))

        assert product.owner_id == user_a.id

    @pytest.mark.parametrize("field", ["name", "sku", "category", "supplier", "price_cents", "cost_cents"])
    def test_required_fields(self, db_session, user_a, field):
        payload = product_payload()
        del payload[field]

        with pytest.raises(ValidationError) as exc_info:
            products_service.create_product(user_a.id, payload)
        assert exc_info.value.field == field

    def test_blank_name_rejected(self, db_session, user_a):
        with pytest.raises(ValidationError) as exc_info:
            products_service.create_product(user_a.id, product_payload(name="   "))
        assert exc_info.value.field == "name"

    @pytest.mark.parametrize(
        "field,value",
        [
            ("price_cents", -1),
            ("cost_cents", -100),
            ("quantity", -3),
            ("reorder_level", -1),
            ("price_cents", 12.5),
            ("quantity", "1e3"),
            ("quantity", True),
            ("price_cents", 1_000_000_000),
        ],
    )
    def test_bad_numbers_rejected(self, db_session, user_a, field, value):
        with pytest.raises(ValidationError) as exc_info:
            products_service.create_product(user_a.id, product_payload(**{field: value}))
        assert exc_info.value.field == field

    def test_numeric_strings_coerced(self, db_session, user_a):
        product = products_service.create_product(user_a.id, product_payload(price_cents="250", quantity=" 7 "))

        assert product.price_cents == 250
        assert product.quantity == 7

    def test_unknown_field_rejected(self, db_session, user_a):
        with pytest.raises(ValidationError) as exc_info:
            products_service.create_product(user_a.id, product_payload(barcode="123"))
        assert exc_info.value.field == "barcode"

    def test_duplicate_sku_allowed(self, db_session, user_a):
        first = products_service.create_product(user_a.id, product_payload())
        second = products_service.create_product(user_a.id, product_payload(name="Skim Milk"))

        assert first.id != second.id
        assert first.sku == second.sku

    def test_non_dict_payload_rejected(self, db_session, user_a):
        with pytest.raises(ValidationError):
            products_service.create_product(user_a.id, ["not", "an", "object"])


class TestUpdateProduct:

    def test_partial_update_keeps_other_fields(self, db_session, user_a, product_a):
        updated = products_service.update_product(user_a.id, product_a.id, {"price_cents": 3900})

        assert updated.price_cents == 3900
        assert updated.name == "Bread"
        assert updated.quantity == 5

    def test_merged_record_revalidated(self, db_session, user_a, product_a):
        with pytest.raises(ValidationError) as exc_info:
            products_service.update_product(user_a.id, product_a.id, {"name": ""})
        assert exc_info.value.field == "name"

        with pytest.raises(ValidationError):
            products_service.update_product(user_a.id, product_a.id, {"quantity": -1})

        db_session.rollback()
        assert db_session.get(Product, product_a.id).name == "Bread"

    def test_required_field_cannot_be_nulled(self, db_session, user_a, product_a):
        with pytest.raises(ValidationError):
            products_service.update_product(user_a.id, product_a.id, {"sku": None})

    def test_owner_cannot_be_reassigned(self, db_session, user_a, user_b, product_a):
        updated = products_service.update_product(user_a.id, product_a.id, {"owner_id": user_b.id, "name": "Rye"})

        assert updated.owner_id == user_a.id
        assert updated.name == "Rye"

    def test_missing_product(self, db_session, user_a):
        with pytest.raises(NotFoundError):
            products_service.update_product(user_a.id, 99999, {"name": "Ghost"})

    def test_update_bumps_version(self, db_session, user_a, product_a):
        before = product_a.version_id
        updated = products_service.update_product(user_a.id, product_a.id, {"quantity": 50})

        assert updated.version_id == before + 1


class TestDeleteProduct:

    def test_delete_removes_row(self, db_session, user_a, product_a):
        product_id = product_a.id
        products_service.delete_product(user_a.id, product_id)

        assert db_session.get(Product, product_id) is None

    def test_delete_missing(self, db_session, user_a):
        with pytest.raises(NotFoundError):
            products_service.delete_product(user_a.id, 424242)


class TestListProducts:

    @pytest.fixture
    def catalog(self, db_session, user_a):
        return [
            products_service.create_product(user_a.id, product_payload(name="Apples", sku="FRU001", category="Fruits")),
            products_service.create_product(user_a.id, product_payload(name="Milk", sku="DAI001", category="Dairy")),
            products_service.create_product(user_a.id, product_payload(name="Eggs", sku="DAI002", category="Dairy")),
        ]

    def test_newest_first(self, user_a, catalog):
        names = [p.name for p in products_service.list_products(user_a.id)]

        assert names == ["Eggs", "Milk", "Apples"]

    def test_category_filter(self, user_a, catalog):
        names = [p.name for p in products_service.list_products(user_a.id, category="Dairy")]

        assert names == ["Eggs", "Milk"]

    @pytest.mark.parametrize("category", ["All Categories", "", "  ", None])
    def test_all_categories_sentinel(self, user_a, catalog, category):
        assert len(products_service.list_products(user_a.id, category=category)) == 3

    def test_search_name_case_insensitive(self, user_a, catalog):
        names = [p.name for p in products_service.list_products(user_a.id, search="aPPl")]

        assert names == ["Apples"]

    def test_search_matches_sku(self, user_a, catalog):
        names = [p.name for p in products_service.list_products(user_a.id, search="dai")]

        assert names == ["Eggs", "Milk"]

    def test_search_and_category_combined(self, user_a, catalog):
        assert products_service.list_products(user_a.id, category="Fruits", search="milk") == []

    def test_search_wildcards_are_literal(self, user_a, catalog):
        assert products_service.list_products(user_a.id, search="%") == []
        assert products_service.list_products(user_a.id, search="_") == []

    def test_categories_distinct_sorted(self, user_a, catalog):
        assert products_service.list_categories(user_a.id) == ["Dairy", "Fruits"]

    def test_empty_catalog(self, db_session, user_a):
        assert products_service.list_products(user_a.id) == []
        assert products_service.list_categories(user_a.id) == []


class TestLowStock:

    def test_boundary_is_inclusive(self, db_session, user_a):
        at = products_service.create_product(user_a.id, product_payload(name="At", quantity=8, reorder_level=8))
        below = products_service.create_product(user_a.id, product_payload(name="Below", quantity=2, reorder_level=8))
        products_service.create_product(user_a.id, product_payload(name="Above", quantity=9, reorder_level=8))

        low = products_service.list_low_stock(user_a.id)

        assert [p.id for p in low] == [below.id, at.id]
        assert all(p.to_dict()["is_low_stock"] for p in low)

    def test_reflects_updates_immediately(self, db_session, user_a, product_a):
        assert [p.id for p in products_service.list_low_stock(user_a.id)] == [product_a.id]

        products_service.update_product(user_a.id, product_a.id, {"quantity": 11})

        assert products_service.list_low_stock(user_a.id) == []

    def test_zero_reorder_level(self, db_session, user_a):
        empty = products_service.create_product(user_a.id, product_payload(quantity=0, reorder_level=0))

        assert [p.id for p in products_service.list_low_stock(user_a.id)] == [empty.id]


class TestSampleData:

    def test_loads_sample_set(self, db_session, user_a):
        products = products_service.load_sample_products(user_a.id)

        assert len(products) == len(products_service.SAMPLE_PRODUCTS)
        assert {p.sku for p in products} == {"FRU001", "DAI001", "BAK001", "DAI002", "GRO001"}
        assert all(p.owner_id == user_a.id for p in products)

    def test_replaces_only_callers_catalog(self, db_session, user_a, product_a, product_b):
        own_id, foreign_id = product_a.id, product_b.id

        products_service.load_sample_products(user_a.id)
        products_service.load_sample_products(user_a.id)

        assert len(products_service.list_products(user_a.id)) == len(products_service.SAMPLE_PRODUCTS)
        assert db_session.get(Product, own_id) is None
        assert db_session.get(Product, foreign_id) is not None


class TestConcurrentUpdate:
    """A stock change committed between load and flush bumps version_id."""

    @pytest.fixture
    def interleave_writer(self, db_session, monkeypatch):
        """Bump version_id right before the update flushes, `times` times."""
        real_rules = products_service.enforce_rules_product
        state = {"remaining": 0, "calls": 0}

        def rules_then_concurrent_write(values):
            state["calls"] += 1
            if state["remaining"]:
                state["remaining"] -= 1
                db_session.execute(text("UPDATE products SET version_id = version_id + 1"))
            real_rules(values)

        monkeypatch.setattr(products_service, "enforce_rules_product", rules_then_concurrent_write)
        return state

    def test_retry_applies_patch(self, db_session, user_a, product_a, interleave_writer):
        interleave_writer["remaining"] = 1

        updated = products_service.update_product(user_a.id, product_a.id, {"price_cents": 4200})

        assert interleave_writer["calls"] == 2
        assert updated.price_cents == 4200

    def test_persistent_conflict_raises(self, db_session, user_a, product_a, interleave_writer):
        interleave_writer["remaining"] = 99
        product_id = product_a.id

        with pytest.raises(ConflictError):
            products_service.update_product(user_a.id, product_id, {"price_cents": 4200})

        assert db_session.get(Product, product_id).price_cents == 6000

    def test_persistent_conflict_is_409(self, client, headers_a, product_a, interleave_writer):
        interleave_writer["remaining"] = 99

        resp = client.put(f"/api/products/{product_a.id}", json={"price_cents": 4200}, headers=headers_a)

        assert resp.status_code == 409
