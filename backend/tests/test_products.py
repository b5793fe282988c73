"""
Catalog tests.

Verifies:
- Search with no filters equals the active listing, same order
- Search is a case-insensitive name substring plus exact category
- Inactive products are hidden from everyone but their seller and admins
- Only the owning seller (or an admin) may update or delete a product
- Price and stock validation on create
"""

import dataclasses
import io
import os

import pytest
from werkzeug.datastructures import FileStorage

from buildmart.errors import NotFoundError, PermissionDeniedError
from buildmart.models import Product
from buildmart.permissions import ACTION_POLICIES
from buildmart.services import file_storage_service, products_service

from conftest import make_product, principal_for


# =============================================================================
# LISTING AND SEARCH
# =============================================================================


class TestSearch:

    def test_empty_search_equals_listing(self, db_session, seller):
        make_product(seller, name="Cement 50kg", category="cement")
        make_product(seller, name="Sand 1t", category="aggregate")
        make_product(seller, name="Hidden", is_active=False)

        listing = [p.id for p in products_service.list_active()]
        assert [p.id for p in products_service.search()] == listing
        assert [p.id for p in products_service.search("  ", "")] == listing
        assert len(listing) == 2

    def test_newest_first(self, db_session, seller):
        first = make_product(seller, name="First")
        second = make_product(seller, name="Second")
        ids = [p.id for p in products_service.list_active()]
        assert ids.index(second.id) < ids.index(first.id)

    def test_name_substring_case_insensitive(self, db_session, seller):
        cement = make_product(seller, name="Portland CEMENT")
        make_product(seller, name="Gravel")
        assert [p.id for p in products_service.search("cement")] == [cement.id]

    def test_category_exact(self, db_session, seller):
        steel = make_product(seller, name="Rebar", category="steel")
        make_product(seller, name="Steel-look tile", category="tiles")
        assert [p.id for p in products_service.search(category="steel")] == [steel.id]

    def test_like_wildcards_are_literal(self, db_session, seller):
        make_product(seller, name="Pipe 100mm")
        assert products_service.search("%") == []
        assert products_service.search("_") == []

    def test_inactive_never_listed(self, db_session, seller):
        make_product(seller, name="Retired cement", is_active=False)
        assert products_service.search("cement") == []

    def test_categories_distinct_sorted(self, db_session, seller):
        make_product(seller, category="steel")
        make_product(seller, category="cement")
        make_product(seller, category="cement")
        make_product(seller, category="hidden", is_active=False)
        assert products_service.list_categories() == ["cement", "steel"]

    def test_list_endpoint(self, client, db_session, seller):
        make_product(seller, name="Cement 50kg")
        resp = client.get("/api/products?search=CEM")
        assert resp.status_code == 200
        assert [p["name"] for p in resp.json] == ["Cement 50kg"]
        assert resp.json[0]["price"] == "15.00"


# =============================================================================
# VISIBILITY
# =============================================================================


class TestVisibility:

    def test_inactive_hidden_from_public(self, db_session, seller, buyer):
        hidden = make_product(seller, is_active=False)
        with pytest.raises(NotFoundError):
            products_service.get_product(None, hidden.id)
        with pytest.raises(NotFoundError):
            products_service.get_product(principal_for(buyer), hidden.id)

    def test_inactive_visible_to_owner_and_admin(self, db_session, seller, admin):
        hidden = make_product(seller, is_active=False)
        assert products_service.get_product(principal_for(seller), hidden.id).id == hidden.id
        assert products_service.get_product(principal_for(admin), hidden.id).id == hidden.id

    def test_inactive_hidden_from_other_seller(self, db_session, seller, seller_b):
        hidden = make_product(seller, is_active=False)
        with pytest.raises(NotFoundError):
            products_service.get_product(principal_for(seller_b), hidden.id)

    def test_seller_listing_includes_inactive(self, client, db_session, seller, seller_b, seller_headers):
        mine = make_product(seller, is_active=False)
        make_product(seller_b, name="Not mine")
        resp = client.get("/api/seller/products", headers=seller_headers)
        assert resp.status_code == 200
        assert [p["id"] for p in resp.json] == [mine.id]

    def test_fetch_unknown_is_404(self, client, db_session):
        resp = client.get("/api/products/does-not-exist")
        assert resp.status_code == 404
        assert resp.json["kind"] == "NotFound"


# =============================================================================
# OWNERSHIP
# =============================================================================


class TestOwnership:

    def test_other_seller_cannot_delete(self, client, db_session, seller, seller_b_headers):
        product = make_product(seller)
        resp = client.delete(f"/api/products/{product.id}", headers=seller_b_headers)
        assert resp.status_code == 403
        assert resp.json["kind"] == "Forbidden"
        assert db_session.get(Product, product.id) is not None

    def test_admin_can_delete(self, client, db_session, seller, admin_headers):
        product = make_product(seller)
        product_id = product.id
        resp = client.delete(f"/api/products/{product_id}", headers=admin_headers)
        assert resp.status_code == 204
        db_session.expire_all()
        assert db_session.get(Product, product_id) is None

    def test_owner_can_update(self, client, db_session, seller, seller_headers):
        product = make_product(seller)
        resp = client.put(
            f"/api/products/{product.id}",
            json={"price": "18.25", "isActive": False},
            headers=seller_headers,
        )
        assert resp.status_code == 200
        assert resp.json["price"] == "18.25"
        assert resp.json["is_active"] is False

    def test_other_seller_cannot_update(self, db_session, seller, seller_b):
        product = make_product(seller)
        with pytest.raises(PermissionDeniedError):
            products_service.update_product(principal_for(seller_b), product.id, patch={"price": 1})

    def test_buyer_cannot_create(self, client, db_session, buyer_headers):
        resp = client.post(
            "/api/products",
            json={"name": "X", "description": "Y", "price": "1.00", "category": "z"},
            headers=buyer_headers,
        )
        assert resp.status_code == 403

    def test_anonymous_cannot_create(self, client, db_session):
        resp = client.post("/api/products", json={"name": "X"})
        assert resp.status_code == 401
        assert resp.json["kind"] == "AuthenticationRequired"


# =============================================================================
# CREATE AND VALIDATION
# =============================================================================


class TestCreate:

    def test_create_sets_owner(self, client, db_session, seller, seller_headers):
        resp = client.post(
            "/api/products",
            json={
                "name": "Bricks (pallet)",
                "description": "500 red bricks",
                "price": "120.00",
                "stock": 10,
                "category": "masonry",
                "seller_id": "someone-else",
            },
            headers=seller_headers,
        )
        # seller_id is not writable
        assert resp.status_code == 400

        resp = client.post(
            "/api/products",
            json={
                "name": "Bricks (pallet)",
                "description": "500 red bricks",
                "price": "120.00",
                "stock": 10,
                "category": "masonry",
            },
            headers=seller_headers,
        )
        assert resp.status_code == 201
        assert resp.json["seller_id"] == seller.id
        assert resp.json["is_active"] is True

    @pytest.mark.parametrize(
        "field,value",
        [
            ("price", "-1.00"),
            ("price", "1.005"),
            ("price", "abc"),
            ("stock", -3),
            ("stock", 2.5),
        ],
    )
    def test_invalid_values_rejected(self, client, db_session, seller_headers, field, value):
        payload = {"name": "N", "description": "D", "price": "1.00", "category": "c", field: value}
        resp = client.post("/api/products", json=payload, headers=seller_headers)
        assert resp.status_code == 400
        assert resp.json["kind"] == "ValidationError"

    def test_missing_required(self, client, db_session, seller_headers):
        resp = client.post("/api/products", json={"name": "Only a name"}, headers=seller_headers)
        assert resp.status_code == 400
        assert "price" in resp.json["details"]["missing"]

    def test_multipart_with_image(self, client, db_session, seller_headers):
        data = {
            "name": "Tile",
            "description": "Ceramic",
            "price": "2.50",
            "stock": "7",
            "category": "tiles",
            "image": (io.BytesIO(b"\x89PNG fake"), "tile.png"),
        }
        resp = client.post(
            "/api/products",
            data=data,
            headers=seller_headers,
            content_type="multipart/form-data",
        )
        assert resp.status_code == 201
        assert resp.json["stock"] == 7
        assert resp.json["image_url"].startswith("/uploads/image-")

        served = client.get(resp.json["image_url"])
        assert served.status_code == 200
        assert served.data == b"\x89PNG fake"


# =============================================================================
# UPLOADS ON REFUSED OR FAILED WRITES
# =============================================================================


def _stored_files(app) -> set[str]:
    return set(os.listdir(app.config["UPLOAD_FOLDER"]))


class TestUploadCleanup:

    def test_foreign_update_stores_nothing(self, app, client, db_session, seller, seller_b_headers):
        product = make_product(seller)
        before = _stored_files(app)
        resp = client.put(
            f"/api/products/{product.id}",
            data={"price": "1.00", "image": (io.BytesIO(b"\x89PNG intruder"), "x.png")},
            headers=seller_b_headers,
            content_type="multipart/form-data",
        )
        assert resp.status_code == 403
        assert _stored_files(app) == before
        db_session.expire_all()
        assert db_session.get(Product, product.id).image_url is None

    def test_failed_create_removes_file(self, app, client, db_session, seller_headers, monkeypatch):
        def broken_create(principal, *, patch):
            raise RuntimeError("database went away")

        monkeypatch.setattr(products_service, "create_product", broken_create)
        before = _stored_files(app)
        resp = client.post(
            "/api/products",
            data={
                "name": "Tile", "description": "Ceramic", "price": "2.50", "category": "tiles",
                "image": (io.BytesIO(b"\x89PNG fake"), "tile.png"),
            },
            headers=seller_headers,
            content_type="multipart/form-data",
        )
        assert resp.status_code == 500
        assert _stored_files(app) == before

    def test_staged_upload_kept_on_success(self, app, db_session):
        upload = FileStorage(stream=io.BytesIO(b"data"), filename="a.png")
        with file_storage_service.staged_upload(upload) as image_url:
            pass
        assert os.path.exists(file_storage_service.resolve_path(image_url))

    def test_staged_upload_optional_without_file(self, app, db_session):
        with file_storage_service.staged_upload(None) as image_url:
            assert image_url is None


# =============================================================================
# CATALOG READS GO THROUGH THE ACCESS GATE
# =============================================================================


class TestCatalogGate:

    def test_reads_follow_view_catalog_policy(self, client, db_session, seller, buyer_headers, monkeypatch):
        product = make_product(seller)
        private = dataclasses.replace(ACTION_POLICIES["VIEW_CATALOG"], public=False)
        monkeypatch.setitem(ACTION_POLICIES, "VIEW_CATALOG", private)

        for path in ("/api/products", "/api/products/categories", f"/api/products/{product.id}"):
            assert client.get(path).status_code == 401
            assert client.get(path, headers=buyer_headers).status_code == 200

    def test_public_by_default(self, client, db_session, seller):
        product = make_product(seller)
        assert client.get("/api/products/categories").status_code == 200
        assert client.get(f"/api/products/{product.id}").status_code == 200
