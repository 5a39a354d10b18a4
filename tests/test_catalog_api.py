from extensions import db
from models import Option, OptionGroup, Product, ProductOptionGroup


class TestCategories:
    def test_create_orders_after_existing(self, client, catalog, admin_headers):
        res = client.post("/api/admin/categories", json={"name": "Sobremesas", "icon": "cake"}, headers=admin_headers)

        assert res.status_code == 201
        assert res.get_json()["category"]["display_order"] == 2

        names = [c["name"] for c in client.get("/api/admin/categories", headers=admin_headers).get_json()["categories"]]
        assert names == ["Burgers", "Bebidas", "Sobremesas"]

    def test_hide_category_from_menu(self, client, catalog, admin_headers):
        res = client.put(f"/api/admin/categories/{catalog.burger.category_id}", json={"active": False}, headers=admin_headers)
        assert res.get_json()["category"]["active"] is False

        menu = client.get("/api/menu").get_json()
        assert [category["name"] for category in menu["categories"]] == ["Bebidas"]

    def test_delete_keeps_products_uncategorised(self, client, catalog, admin_headers):
        drinks_id = catalog.soda.category_id

        assert client.delete(f"/api/admin/categories/{drinks_id}", headers=admin_headers).status_code == 200

        assert db.session.get(Product, catalog.soda.id).category_id is None
        menu = client.get("/api/menu").get_json()
        assert [product["name"] for product in menu["uncategorised"]] == ["Refrigerante"]

    def test_staff_cannot_edit_menu(self, client, staff_headers):
        assert client.post("/api/admin/categories", json={"name": "X"}, headers=staff_headers).status_code == 403


class TestProducts:
    def test_create_with_ingredients(self, client, catalog, admin_headers):
        payload = {
            "name": "X-Salada",
            "price": 38.9,
            "category_id": catalog.burger.category_id,
            "ingredients": [{"name": "Alface"}, {"name": "Pão", "removable": False}],
        }
        res = client.post("/api/admin/products", json=payload, headers=admin_headers)

        assert res.status_code == 201
        product = res.get_json()["product"]
        assert product["price"] == 38.9
        assert product["display_order"] == 1
        assert {i["name"]: i["removable"] for i in product["ingredients"]} == {"Alface": True, "Pão": False}

    def test_unknown_category(self, client, admin_headers):
        res = client.post("/api/admin/products", json={"name": "X", "price": 1, "category_id": 99}, headers=admin_headers)
        assert res.status_code == 400
        assert "category_id" in res.get_json()["details"]

    def test_list_includes_inactive_and_filters(self, client, catalog, admin_headers):
        res = client.get(f"/api/admin/products?category_id={catalog.soda.category_id}", headers=admin_headers)
        assert [p["name"] for p in res.get_json()["products"]] == ["Refrigerante", "Suco"]

    def test_update_price_changes_quotes(self, client, catalog, admin_headers):
        res = client.put(f"/api/admin/products/{catalog.soda.id}", json={"price": 7}, headers=admin_headers)
        assert res.get_json()["product"]["price"] == 7.0

        body = client.post(f"/api/products/{catalog.soda.id}/price", json={"quantity": 2}).get_json()
        assert body["line_item"]["line_total"] == 14.0

    def test_replace_ingredients(self, client, catalog, admin_headers):
        res = client.put(
            f"/api/admin/products/{catalog.burger.id}",
            json={"ingredients": [{"name": "Picles"}]},
            headers=admin_headers,
        )
        assert [i["name"] for i in res.get_json()["product"]["ingredients"]] == ["Picles"]

    def test_delete(self, client, catalog, admin_headers):
        burger_id = catalog.burger.id
        assert client.delete(f"/api/admin/products/{burger_id}", headers=admin_headers).status_code == 200
        assert db.session.get(Product, burger_id) is None
        assert ProductOptionGroup.query.count() == 0


class TestOptionGroups:
    def test_create_group_and_options(self, client, admin_headers):
        payload = {"name": "Molhos", "min_selections": 0, "max_selections": 2}
        res = client.post("/api/admin/option-groups", json=payload, headers=admin_headers)
        assert res.status_code == 201
        group_id = res.get_json()["option_group"]["id"]

        for name, price in (("Barbecue", 2), ("Maionese verde", 2.5)):
            res = client.post(
                f"/api/admin/option-groups/{group_id}/options",
                json={"name": name, "price": price},
                headers=admin_headers,
            )
            assert res.status_code == 201

        groups = client.get("/api/admin/option-groups", headers=admin_headers).get_json()["option_groups"]
        assert [o["display_order"] for o in groups[0]["options"]] == [0, 1]
        assert groups[0]["options"][1]["price"] == 2.5

    def test_min_above_max_is_rejected(self, client, admin_headers):
        payload = {"name": "Molhos", "min_selections": 3, "max_selections": 2}
        res = client.post("/api/admin/option-groups", json=payload, headers=admin_headers)
        assert res.status_code == 400
        assert "max_selections" in res.get_json()["details"]

    def test_required_group_needs_a_minimum(self, client, admin_headers):
        payload = {"name": "Ponto", "min_selections": 0, "max_selections": 1, "is_required": True}
        res = client.post("/api/admin/option-groups", json=payload, headers=admin_headers)
        assert res.status_code == 400
        assert "min_selections" in res.get_json()["details"]

    def test_partial_update_is_checked_against_stored_limits(self, client, catalog, admin_headers):
        url = f"/api/admin/option-groups/{catalog.extras.id}"

        assert client.put(url, json={"min_selections": 3}, headers=admin_headers).status_code == 400
        assert client.put(url, json={"is_required": True}, headers=admin_headers).status_code == 400

        res = client.put(url, json={"max_selections": 3}, headers=admin_headers)
        assert res.status_code == 200
        assert db.session.get(OptionGroup, catalog.extras.id).max_selections == 3

    def test_deactivated_option_leaves_the_storefront(self, client, catalog, admin_headers):
        res = client.put(f"/api/admin/options/{catalog.egg.id}", json={"active": False}, headers=admin_headers)
        assert res.get_json()["option"]["active"] is False

        product = client.get(f"/api/products/{catalog.burger.id}").get_json()["product"]
        assert [o["name"] for o in product["option_groups"][1]["options"]] == ["Bacon", "Cheddar"]

    def test_delete_option(self, client, catalog, admin_headers):
        cheddar_id = catalog.cheddar.id
        assert client.delete(f"/api/admin/options/{cheddar_id}", headers=admin_headers).status_code == 200
        assert db.session.get(Option, cheddar_id) is None

    def test_delete_group_detaches_products(self, client, catalog, admin_headers):
        extras_id = catalog.extras.id
        res = client.delete(f"/api/admin/option-groups/{extras_id}", headers=admin_headers)

        assert res.status_code == 200
        assert Option.query.filter_by(option_group_id=extras_id).count() == 0
        product = client.get(f"/api/products/{catalog.burger.id}").get_json()["product"]
        assert [group["name"] for group in product["option_groups"]] == ["Ponto"]


class TestProductOptionGroups:
    def test_link_and_unlink(self, client, catalog, admin_headers):
        url = f"/api/admin/products/{catalog.soda.id}/option-groups"

        res = client.post(url, json={"option_group_id": catalog.extras.id}, headers=admin_headers)
        assert res.status_code == 201
        assert res.get_json()["link"]["option_group"]["name"] == "Adicionais"

        assert client.post(url, json={"option_group_id": catalog.extras.id}, headers=admin_headers).status_code == 409

        product = client.get(f"/api/products/{catalog.soda.id}").get_json()["product"]
        assert [group["name"] for group in product["option_groups"]] == ["Adicionais"]

        res = client.delete(f"{url}/{catalog.extras.id}", headers=admin_headers)
        assert res.status_code == 200
        assert client.get(url, headers=admin_headers).get_json()["option_groups"] == []

    def test_new_link_goes_last(self, client, catalog, admin_headers):
        group = client.post(
            "/api/admin/option-groups",
            json={"name": "Molhos", "max_selections": 2},
            headers=admin_headers,
        ).get_json()["option_group"]

        url = f"/api/admin/products/{catalog.burger.id}/option-groups"
        client.post(url, json={"option_group_id": group["id"]}, headers=admin_headers)

        links = client.get(url, headers=admin_headers).get_json()["option_groups"]
        assert [link["option_group"]["name"] for link in links] == ["Ponto", "Adicionais", "Molhos"]

    def test_unknown_group(self, client, catalog, admin_headers):
        url = f"/api/admin/products/{catalog.soda.id}/option-groups"
        assert client.post(url, json={"option_group_id": 999}, headers=admin_headers).status_code == 404

    def test_unlink_missing(self, client, catalog, admin_headers):
        url = f"/api/admin/products/{catalog.soda.id}/option-groups/{catalog.extras.id}"
        assert client.delete(url, headers=admin_headers).status_code == 404
