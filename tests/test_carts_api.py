from app.shopcart.repos.cart_events import CartEventRepository
from app.shopcart.services.catalog import model_registry
from tests.cart_helpers import BuyableProduct, item_attributes, row_id


def _add(client, instance="default", **payload):
    body = item_attributes(**payload)
    return client.post(f"/carts/{instance}/items", json=body)


def test_add_item_returns_priced_line_item(client):
    response = _add(client, unit_price=999, quantity=2)

    assert response.status_code == 201
    payload = response.json()
    assert payload["row_id"] == row_id()
    assert payload["quantity"] == 2
    assert payload["tax_rate"] == 21
    assert payload["total"] == 1998
    assert payload["tax_total"] == 420
    assert payload["subtotal"] == 1578
    assert response.headers["X-Trace-ID"]


def test_add_item_with_explicit_rates_keeps_them(client):
    response = _add(client, tax_rate=7, discount_rate=10)

    payload = response.json()
    assert payload["tax_rate"] == 7
    assert payload["discount_rate"] == 10
    assert payload["discount_total"] == 100


def test_add_same_item_twice_merges(client):
    _add(client)
    response = _add(client, quantity=2)

    assert response.json()["quantity"] == 3
    content = client.get("/carts/default").json()
    assert len(content["items"]) == 1
    assert content["summary"]["count"] == 3


def test_add_item_with_invalid_attribute_returns_error_envelope(client):
    response = client.post("/carts/default/items", json={"product_id": 1, "unit_price": 1000})

    assert response.status_code == 422
    payload = response.json()
    assert payload["code"] == "INVALID_ATTRIBUTE"
    assert payload["message"] == "Please supply a valid name."
    assert payload["details"]["field"] == "name"
    assert payload["trace_id"]


def test_add_item_with_bad_payload_returns_validation_error(client):
    response = client.post("/carts/default/items", json={"product_id": 1, "name": "x", "unit_price": "cheap"})

    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_add_items_batch(client):
    response = client.post(
        "/carts/default/items/batch",
        json={"items": [item_attributes(product_id=1), item_attributes(product_id=2, quantity=2)]},
    )

    assert response.status_code == 201
    assert [item["product_id"] for item in response.json()["items"]] == [1, 2]


def test_get_cart_content_and_summary(client):
    _add(client, product_id=1, unit_price=1000)
    _add(client, product_id=2, unit_price=2000, quantity=2)

    response = client.get("/carts/default")

    assert response.status_code == 200
    payload = response.json()
    assert payload["instance"] == "default"
    assert payload["settings"] == {"tax_rate": 21, "discount_rate": 0, "discount_fixed": 0}
    assert [item["product_id"] for item in payload["items"]] == [1, 2]
    assert payload["summary"]["total"] == 5000
    assert payload["summary"]["tax"] == 1050
    assert payload["summary"]["subtotal"] == 3950


def test_instances_are_separate_over_http(client):
    _add(client, instance="wishlist")

    assert client.get("/carts/default").json()["items"] == []
    assert len(client.get("/carts/wishlist").json()["items"]) == 1


def test_get_missing_item_returns_not_found(client):
    response = client.get("/carts/default/items/unknown")

    assert response.status_code == 404
    payload = response.json()
    assert payload["code"] == "ROW_NOT_FOUND"
    assert payload["message"] == "The cart does not contain rowId unknown."


def test_patch_quantity(client):
    _add(client)

    response = client.patch(f"/carts/default/items/{row_id()}", json={"quantity": 5})

    assert response.status_code == 200
    assert response.json()["item"]["quantity"] == 5


def test_patch_quantity_to_zero_removes_item(client):
    _add(client)

    response = client.patch(f"/carts/default/items/{row_id()}", json={"quantity": 0})

    assert response.status_code == 200
    assert response.json() == {"item": None}
    assert client.get("/carts/default").json()["items"] == []


def test_patch_options_changes_row_id(client):
    _add(client)

    response = client.patch(f"/carts/default/items/{row_id()}", json={"options": {"size": "L"}})

    assert response.json()["item"]["row_id"] == row_id(1, {"size": "L"})
    assert client.get(f"/carts/default/items/{row_id()}").status_code == 404


def test_delete_item_and_destroy_cart(client):
    _add(client, product_id=1)
    _add(client, product_id=2)

    assert client.delete(f"/carts/default/items/{row_id(1)}").status_code == 204
    assert len(client.get("/carts/default").json()["items"]) == 1

    assert client.delete("/carts/default").status_code == 204
    assert client.get("/carts/default").json()["items"] == []


def test_item_rate_endpoints(client):
    _add(client)
    path = f"/carts/default/items/{row_id()}"

    assert client.put(f"{path}/tax", json={"rate": 19}).json()["tax_rate"] == 19
    assert client.put(f"{path}/discount-rate", json={"rate": 50}).json()["discount_rate"] == 50
    response = client.put(f"{path}/discount-fixed", json={"amount": 100})

    assert response.json()["discount_fixed"] == 100
    assert client.put(f"{path}/tax", json={"rate": 101}).status_code == 422


def test_cart_settings_apply_to_items(client):
    _add(client)

    response = client.put("/carts/default/settings", json={"tax_rate": 10, "discount_rate": 20})

    assert response.status_code == 200
    payload = response.json()
    assert payload["settings"]["tax_rate"] == 10
    assert payload["settings"]["discount_rate"] == 20
    assert payload["items"][0]["tax_rate"] == 10
    assert payload["items"][0]["total"] == 800


def test_unknown_model_reference_is_rejected(client):
    response = client.post("/carts/default/items", json={"model": {"type": "invoice", "key": 1}})

    assert response.status_code == 422
    assert response.json()["code"] == "UNKNOWN_MODEL"


def test_model_reference_and_association(client):
    model_registry.register("product", BuyableProduct, loader=lambda key: BuyableProduct(key, "Catalog item", 1500))
    try:
        response = client.post("/carts/default/items", json={"model": {"type": "product", "key": 3}})
        assert response.status_code == 201
        payload = response.json()
        assert payload["name"] == "Catalog item"
        assert payload["associated"] == {"type": "product", "key": 3}

        _add(client, product_id=9)
        response = client.post(
            f"/carts/default/items/{row_id(9)}/associate",
            json={"model": {"type": "product"}},
        )
        assert response.json()["associated"] == {"type": "product", "key": 9}
    finally:
        model_registry.unregister("product")


def test_cart_events_are_persisted(client, db_session):
    _add(client)
    client.patch(f"/carts/default/items/{row_id()}", json={"quantity": 2})

    events = CartEventRepository(db_session).list_for_instance("cart.default")

    assert [event.event for event in events] == [
        "cart.adding",
        "cart.added",
        "cart.updating",
        "cart.updated",
    ]


def test_memory_backend_keeps_state_between_requests(memory_client):
    memory_client.post("/carts/default/items", json=item_attributes(quantity=2))

    payload = memory_client.get("/carts/default").json()

    assert payload["summary"]["count"] == 2
    assert memory_client.get("/ready").json()["store"] == "memory"


def test_failed_batch_adds_nothing(client):
    response = client.post(
        "/carts/default/items/batch",
        json={"items": [item_attributes(product_id=1), {"product_id": 2, "unit_price": 1000}]},
    )

    assert response.status_code == 422
    assert response.json()["code"] == "INVALID_ATTRIBUTE"
    assert client.get("/carts/default").json()["items"] == []


def test_explicit_discount_rate_keeps_cart_fixed_discount(client):
    client.put("/carts/default/settings", json={"discount_fixed": 100})

    payload = _add(client, discount_rate=10).json()

    assert payload["discount_rate"] == 10
    assert payload["discount_fixed"] == 100
    assert payload["discount_total"] == 200


def test_explicit_discount_fixed_keeps_cart_discount_rate(client):
    client.put("/carts/default/settings", json={"discount_rate": 20})

    payload = _add(client, discount_fixed=50).json()

    assert payload["discount_rate"] == 20
    assert payload["discount_fixed"] == 50


def test_patch_with_null_options_keeps_row(client):
    _add(client, options={"size": "L"})
    path = f"/carts/default/items/{row_id(1, {'size': 'L'})}"

    response = client.patch(path, json={"options": None, "quantity": 2})

    assert response.json()["item"]["row_id"] == row_id(1, {"size": "L"})
    assert response.json()["item"]["options"] == {"size": "L"}
