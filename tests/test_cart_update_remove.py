import pytest

from app.shopcart.core.error_catalog import InvalidAttributeError, RowNotFoundError, UnknownModelError
from app.shopcart.services.catalog import ModelRef
from tests.cart_helpers import BuyableProduct, item_attributes, row_id


def test_update_quantity(cart, sink):
    item = cart.add(BuyableProduct())

    updated = cart.update(item.row_id, 2)

    assert updated.quantity == 2
    assert cart.count() == 2
    assert sink.names()[-2:] == ["cart.updating", "cart.updated"]


@pytest.mark.parametrize("quantity", [0, -1])
def test_update_to_non_positive_quantity_removes_row(cart, store, sink, quantity):
    item = cart.add(BuyableProduct())

    assert cart.update(item.row_id, quantity) is None

    assert cart.content() == {}
    assert sink.names()[-2:] == ["cart.removing", "cart.removed"]
    assert store.keys() == []


def test_update_with_attribute_patch_keeps_row_when_identity_is_unchanged(cart):
    item = cart.add(BuyableProduct())

    updated = cart.update(item.row_id, {"name": "Different name", "unit_price": 2500})

    assert updated.row_id == item.row_id
    assert cart.get(item.row_id).name == "Different name"
    assert cart.get(item.row_id).unit_price == 2500


def test_update_options_moves_row_but_keeps_position(cart):
    cart.add(BuyableProduct(1))
    cart.add(BuyableProduct(2))
    cart.add(BuyableProduct(3))

    updated = cart.update(row_id(2), {"options": {"size": "L"}})

    assert updated.row_id == row_id(2, {"size": "L"})
    assert list(cart.content()) == [row_id(1), row_id(2, {"size": "L"}), row_id(3)]


def test_update_into_existing_row_merges_quantity(cart):
    cart.add(BuyableProduct(1), 1, {"size": "XL"})
    cart.add(BuyableProduct(2))
    cart.add(BuyableProduct(1), 2, {"size": "S"})

    merged = cart.update(row_id(1, {"size": "XL"}), {"options": {"size": "S"}})

    assert merged.row_id == row_id(1, {"size": "S"})
    assert merged.quantity == 3
    assert list(cart.content()) == [row_id(2), row_id(1, {"size": "S"})]


def test_update_with_buyable_refreshes_catalog_fields(cart):
    item = cart.add(BuyableProduct(), 1, {"size": "L"})

    updated = cart.update(item.row_id, BuyableProduct(1, "Different", 2000))

    assert updated.row_id == item.row_id
    assert updated.name == "Different"
    assert updated.unit_price == 2000


def test_update_with_model_reference_loads_buyable(cart):
    item = cart.add(BuyableProduct())

    updated = cart.update(item.row_id, ModelRef(type="product", key=1))

    assert updated.name == "Loaded product"


def test_update_missing_row_raises(cart):
    with pytest.raises(RowNotFoundError) as excinfo:
        cart.update("does-not-exist", 2)

    assert str(excinfo.value) == "The cart does not contain rowId does-not-exist."


def test_update_rejects_unsupported_value(cart):
    item = cart.add(BuyableProduct())

    with pytest.raises(InvalidAttributeError):
        cart.update(item.row_id, "three")


def test_invalid_patch_leaves_stored_item_untouched(cart):
    item = cart.add(BuyableProduct())

    with pytest.raises(InvalidAttributeError):
        cart.update(item.row_id, {"name": "Renamed", "unit_price": -1})

    assert cart.get(item.row_id).name == "Item name"


def test_set_quantity_rejects_zero(cart):
    item = cart.add(BuyableProduct())

    with pytest.raises(InvalidAttributeError):
        cart.set_quantity(item.row_id, 0)

    assert cart.get(item.row_id).quantity == 1


def test_remove_row(cart, sink):
    item = cart.add(BuyableProduct())
    cart.add(BuyableProduct(2))

    cart.remove(item.row_id)

    assert list(cart.content()) == [row_id(2)]
    assert sink.names()[-2:] == ["cart.removing", "cart.removed"]


def test_remove_missing_row_raises(cart):
    with pytest.raises(RowNotFoundError):
        cart.remove("does-not-exist")


def test_destroy_empties_the_instance(cart, store):
    cart.add(BuyableProduct())
    cart.set_global_tax(10)

    cart.destroy()

    assert cart.content() == {}
    assert cart.defaults().tax_rate == 21
    assert store.keys() == []


def test_per_item_rate_setters(cart):
    item = cart.add(BuyableProduct())

    cart.set_tax(item.row_id, 19)
    cart.set_discount_rate(item.row_id, 50)
    cart.set_discount_fixed(item.row_id, 100)

    stored = cart.get(item.row_id)
    assert stored.tax_rate == 19
    assert stored.discount_rate == 50
    assert stored.discount_fixed == 100


def test_per_item_rate_setter_rejects_out_of_range_rate(cart):
    item = cart.add(BuyableProduct())

    with pytest.raises(InvalidAttributeError):
        cart.set_tax(item.row_id, 150)


def test_associate_and_resolve_model(cart):
    item = cart.add(item_attributes())

    associated = cart.associate(item.row_id, "product")

    assert associated.associated == ModelRef(type="product", key=1)
    model = cart.model(item.row_id)
    assert isinstance(model, BuyableProduct)
    assert model.name == "Loaded product"


def test_associate_unknown_model_raises(cart):
    item = cart.add(item_attributes())

    with pytest.raises(UnknownModelError) as excinfo:
        cart.associate(item.row_id, "invoice")

    assert str(excinfo.value) == "The supplied model invoice does not exist."
    assert cart.get(item.row_id).associated is None


def test_model_is_none_without_association(cart):
    item = cart.add(item_attributes())

    assert cart.model(item.row_id) is None


def test_search_returns_matching_items(cart):
    cart.add(BuyableProduct(1), 1, {"size": "L"})
    cart.add(BuyableProduct(2))

    found = cart.search(lambda item: item.options.get("size") == "L")

    assert [item.product_id for item in found] == [1]
    assert cart.search(lambda item: item.product_id == 99) == []


def test_get_missing_row_raises(cart):
    with pytest.raises(RowNotFoundError):
        cart.get("nonexistent-row")


def test_associate_unregistered_object_raises(cart):
    item = cart.add(item_attributes())

    with pytest.raises(UnknownModelError):
        cart.associate(item.row_id, object())
