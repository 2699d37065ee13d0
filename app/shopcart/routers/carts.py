from __future__ import annotations

from fastapi import APIRouter, Depends, status

from app.shopcart.core.deps import get_cart
from app.shopcart.schemas.cart import (
    AmountRequest,
    AssociateRequest,
    CartItemCreate,
    CartItemEnvelope,
    CartItemResponse,
    CartItemsCreateRequest,
    CartItemsResponse,
    CartItemUpdateRequest,
    CartResponse,
    CartSettingsRequest,
    CartSettingsResponse,
    CartSummary,
    ModelRefPayload,
    RateRequest,
)
from app.shopcart.services.cart import Cart
from app.shopcart.services.cart_state import CartDefaults
from app.shopcart.services.catalog import ModelRef
from app.shopcart.services.line_item import LineItem

router = APIRouter(prefix="/carts/{instance}")


def _item_response(item: LineItem) -> CartItemResponse:
    return CartItemResponse(**item.to_dict())


def _model_ref(payload: ModelRefPayload) -> ModelRef:
    return ModelRef(type=payload.type, key=payload.key)


def _cart_response(cart: Cart) -> CartResponse:
    defaults = cart.defaults()
    return CartResponse(
        instance=cart.current_instance(),
        settings=CartSettingsResponse(
            tax_rate=defaults.tax_rate,
            discount_rate=defaults.discount_rate,
            discount_fixed=defaults.discount_fixed,
        ),
        items=[_item_response(item) for item in cart.content().values()],
        summary=CartSummary(**cart.summary()),
    )


def _build_item(cart: Cart, defaults: CartDefaults, payload: CartItemCreate) -> tuple[LineItem, bool, bool]:
    if payload.model is not None:
        source = _model_ref(payload.model)
    else:
        source = {
            "product_id": payload.product_id,
            "name": payload.name,
            "unit_price": payload.unit_price,
        }
    item = cart.make_line_item(source, payload.quantity, payload.options)

    keep_discount = payload.keep_discount
    if payload.discount_rate is not None or payload.discount_fixed is not None:
        if not keep_discount:
            item.set_discount_rate(defaults.discount_rate)
            item.set_discount_fixed(defaults.discount_fixed)
        if payload.discount_rate is not None:
            item.set_discount_rate(payload.discount_rate)
        if payload.discount_fixed is not None:
            item.set_discount_fixed(payload.discount_fixed)
        keep_discount = True
    keep_tax = payload.keep_tax
    if payload.tax_rate is not None:
        item.set_tax_rate(payload.tax_rate)
        keep_tax = True
    return item, keep_discount, keep_tax


def _add_items(cart: Cart, payloads: list[CartItemCreate]) -> list[LineItem]:
    defaults = cart.defaults()
    built = [_build_item(cart, defaults, payload) for payload in payloads]
    return [
        cart.add_line_item(item, keep_discount=keep_discount, keep_tax=keep_tax)
        for item, keep_discount, keep_tax in built
    ]


@router.get("", response_model=CartResponse)
def get_cart_content(cart: Cart = Depends(get_cart)):
    return _cart_response(cart)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
def destroy_cart(cart: Cart = Depends(get_cart)):
    cart.destroy()


@router.put("/settings", response_model=CartResponse)
def update_cart_settings(payload: CartSettingsRequest, cart: Cart = Depends(get_cart)):
    if payload.tax_rate is not None:
        cart.set_global_tax(payload.tax_rate)
    if payload.discount_rate is not None:
        cart.set_global_discount_rate(payload.discount_rate)
    if payload.discount_fixed is not None:
        cart.set_global_discount_fixed(payload.discount_fixed)
    return _cart_response(cart)


@router.post("/items", response_model=CartItemResponse, status_code=status.HTTP_201_CREATED)
def add_cart_item(payload: CartItemCreate, cart: Cart = Depends(get_cart)):
    return _item_response(_add_items(cart, [payload])[0])


@router.post("/items/batch", response_model=CartItemsResponse, status_code=status.HTTP_201_CREATED)
def add_cart_items(payload: CartItemsCreateRequest, cart: Cart = Depends(get_cart)):
    return CartItemsResponse(items=[_item_response(item) for item in _add_items(cart, payload.items)])


@router.get("/items/{row_id}", response_model=CartItemResponse)
def get_cart_item(row_id: str, cart: Cart = Depends(get_cart)):
    return _item_response(cart.get(row_id))


@router.patch("/items/{row_id}", response_model=CartItemEnvelope)
def update_cart_item(row_id: str, payload: CartItemUpdateRequest, cart: Cart = Depends(get_cart)):
    if payload.model is not None:
        value = _model_ref(payload.model)
    else:
        patch = payload.model_dump(exclude_unset=True, exclude={"model"})
        value = patch["quantity"] if set(patch) == {"quantity"} else patch
    item = cart.update(row_id, value)
    return CartItemEnvelope(item=_item_response(item) if item is not None else None)


@router.delete("/items/{row_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_cart_item(row_id: str, cart: Cart = Depends(get_cart)):
    cart.remove(row_id)


@router.put("/items/{row_id}/tax", response_model=CartItemResponse)
def set_cart_item_tax(row_id: str, payload: RateRequest, cart: Cart = Depends(get_cart)):
    return _item_response(cart.set_tax(row_id, payload.rate))


@router.put("/items/{row_id}/discount-rate", response_model=CartItemResponse)
def set_cart_item_discount_rate(row_id: str, payload: RateRequest, cart: Cart = Depends(get_cart)):
    return _item_response(cart.set_discount_rate(row_id, payload.rate))


@router.put("/items/{row_id}/discount-fixed", response_model=CartItemResponse)
def set_cart_item_discount_fixed(row_id: str, payload: AmountRequest, cart: Cart = Depends(get_cart)):
    return _item_response(cart.set_discount_fixed(row_id, payload.amount))


@router.post("/items/{row_id}/associate", response_model=CartItemResponse)
def associate_cart_item(row_id: str, payload: AssociateRequest, cart: Cart = Depends(get_cart)):
    return _item_response(cart.associate(row_id, _model_ref(payload.model)))
