from __future__ import annotations

from typing import Any, Union

from pydantic import BaseModel, Field, StrictBool, StrictFloat, StrictInt, StrictStr

OptionValue = Union[StrictStr, StrictInt, StrictFloat, StrictBool, None]


class ModelRefPayload(BaseModel):
    type: str = Field(min_length=1, examples=["product"])
    key: Any = None


class CartItemCreate(BaseModel):
    product_id: int | None = Field(default=None, examples=[1])
    name: str | None = Field(default=None, examples=["Sourdough loaf"])
    unit_price: int | None = Field(default=None, examples=[999])
    quantity: int = Field(default=1, examples=[2])
    options: dict[str, OptionValue] = Field(default_factory=dict, examples=[{"size": "L"}])
    model: ModelRefPayload | None = None
    keep_discount: bool = False
    keep_tax: bool = False
    discount_rate: int | None = Field(default=None, ge=0, le=100)
    discount_fixed: int | None = Field(default=None, ge=0)
    tax_rate: int | None = Field(default=None, ge=0, le=100)


class CartItemsCreateRequest(BaseModel):
    items: list[CartItemCreate] = Field(min_length=1)


class CartItemUpdateRequest(BaseModel):
    product_id: int | None = None
    name: str | None = None
    unit_price: int | None = None
    quantity: int | None = None
    options: dict[str, OptionValue] | None = None
    model: ModelRefPayload | None = None


class RateRequest(BaseModel):
    rate: int = Field(ge=0, le=100, examples=[19])


class AmountRequest(BaseModel):
    amount: int = Field(ge=0, examples=[250])


class CartSettingsRequest(BaseModel):
    tax_rate: int | None = Field(default=None, ge=0, le=100)
    discount_rate: int | None = Field(default=None, ge=0, le=100)
    discount_fixed: int | None = Field(default=None, ge=0)


class AssociateRequest(BaseModel):
    model: ModelRefPayload


class CartItemResponse(BaseModel):
    row_id: str
    product_id: int
    name: str
    quantity: int
    unit_price: int
    options: dict[str, OptionValue]
    discount_rate: int
    discount_fixed: int
    tax_rate: int
    associated: ModelRefPayload | None = None
    discount_perc: int
    discount_fixed_price: int
    price_total: int
    discount_total: int
    total: int
    price_target: int
    tax_total: int
    subtotal: int
    tax: int
    price_subtotal: int


class CartItemEnvelope(BaseModel):
    item: CartItemResponse | None


class CartItemsResponse(BaseModel):
    items: list[CartItemResponse]


class CartSummary(BaseModel):
    count: int
    count_instances: int
    initial: int
    price_total: int
    discount: int
    subtotal: int
    tax: int
    total: int


class CartSettingsResponse(BaseModel):
    tax_rate: int
    discount_rate: int
    discount_fixed: int


class CartResponse(BaseModel):
    instance: str
    settings: CartSettingsResponse
    items: list[CartItemResponse]
    summary: CartSummary
