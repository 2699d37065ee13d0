from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Union

from app.shopcart.core.error_catalog import InvalidAttributeError
from app.shopcart.services.catalog import Buyable, ModelRef, ModelRegistry
from app.shopcart.services.pricing import DERIVED_ATTRIBUTES, PriceBreakdown, calculators, compute_breakdown

Scalar = Union[str, int, float, bool, None]

_BASE_ATTRIBUTES = (
    "row_id",
    "product_id",
    "name",
    "quantity",
    "unit_price",
    "discount_rate",
    "discount_fixed",
    "tax_rate",
)
_MISSING = object()


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _pick(attributes: Mapping, *keys: str, default: Any = _MISSING) -> Any:
    for key in keys:
        if key in attributes:
            return attributes[key]
    return default


def validate_product_id(value: object) -> int:
    if not _is_int(value) or value == 0:
        raise InvalidAttributeError("Please supply a valid identifier.", field="product_id")
    return value


def validate_name(value: object) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidAttributeError("Please supply a valid name.", field="name")
    return value


def validate_price(value: object) -> int:
    if not _is_int(value) or value < 0:
        raise InvalidAttributeError("Please supply a valid price.", field="unit_price")
    return value


def validate_quantity(value: object) -> int:
    if not _is_int(value) or value <= 0:
        raise InvalidAttributeError("Please supply a valid quantity.", field="quantity")
    return value


def validate_rate(value: object, field_name: str) -> int:
    if not _is_int(value) or not 0 <= value <= 100:
        raise InvalidAttributeError(f"Please supply a valid {field_name.replace('_', ' ')}.", field=field_name)
    return value


def validate_amount(value: object, field_name: str) -> int:
    if not _is_int(value) or value < 0:
        raise InvalidAttributeError(f"Please supply a valid {field_name.replace('_', ' ')}.", field=field_name)
    return value


def normalize_options(options: Mapping | None) -> dict[str, Scalar]:
    """Return the options as a plain dict ordered by key."""
    if options is None:
        return {}
    if not isinstance(options, Mapping):
        raise InvalidAttributeError("Options must be a mapping.", field="options")
    normalized = {}
    for key in sorted(options):
        value = options[key]
        if not isinstance(key, str) or not isinstance(value, (str, int, float, bool, type(None))):
            raise InvalidAttributeError("Options must map strings to scalar values.", field="options")
        normalized[key] = value
    return normalized


def compute_row_id(product_id: int, options: Mapping | None) -> str:
    canonical = json.dumps(normalize_options(options), sort_keys=True, separators=(",", ":"))
    return hashlib.md5(f"{product_id}{canonical}".encode("utf-8")).hexdigest()


@dataclass
class LineItem:
    product_id: int
    name: str
    unit_price: int
    options: dict[str, Scalar] = field(default_factory=dict)
    quantity: int = 1
    discount_rate: int = 0
    discount_fixed: int = 0
    tax_rate: int = 0
    associated: ModelRef | None = None
    row_id: str = field(init=False)

    def __post_init__(self) -> None:
        self.product_id = validate_product_id(self.product_id)
        self.name = validate_name(self.name)
        self.unit_price = validate_price(self.unit_price)
        self.quantity = validate_quantity(self.quantity)
        self.discount_rate = validate_rate(self.discount_rate, "discount_rate")
        self.discount_fixed = validate_amount(self.discount_fixed, "discount_fixed")
        self.tax_rate = validate_rate(self.tax_rate, "tax_rate")
        self.options = normalize_options(self.options)
        self.row_id = compute_row_id(self.product_id, self.options)

    @classmethod
    def from_buyable(cls, buyable: Buyable, options: Mapping | None = None) -> LineItem:
        options = normalize_options(options)
        return cls(
            product_id=buyable.get_buyable_identifier(options),
            name=buyable.get_buyable_description(options),
            unit_price=buyable.get_buyable_price(options),
            options=options,
        )

    @classmethod
    def from_mapping(cls, attributes: Mapping) -> LineItem:
        values = {
            "product_id": _pick(attributes, "product_id", "id"),
            "name": _pick(attributes, "name"),
            "unit_price": _pick(attributes, "unit_price", "price"),
        }
        for field_name, value in values.items():
            if value is _MISSING:
                raise InvalidAttributeError(f"Missing required attribute {field_name}.", field=field_name)
        return cls(options=_pick(attributes, "options", default=None), **values)

    @classmethod
    def from_record(cls, record: Mapping) -> LineItem:
        item = cls(
            product_id=record["product_id"],
            name=record["name"],
            unit_price=record["unit_price"],
            options=record.get("options") or {},
            quantity=record["quantity"],
            discount_rate=record.get("discount_rate", 0),
            discount_fixed=record.get("discount_fixed", 0),
            tax_rate=record.get("tax_rate", 0),
            associated=ModelRef.from_record(record.get("associated")),
        )
        # update_from_buyable may leave the stored identity behind product_id
        item.row_id = record.get("row_id", item.row_id)
        return item

    def set_quantity(self, quantity: object) -> LineItem:
        self.quantity = validate_quantity(quantity)
        return self

    def set_tax_rate(self, tax_rate: int) -> LineItem:
        self.tax_rate = validate_rate(tax_rate, "tax_rate")
        return self

    def set_discount_rate(self, discount_rate: int) -> LineItem:
        self.discount_rate = validate_rate(discount_rate, "discount_rate")
        return self

    def set_discount_fixed(self, discount_fixed: int) -> LineItem:
        self.discount_fixed = validate_amount(discount_fixed, "discount_fixed")
        return self

    def associate(self, ref: ModelRef) -> LineItem:
        self.associated = ref
        return self

    def update_from_buyable(self, buyable: Buyable) -> None:
        """Refresh id, name and price from the catalog; the row identity stays put."""
        product_id = validate_product_id(buyable.get_buyable_identifier(self.options))
        name = validate_name(buyable.get_buyable_description(self.options))
        unit_price = validate_price(buyable.get_buyable_price(self.options))
        self.product_id, self.name, self.unit_price = product_id, name, unit_price

    def update_from_mapping(self, patch: Mapping) -> None:
        """Apply a partial patch and recompute the row id.

        ``options`` set to ``None`` leaves the current options in place. A
        non-positive quantity is accepted here; the cart treats it as a
        removal.
        """
        product_id = validate_product_id(_pick(patch, "product_id", "id", default=self.product_id))
        name = validate_name(_pick(patch, "name", default=self.name))
        unit_price = validate_price(_pick(patch, "unit_price", "price", default=self.unit_price))
        quantity = _pick(patch, "quantity", "qty", default=self.quantity)
        if not _is_int(quantity):
            raise InvalidAttributeError("Please supply a valid quantity.", field="quantity")
        options = _pick(patch, "options", default=None)
        options = self.options if options is None else normalize_options(options)

        self.product_id = product_id
        self.name = name
        self.unit_price = unit_price
        self.quantity = quantity
        self.options = options
        self.row_id = compute_row_id(product_id, options)

    @property
    def breakdown(self) -> PriceBreakdown:
        return compute_breakdown(
            unit_price=self.unit_price,
            quantity=self.quantity,
            discount_rate=self.discount_rate,
            discount_fixed=self.discount_fixed,
            tax_rate=self.tax_rate,
        )

    @property
    def discount_perc(self) -> int:
        return self.breakdown.discount_perc

    @property
    def discount_fixed_price(self) -> int:
        return self.breakdown.discount_fixed_price

    @property
    def price_total(self) -> int:
        return self.breakdown.price_total

    @property
    def discount_total(self) -> int:
        return self.breakdown.discount_total

    @property
    def total(self) -> int:
        return self.breakdown.total

    @property
    def price_target(self) -> int:
        return self.breakdown.price_target

    @property
    def tax_total(self) -> int:
        return self.breakdown.tax_total

    @property
    def subtotal(self) -> int:
        return self.breakdown.subtotal

    @property
    def tax(self) -> int:
        return self.breakdown.tax

    @property
    def price_subtotal(self) -> int:
        return self.breakdown.price_subtotal

    def get_attribute(self, name: str) -> Any:
        if name in _BASE_ATTRIBUTES:
            return getattr(self, name)
        if name in DERIVED_ATTRIBUTES:
            return getattr(self.breakdown, name)
        return calculators.calculate(name, self)

    def resolve_model(self, registry: ModelRegistry) -> Any:
        if self.associated is None:
            return None
        return registry.load(self.associated)

    def to_record(self) -> dict:
        return {
            "row_id": self.row_id,
            "product_id": self.product_id,
            "name": self.name,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "options": dict(self.options),
            "discount_rate": self.discount_rate,
            "discount_fixed": self.discount_fixed,
            "tax_rate": self.tax_rate,
            "associated": self.associated.to_record() if self.associated else None,
        }

    def to_dict(self) -> dict:
        return {**self.to_record(), **self.breakdown.as_dict()}
