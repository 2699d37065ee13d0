from __future__ import annotations

from dataclasses import dataclass, field

from app.shopcart.services.line_item import LineItem


@dataclass(frozen=True)
class CartDefaults:
    tax_rate: int
    discount_rate: int = 0
    discount_fixed: int = 0


@dataclass
class CartState:
    """What the store keeps for one cart instance: ordered items plus cart-level defaults."""

    defaults: CartDefaults
    items: dict[str, LineItem] = field(default_factory=dict)

    def is_pristine(self, seed: CartDefaults) -> bool:
        return not self.items and self.defaults == seed

    def index_of(self, row_id: str) -> int:
        return list(self.items).index(row_id)

    def insert_at(self, index: int, item: LineItem) -> None:
        entries = list(self.items.items())
        entries.insert(index, (item.row_id, item))
        self.items = dict(entries)

    def to_payload(self) -> dict:
        return {
            "tax_rate": self.defaults.tax_rate,
            "discount_rate": self.defaults.discount_rate,
            "discount_fixed": self.defaults.discount_fixed,
            "items": [item.to_record() for item in self.items.values()],
        }

    @classmethod
    def from_payload(cls, payload: dict) -> CartState:
        defaults = CartDefaults(
            tax_rate=payload["tax_rate"],
            discount_rate=payload.get("discount_rate", 0),
            discount_fixed=payload.get("discount_fixed", 0),
        )
        items = {}
        for record in payload.get("items", []):
            item = LineItem.from_record(record)
            items[item.row_id] = item
        return cls(defaults=defaults, items=items)
