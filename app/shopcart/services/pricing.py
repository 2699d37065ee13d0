"""Line item price derivation.

All amounts are integers in minor currency units (cents). Every intermediate
value is rounded half away from zero to a whole unit before it is used by the
next formula, in the order given by ``compute_breakdown``.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import asdict, dataclass, fields
from decimal import ROUND_HALF_UP, Decimal

_HUNDRED = Decimal(100)
_UNIT = Decimal("1")


def round_money(value: Decimal | int) -> int:
    return int(Decimal(value).quantize(_UNIT, rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class PriceBreakdown:
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

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


DERIVED_ATTRIBUTES = tuple(field.name for field in fields(PriceBreakdown))


def compute_breakdown(
    *,
    unit_price: int,
    quantity: int,
    discount_rate: int,
    discount_fixed: int,
    tax_rate: int,
) -> PriceBreakdown:
    price = Decimal(unit_price)
    qty = Decimal(quantity)

    discount_perc = round_money(price * Decimal(discount_rate) / _HUNDRED)
    discount_fixed_price = min(round_money(price), discount_fixed)
    price_total = round_money(price * qty)
    discount_total = round_money(Decimal(discount_perc) * qty + Decimal(discount_fixed_price))
    total = max(round_money(price_total - discount_total), 0)
    price_target = round_money(Decimal(price_total - discount_total) / qty)
    tax_total = round_money(Decimal(total) * Decimal(tax_rate) / _HUNDRED)
    subtotal = round_money(total - tax_total)
    # per-unit tax, independent of tax_total
    tax = round_money(Decimal(price_target) * Decimal(tax_rate) / _HUNDRED)
    price_subtotal = round_money(price_target - tax)

    return PriceBreakdown(
        discount_perc=discount_perc,
        discount_fixed_price=discount_fixed_price,
        price_total=price_total,
        discount_total=discount_total,
        total=total,
        price_target=price_target,
        tax_total=tax_total,
        subtotal=subtotal,
        tax=tax,
        price_subtotal=price_subtotal,
    )


Calculator = Callable[[object], int]


class CalculatorRegistry:
    """Named calculators for caller-defined line item attributes.

    Built-in derived attributes always win; a lookup for a name nobody
    registered returns ``None`` rather than zero.
    """

    def __init__(self) -> None:
        self._calculators: dict[str, Calculator] = {}

    def register(self, name: str, calculator: Calculator) -> None:
        if name in DERIVED_ATTRIBUTES:
            raise ValueError(f"{name} is a built-in derived attribute")
        self._calculators[name] = calculator

    def unregister(self, name: str) -> None:
        self._calculators.pop(name, None)

    def names(self) -> list[str]:
        return sorted(self._calculators)

    def calculate(self, name: str, item) -> int | None:
        calculator = self._calculators.get(name)
        if calculator is None:
            return None
        return calculator(item)


calculators = CalculatorRegistry()
