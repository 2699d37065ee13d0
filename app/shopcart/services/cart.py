from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import replace
from typing import Any

from app.shopcart.core.config import settings
from app.shopcart.core.error_catalog import InvalidAttributeError, RowNotFoundError
from app.shopcart.repos.carts import CartStore
from app.shopcart.services.cart_state import CartDefaults, CartState
from app.shopcart.services.catalog import Buyable, InstanceIdentifier, ModelRef, ModelRegistry, model_registry
from app.shopcart.services.events import (
    CART_ADDED,
    CART_ADDING,
    CART_REMOVED,
    CART_REMOVING,
    CART_UPDATED,
    CART_UPDATING,
    EventSink,
    NullEventSink,
)
from app.shopcart.services.line_item import LineItem, validate_amount, validate_quantity, validate_rate

INSTANCE_PREFIX = "cart."


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class Cart:
    """One named cart instance over a persistence store.

    Every operation reads the instance state from the store, mutates a
    detached copy and writes it back, then notifies the event sink.
    Validation happens before anything is written.
    """

    def __init__(
        self,
        store: CartStore,
        events: EventSink | None = None,
        *,
        registry: ModelRegistry | None = None,
        defaults: CartDefaults | None = None,
        instance: str | InstanceIdentifier | None = None,
    ):
        self.store = store
        self.events = events or NullEventSink()
        self.registry = registry or model_registry
        self._base_defaults = defaults or CartDefaults(
            tax_rate=settings.DEFAULT_TAX_RATE,
            discount_rate=settings.DEFAULT_DISCOUNT_RATE,
            discount_fixed=settings.DEFAULT_DISCOUNT_FIXED,
        )
        self._seed = self._base_defaults
        self._instance = settings.DEFAULT_INSTANCE
        self.instance(instance)

    # instances

    def instance(self, instance: str | InstanceIdentifier | None = None) -> Cart:
        seed = self._base_defaults
        if isinstance(instance, InstanceIdentifier):
            seed = replace(
                seed,
                discount_rate=validate_rate(instance.get_instance_discount_rate(), "discount_rate"),
                discount_fixed=validate_amount(instance.get_instance_discount_fixed(), "discount_fixed"),
            )
            instance = instance.get_instance_identifier()
        if instance is None or instance == "":
            instance = settings.DEFAULT_INSTANCE
        self._instance = str(instance)
        self._seed = seed
        return self

    def current_instance(self) -> str:
        return self._instance

    @property
    def instance_key(self) -> str:
        return f"{INSTANCE_PREFIX}{self._instance}"

    def _load(self) -> CartState:
        state = self.store.get(self.instance_key)
        if state is None:
            return CartState(defaults=self._seed)
        return state

    def _save(self, state: CartState) -> None:
        if state.is_pristine(self._seed):
            self.store.remove(self.instance_key)
            return
        self.store.put(self.instance_key, state)

    @staticmethod
    def _require(state: CartState, row_id: str) -> LineItem:
        item = state.items.get(row_id)
        if item is None:
            raise RowNotFoundError(row_id)
        return item

    # reads

    def defaults(self) -> CartDefaults:
        return self._load().defaults

    def content(self) -> dict[str, LineItem]:
        return dict(self._load().items)

    def get(self, row_id: str) -> LineItem:
        return self._require(self._load(), row_id)

    def search(self, predicate: Callable[[LineItem], bool]) -> list[LineItem]:
        return [item for item in self._load().items.values() if predicate(item)]

    def model(self, row_id: str) -> Any:
        return self.get(row_id).resolve_model(self.registry)

    def count(self) -> int:
        return sum(item.quantity for item in self._load().items.values())

    def count_instances(self) -> int:
        return len(self._load().items)

    def total(self) -> int:
        return sum(item.total for item in self._load().items.values())

    def tax(self) -> int:
        return sum(item.tax_total for item in self._load().items.values())

    def subtotal(self) -> int:
        return sum(item.subtotal for item in self._load().items.values())

    def discount(self) -> int:
        return sum(item.discount_total for item in self._load().items.values())

    def initial(self) -> int:
        return sum(item.unit_price * item.quantity for item in self._load().items.values())

    def price_total(self) -> int:
        return sum(item.price_total for item in self._load().items.values())

    def summary(self) -> dict[str, int]:
        items = list(self._load().items.values())
        return {
            "count": sum(item.quantity for item in items),
            "count_instances": len(items),
            "initial": sum(item.unit_price * item.quantity for item in items),
            "price_total": sum(item.price_total for item in items),
            "discount": sum(item.discount_total for item in items),
            "subtotal": sum(item.subtotal for item in items),
            "tax": sum(item.tax_total for item in items),
            "total": sum(item.total for item in items),
        }

    # mutations

    def add(
        self,
        source: Any,
        quantity: int | None = None,
        options: Mapping | None = None,
        *,
        keep_discount: bool = False,
        keep_tax: bool = False,
        dispatch_events: bool = True,
    ) -> LineItem | list[LineItem]:
        """Add a buyable, a ``ModelRef``, an attribute mapping or tuple, or a list of those.

        Every entry of a list is built and validated before the first one is
        stored; the results come back in input order. ``quantity`` and
        ``options`` only apply to single sources.
        """
        if isinstance(source, list):
            items = [self.make_line_item(entry, None, None) for entry in source]
            return [
                self.add_line_item(
                    item,
                    keep_discount=keep_discount,
                    keep_tax=keep_tax,
                    dispatch_events=dispatch_events,
                )
                for item in items
            ]
        item = self.make_line_item(source, quantity, options)
        return self.add_line_item(
            item,
            keep_discount=keep_discount,
            keep_tax=keep_tax,
            dispatch_events=dispatch_events,
        )

    def make_line_item(self, source: Any, quantity: int | None, options: Mapping | None) -> LineItem:
        if isinstance(source, tuple):
            if len(source) != 3:
                raise InvalidAttributeError(
                    "An attribute tuple must be (product_id, name, unit_price).", field="source"
                )
            source = dict(zip(("product_id", "name", "unit_price"), source))
        if isinstance(source, ModelRef):
            ref = self.registry.reference(source, source.key)
            item = LineItem.from_buyable(self.registry.resolve_buyable(ref), options)
            item.associate(ref)
        elif isinstance(source, Buyable):
            item = LineItem.from_buyable(source, options)
            # only registered model types can be resolved back later
            if self.registry.tag_for(source) is not None:
                item.associate(self.registry.reference(source, item.product_id))
        elif isinstance(source, Mapping):
            attributes = dict(source)
            if options is not None:
                attributes["options"] = options
            item = LineItem.from_mapping(attributes)
            if quantity is None:
                quantity = attributes.get("quantity", attributes.get("qty"))
        else:
            raise InvalidAttributeError("Unsupported cart item source.", field="source")
        item.set_quantity(1 if quantity is None else quantity)
        return item

    def add_line_item(
        self,
        item: LineItem,
        keep_discount: bool = False,
        keep_tax: bool = False,
        dispatch_events: bool = True,
    ) -> LineItem:
        state = self._load()
        if not keep_discount:
            item.set_discount_rate(state.defaults.discount_rate)
            item.set_discount_fixed(state.defaults.discount_fixed)
        if not keep_tax:
            item.set_tax_rate(state.defaults.tax_rate)

        existing = state.items.get(item.row_id)
        if existing is not None:
            existing.quantity += item.quantity
            item = existing
        else:
            state.items[item.row_id] = item

        if dispatch_events:
            self.events.notify(CART_ADDING, item)
        self._save(state)
        if dispatch_events:
            self.events.notify(CART_ADDED, item)
        return item

    def update(self, row_id: str, value: Any) -> LineItem | None:
        """Change quantity, refresh from a buyable, or apply a partial patch.

        Returns ``None`` when the resulting quantity is not positive and the
        row was removed.
        """
        state = self._load()
        item = self._require(state, row_id)

        if isinstance(value, ModelRef):
            value = self.registry.resolve_buyable(self.registry.reference(value, value.key))
        if isinstance(value, Buyable):
            item.update_from_buyable(value)
        elif isinstance(value, Mapping):
            item.update_from_mapping(value)
        elif _is_int(value):
            item.quantity = value
        else:
            raise InvalidAttributeError("Please supply a valid quantity.", field="quantity")

        if item.quantity <= 0:
            del state.items[row_id]
            self._remove_and_notify(state, item)
            return None

        if item.row_id != row_id:
            index = state.index_of(row_id)
            del state.items[row_id]
            existing = state.items.get(item.row_id)
            if existing is not None:
                existing.quantity += item.quantity
                item = existing
            else:
                state.insert_at(index, item)

        self.events.notify(CART_UPDATING, item)
        self._save(state)
        self.events.notify(CART_UPDATED, item)
        return item

    def remove(self, row_id: str) -> None:
        state = self._load()
        item = self._require(state, row_id)
        del state.items[row_id]
        self._remove_and_notify(state, item)

    def _remove_and_notify(self, state: CartState, item: LineItem) -> None:
        self.events.notify(CART_REMOVING, item)
        self._save(state)
        self.events.notify(CART_REMOVED, item)

    def destroy(self) -> None:
        self.store.remove(self.instance_key)

    def associate(self, row_id: str, model: Any) -> LineItem:
        state = self._load()
        item = self._require(state, row_id)
        item.associate(self.registry.reference(model, item.product_id))
        self._save(state)
        return item

    def set_quantity(self, row_id: str, quantity: int) -> LineItem:
        validate_quantity(quantity)
        return self.update(row_id, quantity)

    def set_tax(self, row_id: str, tax_rate: int) -> LineItem:
        return self._set_item_field(row_id, lambda item: item.set_tax_rate(tax_rate))

    def set_discount_rate(self, row_id: str, discount_rate: int) -> LineItem:
        return self._set_item_field(row_id, lambda item: item.set_discount_rate(discount_rate))

    def set_discount_fixed(self, row_id: str, discount_fixed: int) -> LineItem:
        return self._set_item_field(row_id, lambda item: item.set_discount_fixed(discount_fixed))

    def _set_item_field(self, row_id: str, setter: Callable[[LineItem], LineItem]) -> LineItem:
        state = self._load()
        item = setter(self._require(state, row_id))
        self._save(state)
        return item

    def set_global_tax(self, tax_rate: int) -> None:
        tax_rate = validate_rate(tax_rate, "tax_rate")
        self._set_defaults(lambda item: item.set_tax_rate(tax_rate), tax_rate=tax_rate)

    def set_global_discount_rate(self, discount_rate: int) -> None:
        discount_rate = validate_rate(discount_rate, "discount_rate")
        self._set_defaults(lambda item: item.set_discount_rate(discount_rate), discount_rate=discount_rate)

    def set_global_discount_fixed(self, discount_fixed: int) -> None:
        discount_fixed = validate_amount(discount_fixed, "discount_fixed")
        self._set_defaults(lambda item: item.set_discount_fixed(discount_fixed), discount_fixed=discount_fixed)

    def _set_defaults(self, apply: Callable[[LineItem], LineItem], **changes: int) -> None:
        state = self._load()
        state.defaults = replace(state.defaults, **changes)
        for item in state.items.values():
            apply(item)
        self._save(state)
