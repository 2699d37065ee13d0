from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from app.shopcart.core.error_catalog import UnknownModelError


@runtime_checkable
class Buyable(Protocol):
    def get_buyable_identifier(self, options: dict | None = None) -> int: ...

    def get_buyable_description(self, options: dict | None = None) -> str: ...

    def get_buyable_price(self, options: dict | None = None) -> int: ...


@runtime_checkable
class InstanceIdentifier(Protocol):
    def get_instance_identifier(self) -> str: ...

    def get_instance_discount_rate(self) -> int: ...

    def get_instance_discount_fixed(self) -> int: ...


class CanBeBought:
    """Default ``Buyable`` implementation for plain objects."""

    def get_buyable_identifier(self, options: dict | None = None) -> int:
        return getattr(self, "id")

    def get_buyable_description(self, options: dict | None = None) -> str | None:
        for attribute in ("name", "title", "description"):
            if hasattr(self, attribute):
                return getattr(self, attribute)
        return None

    def get_buyable_price(self, options: dict | None = None) -> int | None:
        return getattr(self, "price", None)


@dataclass(frozen=True)
class ModelRef:
    type: str
    key: Any

    def to_record(self) -> dict:
        return {"type": self.type, "key": self.key}

    @classmethod
    def from_record(cls, record: dict | None) -> ModelRef | None:
        if not record:
            return None
        return cls(type=record["type"], key=record.get("key"))


Loader = Callable[[Any], Any]


@dataclass(frozen=True)
class _Registration:
    tag: str
    model_class: type | None
    loader: Loader | None


class ModelRegistry:
    """Type tags that line items may be associated with."""

    def __init__(self) -> None:
        self._by_tag: dict[str, _Registration] = {}

    def register(self, tag: str, model_class: type | None = None, loader: Loader | None = None) -> None:
        self._by_tag[tag] = _Registration(tag=tag, model_class=model_class, loader=loader)

    def unregister(self, tag: str) -> None:
        self._by_tag.pop(tag, None)

    def is_known(self, tag: str) -> bool:
        return tag in self._by_tag

    def tag_for(self, model: object) -> str | None:
        for registration in self._by_tag.values():
            if registration.model_class is not None and isinstance(model, registration.model_class):
                return registration.tag
        return None

    def reference(self, model: object, key: Any) -> ModelRef:
        if isinstance(model, ModelRef):
            if not self.is_known(model.type):
                raise UnknownModelError(model.type)
            return model if model.key is not None else ModelRef(type=model.type, key=key)
        if isinstance(model, str):
            if not self.is_known(model):
                raise UnknownModelError(model)
            return ModelRef(type=model, key=key)
        tag = self.tag_for(model)
        if tag is None:
            raise UnknownModelError(type(model).__qualname__)
        return ModelRef(type=tag, key=key)

    def load(self, ref: ModelRef) -> Any:
        registration = self._by_tag.get(ref.type)
        if registration is None:
            raise UnknownModelError(ref.type)
        if registration.loader is None:
            return None
        return registration.loader(ref.key)

    def resolve_buyable(self, ref: ModelRef) -> Buyable:
        model = self.load(ref)
        if not isinstance(model, Buyable):
            raise UnknownModelError(f"{ref.type}:{ref.key}")
        return model


model_registry = ModelRegistry()
