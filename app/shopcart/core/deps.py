from fastapi import Depends, Request

from app.shopcart.core.config import settings
from app.shopcart.db.session import get_db
from app.shopcart.repos.carts import InMemoryCartStore, SqlCartStore
from app.shopcart.services.cart import INSTANCE_PREFIX, Cart
from app.shopcart.services.catalog import model_registry
from app.shopcart.services.events import DatabaseEventSink, EventDispatcher, LoggingEventSink

_memory_store = InMemoryCartStore()


def get_cart_store(db=Depends(get_db)):
    if settings.CART_STORE_BACKEND == "memory":
        return _memory_store
    return SqlCartStore(db)


def get_cart(instance: str, request: Request, store=Depends(get_cart_store), db=Depends(get_db)) -> Cart:
    instance_key = f"{INSTANCE_PREFIX}{instance}"
    request.state.cart_instance = instance
    events = EventDispatcher([LoggingEventSink(instance_key)])
    if settings.CART_EVENTS_PERSIST:
        events.add_sink(DatabaseEventSink(db, instance_key))
    return Cart(store, events, registry=model_registry, instance=instance)


__all__ = ["get_cart", "get_cart_store"]
