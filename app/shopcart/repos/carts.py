from __future__ import annotations

import copy
from datetime import datetime
from typing import Protocol

from sqlalchemy import delete, select

from app.shopcart.db.models import CartSnapshot
from app.shopcart.services.cart_state import CartState


class CartStore(Protocol):
    def get(self, instance_key: str) -> CartState | None: ...

    def put(self, instance_key: str, state: CartState) -> None: ...

    def remove(self, instance_key: str) -> None: ...


class InMemoryCartStore:
    """Process-local store. Copies on the way in and out, like a serializing session driver."""

    def __init__(self) -> None:
        self._states: dict[str, CartState] = {}

    def get(self, instance_key: str) -> CartState | None:
        state = self._states.get(instance_key)
        return copy.deepcopy(state) if state is not None else None

    def put(self, instance_key: str, state: CartState) -> None:
        self._states[instance_key] = copy.deepcopy(state)

    def remove(self, instance_key: str) -> None:
        self._states.pop(instance_key, None)

    def keys(self) -> list[str]:
        return list(self._states)


class CartSnapshotRepository:
    def __init__(self, db):
        self.db = db

    def get_by_key(self, instance_key: str) -> CartSnapshot | None:
        stmt = select(CartSnapshot).where(CartSnapshot.instance_key == instance_key)
        return self.db.execute(stmt).scalars().first()

    def save(self, instance_key: str, payload: dict) -> CartSnapshot:
        snapshot = self.get_by_key(instance_key)
        if snapshot is None:
            snapshot = CartSnapshot(instance_key=instance_key, payload=payload)
        else:
            snapshot.payload = payload
            snapshot.updated_at = datetime.utcnow()
        self.db.add(snapshot)
        self.db.commit()
        self.db.refresh(snapshot)
        return snapshot

    def delete_by_key(self, instance_key: str) -> None:
        self.db.execute(delete(CartSnapshot).where(CartSnapshot.instance_key == instance_key))
        self.db.commit()


class SqlCartStore:
    def __init__(self, db):
        self.repo = CartSnapshotRepository(db)

    def get(self, instance_key: str) -> CartState | None:
        snapshot = self.repo.get_by_key(instance_key)
        if snapshot is None:
            return None
        return CartState.from_payload(snapshot.payload)

    def put(self, instance_key: str, state: CartState) -> None:
        self.repo.save(instance_key, state.to_payload())

    def remove(self, instance_key: str) -> None:
        self.repo.delete_by_key(instance_key)
