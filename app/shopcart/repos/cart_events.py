from sqlalchemy import select

from app.shopcart.db.models import CartEvent


class CartEventRepository:
    def __init__(self, db):
        self.db = db

    def create(self, event: CartEvent) -> CartEvent:
        self.db.add(event)
        self.db.commit()
        self.db.refresh(event)
        return event

    def list_for_instance(self, instance_key: str) -> list[CartEvent]:
        stmt = (
            select(CartEvent)
            .where(CartEvent.instance_key == instance_key)
            .order_by(CartEvent.id)
        )
        return self.db.execute(stmt).scalars().all()
