from __future__ import annotations

import uuid

from ..extensions import db
from ..time_utils import cents_to_amount, to_iso_date, to_utc_z


class Visit(db.Model):
    """
    Aggregate root: one field call by a user at a store.

    WHY: A visit and its orders are written and deleted as one unit.
    Orders are owned (cascade delete + orphan removal); user and store
    are plain references that must exist when the visit is created.
    """
    __tablename__ = "visits"
    __table_args__ = (
        db.Index("ix_visits_store_date", "store_id", "date"),
        db.Index("ix_visits_user_date", "user_id", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    uuid = db.Column(db.Uuid(as_uuid=True), nullable=False, unique=True, index=True, default=uuid.uuid4)

    # Server-assigned day of the visit, never taken from the client
    date = db.Column(db.Date, nullable=False)
    photo = db.Column(db.String(1024), nullable=False)
    validation = db.Column(db.Boolean, nullable=False, default=False)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship("User", back_populates="visits")
    store = db.relationship("Store", back_populates="visits")
    orders = db.relationship(
        "Order",
        back_populates="visit",
        cascade="all, delete-orphan",
        order_by="Order.id",
    )

    def __repr__(self) -> str:
        return f"<Visit id={self.id} uuid={self.uuid} user_id={self.user_id} store_id={self.store_id}>"

    @property
    def total_cents(self) -> int:
        return sum(order.total_cents for order in self.orders)

    def to_dict(self) -> dict:
        return {
            "uuid": str(self.uuid),
            "date": to_iso_date(self.date),
            "photo": self.photo,
            "validation": self.validation,
            "user_uuid": str(self.user.uuid) if self.user else None,
            "user_name": self.user.name if self.user else None,
            "store_uuid": str(self.store.uuid) if self.store else None,
            "store_name": self.store.name if self.store else None,
            "orders": [order.to_dict() for order in self.orders],
            "total_cents": self.total_cents,
            "total": cents_to_amount(self.total_cents),
            "created_at": to_utc_z(self.created_at),
        }


class Order(db.Model):
    """Order line inside a visit. Unit price is a snapshot of the product price."""
    __tablename__ = "order_details"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_order_details_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    uuid = db.Column(db.Uuid(as_uuid=True), nullable=False, unique=True, default=uuid.uuid4)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    total_cents = db.Column(db.Integer, nullable=False)

    visit_id = db.Column(db.Integer, db.ForeignKey("visits.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True)

    visit = db.relationship("Visit", back_populates="orders")
    product = db.relationship("Product", back_populates="orders")

    def to_dict(self) -> dict:
        return {
            "uuid": str(self.uuid),
            "product_uuid": str(self.product.uuid) if self.product else None,
            "product_name": self.product.name if self.product else None,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "unit_price": cents_to_amount(self.unit_price_cents),
            "total_cents": self.total_cents,
            "total": cents_to_amount(self.total_cents),
        }
