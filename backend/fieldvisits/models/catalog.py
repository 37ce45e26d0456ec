from __future__ import annotations

import uuid

from ..extensions import db
from ..time_utils import cents_to_amount, to_utc_z


class Product(db.Model):
    """
    Sellable product with a base price in cents.

    Orders copy ``base_price_cents`` when they are created, so changing the
    price never touches historical orders.
    """
    __tablename__ = "products"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    uuid = db.Column(db.Uuid(as_uuid=True), nullable=False, unique=True, index=True, default=uuid.uuid4)

    name = db.Column(db.String(120), nullable=False)
    description = db.Column(db.String(500), nullable=False)
    base_price_cents = db.Column(db.Integer, nullable=False)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    stores = db.relationship("Store", secondary="store_products", back_populates="products")
    orders = db.relationship("Order", back_populates="product", passive_deletes="all")

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} base_price_cents={self.base_price_cents}>"

    def to_dict(self) -> dict:
        return {
            "uuid": str(self.uuid),
            "name": self.name,
            "description": self.description,
            "base_price_cents": self.base_price_cents,
            "base_price": cents_to_amount(self.base_price_cents),
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
        }


db.Index("ux_products_name_lower", db.func.lower(Product.name), unique=True)
