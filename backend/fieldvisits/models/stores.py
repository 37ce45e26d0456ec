from __future__ import annotations

import uuid

from ..extensions import db
from ..time_utils import to_utc_z


# Catalog assignment: products offered at a store. Non-owning on both sides.
store_products = db.Table(
    "store_products",
    db.Column("store_id", db.Integer, db.ForeignKey("stores.id"), primary_key=True),
    db.Column("product_id", db.Integer, db.ForeignKey("products.id"), primary_key=True),
    db.Index("ix_store_products_product", "product_id"),
)


class Store(db.Model):
    """
    Retail store visited by field agents.

    Store names are unique ignoring case (see ``ux_stores_name_lower``).
    Deletion is refused while visits, catalog products or route users
    still point at the store.
    """
    __tablename__ = "stores"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    uuid = db.Column(db.Uuid(as_uuid=True), nullable=False, unique=True, index=True, default=uuid.uuid4)

    name = db.Column(db.String(120), nullable=False)
    address = db.Column(db.String(255), nullable=False)
    latitude = db.Column(db.Float, nullable=False)
    longitude = db.Column(db.Float, nullable=False)

    # Path of the rendered QR image; filled right after creation
    qr_code = db.Column(db.String(512), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    products = db.relationship("Product", secondary=store_products, back_populates="stores", order_by="Product.name")
    users = db.relationship("User", secondary="user_routes", back_populates="stores")
    visits = db.relationship("Visit", back_populates="store", passive_deletes="all")

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Store id={self.id} name={self.name!r}>"

    def to_dict(self, *, include_products: bool = False) -> dict:
        data = {
            "uuid": str(self.uuid),
            "name": self.name,
            "address": self.address,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "qr_code": self.qr_code,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
        }
        if include_products:
            data["products"] = [product.to_dict() for product in self.products]
        return data


db.Index("ux_stores_name_lower", db.func.lower(Store.name), unique=True)
