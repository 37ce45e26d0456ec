from __future__ import annotations

import enum
import uuid

from ..extensions import db
from ..time_utils import to_utc_z


class Role(str, enum.Enum):
    ADMIN = "ADMIN"
    USER = "USER"  # field agent


# Route: the stores a field agent is allowed to visit.
# No ownership in either direction; rows are added/removed explicitly.
user_routes = db.Table(
    "user_routes",
    db.Column("user_id", db.Integer, db.ForeignKey("users.id"), primary_key=True),
    db.Column("store_id", db.Integer, db.ForeignKey("stores.id"), primary_key=True),
    db.Column("assigned_at", db.DateTime(timezone=True), nullable=False, server_default=db.func.now()),
    db.Index("ix_user_routes_store", "store_id"),
)


class User(db.Model):
    """
    Field agent or administrator account.

    Email is unique ignoring case; it is normalized to lowercase before
    being stored. The route (``stores``) decides where the user may
    register visits.
    """
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    uuid = db.Column(db.Uuid(as_uuid=True), nullable=False, unique=True, index=True, default=uuid.uuid4)

    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(16), nullable=False, default=Role.USER.value)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    stores = db.relationship("Store", secondary=user_routes, back_populates="users", order_by="Store.name")
    visits = db.relationship("Visit", back_populates="user", passive_deletes="all")

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role}>"

    def to_dict(self, *, include_stores: bool = False) -> dict:
        data = {
            "uuid": str(self.uuid),
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }
        if include_stores:
            data["stores"] = [store.to_dict() for store in self.stores]
        return data


class SessionToken(db.Model):
    """
    Opaque bearer token issued after a successful credential check.

    Only the SHA-256 of the token is stored. The role at issuance is kept
    as the token's role claim.
    """
    __tablename__ = "session_tokens"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token_hash = db.Column(db.String(64), nullable=False, unique=True, index=True)
    role = db.Column(db.String(16), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False)
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_reason = db.Column(db.String(255), nullable=True)

    user_agent = db.Column(db.String(255), nullable=True)
    ip_address = db.Column(db.String(45), nullable=True)

    user = db.relationship(
        "User",
        backref=db.backref("session_tokens", lazy=True, cascade="all, delete-orphan", passive_deletes=True),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "role": self.role,
            "created_at": to_utc_z(self.created_at),
            "last_used_at": to_utc_z(self.last_used_at),
            "expires_at": to_utc_z(self.expires_at),
            "is_revoked": self.is_revoked,
        }
