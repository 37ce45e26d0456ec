# Overview: Service-layer operations for visits; orchestrates registration of the visit aggregate.

"""
Visit Aggregate Assembler

WHY: Registration is the one place where route authorization, evidence
storage, order pricing and persistence meet. It must either write one
photo plus one visit (with its orders) or leave nothing behind.

FLOW (linear, first failure wins):
    user resolved -> store resolved -> authorized -> payload decoded
    -> photo stored -> orders built -> committed

Authorization always completes before any durable side effect. The
payload is decoded before the photo is written so a malformed payload
leaves no file behind. Any failure after the photo is written (pricing
limits, flush or commit errors) rolls the session back and removes the
stored photo.

Outcomes are returned as VisitOutcome values rather than raised.
"""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field

from flask import current_app

from ..extensions import db
from ..models import Order, Visit
from ..time_utils import today
from . import repository
from .evidence_service import EvidenceStorageError, discard_visit_photo, save_visit_photo
from .order_service import OrderPayloadError, OrderRequest, build_order_lines, decode_orders_payload
from .route_service import user_has_store_in_route


class VisitOutcomeKind(str, enum.Enum):
    CREATED = "CREATED"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    STORE_NOT_FOUND = "STORE_NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"
    EVIDENCE_FAILURE = "EVIDENCE_FAILURE"
    DECODE_FAILURE = "DECODE_FAILURE"
    PERSIST_FAILURE = "PERSIST_FAILURE"


@dataclass(frozen=True)
class VisitOutcome:
    kind: VisitOutcomeKind
    message: str
    visit: Visit | None = None
    dropped: list[OrderRequest] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.kind is VisitOutcomeKind.CREATED


class VisitError(Exception):
    """Raised for visit operations outside registration."""


class VisitNotFoundError(VisitError):
    pass


def _fail(kind: VisitOutcomeKind, message: str) -> VisitOutcome:
    return VisitOutcome(kind=kind, message=message)


def replace_visit_orders(visit: Visit, lines: list[Order]) -> Visit:
    """
    Replace the full order set of a visit.

    Orders dropped from the collection are deleted on flush (orphan
    removal); the new lines get their back-reference set to ``visit``.
    """
    visit.orders = list(lines)
    return visit


def register_visit(
    *,
    user_uuid,
    store_uuid,
    validation: bool,
    orders_payload: str | bytes | None,
    photo_content: bytes,
    photo_filename: str | None,
    evidence_root: str | None = None,
) -> VisitOutcome:
    user = repository.find_user(user_uuid)
    if user is None:
        return _fail(VisitOutcomeKind.USER_NOT_FOUND, "User not found")

    store = repository.find_store(store_uuid)
    if store is None:
        return _fail(VisitOutcomeKind.STORE_NOT_FOUND, "Store not found")

    user_key, store_key = user.uuid, store.uuid

    if not user_has_store_in_route(user, store_key):
        current_app.logger.warning(
            "User %s attempted to register a visit at store %s outside their route",
            user_key,
            store_key,
        )
        return _fail(VisitOutcomeKind.FORBIDDEN, "User does not have access to this store")

    try:
        requests = decode_orders_payload(orders_payload)
    except OrderPayloadError as exc:
        return _fail(VisitOutcomeKind.DECODE_FAILURE, str(exc))

    root = evidence_root or current_app.config["UPLOAD_FOLDER"]
    try:
        photo_path = save_visit_photo(user.name, store.name, photo_content, photo_filename, root)
    except EvidenceStorageError:
        current_app.logger.exception("Failed to store visit photo for user %s at store %s", user_key, store_key)
        return _fail(VisitOutcomeKind.EVIDENCE_FAILURE, "An error occurred while storing the visit photo")

    try:
        built = build_order_lines(requests)

        visit = Visit(
            uuid=uuid.uuid4(),
            date=today(),
            photo=photo_path,
            validation=bool(validation),
            user=user,
            store=store,
        )
        replace_visit_orders(visit, built.lines)

        db.session.add(visit)
        db.session.commit()
    except OrderPayloadError as exc:
        db.session.rollback()
        discard_visit_photo(photo_path)
        return _fail(VisitOutcomeKind.DECODE_FAILURE, str(exc))
    except Exception:
        # Any fault past this point must not leave the photo behind
        db.session.rollback()
        discard_visit_photo(photo_path)
        current_app.logger.exception("Failed to persist visit for user %s at store %s", user_key, store_key)
        return _fail(VisitOutcomeKind.PERSIST_FAILURE, "An error occurred while registering the visit")

    current_app.logger.info(
        "Registered visit %s (user=%s store=%s orders=%d dropped=%d)",
        visit.uuid,
        user.uuid,
        store.uuid,
        len(visit.orders),
        len(built.dropped),
    )
    return VisitOutcome(
        kind=VisitOutcomeKind.CREATED,
        message="Visit registered successfully",
        visit=visit,
        dropped=built.dropped,
    )


def list_visits() -> list[Visit]:
    return db.session.query(Visit).order_by(Visit.date.desc(), Visit.id.desc()).all()


def get_visit(visit_uuid) -> Visit | None:
    return repository.find_visit(visit_uuid)


def list_visit_orders(visit_uuid) -> list[Order]:
    visit = repository.find_visit(visit_uuid)
    if visit is None:
        return []
    return db.session.query(Order).filter_by(visit_id=visit.id).order_by(Order.id.asc()).all()


def delete_visit(visit_uuid) -> None:
    """Delete a visit; its orders go with it. The photo file is kept."""
    visit = repository.find_visit(visit_uuid)
    if visit is None:
        raise VisitNotFoundError("Visit not found")
    repository.delete(visit)
