# Overview: Decodes raw order payloads and turns them into priced order lines.

"""
Order Line Builder

Two distinct failure modes:
- Structural: the payload is not a JSON array of {productId, quantity}
  objects. Raised as OrderPayloadError and fails the whole request.
- Per entry: the product does not exist. The entry is dropped and the
  rest of the batch continues; a visit may legitimately end up with no
  orders at all.

Prices are copied from the product at construction time
(unit_price_cents = product.base_price_cents), never joined later.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from typing import Any

from flask import current_app

from ..models import Order, Product, Visit
from . import repository

# Accepted spellings of the product reference inside an entry
PRODUCT_KEYS = ("productId", "productUuid")

# Per-line ceiling for a single field call
MAX_ORDER_QUANTITY = 100_000

# Upper bound of the Integer columns holding cents
MAX_LINE_TOTAL_CENTS = 2_147_483_647


class OrderPayloadError(ValueError):
    """Raised when the raw order payload cannot be decoded."""


@dataclass(frozen=True)
class OrderRequest:
    product_uuid: uuid.UUID
    quantity: int


@dataclass
class OrderBuildResult:
    lines: list[Order] = field(default_factory=list)
    dropped: list[OrderRequest] = field(default_factory=list)


def _parse_quantity(value: Any, index: int) -> int:
    # bool is an int subclass; "true" is not a quantity
    if isinstance(value, bool) or not isinstance(value, int):
        raise OrderPayloadError(f"Entry {index}: quantity must be an integer")
    if value <= 0:
        raise OrderPayloadError(f"Entry {index}: quantity must be greater than zero")
    if value > MAX_ORDER_QUANTITY:
        raise OrderPayloadError(f"Entry {index}: quantity cannot exceed {MAX_ORDER_QUANTITY}")
    return value


def _parse_product_uuid(entry: dict, index: int) -> uuid.UUID:
    raw = None
    for key in PRODUCT_KEYS:
        if key in entry:
            raw = entry[key]
            break
    if raw is None:
        raise OrderPayloadError(f"Entry {index}: productId is required")
    if not isinstance(raw, str):
        raise OrderPayloadError(f"Entry {index}: productId must be a string")
    try:
        return uuid.UUID(raw.strip())
    except ValueError:
        raise OrderPayloadError(f"Entry {index}: productId is not a valid UUID")


def decode_orders_payload(raw: str | bytes | None) -> list[OrderRequest]:
    """
    Decode the text blob sent with a visit into order requests.

    ``null`` decodes to an empty batch; anything that is not a JSON array
    of objects with a product reference and a positive integer quantity
    raises OrderPayloadError.
    """
    if raw is None:
        raise OrderPayloadError("Orders payload is required")
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError:
            raise OrderPayloadError("Orders payload must be UTF-8 text")
    if not raw.strip():
        raise OrderPayloadError("Orders payload cannot be blank")

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise OrderPayloadError(f"Orders payload is not valid JSON: {exc.msg}")

    if data is None:
        return []
    if not isinstance(data, list):
        raise OrderPayloadError("Orders payload must be a JSON array")

    requests: list[OrderRequest] = []
    for index, entry in enumerate(data):
        if not isinstance(entry, dict):
            raise OrderPayloadError(f"Entry {index}: must be an object")
        requests.append(
            OrderRequest(
                product_uuid=_parse_product_uuid(entry, index),
                quantity=_parse_quantity(entry.get("quantity"), index),
            )
        )
    return requests


def build_order_line(product: Product, quantity: int, visit: Visit | None = None) -> Order:
    unit_price_cents = product.base_price_cents
    total_cents = quantity * unit_price_cents
    if total_cents > MAX_LINE_TOTAL_CENTS:
        raise OrderPayloadError(
            f"Order for product {product.uuid} exceeds the maximum line total of {MAX_LINE_TOTAL_CENTS} cents"
        )
    return Order(
        uuid=uuid.uuid4(),
        quantity=quantity,
        unit_price_cents=unit_price_cents,
        total_cents=total_cents,
        product=product,
        visit=visit,
    )


def build_order_lines(requests: list[OrderRequest], visit: Visit | None = None) -> OrderBuildResult:
    """
    Resolve products and price each request.

    Unknown products are dropped without failing the batch.
    """
    result = OrderBuildResult()
    for request in requests:
        product = repository.find_product(request.product_uuid)
        if product is None:
            current_app.logger.info(
                "Dropping order entry for unknown product %s (quantity=%s)",
                request.product_uuid,
                request.quantity,
            )
            result.dropped.append(request)
            continue
        result.lines.append(build_order_line(product, request.quantity, visit))
    return result
