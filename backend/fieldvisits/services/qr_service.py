# Overview: Renders store QR codes to PNG files.

from __future__ import annotations

import os

import qrcode
from flask import current_app


class QrRenderError(Exception):
    """Raised when a QR image cannot be produced."""


def render_qr(content: str, name: str, folder: str | None = None) -> str:
    """Render ``content`` as a PNG named ``<name>.png`` and return its path."""
    folder = folder or current_app.config["QR_FOLDER"]
    path = os.path.join(folder, f"{name}.png")
    try:
        os.makedirs(folder, exist_ok=True)
        image = qrcode.make(content)
        image.save(path)
    except OSError as exc:
        raise QrRenderError(f"Failed to generate QR code {name}") from exc
    return path
