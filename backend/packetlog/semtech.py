# semtech.py
# Unwrap Semtech UDP PUSH_DATA frames into uplink reports.

from __future__ import annotations

import base64
import binascii
import json
import logging
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

# [version u8][token u16][identifier u8][gateway EUI 8 bytes]
HEADER_SIZE = 12


class FrameError(ValueError):
    """Raised when a datagram cannot be read as a PUSH_DATA frame."""


@dataclass(frozen=True)
class RawReport:
    message: str
    frequency: float | None = None
    rssi: float | None = None


def _number(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def decode_rxpk(entry: Any) -> RawReport:
    """Decode one ``rxpk`` element; raise :class:`FrameError` if it carries no usable ``data``."""

    if not isinstance(entry, dict):
        raise FrameError("rxpk entry is not an object")
    data = entry.get("data")
    if not isinstance(data, str):
        raise FrameError("rxpk entry has no base64 data")
    try:
        raw = base64.b64decode(data, validate=False)
    except (binascii.Error, ValueError) as exc:
        raise FrameError(f"bad base64 data: {exc}") from exc
    return RawReport(
        message=raw.decode("utf-8", errors="replace"),
        frequency=_number(entry.get("freq")),
        rssi=_number(entry.get("rssi")),
    )


def parse_push_data(datagram: bytes) -> list[Any]:
    """Return the raw ``rxpk`` entries of *datagram*; raise :class:`FrameError` if the frame is unreadable.

    The 12-byte header is skipped without validation. Frames whose JSON body
    has no ``rxpk`` array (keep-alives, stat frames) yield ``[]``.
    """

    if len(datagram) < HEADER_SIZE:
        raise FrameError(f"datagram shorter than header ({len(datagram)} bytes)")
    try:
        body = json.loads(datagram[HEADER_SIZE:])
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise FrameError(f"body is not JSON: {exc}") from exc

    if not isinstance(body, dict):
        raise FrameError("body is not a JSON object")
    rxpk = body.get("rxpk")
    if rxpk is None:
        return []
    if not isinstance(rxpk, list):
        raise FrameError("rxpk is not an array")
    return rxpk


def decode(datagram: bytes, source: Any = None) -> list[RawReport]:
    """Return the uplink reports carried by *datagram*.

    An unreadable frame yields ``[]``; an unreadable ``rxpk`` entry is logged
    and skipped without affecting its siblings.
    """

    try:
        entries = parse_push_data(datagram)
    except FrameError as exc:
        logger.warning("Failed to parse UDP payload from %s: %s", source, exc)
        return []

    reports: list[RawReport] = []
    for index, entry in enumerate(entries):
        try:
            report = decode_rxpk(entry)
        except FrameError as exc:
            logger.warning("Skipping rxpk[%d] from %s: %s", index, source, exc)
            continue
        logger.info("[UDP] %s (RSSI: %s, Freq: %s)", report.message, report.rssi, report.frequency)
        reports.append(report)
    return reports
