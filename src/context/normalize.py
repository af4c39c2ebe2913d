"""Normalization of third-party bus timetable payloads into the route shape.

Accepted shapes:
- ``{"routes": {"Lahore-Islamabad": {...}}}`` (already keyed)
- ``{"buses": [{"origin": ..., "destination": ..., "departure_time": ...}]}`` (bookme.pk style)
- ``{"data": {"routes": ...}}`` or ``{"data": {"buses": [...]}}`` (nested wrapper)
- a bare list of route records
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

MISSING = "—"

_ORIGIN_FIELDS = ("from", "origin", "origin_name", "from_city")
_DESTINATION_FIELDS = ("to", "destination", "destination_name", "to_city")
_PRICE_FIELDS = ("ticketPrice", "price", "fare")


def _first(record: Mapping[str, Any], fields: tuple[str, ...]) -> Any:
    for name in fields:
        value = record.get(name)
        if value not in (None, ""):
            return value
    return None


def _extract_routes(payload: Any) -> Any:
    if isinstance(payload, list):
        return payload
    if not isinstance(payload, Mapping):
        return None
    data = payload.get("data")
    nested = data if isinstance(data, Mapping) else {}
    for candidate in (
        payload.get("routes"),
        nested.get("routes"),
        nested.get("buses"),
        payload.get("buses"),
    ):
        if candidate:
            return candidate
    return None


def _departure_times(record: Mapping[str, Any]) -> list[str]:
    times = record.get("departureTimes") or record.get("times")
    if times is None and record.get("departure_time"):
        times = [record["departure_time"]]
    if times is None:
        return []
    if isinstance(times, (list, tuple)):
        return [str(item) for item in times if item not in (None, "")]
    return [str(times)]


def _duration(record: Mapping[str, Any]) -> str:
    if record.get("duration"):
        return str(record["duration"])
    if record.get("duration_minutes"):
        return f"{record['duration_minutes']} minutes"
    return MISSING


def normalize_external_routes(payload: Any) -> dict[str, dict[str, Any]] | None:
    """Return routes keyed ``"<origin>-<destination>"`` or ``None`` when nothing is usable."""

    routes = _extract_routes(payload)
    if not routes:
        return None

    out: dict[str, dict[str, Any]] = {}
    if isinstance(routes, Mapping):
        for key, value in routes.items():
            if isinstance(value, Mapping):
                out[str(key)] = dict(value)
    elif isinstance(routes, list):
        for record in routes:
            if not isinstance(record, Mapping):
                continue
            origin = _first(record, _ORIGIN_FIELDS)
            destination = _first(record, _DESTINATION_FIELDS)
            # Without both ends there is nothing a caller could ask about.
            if origin is None or destination is None:
                continue
            key = f"{origin}-{destination}"
            entry = out.setdefault(
                key,
                {
                    "departureTimes": [],
                    "ticketPrice": _first(record, _PRICE_FIELDS) or MISSING,
                    "duration": _duration(record),
                },
            )
            for departure in _departure_times(record):
                if departure not in entry["departureTimes"]:
                    entry["departureTimes"].append(departure)

    return out or None
