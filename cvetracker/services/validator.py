import logging
import math
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

DEFAULT_STATUS = "Pending"

REQUIRED_FIELDS = ("name", "severity", "description")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops the offset)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value):
    """Return an aware UTC datetime for a datetime or ISO-8601 string, else None."""
    if isinstance(value, datetime):
        return as_utc(value)
    if not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return as_utc(datetime.fromisoformat(text))
    except ValueError:
        return None


def parse_severity(value):
    """Parse a severity score into a finite float, or None if it is not numeric."""
    if isinstance(value, bool):
        return None
    try:
        score = float(value.strip() if isinstance(value, str) else value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(score):
        return None
    return score


def validate_vulnerability(data):
    """Normalize an incoming vulnerability payload.

    Returns a new dict with ``name``, ``severity``, ``description``, ``status``
    and ``dateLogged``, or ``None`` when the payload is not acceptable. The
    input mapping is left untouched.
    """
    if not data:
        return None

    for field in REQUIRED_FIELDS:
        if not data.get(field):
            logger.warning("validator: missing required field %r", field)
            return None

    name, description = data["name"], data["description"]
    if not isinstance(name, str) or not isinstance(description, str):
        return None
    name, description = name.strip(), description.strip()
    if not name or not description:
        return None

    severity = parse_severity(data["severity"])
    if severity is None:
        logger.warning("validator: severity %r is not numeric", data["severity"])
        return None

    status = data.get("status") or DEFAULT_STATUS
    if not isinstance(status, str):
        return None

    date_logged = data.get("dateLogged")
    if date_logged:
        date_logged = parse_timestamp(date_logged)
        if date_logged is None:
            logger.warning("validator: unparseable dateLogged %r", data.get("dateLogged"))
            return None
    else:
        date_logged = utcnow()

    return {
        "name": name,
        "severity": severity,
        "description": description,
        "status": status,
        "dateLogged": date_logged,
    }


def strip_creation_fields(record: dict) -> dict:
    """Drop fields that are fixed at creation so an update cannot overwrite them."""
    return {k: v for k, v in record.items() if k not in ("_id", "dateLogged")}
