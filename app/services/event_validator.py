"""
Event validation and slug assignment before persistence
"""

import logging
import re
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from app.core.config import settings
from app.core.errors import (
    EmptyCollectionError,
    InvalidEnumError,
    InvalidFormatError,
    MissingFieldError,
    UniqueConstraintViolation,
)
from app.services.repositories import EVENTS, DocumentStore
from app.utils.slug import TokenSource, disambiguate, slugify, timestamp_token

logger = logging.getLogger(__name__)

EVENT_MODES = ("online", "offline", "hybrid")

# Editable fields, in the order violations are reported
EVENT_FIELDS = (
    "title", "description", "overview", "image", "venue", "location",
    "date", "time", "mode", "audience", "agenda", "organizer", "tags",
)
TEXT_FIELDS = ("title", "description", "overview", "image", "venue", "location")

TIME_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):([0-5][0-9])$")
DATE_FORMATS = ("%Y-%m-%d", "%Y/%m/%d", "%B %d, %Y", "%b %d, %Y")


def _required_text(candidate: Dict[str, Any], field: str) -> str:
    value = candidate.get(field)
    if value is None:
        raise MissingFieldError(field)
    if not isinstance(value, str):
        raise InvalidFormatError(field)
    value = value.strip()
    if not value:
        raise MissingFieldError(field)
    return value


def _parse_iso(value: str) -> Optional[datetime]:
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed


def normalize_date(value: Any) -> str:
    """Return the date as YYYY-MM-DD; aware datetimes are read in UTC"""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    parsed = _parse_iso(value)
    if parsed is not None:
        return parsed.date().isoformat()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date().isoformat()
        except ValueError:
            continue
    raise InvalidFormatError("date")


def normalize_time(value: str) -> str:
    """Return a 24h time as zero-padded HH:MM"""
    match = TIME_PATTERN.match(value)
    if not match:
        raise InvalidFormatError("time")
    return f"{int(match.group(1)):02d}:{match.group(2)}"


def _required_items(candidate: Dict[str, Any], field: str, unique: bool = False) -> List[str]:
    if field not in candidate:
        raise MissingFieldError(field)
    return normalize_items(candidate[field], field, unique=unique)


def normalize_items(value: Any, field: str, unique: bool = False) -> List[str]:
    """Trim a list of strings, dropping blanks (and duplicates when unique)"""
    if not isinstance(value, (list, tuple)):
        raise EmptyCollectionError(field)
    items = []
    for item in value:
        if not isinstance(item, str):
            raise InvalidFormatError(field)
        item = item.strip()
        if item:
            items.append(item)
    if unique:
        items = list(dict.fromkeys(items))
    if not items:
        raise EmptyCollectionError(field)
    return items


class EventValidator:
    """Validates event candidates and assigns a unique slug.

    The slug lookup is a best-effort pre-check; two concurrent creations can
    both pass it, so callers must still handle UniqueConstraintViolation from
    the store (see EventService.create_event).
    """

    def __init__(
        self,
        store: DocumentStore,
        token_source: TokenSource = timestamp_token,
        max_attempts: Optional[int] = None,
    ):
        self.store = store
        self.token_source = token_source
        self.max_attempts = max_attempts or settings.SLUG_MAX_ATTEMPTS

    def prepare(self, candidate: Dict[str, Any], existing: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Validate and normalize an event candidate.

        Args:
            candidate: raw field values (no slug, id or timestamps)
            existing: the stored record when validating an update

        Returns:
            A record ready for DocumentStore.insert / update.

        Raises:
            ValidationError: on the first violated constraint.
            UniqueConstraintViolation: no free slug after max_attempts.
        """
        record: Dict[str, Any] = {}
        for field in TEXT_FIELDS:
            record[field] = _required_text(candidate, field)

        raw_date = candidate.get("date")
        if isinstance(raw_date, date):
            record["date"] = normalize_date(raw_date)
        else:
            record["date"] = normalize_date(_required_text(candidate, "date"))
        record["time"] = normalize_time(_required_text(candidate, "time"))

        mode = _required_text(candidate, "mode").lower()
        if mode not in EVENT_MODES:
            raise InvalidEnumError("mode", EVENT_MODES)
        record["mode"] = mode

        record["audience"] = _required_text(candidate, "audience")
        record["agenda"] = _required_items(candidate, "agenda")
        record["organizer"] = _required_text(candidate, "organizer")
        record["tags"] = _required_items(candidate, "tags", unique=True)

        if existing is not None and existing.get("title") == record["title"]:
            record["slug"] = existing["slug"]
        else:
            record["slug"] = self.unique_slug(slugify(record["title"]), existing)
        return record

    def _taken(self, slug: str, existing: Optional[Dict[str, Any]]) -> bool:
        found = self.store.find_one(EVENTS, {"slug": slug})
        if found is None:
            return False
        return existing is None or found.get("id") != existing.get("id")

    def unique_slug(self, base: str, existing: Optional[Dict[str, Any]] = None) -> str:
        slug = base
        for _ in range(self.max_attempts):
            if not self._taken(slug, existing):
                return slug
            logger.warning("Slug %r already taken, disambiguating", slug)
            slug = disambiguate(base, self.token_source())
        raise UniqueConstraintViolation("slug")

    def regenerate_slug(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """Copy of record with a freshly disambiguated slug.

        The new slug always differs from the one the record carries, since
        that one was just rejected by the store.
        """
        base = slugify(record["title"])
        for _ in range(self.max_attempts):
            slug = disambiguate(base, self.token_source())
            if slug != record["slug"]:
                return {**record, "slug": slug}
        raise UniqueConstraintViolation("slug")


def changed_fields(record: Dict[str, Any], existing: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in record.items() if existing.get(k) != v}


def merge_candidate(existing: Dict[str, Any], changes: Dict[str, Any], fields: Sequence[str] = EVENT_FIELDS) -> Dict[str, Any]:
    """Overlay non-None changes on the editable fields of a stored event"""
    merged = {field: existing.get(field) for field in fields}
    merged.update({k: v for k, v in changes.items() if k in merged and v is not None})
    return merged
