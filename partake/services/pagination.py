"""Cursor (keyset) pagination.

A cursor names the sort key of the last record on the previous page and
the scan resumes strictly after it, so fetching page N costs the same as
fetching page 1.

Cursor format::

    base64url({"k": <kind>, "v": <key>}) + "." + hmac_sha256(...)[:16]

The signature stops clients from hand-crafting cursors (e.g. to jump to an
arbitrary position); the kind stops an event cursor from being replayed
against the attendee listing.
"""
import base64
import binascii
import hashlib
import hmac
import json
import logging
from typing import Any, Callable, Generic, Optional, Sequence, TypeVar

from pydantic import BaseModel
from sqlalchemy.orm import Query

from partake.config import settings
from partake.exceptions import ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

SIGNATURE_LENGTH = 16
_KEY_DOMAIN = b"partake:cursor:v1"


class CursorPage(BaseModel, Generic[T]):
    """One page of a keyset-paginated listing."""

    content: list[T]
    next_cursor: Optional[str] = None
    has_next: bool = False
    size: int = 0


def _signing_key() -> bytes:
    return hmac.new(settings.CURSOR_SECRET.encode(), _KEY_DOMAIN, hashlib.sha256).digest()


def _sign(payload: str) -> str:
    return hmac.new(_signing_key(), payload.encode(), hashlib.sha256).hexdigest()[:SIGNATURE_LENGTH]


def encode_cursor(key: Any, kind: str) -> str:
    """Encode a sort key into an opaque, signed cursor string."""
    raw = json.dumps({"k": kind, "v": key}, separators=(",", ":")).encode()
    payload = base64.urlsafe_b64encode(raw).decode().rstrip("=")
    return f"{payload}.{_sign(payload)}"


def decode_cursor(cursor: str, kind: str) -> Any:
    """Return the sort key a cursor resumes after.

    Raises ValidationError for anything that was not produced by
    `encode_cursor` for the same listing kind.
    """
    if not cursor.isascii():
        raise ValidationError("Malformed cursor")
    payload, sep, signature = cursor.partition(".")
    if not sep or not payload:
        raise ValidationError("Malformed cursor")
    if not hmac.compare_digest(signature.encode(), _sign(payload).encode()):
        logger.warning("Rejected cursor with bad signature for %s listing", kind)
        raise ValidationError("Malformed cursor")
    try:
        padded = payload + "=" * (-len(payload) % 4)
        data = json.loads(base64.urlsafe_b64decode(padded.encode()))
    except (binascii.Error, ValueError):
        raise ValidationError("Malformed cursor")
    if not isinstance(data, dict) or data.get("k") != kind or "v" not in data:
        raise ValidationError("Cursor does not belong to this listing")
    return data["v"]


def empty_page() -> CursorPage:
    return CursorPage(content=[], next_cursor=None, has_next=False, size=0)


def build_page(
    records: Sequence[T],
    seed: Callable[[T], Any],
    limit: int,
    kind: str,
) -> CursorPage[T]:
    """Build a page from up to `limit + 1` fetched records.

    The extra lookahead record only signals that another page exists; the
    next cursor is seeded from the last record actually returned.
    """
    if len(records) > limit:
        content = list(records[:limit])
        next_cursor = encode_cursor(seed(content[-1]), kind)
        return CursorPage(content=content, next_cursor=next_cursor, has_next=True, size=len(content))
    content = list(records)
    return CursorPage(content=content, next_cursor=None, has_next=False, size=len(content))


def map_page(page: CursorPage, fn: Callable[[Any], Any]) -> CursorPage:
    """Convert page content (e.g. ORM rows to response schemas), keeping the cursor."""
    return CursorPage(
        content=[fn(item) for item in page.content],
        next_cursor=page.next_cursor,
        has_next=page.has_next,
        size=page.size,
    )


def clamp_limit(limit: Optional[int]) -> int:
    if limit is None:
        return settings.DEFAULT_PAGE_SIZE
    if limit < 1:
        raise ValidationError("limit must be a positive integer")
    return min(limit, settings.MAX_PAGE_SIZE)


def paginate(
    query: Query,
    key_column,
    cursor: Optional[str],
    limit: Optional[int],
    kind: str,
    key_of: Callable[[Any], Any],
) -> CursorPage:
    """Run `query` as a keyset scan on `key_column` and return one page."""
    limit = clamp_limit(limit)
    if cursor:
        after = decode_cursor(cursor, kind)
        query = query.filter(key_column > after)
    records = query.order_by(key_column.asc()).limit(limit + 1).all()
    if not records:
        return empty_page()
    return build_page(records, key_of, limit, kind)
