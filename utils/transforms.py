"""
Data transformation utilities
Turn purchase records and buyer data into what Mailchimp expects
"""
import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional

from models import PurchaseRecord


_WHITESPACE = re.compile(r"\s+")
_NEWLINES = re.compile(r"\r\n|\r|\n")
LINE_SEPARATOR = "•"


def split_full_name(full: str) -> Dict[str, str]:
    """
    Split a display name into first/last name (best effort)

    The last word becomes the last name, everything before it the first name.

    Args:
        full: Display name, e.g. "Jean de la Croix"

    Returns:
        Dict with "first" and "last"
    """
    full = _WHITESPACE.sub(" ", full or "").strip()
    if not full:
        return {"first": "", "last": ""}

    parts = full.split(" ")
    if len(parts) == 1:
        return {"first": parts[0], "last": ""}

    return {"first": " ".join(parts[:-1]), "last": parts[-1]}


def display_name_for(email: str, title: Optional[str]) -> str:
    """Buyer display name, falling back to the local part of the email"""
    full = (title or "").strip()
    if not full and "@" in email:
        full = email.split("@", 1)[0]
    return full


def unique_tags(candidates: Iterable[str]) -> List[str]:
    """Deduplicate preserving first-seen order and drop empties"""
    seen = []
    for tag in candidates:
        if tag and tag not in seen:
            seen.append(tag)
    return seen


def _session_as_dict(session: Any) -> Optional[Mapping]:
    if isinstance(session, Mapping):
        return session
    for method in ("to_dict", "model_dump"):
        if hasattr(session, method):
            return getattr(session, method)()
    return None


def _first_present(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return ""


def _line_item_name(item: Mapping) -> str:
    price = item.get("price") or {}
    product = price.get("product") if isinstance(price, Mapping) else None
    # Unexpanded Stripe objects only carry the product id
    product_name = product.get("name") if isinstance(product, Mapping) else None
    nickname = price.get("nickname") if isinstance(price, Mapping) else None

    return str(_first_present(product_name, item.get("description"), nickname)).strip()


def tags_from_stripe_session(session: Any) -> List[str]:
    """
    Product names from an expanded Stripe checkout session

    Name priority per line item: product name, line description, price nickname.
    """
    tags = []
    if session is None:
        return tags

    try:
        data = _session_as_dict(session)
        if data is None:
            return tags
        line_items = data.get("line_items") or {}
        for item in line_items.get("data") or []:
            name = _line_item_name(item)
            if name:
                tags.append(name)
    except Exception:
        # Malformed session data: keep whatever was read so far
        pass

    return tags


def tags_from_purchase_lines(purchase_lines: str) -> List[str]:
    """
    Product titles from the flat purchase lines text

    Each line looks like "PID • QTY • TITLE • TOTAL".
    """
    tags = []
    text = (purchase_lines or "").strip()
    if not text:
        return tags

    for line in _NEWLINES.split(text):
        parts = [part.strip() for part in line.split(LINE_SEPARATOR)]
        title = parts[2] if len(parts) > 2 else ""
        if title:
            tags.append(title)

    return tags


def purchase_tags_from_record(record: PurchaseRecord) -> List[str]:
    """
    Extract product titles to use as Mailchimp tags

    Stripe session line items win; purchase lines are only parsed when the
    session yields nothing.

    Args:
        record: Purchase record

    Returns:
        Unique, non-empty product titles
    """
    tags = tags_from_stripe_session(record.stripe_session)
    if not tags:
        tags = tags_from_purchase_lines(record.purchase_lines)
    return unique_tags(tags)


def format_timestamp(ts: Optional[int], fmt: str = "%Y-%m-%d %H:%M") -> str:
    """Render an epoch timestamp (UTC), or "-" when unset"""
    if not ts:
        return "-"
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime(fmt)


def parse_date_to_epoch(date_str: Optional[str]) -> Optional[int]:
    """
    Parse a "YYYY-MM-DD" date to epoch seconds at UTC midnight

    Returns:
        Epoch seconds or None for empty input

    Raises:
        ValueError: if the string is not a valid date
    """
    if not date_str:
        return None
    dt = datetime.strptime(date_str.strip(), "%Y-%m-%d").replace(tzinfo=timezone.utc)
    return int(dt.timestamp())
