"""
Order status lookup gated by the purchase email.

Order data is only returned when the shopper gives both the order number and
the email used for the purchase, and the email matches the order. Anything
else yields a result without data, so the assistant can neither confirm nor
deny that an order exists.
"""
import re
from typing import Dict, List, Optional, Tuple

from .business_rules import BusinessRules
from .logger import get_logger
from .models import OrderData, OrderItem, OrderLookupResult
from .shopify_client import ShopifyClient

logger = get_logger("order_lookup")

ORDER_REFERENCE_PATTERN = re.compile(
    r"(?:#|\b(?:pedidos?|orden|orders?)\b[^\d@\n]{0,20})(\d{4,})\b", re.IGNORECASE
)
ORDER_ID_PATTERN = re.compile(r"#?\b(\d{4,})\b")
EMAIL_PATTERN = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")


def extract_order_id(text: str) -> Optional[str]:
    """
    Order number marked with "#" or an order keyword ("pedido 10234").
    A bare run of digits only counts when the same text carries an email,
    so "chaqueta modelo 2024" is not an order.
    """
    text = text or ""
    match = ORDER_REFERENCE_PATTERN.search(text)
    if not match and extract_email(text):
        match = ORDER_ID_PATTERN.search(text)
    return match.group(1) if match else None


def extract_email(text: str) -> Optional[str]:
    match = EMAIL_PATTERN.search(text or "")
    return match.group(0) if match else None


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().casefold()


def resolve_identifiers(
    message: str, history: Optional[List[Dict[str, str]]] = None, window: Optional[int] = None
) -> Tuple[Optional[str], Optional[str]]:
    """
    Order id and email from the current message; a missing piece is recovered
    from history, newest turn first. With `window`, only the last `window`
    turns are searched.
    """
    order_id = extract_order_id(message)
    email = extract_email(message)

    recent = list(history or [])
    if window is not None:
        recent = recent[-window:] if window > 0 else []
    for turn in reversed(recent):
        if order_id and email:
            break
        content = turn.get("content") or ""
        if not order_id:
            order_id = extract_order_id(content)
        if not email:
            email = extract_email(content)
    return order_id, email


def format_order(record: Dict) -> OrderData:
    carrier, tracking_number, tracking_url = BusinessRules.resolve_carrier(
        record.get("carrier_code"), record.get("tracking_number"), record.get("tracking_url")
    )
    return OrderData(
        id=str(record.get("id") or ""),
        status=str(record.get("status") or "UNFULFILLED"),
        trackingNumber=tracking_number,
        trackingUrl=tracking_url,
        carrier=carrier,
        items=[OrderItem(**item) for item in record.get("items") or []],
        price=str(record.get("price") or ""),
    )


def lookup_order(client: ShopifyClient, order_id: str, email: str) -> OrderLookupResult:
    try:
        record = client.fetch_order(order_id)
    except Exception as e:
        logger.error(f"❌ Order lookup failed for #{order_id}: {e}")
        return OrderLookupResult(found=False, reason="error")

    if not record:
        return OrderLookupResult(found=False, reason="not_found")

    if normalize_email(record.get("email")) != normalize_email(email):
        logger.info(f"🔒 Email mismatch for order #{order_id}")
        return OrderLookupResult(found=False, reason="email_mismatch")

    return OrderLookupResult(found=True, data=format_order(record))


def check_order(
    client: ShopifyClient,
    message: str,
    history: Optional[List[Dict[str, str]]] = None,
    window: Optional[int] = None,
) -> Optional[OrderLookupResult]:
    """
    Full flow for one request. Returns None when the conversation carries no
    order identifiers at all.
    """
    order_id, email = resolve_identifiers(message, history, window)
    if not order_id and not email:
        return None
    if not email:
        return OrderLookupResult(found=False, reason="missing_email")
    if not order_id:
        return OrderLookupResult(found=False, reason="missing_order_id")
    return lookup_order(client, order_id, email)
