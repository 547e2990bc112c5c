from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Optional

from cadastre_listings.config import settings
from cadastre_listings.schemas.property import Property

CURRENCY_LABELS = {"XAF": "FCFA"}
PRICE_ON_REQUEST = "Price on request"


def _group(amount: float) -> str:
    """25000000 -> '25 000 000'."""
    return f"{round(amount):,}".replace(",", " ")


def format_price(amount: Optional[float], currency: str = "XAF") -> str:
    if amount is None or amount <= 0:
        return PRICE_ON_REQUEST
    label = CURRENCY_LABELS.get(currency.upper(), currency.upper())
    return f"{_group(amount)} {label}"


def _half_up(value: float, places: int = 0) -> Decimal:
    return Decimal(str(value)).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def format_price_compact(amount: Optional[float]) -> str:
    """The unit is picked after rounding, so 999 999 999 is 1.0B and never 1000M."""
    if amount is None or amount <= 0:
        return "N/A"
    if _half_up(amount) < 1000:
        return _group(amount)
    if _half_up(amount / 1e3) < 1000:
        return f"{_half_up(amount / 1e3)}K"
    if _half_up(amount / 1e6) < 1000:
        return f"{_half_up(amount / 1e6)}M"
    return f"{_half_up(amount / 1e9, 1)}B"


def format_area(area: Optional[float]) -> str:
    if area is None or area <= 0:
        return "N/A"
    return f"{_group(area)} m²"


def format_time_ago(moment: Optional[datetime], now: Optional[datetime] = None) -> str:
    if moment is None:
        return "N/A"
    now = now or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    days = max((now - moment).days, 0)
    if days == 0:
        return "Today"
    if days == 1:
        return "Yesterday"
    if days < 7:
        return f"{days} days ago"
    if days < 30:
        return f"{days // 7} weeks ago"
    if days < 365:
        return f"{days // 30} months ago"
    return f"{days // 365} years ago"


def listing_status_label(prop: Property) -> str:
    if prop.for_sale and prop.for_rent:
        return "Sale / Rent"
    if prop.for_sale:
        return "For Sale"
    if prop.for_rent:
        return "For Rent"
    return "Available"


def display_fields(prop: Property) -> Dict[str, Any]:
    """Human-readable strings attached to every API response."""
    return {
        "display_price": format_price(prop.price, prop.currency),
        "display_rent_price": format_price(prop.rent_price, prop.currency) if prop.for_rent else None,
        "display_area": format_area(prop.surface_area),
        "listing_label": listing_status_label(prop),
        "display_location": prop.location or settings.DEFAULT_LOCATION,
    }
