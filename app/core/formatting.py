"""
Display formatting for amounts and phone numbers.
"""

import math
import re
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional

CURRENCY_LABEL = "CFA"


def format_cfa(amount: Any) -> str:
    """Format an amount as '140 000 CFA'. Missing or non-numeric amounts give 'N/A'."""
    if amount is None or isinstance(amount, bool):
        return "N/A"
    try:
        number = float(amount)
    except (TypeError, ValueError):
        return "N/A"
    if math.isnan(number) or math.isinf(number):
        return "N/A"
    rounded = int(Decimal(str(number)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    grouped = f"{rounded:,}".replace(",", " ")
    return f"{grouped} {CURRENCY_LABEL}"


def format_phone_number(number: Optional[Any]) -> str:
    """Keep digits only and group an 8-digit number in pairs ('90 80 90 89')."""
    if not number:
        return ""
    digits = re.sub(r"\D", "", str(number))
    match = re.fullmatch(r"(\d{2})(\d{2})(\d{2})(\d{2})", digits)
    if match:
        return " ".join(match.groups())
    return digits
