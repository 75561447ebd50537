"""Vues sérialisables (JSON) des contenus, avec champs dérivés.

Les vues sont recalculées au moment de la lecture: `status` et
`time_remaining` ne sont jamais persistés.
"""

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from crowdvote.domain.entities import ContentSnapshot
from crowdvote.domain.lifecycle import derive_status, time_remaining


def format_usd_value(value: Decimal | int | float | str | None) -> str:
    """Formate un montant en dollars: `$1,234.56`."""
    amount = Decimal(str(value or 0)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def content_view(item: ContentSnapshot, now: datetime) -> dict[str, Any]:
    """Construit la vue d'un contenu à l'instant `now`."""
    data = asdict(item)
    for key, value in data.items():
        if isinstance(value, datetime):
            data[key] = value.isoformat()
    data["tags"] = list(item.tags)
    data["total_usd_value"] = str(item.total_usd_value)
    data["status"] = derive_status(item, now).value
    data["time_remaining"] = time_remaining(item, now)
    data["formatted_total_usd_value"] = format_usd_value(item.total_usd_value)
    return data
