from datetime import date, datetime
from typing import Optional

from app.core.errors import ValidationError


def parse_date(value, field: str) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError as exc:
        raise ValidationError(f"Data invalida em {field}", field=field) from exc
