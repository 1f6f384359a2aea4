from sqlalchemy import ColumnElement, or_
from sqlalchemy.orm import InstrumentedAttribute


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def substring_filter(
    term: str | None, *columns: InstrumentedAttribute
) -> ColumnElement[bool] | None:
    """Case-insensitive substring match on any of the columns; None for a blank term."""
    if term is None or not term.strip():
        return None
    pattern = _like_pattern(term.strip())
    return or_(*(column.ilike(pattern, escape="\\") for column in columns))
