from dataclasses import dataclass

from ...errors import ValidationError


@dataclass(frozen=True)
class PageWindow:
    page: int
    per_page: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page


def page_window(
    page: int,
    per_page: int | None,
    *,
    default_per_page: int,
    max_per_page: int,
) -> PageWindow:
    if page < 1:
        raise ValidationError("page", "must be 1 or greater")
    if per_page is None:
        per_page = default_per_page
    if not 1 <= per_page <= max_per_page:
        raise ValidationError("per_page", f"must be between 1 and {max_per_page}")
    return PageWindow(page=page, per_page=per_page)


def clean_name(name: str, field: str = "name") -> str:
    cleaned = name.strip() if name is not None else ""
    if not cleaned:
        raise ValidationError(field, "must not be blank")
    return cleaned
