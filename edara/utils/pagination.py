# edara/utils/pagination.py
from typing import Any, List

from pydantic import BaseModel


class PageMeta(BaseModel):
    page: int
    page_size: int
    total: int
    total_pages: int
    has_prev: bool
    has_next: bool

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.page_size


def meta(total: int, page: int, page_size: int) -> PageMeta:
    """Una página fuera de rango se ajusta a la última (1 si no hay resultados)."""
    pages = max(-(-total // page_size), 1)
    page = max(1, min(page, pages))
    return PageMeta(page=page, page_size=page_size, total=total, total_pages=pages,
                    has_prev=page > 1, has_next=page < pages)


def skip_for(m: PageMeta) -> int:
    return m.skip


def page_payload(items: List[Any], m: PageMeta) -> dict:
    return {"items": items, **m.model_dump()}
