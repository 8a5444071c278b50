"""Search, filter and page the global describe ``sobjects`` list."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

FILTERS = ("all", "custom", "standard", "queryable", "createable")


@dataclass
class ObjectPage:
    sobjects: List[Dict[str, Any]]
    total_count: int
    has_more: bool
    next_offset: int
    search_term: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sobjects": self.sobjects,
            "totalCount": self.total_count,
            "hasMore": self.has_more,
            "nextOffset": self.next_offset,
            "searchTerm": self.search_term,
        }


def _text(obj: Dict[str, Any], key: str) -> str:
    return (obj.get(key) or "").lower()


def _matches(obj: Dict[str, Any], term: str) -> bool:
    return any(term in _text(obj, key) for key in ("name", "label", "labelPlural"))


def _keep(obj: Dict[str, Any], kind: str) -> bool:
    if kind == "custom":
        return bool(obj.get("custom"))
    if kind == "standard":
        return not obj.get("custom")
    if kind == "queryable":
        return bool(obj.get("queryable"))
    if kind == "createable":
        return bool(obj.get("createable"))
    return True


def _relevance(obj: Dict[str, Any], term: str):
    name, label = _text(obj, "name"), _text(obj, "label")
    exact = name == term or label == term
    prefix = name.startswith(term) or label.startswith(term)
    # False sorts first
    return (not exact, not prefix, _text(obj, "label"))


def search_objects(
    sobjects: List[Dict[str, Any]],
    search: Optional[str] = None,
    kind: str = "all",
    limit: int = 50,
    offset: int = 0,
) -> ObjectPage:
    """Filter by substring and kind, rank, then slice ``[offset:offset+limit]``.

    With a search term exact name/label matches come first, then prefix
    matches, then the rest by label; without one everything is ordered by label.
    """
    term = (search or "").lower()
    objs = [o for o in sobjects if (not term or _matches(o, term)) and _keep(o, kind)]

    if term:
        objs.sort(key=lambda o: _relevance(o, term))
    else:
        objs.sort(key=lambda o: _text(o, "label"))

    total = len(objs)
    offset = max(offset, 0)
    page = objs[offset : offset + limit]
    has_more = offset + limit < total
    return ObjectPage(
        sobjects=page,
        total_count=total,
        has_more=has_more,
        next_offset=offset + limit if has_more else offset,
        search_term=search or None,
    )
