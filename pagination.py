"""
Page/offset pagination over a whole collection.

Pages are read in the store's natural order. No sort key is applied, so page
contents can shift between calls while documents are inserted or deleted.
"""

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from pymongo.collection import Collection

DEFAULT_PAGE = 1
DEFAULT_PER_PAGE = 100
MAX_PER_PAGE = 1000
# skip is sent to MongoDB as a signed 64-bit integer
MAX_SKIP = 2**63 - 1

# digits past the 20th cannot matter once page and per_page are clamped, and
# dropping them keeps int() clear of its length limit on huge inputs
_LEADING_INT = re.compile(r"\s*([+-]?\d{1,20})")


@dataclass(frozen=True)
class PageParams:
    page: int
    per_page: int
    skip: int


def parse_int(value: Optional[str], default: int) -> int:
    """Leading integer of ``value`` ("12abc" -> 12, "2.9" -> 2), else ``default``."""
    if value is None:
        return default
    match = _LEADING_INT.match(str(value))
    if not match:
        return default
    return int(match.group(1))


def resolve_page(page: Optional[str] = None, per_page: Optional[str] = None) -> PageParams:
    pp = min(MAX_PER_PAGE, max(1, parse_int(per_page, DEFAULT_PER_PAGE)))
    p = min(MAX_SKIP // pp + 1, max(1, parse_int(page, DEFAULT_PAGE)))
    return PageParams(page=p, per_page=pp, skip=(p - 1) * pp)


def paginate(
    collection: Collection,
    params: PageParams,
    transform: Optional[Callable[[List[Dict]], List[Dict]]] = None,
) -> Dict[str, Any]:
    items = list(collection.find().skip(params.skip).limit(params.per_page))
    if transform is not None:
        items = transform(items)
    total = collection.count_documents({})
    return {"total": total, "page": params.page, "per_page": params.per_page, "items": items}
