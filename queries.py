"""
Read-side operations over a snapshot of the product list: category filter,
name search, pagination and per-category counts.
"""
import math
import re
from collections import Counter
from typing import Dict, List, Optional

from errors import ApiError, Err, Ok, Result
from models import Product

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def filter_by_category(products: List[Product], category: Optional[str]) -> List[Product]:
    if not category:
        return list(products)
    wanted = category.lower()
    return [p for p in products if p.category.lower() == wanted]


def search_by_name(products: List[Product], name: Optional[str]) -> Result:
    if not name:
        return Err(ApiError.validation('Missing "name" query parameter'))
    term = name.lower()
    return Ok([p for p in products if term in p.name.lower()])


def parse_page_param(raw: Optional[str], default: int) -> int:
    """
    Lenient integer parse of a page/limit query value.

    Leading digits are enough ("2abc" -> 2). Absent, non-numeric, zero and
    negative values all fall back to ``default``.
    """
    if raw is None:
        return default
    match = _LEADING_INT.match(raw)
    if not match:
        return default
    value = int(match.group(1))
    return value if value > 0 else default


def paginate(products: List[Product], page: int, limit: int) -> dict:
    start = (page - 1) * limit
    total = len(products)
    return {
        "page": page,
        "limit": limit,
        "totalItems": total,
        "totalPages": math.ceil(total / limit),
        "products": products[start:start + limit],
    }


def category_stats(products: List[Product]) -> Dict[str, int]:
    # Counter garde l'ordre de première apparition
    return dict(Counter(p.category for p in products))
