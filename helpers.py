"""
Request and response helpers shared by the route handlers and the
CRUD dispatcher: the JSON envelope, numeric coercion, sort/search
builders and pagination.
"""

import math
import re
import time
from typing import Any, Dict, Iterable, List, Optional, Tuple

from bson import ObjectId
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pymongo.collection import Collection

from database import serialize_doc

# Default messages for common status codes
STATUS_MESSAGES = {
    # Success 2xx
    200: "Request processed successfully",
    201: "Resource created successfully",
    202: "Request accepted for processing",
    204: "No content available",
    # Client Errors 4xx
    400: "Bad request",
    401: "Unauthorized access",
    403: "Forbidden",
    404: "Resource not found",
    409: "Conflict - Resource already exists",
    # Server Errors 5xx
    500: "Internal server error",
    501: "Not implemented",
    502: "Bad gateway",
    503: "Service unavailable",
}

SORTABLE_FIELDS = {"name", "price", "quantity", "purchaseCount", "category", "createAt", "updateAt"}
DEFAULT_SORT = [("_id", -1)]

SEARCH_FIELDS = ("name", "category", "description")

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10


def respond(status_code: int, message: Optional[str] = None, data: Any = None) -> JSONResponse:
    """Build the `{success, message, data?}` envelope for a status code."""
    success = 200 <= status_code < 300
    text = message or STATUS_MESSAGES.get(status_code) or (
        "Operation successful" if success else "Operation failed"
    )
    body: Dict[str, Any] = {"success": success, "message": text.capitalize()}
    if data is not None:
        body["data"] = jsonable_encoder(data, custom_encoder={ObjectId: str})
    return JSONResponse(status_code=status_code, content=body)


def now_ms() -> int:
    return int(time.time() * 1000)


def _to_number(value: Any) -> Any:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    text = str(value).strip()
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        return float("nan")


def convert_number_fields(record: Dict[str, Any], fields: Iterable[str]) -> Dict[str, Any]:
    """Convert the named fields of `record` to numbers, in place.

    Missing, None and empty-string values are left alone so that an absent
    field stays absent; zero ("0" or 0) is converted like any other number.
    Unparseable input becomes NaN.
    """
    for field in fields:
        value = record.get(field)
        if value is None or value == "" or isinstance(value, bool):
            continue
        record[field] = _to_number(value)
    return record


def invalid_number_fields(record: Dict[str, Any], fields: Iterable[str]) -> List[str]:
    """Fields holding NaN or infinity, which JSON cannot carry."""
    return [f for f in fields if isinstance(record.get(f), float) and not math.isfinite(record[f])]


def sort_func(value: Optional[str]) -> List[Tuple[str, int]]:
    """Parse `field:direction` into a pymongo sort spec."""
    if not value or ":" not in value:
        return list(DEFAULT_SORT)
    field, _, direction = value.partition(":")
    field = field.strip()
    if field not in SORTABLE_FIELDS:
        return list(DEFAULT_SORT)
    return [(field, 1 if direction.strip().lower() == "asc" else -1)]


def search_func(term: Optional[str]) -> Dict[str, Any]:
    term = (term or "").strip()
    if not term:
        return {}
    pattern = re.escape(term)
    return {"$or": [{f: {"$regex": pattern, "$options": "i"}} for f in SEARCH_FIELDS]}


def _positive_int(value: Any, default: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def paginate(
    collection: Collection,
    filter_dict: Optional[dict] = None,
    page: Any = None,
    limit: Any = None,
    sort: Optional[list] = None,
    projection: Optional[dict] = None,
) -> Tuple[List[dict], Optional[Dict[str, int]]]:
    """Find documents, optionally one page at a time.

    Without `page` and `limit` every match is returned and the page info is
    None. The count and the page are two separate reads, run one after the
    other on the request thread, and may disagree under concurrent writes.
    """
    filter_dict = filter_dict or {}
    cursor = collection.find(filter_dict, projection)
    if sort:
        cursor = cursor.sort(sort)

    if page is None and limit is None:
        return [serialize_doc(doc) for doc in cursor], None

    page = _positive_int(page, DEFAULT_PAGE)
    limit = _positive_int(limit, DEFAULT_LIMIT)
    items = [serialize_doc(doc) for doc in cursor.skip((page - 1) * limit).limit(limit)]
    total = collection.count_documents(filter_dict)
    page_info = {"total": total, "page": page, "pages": math.ceil(total / limit), "limit": limit}
    return items, page_info
