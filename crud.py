"""
Generic CRUD dispatcher.

Maps one of five operation names onto a pymongo collection call and always
returns exactly one envelope response, including when the store fails.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from fastapi.responses import JSONResponse
from pymongo.collection import Collection

from database import serialize_doc
from helpers import paginate, respond

logger = logging.getLogger(__name__)

OPERATIONS = ("create", "read", "readOne", "update", "delete")


@dataclass
class PageRequest:
    page: Optional[int] = None
    limit: Optional[int] = None


@dataclass
class CrudOptions:
    """Per-call options for `crud_operation`.

    `filter` selects documents for read, readOne, update and delete.
    `sort` and `limit` shape a plain read; setting `page` switches the read to
    paginated mode and the response data to `{items, pageInfo}`.
    `projection` is passed through to both reads.
    """

    entity: str = "item"
    filter: Dict[str, Any] = field(default_factory=dict)
    sort: Optional[List[Tuple[str, int]]] = None
    limit: Optional[int] = None
    projection: Optional[Dict[str, Any]] = None
    page: Optional[PageRequest] = None


def _create(collection: Collection, data: dict, options: CrudOptions) -> JSONResponse:
    result = collection.insert_one(data)
    if not result.inserted_id:
        return respond(400, f"{options.entity} failed to be added in server")
    return respond(201, f"{options.entity} created successfully", {"insertedId": result.inserted_id})


def _read(collection: Collection, data: Any, options: CrudOptions) -> JSONResponse:
    if options.page is not None:
        items, page_info = paginate(
            collection,
            options.filter,
            page=options.page.page,
            limit=options.page.limit,
            sort=options.sort,
            projection=options.projection,
        )
        if not page_info["total"]:
            return respond(404, f"{options.entity} not found")
        return respond(200, f"{options.entity} retrieved successfully", {"items": items, "pageInfo": page_info})

    cursor = collection.find(options.filter, options.projection)
    if options.sort:
        cursor = cursor.sort(options.sort)
    if options.limit:
        cursor = cursor.limit(int(options.limit))
    items = [serialize_doc(doc) for doc in cursor]
    if not items:
        return respond(404, f"{options.entity} not found")
    return respond(200, f"{options.entity} retrieved successfully", items)


def _read_one(collection: Collection, data: Any, options: CrudOptions) -> JSONResponse:
    doc = collection.find_one(options.filter, options.projection)
    if not doc:
        return respond(404, f"{options.entity} not found")
    return respond(200, f"{options.entity} retrieved successfully", serialize_doc(doc))


def _update(collection: Collection, data: dict, options: CrudOptions) -> JSONResponse:
    changes = {k: v for k, v in (data or {}).items() if k not in ("_id", "id")}
    result = collection.update_one(options.filter, {"$set": changes})
    if not result.modified_count:
        return respond(404, f"{options.entity} not found")
    return respond(
        200,
        f"{options.entity} updated successfully",
        {"matchedCount": result.matched_count, "modifiedCount": result.modified_count},
    )


def _delete(collection: Collection, data: Any, options: CrudOptions) -> JSONResponse:
    result = collection.delete_one(options.filter)
    if not result.deleted_count:
        return respond(404, f"{options.entity} not found")
    return respond(200, f"{options.entity} deleted successfully", {"deletedCount": result.deleted_count})


_HANDLERS = {
    "create": _create,
    "read": _read,
    "readOne": _read_one,
    "update": _update,
    "delete": _delete,
}


def crud_operation(
    operation: str,
    collection: Collection,
    data: Any = None,
    options: Optional[CrudOptions] = None,
) -> JSONResponse:
    options = options or CrudOptions()
    handler = _HANDLERS.get(operation)
    if handler is None:
        return respond(400, "Invalid operation")
    try:
        return handler(collection, data, options)
    except Exception:
        logger.exception("CRUD %s failed on %s", operation, options.entity)
        return respond(500, f"Failed to perform {operation} operation on {options.entity}")
