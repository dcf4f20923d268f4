import logging
import re
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from bson import ObjectId
from fastapi import APIRouter, Body, Depends, FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError
from pymongo import UpdateOne
from starlette.exceptions import HTTPException as StarletteHTTPException

from auth import (
    clear_token_cookie,
    get_settings,
    issue_token,
    parse_object_id,
    set_token_cookie,
    valid_object_id,
    verify_token,
)
from config import Settings
from crud import CrudOptions, PageRequest, crud_operation
from database import Database, get_db, serialize_doc
from helpers import convert_number_fields, invalid_number_fields, now_ms, respond, search_func, sort_func
from schemas import Food, Order, TokenRequest, WishlistItem

logger = logging.getLogger(__name__)

FOOD_NUMBER_FIELDS = ["price", "quantity"]
FOOD_UPDATE_NUMBER_FIELDS = ["price", "quantity", "purchaseCount"]
DEFAULT_TOP_N = 6

router = APIRouter()


def _coerce(record: Dict[str, Any], fields: List[str]) -> Dict[str, Any]:
    convert_number_fields(record, fields)
    bad = invalid_number_fields(record, fields)
    if bad:
        raise HTTPException(status_code=400, detail=f"Invalid number for {', '.join(bad)}")
    return record


def _validate(model, record: Dict[str, Any]) -> None:
    try:
        model.model_validate(record)
    except ValidationError as e:
        raise RequestValidationError(e.errors(include_url=False, include_context=False))


# ===================== Public Endpoints =====================
@router.get("/")
def root():
    return respond(200, "Server is cooking!")


# ===================== Auth =====================
@router.post("/jwt")
def create_token(payload: TokenRequest, settings: Settings = Depends(get_settings)):
    token = issue_token(payload.model_dump(mode="json"), settings)
    response = respond(200, "Token issued successfully", {"token": token})
    set_token_cookie(response, token, settings)
    return response


@router.post("/logout")
def logout(settings: Settings = Depends(get_settings)):
    response = respond(200, "Logged out successfully")
    clear_token_cookie(response, settings)
    return response


# ===================== Foods =====================
@router.post("/add/food")
def add_food(
    payload: Dict[str, Any] = Body(...),
    claims: dict = Depends(verify_token),
    db: Database = Depends(get_db),
):
    food = _coerce(dict(payload), FOOD_NUMBER_FIELDS)
    food.setdefault("addedBy", {"email": claims["email"]})
    _validate(Food, food)

    duplicate = db.foods.find_one({
        "name": {"$regex": f"^{re.escape(food['name'])}", "$options": "i"},
        "image": food["image"],
        "addedBy.email": food["addedBy"]["email"],
    })
    if duplicate:
        logger.info("Duplicate food %r from %s", food["name"], food["addedBy"]["email"])
        return respond(409, "Food already exists")

    now = now_ms()
    food.setdefault("purchaseCount", 0)
    food["createAt"] = now
    food["updateAt"] = now
    return crud_operation("create", db.foods, food, CrudOptions(entity="food"))


@router.get("/foods")
def list_foods(
    search: Optional[str] = None,
    sort: Optional[str] = None,
    category: Optional[str] = None,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    db: Database = Depends(get_db),
):
    filter_q = search_func(search)
    if category:
        filter_q["category"] = category
    paging = PageRequest(page, limit) if page is not None or limit is not None else None
    return crud_operation(
        "read",
        db.foods,
        options=CrudOptions(entity="foods", filter=filter_q, sort=sort_func(sort), page=paging),
    )


@router.get("/top/foods")
def top_foods(limit: int = Query(DEFAULT_TOP_N, ge=1, le=100), db: Database = Depends(get_db)):
    return crud_operation(
        "read",
        db.foods,
        options=CrudOptions(entity="top foods", sort=[("purchaseCount", -1)], limit=limit),
    )


@router.get("/latest/foods")
def latest_foods(limit: int = Query(DEFAULT_TOP_N, ge=1, le=100), db: Database = Depends(get_db)):
    return crud_operation(
        "read",
        db.foods,
        options=CrudOptions(entity="latest foods", sort=[("updateAt", -1)], limit=limit),
    )


@router.get("/categories")
def list_categories(db: Database = Depends(get_db)):
    groups: Dict[str, List[dict]] = {}
    for doc in db.foods.find({}).sort([("name", 1)]):
        groups.setdefault(doc.get("category") or "Uncategorized", []).append(serialize_doc(doc))
    if not groups:
        return respond(404, "Categories not found")
    data = [{"category": name, "foods": groups[name]} for name in sorted(groups, key=str.lower)]
    return respond(200, "Categories retrieved successfully", data)


@router.get("/food/details/{id}")
def food_details(
    claims: dict = Depends(verify_token),
    food_id: ObjectId = Depends(valid_object_id),
    db: Database = Depends(get_db),
):
    return crud_operation("readOne", db.foods, options=CrudOptions(entity="food", filter={"_id": food_id}))


@router.get("/my-foods")
def my_foods(claims: dict = Depends(verify_token), db: Database = Depends(get_db)):
    return crud_operation(
        "read",
        db.foods,
        options=CrudOptions(entity="foods", filter={"addedBy.email": claims["email"]}, sort=[("updateAt", -1)]),
    )


def _update_food(food_id: ObjectId, payload: Dict[str, Any], db: Database):
    food = _coerce(dict(payload), FOOD_UPDATE_NUMBER_FIELDS)
    food["updateAt"] = now_ms()
    return crud_operation("update", db.foods, food, CrudOptions(entity="food", filter={"_id": food_id}))


@router.put("/update/food/{id}")
def update_food(
    payload: Dict[str, Any] = Body(...),
    claims: dict = Depends(verify_token),
    food_id: ObjectId = Depends(valid_object_id),
    db: Database = Depends(get_db),
):
    missing = [f for f in ("name", "image") if not payload.get(f)]
    if missing:
        raise HTTPException(status_code=400, detail=f"Missing required field: {', '.join(missing)}")
    return _update_food(food_id, payload, db)


@router.patch("/update/food/{id}")
def patch_food(
    payload: Dict[str, Any] = Body(...),
    claims: dict = Depends(verify_token),
    food_id: ObjectId = Depends(valid_object_id),
    db: Database = Depends(get_db),
):
    return _update_food(food_id, payload, db)


@router.delete("/delete/food/{id}")
def delete_food(
    claims: dict = Depends(verify_token),
    food_id: ObjectId = Depends(valid_object_id),
    db: Database = Depends(get_db),
):
    return crud_operation("delete", db.foods, options=CrudOptions(entity="food", filter={"_id": food_id}))


# ===================== Wishlist =====================
@router.post("/add/wishlist")
def add_wishlist(
    payload: Dict[str, Any] = Body(...),
    claims: dict = Depends(verify_token),
    db: Database = Depends(get_db),
):
    item = dict(payload)
    item.setdefault("user", {"email": claims["email"]})
    _validate(WishlistItem, item)

    if db.wishlist.find_one({"foodId": item["foodId"]}):
        logger.info("Duplicate wishlist entry for food %s", item["foodId"])
        return respond(409, "Food already exists in wishlist")

    now = now_ms()
    item["createAt"] = now
    item["updateAt"] = now
    return crud_operation("create", db.wishlist, item, CrudOptions(entity="wishlist item"))


@router.get("/wishlist")
def my_wishlist(claims: dict = Depends(verify_token), db: Database = Depends(get_db)):
    return crud_operation(
        "read",
        db.wishlist,
        options=CrudOptions(entity="wishlist", filter={"user.email": claims["email"]}, sort=[("createAt", -1)]),
    )


@router.delete("/delete/wishlist/item/{id}")
def delete_wishlist_item(
    claims: dict = Depends(verify_token),
    item_id: ObjectId = Depends(valid_object_id),
    db: Database = Depends(get_db),
):
    return crud_operation("delete", db.wishlist, options=CrudOptions(entity="wishlist item", filter={"_id": item_id}))


# ===================== Orders =====================
@router.post("/checkout")
def checkout(order: Order, claims: dict = Depends(verify_token), db: Database = Depends(get_db)):
    wanted: Dict[ObjectId, int] = {}
    for line in order.items:
        oid = parse_object_id(line.foodId)
        wanted[oid] = wanted.get(oid, 0) + line.quantity

    foods = {doc["_id"]: doc for doc in db.foods.find({"_id": {"$in": list(wanted)}})}
    for oid, qty in wanted.items():
        food = foods.get(oid)
        if food is None:
            raise HTTPException(status_code=404, detail=f"Food not found: {oid}")
        if (food.get("quantity") or 0) < qty:
            raise HTTPException(status_code=409, detail=f"Insufficient stock for {food.get('name', 'food')}")

    order_doc = {
        "items": [{"foodId": str(oid), "quantity": qty} for oid, qty in wanted.items()],
        "user": {"email": claims["email"]},
        "createAt": now_ms(),
    }
    inserted = db.orders.insert_one(order_doc)

    # Each decrement only applies while enough stock remains
    result = db.foods.bulk_write([
        UpdateOne({"_id": oid, "quantity": {"$gte": qty}}, {"$inc": {"quantity": -qty, "purchaseCount": qty}})
        for oid, qty in wanted.items()
    ])
    data = {
        "orderId": inserted.inserted_id,
        "matchedCount": result.matched_count,
        "modifiedCount": result.modified_count,
    }
    if result.modified_count < len(wanted):
        logger.warning("Order %s: stock changed during checkout, %d of %d lines applied",
                       inserted.inserted_id, result.modified_count, len(wanted))
        return respond(409, "Insufficient stock for some items", data)
    return respond(201, "Order placed successfully", data)


@router.get("/my-orders")
def my_orders(claims: dict = Depends(verify_token), db: Database = Depends(get_db)):
    return crud_operation(
        "read",
        db.orders,
        options=CrudOptions(entity="orders", filter={"user.email": claims["email"]}, sort=[("createAt", -1)]),
    )


# ===================== Error Handlers =====================
def http_error_handler(request: Request, exc: StarletteHTTPException):
    return respond(exc.status_code, str(exc.detail) if exc.detail else None)


def validation_error_handler(request: Request, exc: RequestValidationError):
    return respond(400, "Invalid request payload", exc.errors())


def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return respond(500)


# ===================== App =====================
@asynccontextmanager
async def lifespan(app: FastAPI):
    owned = app.state.db is None
    if owned:
        app.state.db = Database.connect(app.state.settings)
    yield
    if owned:
        app.state.db.close()
        app.state.db = None


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title="Tasty Bites API", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.db = database

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=app.state.settings.port)
