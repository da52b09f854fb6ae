import logging
import sys
import time
from typing import Any, Dict, List, Optional, Type

import uvicorn
from bson import ObjectId
from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from pydantic import ValidationError as SchemaValidationError
from pymongo.database import Database
from pymongo.errors import PyMongoError

from config import Settings
from database import ORDERS, USERS, get_db, sanitize, to_obj_id
from errors import (
    InternalError,
    InvalidReferenceError,
    NotFoundError,
    ServiceError,
    StartupError,
    ValidationError,
)
from logging_config import setup_logging
from pagination import paginate, resolve_page
from schemas import Order as OrderSchema, OrderUpdate, User as UserSchema, UserUpdate
from startup import bootstrap

logger = logging.getLogger(__name__)

router = APIRouter()

# Helpers

def describe_errors(errors: List[Dict[str, Any]]) -> str:
    parts = []
    for err in errors:
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return "; ".join(parts)


def validate_merged(model: Type[BaseModel], doc: Dict) -> None:
    """Re-check the full document that a partial update would produce."""
    try:
        model.model_validate(sanitize(doc))
    except SchemaValidationError as e:
        raise ValidationError(describe_errors(e.errors()))


def supplied(payload: BaseModel) -> Dict[str, Any]:
    # explicit nulls count as "not supplied"
    return {k: v for k, v in payload.model_dump(exclude_unset=True, by_alias=True).items() if v is not None}


def ensure_user_exists(db: Database, user_id: str) -> ObjectId:
    # a malformed userId is a bad reference, not a bad path id
    try:
        uid = to_obj_id(user_id)
    except ValidationError:
        raise InvalidReferenceError()
    if not db[USERS].find_one({"_id": uid}, {"_id": 1}):
        raise InvalidReferenceError()
    return uid


def attach_users(db: Database, orders: List[Dict]) -> List[Dict]:
    """Read-side join: add ``user`` {id, name, email} to each order, None if dangling."""
    ids = list({o["userId"] for o in orders if isinstance(o.get("userId"), ObjectId)})
    user_map = {u["_id"]: u for u in db[USERS].find({"_id": {"$in": ids}}, {"name": 1, "email": 1})} if ids else {}
    joined = []
    for o in orders:
        u = user_map.get(o.get("userId"))
        d = sanitize(o)
        d["user"] = {"id": str(u["_id"]), "name": u.get("name"), "email": u.get("email")} if u else None
        joined.append(d)
    return joined

# Health

@router.get("/health")
def health(request: Request):
    return {
        "status": "ok",
        "uptime": time.monotonic() - request.app.state.started_at,
        "timestamp": int(time.time() * 1000),
    }

# User Routes

@router.get("/users")
def list_users(page: Optional[str] = None, per_page: Optional[str] = None, db: Database = Depends(get_db)):
    try:
        return paginate(db[USERS], resolve_page(page, per_page), lambda docs: [sanitize(d) for d in docs])
    except PyMongoError as e:
        logger.error("Listing users failed: %s", e)
        raise InternalError("Could not list users")


@router.get("/users/count")
def count_users(db: Database = Depends(get_db)):
    return {"total": db[USERS].count_documents({})}


@router.post("/users", status_code=201)
def create_user(payload: UserSchema, db: Database = Depends(get_db)):
    user_doc = payload.model_dump()
    res = db[USERS].insert_one(user_doc)
    user_doc["_id"] = res.inserted_id
    return sanitize(user_doc)


@router.get("/users/{user_id}")
def get_user(user_id: str, db: Database = Depends(get_db)):
    user = db[USERS].find_one({"_id": to_obj_id(user_id)})
    if not user:
        raise NotFoundError("User not found")
    return sanitize(user)


@router.put("/users/{user_id}")
def update_user(user_id: str, payload: UserUpdate, db: Database = Depends(get_db)):
    uid = to_obj_id(user_id)
    changes = supplied(payload)
    user = db[USERS].find_one({"_id": uid})
    if not user:
        raise NotFoundError("User not found")
    merged = {**user, **changes}
    validate_merged(UserSchema, merged)
    if changes:
        db[USERS].update_one({"_id": uid}, {"$set": changes})
    return sanitize(merged)


@router.delete("/users/{user_id}")
def delete_user(user_id: str, db: Database = Depends(get_db)):
    # deliberately leaves the user's orders in place
    db[USERS].delete_one({"_id": to_obj_id(user_id)})
    return {"message": "User deleted"}

# Order Routes

@router.get("/orders")
def list_orders(page: Optional[str] = None, per_page: Optional[str] = None, db: Database = Depends(get_db)):
    try:
        return paginate(db[ORDERS], resolve_page(page, per_page), lambda docs: attach_users(db, docs))
    except PyMongoError as e:
        logger.error("Listing orders failed: %s", e)
        raise InternalError("Could not list orders")


@router.get("/orders/count")
def count_orders(db: Database = Depends(get_db)):
    return {"total": db[ORDERS].count_documents({})}


@router.post("/orders", status_code=201)
def create_order(payload: OrderSchema, db: Database = Depends(get_db)):
    order_doc = payload.model_dump(by_alias=True)
    if payload.user_id is None:
        order_doc.pop("userId")
    else:
        # check-then-write: a user deleted in between leaves a dangling reference
        order_doc["userId"] = ensure_user_exists(db, payload.user_id)
    res = db[ORDERS].insert_one(order_doc)
    order_doc["_id"] = res.inserted_id
    return sanitize(order_doc)


@router.get("/orders/{order_id}")
def get_order(order_id: str, db: Database = Depends(get_db)):
    order = db[ORDERS].find_one({"_id": to_obj_id(order_id)})
    if not order:
        raise NotFoundError("Order not found")
    return attach_users(db, [order])[0]


@router.put("/orders/{order_id}")
def update_order(order_id: str, payload: OrderUpdate, db: Database = Depends(get_db)):
    oid = to_obj_id(order_id)
    changes = supplied(payload)
    if "userId" in changes:
        changes["userId"] = ensure_user_exists(db, changes["userId"])
    order = db[ORDERS].find_one({"_id": oid})
    if not order:
        raise NotFoundError("Order not found")
    merged = {**order, **changes}
    validate_merged(OrderSchema, merged)
    if changes:
        db[ORDERS].update_one({"_id": oid}, {"$set": changes})
    return sanitize(merged)


@router.delete("/orders/{order_id}")
def delete_order(order_id: str, db: Database = Depends(get_db)):
    db[ORDERS].delete_one({"_id": to_obj_id(order_id)})
    return {"message": "Order deleted"}

# App

def create_app(settings: Settings, db: Database) -> FastAPI:
    app = FastAPI(title="Shop Service API", description="Users & Orders (CRUD)")
    app.state.settings = settings
    app.state.db = db
    app.state.started_at = time.monotonic()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            elapsed = (time.perf_counter() - start) * 1000
            logger.info("%s %s %d %.1fms", request.method, request.url.path, 500, elapsed)
            raise
        elapsed = (time.perf_counter() - start) * 1000
        logger.info("%s %s %d %.1fms", request.method, request.url.path, response.status_code, elapsed)
        return response

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        return JSONResponse(status_code=exc.status_code, content={"message": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"message": describe_errors(exc.errors())})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"message": "Internal server error"})

    app.include_router(router)
    return app


def main() -> None:
    settings = Settings.from_env()
    setup_logging(settings.log_level)
    try:
        client = bootstrap(settings)
    except StartupError:
        logger.exception("Startup failed")
        sys.exit(1)

    app = create_app(settings, client[settings.database_name])
    logger.info("Shop service listening on port %d", settings.port)
    try:
        uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)
    finally:
        client.close()


if __name__ == "__main__":
    main()
