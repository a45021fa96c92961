import logging
import os
import sys
import time
from contextlib import asynccontextmanager

from bson.objectid import ObjectId
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, JSONResponse
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError

import database
from auth import get_current_user, hash_password, require_admin, require_customer
from database import create_document, ensure_indexes, get_db, get_documents, parse_object_id, serialize_doc
from negotiation import require_json_accept, require_json_body
from route_table import RouteTableCORSMiddleware, allowed_methods, is_api_path, send_options
from schemas import (
    ROLES,
    Order as OrderSchema,
    OrderCreateBody,
    ProductCreateBody,
    ProductUpdateBody,
    RegisterBody,
    RoleUpdateBody,
    User as UserSchema,
)

logger = logging.getLogger(__name__)

PUBLIC_DIR = os.getenv("PUBLIC_DIR", os.path.join(os.path.dirname(os.path.abspath(__file__)), "public"))
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]


def setup_logging() -> None:
    level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("pymongo").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("Storefront API starting (database=%s)", database.DATABASE_NAME)
    try:
        ensure_indexes(database.db)
    except PyMongoError as e:
        logger.warning("Could not ensure indexes, database unavailable: %s", e)
    yield
    database.client.close()
    logger.info("Storefront API stopped")


app = FastAPI(title="Storefront API", lifespan=lifespan)

app.add_middleware(
    RouteTableCORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    # call_next raises on unhandled errors; those requests are logged as 500
    status = 500
    try:
        response = await call_next(request)
        status = response.status_code
        return response
    finally:
        log_access(request, status, (time.perf_counter() - start) * 1000)


def log_access(request: Request, status: int, duration_ms: float) -> None:
    if status >= 500:
        level = logging.ERROR
    elif status >= 400:
        level = logging.WARNING
    else:
        level = logging.INFO
    logging.getLogger("storefront.access").log(
        level, "%s %s %d %.1fms", request.method, request.url.path, status, duration_ms
    )


# ----------------------- Error handling -----------------------
@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError):
    # Rejected input is not echoed back; it may be a password or a non-finite float
    errors = jsonable_encoder([{k: v for k, v in e.items() if k != "input"} for e in exc.errors()])
    message = "Bad request"
    if errors:
        first = errors[0]
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{field}: {first.get('msg')}" if field else first.get("msg", message)
    return JSONResponse(status_code=400, content={"detail": message, "errors": errors})


@app.exception_handler(DuplicateKeyError)
async def handle_duplicate_key(request: Request, exc: DuplicateKeyError):
    return JSONResponse(status_code=400, content={"detail": "Email is already in use"})


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception):
    logger.error("Unexpected error on %s %s: %s", request.method, request.url.path, exc, exc_info=True)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# ----------------------- Utils -----------------------
def public_user(doc):
    return serialize_doc(doc, hidden=("password_hash",))


def find_or_404(db: Database, collection: str, doc_id: str, resource: str) -> dict:
    doc = db[collection].find_one({"_id": parse_object_id(doc_id, resource)})
    if not doc:
        raise HTTPException(status_code=404, detail=f"{resource} not found")
    return doc


api = APIRouter(prefix="/api", dependencies=[Depends(require_json_accept)])


# ----------------------- Health -----------------------
@api.get("/health")
def health(db: Database = Depends(get_db)):
    response = {
        "backend": "running",
        "database": "unavailable",
        "database_name": database.DATABASE_NAME,
        "collections": [],
    }
    try:
        response["collections"] = db.list_collection_names()
        response["database"] = "connected"
    except PyMongoError as e:
        response["database"] = f"error: {str(e)[:80]}"
    return response


# ----------------------- Users -----------------------
@api.post("/register", status_code=201, dependencies=[Depends(require_json_body)])
def register(body: RegisterBody, db: Database = Depends(get_db)):
    email = body.email.lower()
    if db["user"].find_one({"email": email}):
        raise HTTPException(status_code=400, detail="Email is already in use")
    # Registration never grants admin rights, whatever the body says
    user = UserSchema(
        name=body.name,
        email=email,
        password_hash=hash_password(body.password),
        role="customer",
    )
    user_id = create_document(db, "user", user)
    logger.info("Registered user %s", user_id)
    return public_user(db["user"].find_one({"_id": ObjectId(user_id)}))


@api.get("/users")
def list_users(db: Database = Depends(get_db), admin=Depends(require_admin)):
    return [public_user(u) for u in get_documents(db, "user")]


@api.get("/users/{user_id}")
def view_user(user_id: str, db: Database = Depends(get_db), admin=Depends(require_admin)):
    return public_user(find_or_404(db, "user", user_id, "User"))


@api.put("/users/{user_id}", dependencies=[Depends(require_json_body)])
def update_user(user_id: str, body: RoleUpdateBody, db: Database = Depends(get_db), admin=Depends(require_admin)):
    user = find_or_404(db, "user", user_id, "User")
    if user["_id"] == admin["_id"]:
        raise HTTPException(status_code=400, detail="Updating own data is not allowed")
    if body.role is None:
        raise HTTPException(status_code=400, detail="Missing role")
    if body.role not in ROLES:
        raise HTTPException(status_code=400, detail="Unknown role")
    db["user"].update_one({"_id": user["_id"]}, {"$set": {"role": body.role, "updated_at": database.utcnow()}})
    logger.info("User %s role set to %s by %s", user["_id"], body.role, admin["_id"])
    return public_user(db["user"].find_one({"_id": user["_id"]}))


@api.delete("/users/{user_id}")
def delete_user(user_id: str, db: Database = Depends(get_db), admin=Depends(require_admin)):
    user = find_or_404(db, "user", user_id, "User")
    if user["_id"] == admin["_id"]:
        raise HTTPException(status_code=400, detail="Deleting own account is not allowed")
    db["user"].delete_one({"_id": user["_id"]})
    logger.info("User %s deleted by %s", user["_id"], admin["_id"])
    return public_user(user)


# ----------------------- Products -----------------------
@api.get("/products")
def list_products(db: Database = Depends(get_db), user=Depends(get_current_user)):
    return [serialize_doc(p) for p in get_documents(db, "product")]


@api.get("/products/{product_id}")
def view_product(product_id: str, db: Database = Depends(get_db), user=Depends(get_current_user)):
    return serialize_doc(find_or_404(db, "product", product_id, "Product"))


@api.post("/products", status_code=201, dependencies=[Depends(require_json_body)])
def create_product(body: ProductCreateBody, db: Database = Depends(get_db), admin=Depends(require_admin)):
    product_id = create_document(db, "product", body)
    logger.info("Product %s created by %s", product_id, admin["_id"])
    return serialize_doc(db["product"].find_one({"_id": ObjectId(product_id)}))


@api.put("/products/{product_id}", dependencies=[Depends(require_json_body)])
def update_product(product_id: str, body: ProductUpdateBody, db: Database = Depends(get_db), admin=Depends(require_admin)):
    product = find_or_404(db, "product", product_id, "Product")
    update = body.model_dump(exclude_none=True)
    if not update:
        raise HTTPException(status_code=400, detail="No changes")
    update["updated_at"] = database.utcnow()
    db["product"].update_one({"_id": product["_id"]}, {"$set": update})
    return serialize_doc(db["product"].find_one({"_id": product["_id"]}))


@api.delete("/products/{product_id}")
def delete_product(product_id: str, db: Database = Depends(get_db), admin=Depends(require_admin)):
    product = find_or_404(db, "product", product_id, "Product")
    db["product"].delete_one({"_id": product["_id"]})
    logger.info("Product %s deleted by %s", product["_id"], admin["_id"])
    return serialize_doc(product)


# ----------------------- Orders -----------------------
@api.get("/orders")
def list_orders(db: Database = Depends(get_db), user=Depends(get_current_user)):
    filt = {} if user.get("role") == "admin" else {"customerId": user["_id"]}
    return [serialize_doc(o) for o in get_documents(db, "order", filt)]


@api.get("/orders/{order_id}")
def view_order(order_id: str, db: Database = Depends(get_db), user=Depends(get_current_user)):
    order = find_or_404(db, "order", order_id, "Order")
    # Customers cannot tell someone else's order apart from a missing one
    if user.get("role") != "admin" and order.get("customerId") != user["_id"]:
        raise HTTPException(status_code=404, detail="Order not found")
    return serialize_doc(order)


@api.post("/orders", status_code=201, dependencies=[Depends(require_json_body)])
def create_order(body: OrderCreateBody, db: Database = Depends(get_db), customer=Depends(require_customer)):
    order = OrderSchema(customerId=str(customer["_id"]), items=body.items).model_dump()
    order["customerId"] = customer["_id"]
    order_id = create_document(db, "order", order)
    logger.info("Order %s placed by %s", order_id, customer["_id"])
    return serialize_doc(db["order"].find_one({"_id": ObjectId(order_id)}))


app.include_router(api)


# ----------------------- Fallback: OPTIONS, 405, static files -----------------------
def render_public(file_path: str) -> FileResponse:
    root = os.path.realpath(PUBLIC_DIR)
    target = os.path.realpath(os.path.join(root, file_path or "index.html"))
    if os.path.isdir(target):
        target = os.path.join(target, "index.html")
    if os.path.commonpath([root, target]) != root or not os.path.isfile(target):
        raise HTTPException(status_code=404, detail="Not found")
    return FileResponse(target)


@app.api_route(
    "/{file_path:path}",
    methods=["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    include_in_schema=False,
)
def fallback(request: Request, file_path: str):
    path = request.url.path
    methods = allowed_methods(path)
    if methods is not None:
        if request.method == "OPTIONS":
            return send_options(methods)
        raise HTTPException(status_code=405, detail="Method not allowed", headers={"Allow": ", ".join(methods)})
    if request.method in ("GET", "HEAD") and not is_api_path(path):
        return render_public(file_path)
    raise HTTPException(status_code=404, detail="Not found")


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
