from contextlib import asynccontextmanager
from pathlib import Path
import logging
import time

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.templating import Jinja2Templates
from starlette.middleware.sessions import SessionMiddleware

from db import Base, SessionLocal, engine
from dependencies import get_db
from errors import InventoryError
from routers import ALL_ROUTERS
from settings import get_settings

import orm  # noqa: F401
import crud

settings = get_settings()

# -----------------------
# Logging
# -----------------------
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger("app")

Base.metadata.create_all(bind=engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.default_admin_username:
        db = SessionLocal()
        try:
            crud.ensure_default_admin(
                db,
                username=settings.default_admin_username,
                password=settings.default_admin_password,
                email=settings.default_admin_email,
            )
        finally:
            db.close()
    yield


app = FastAPI(title="Workshop Inventory API", lifespan=lifespan)
templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))
app.state.templates = templates

app.add_middleware(
    SessionMiddleware,
    secret_key=settings.session_secret,
    max_age=settings.session_max_age,
    same_site="lax",
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    elapsed_ms = int((time.time() - start) * 1000)
    logger.info(
        "method=%s path=%s status=%s elapsed_ms=%s",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
    )
    return response


# -----------------------
# Error mapping
# -----------------------
@app.exception_handler(InventoryError)
async def inventory_error_handler(request: Request, exc: InventoryError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"detail": "invalid request data", "errors": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("unhandled error method=%s path=%s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "internal server error"})


for router in ALL_ROUTERS:
    app.include_router(router)


@app.get("/")
def root():
    return {"message": "Workshop Inventory API", "docs": "/docs", "ui": "/ui/inventory"}
