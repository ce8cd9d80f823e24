import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .admin import router as admin_router
from .core.config import get_settings
from .core.db import AsyncSessionLocal, Base, engine
from .core.errors import CapacityExceededError, DomainError, InvalidArgumentError, NotFoundError
from .core.responses import domain_error_response
from .routes_scoped import router as scoped_router
from .seed import seed_initial_data


settings = get_settings()
app = FastAPI(title="GloboTicket Ticketing Backend")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(scoped_router)
app.include_router(admin_router)


# ────────────────────────────────────────────────────────────────
# Domain error mapping
# ────────────────────────────────────────────────────────────────

def _domain_error_json(exc: DomainError) -> JSONResponse:
    status_code, body = domain_error_response(exc)
    return JSONResponse(status_code=status_code, content=body)


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    logger.info(f"{request.method} {request.url.path}: {exc}")
    return _domain_error_json(exc)


@app.exception_handler(InvalidArgumentError)
async def invalid_argument_handler(request: Request, exc: InvalidArgumentError):
    logger.info(f"{request.method} {request.url.path}: {exc}")
    return _domain_error_json(exc)


@app.exception_handler(CapacityExceededError)
async def capacity_exceeded_handler(request: Request, exc: CapacityExceededError):
    return _domain_error_json(exc)


@app.on_event("startup")
async def on_startup():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    if settings.seed_demo_data:
        async with AsyncSessionLocal() as session:
            await seed_initial_data(session)


@app.get("/health")
async def health():
    return {"status": "ok"}
