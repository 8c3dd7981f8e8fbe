import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from cashlog.core.config import settings
from cashlog.core.errors import CashLogError, StoreUnavailableError
from cashlog.core.logging_config import configure_logging
from cashlog.api.routes.audit import router as audit_router
from cashlog.api.routes.dashboard import router as dashboard_router
from cashlog.api.routes.history import router as history_router
from cashlog.api.routes.master_data import categories_router, master_items_router, related_parties_router
from cashlog.api.routes.reports import router as reports_router
from cashlog.api.routes.transactions import router as tx_router

configure_logging()
logger = logging.getLogger("cashlog.api")

app = FastAPI(title="CashLog")

origins = [o.strip() for o in (settings.cors_origins or "").split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _field_errors(exc: RequestValidationError) -> dict[str, list[str]]:
    out: dict[str, list[str]] = {}
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ())]
        if loc and loc[0] in ("body", "query", "path"):
            loc = loc[1:]
        out.setdefault(".".join(loc) or "body", []).append(err.get("msg", "invalid"))
    return out


@app.exception_handler(CashLogError)
async def _cashlog_error(request: Request, exc: CashLogError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.payload())


@app.exception_handler(RequestValidationError)
async def _request_validation_error(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"error": "Validation failed", "code": "validation_failed", "details": _field_errors(exc)},
    )


@app.exception_handler(OperationalError)
async def _store_unavailable(request: Request, exc: OperationalError):
    logger.error("%s %s store unavailable: %s", request.method, request.url.path, exc.orig)
    return JSONResponse(status_code=503, content=StoreUnavailableError().payload())


@app.exception_handler(Exception)
async def _unhandled(request: Request, exc: Exception):
    logger.exception("%s %s unhandled error", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal Server Error", "code": "internal_error"})


@app.get("/health")
@app.get("/api/health")
def health():
    return {"status": "ok"}

app.include_router(tx_router)
app.include_router(reports_router)
app.include_router(categories_router)
app.include_router(related_parties_router)
app.include_router(master_items_router)
app.include_router(dashboard_router)
app.include_router(history_router)
app.include_router(audit_router)
