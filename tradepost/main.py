import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from tradepost.api.router import api_router
from tradepost.core.config import settings
from tradepost.core.errors import TradepostError
from tradepost.core.logging_config import configure_logging
from tradepost.db.session import SessionLocal, init_db
from tradepost.services.expiry_sweeper import ExpirySweeper

logger = logging.getLogger(__name__)

app = FastAPI(title="Tradepost")
app.include_router(api_router, prefix="/api")

sweeper = ExpirySweeper(SessionLocal, interval_seconds=settings.sweep_interval_seconds)


@app.exception_handler(TradepostError)
def tradepost_error_handler(request: Request, exc: TradepostError):
    return JSONResponse(status_code=exc.http_status, content={"error": exc.to_dict()})


@app.on_event("startup")
def startup():
    configure_logging(settings.log_level)
    init_db()
    if settings.sweep_enabled:
        sweeper.start()
    logger.info("tradepost started")


@app.on_event("shutdown")
def shutdown():
    if sweeper.running:
        sweeper.stop()
