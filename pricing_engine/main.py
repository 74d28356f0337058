"""
Storefront Pricing Engine
FastAPI application entry point
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from pricing_engine import __version__
from pricing_engine.api.routes import coupons, loyalty, pricing
from pricing_engine.core.config import settings
from pricing_engine.core.exceptions import PricingBaseError

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PricingBaseError)
async def pricing_error_handler(request: Request, exc: PricingBaseError):
    logger.warning(f"{exc.code} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=400, content=exc.to_dict())


app.include_router(pricing.router, prefix="/api/pricing", tags=["Pricing"])
app.include_router(coupons.router, prefix="/api/coupons", tags=["Coupons"])
app.include_router(loyalty.router, prefix="/api/loyalty", tags=["Loyalty"])


@app.get("/health", tags=["Health"])
async def health_check():
    return {"status": "ok", "version": __version__}
