"""
Skin price aggregator HTTP service.

Exposes the search endpoint, a health check and Prometheus metrics.
"""
from pathlib import Path

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from exceptions import SkinSourcingError
from observability import get_logger, setup_logging
from observability.metrics import metrics_registry
from observability.middleware import ObservabilityMiddleware
from routes.skins import get_aggregator, router as skins_router
from skinsourcing.aggregator import Aggregator

load_dotenv(dotenv_path=Path(__file__).resolve().parent / ".env", override=False)
setup_logging()

logger = get_logger(__name__)

app = FastAPI(
    title="Skin Price Aggregator",
    description="Aggregated CS2 skin prices across marketplaces",
    version="0.1.0",
)

app.add_middleware(ObservabilityMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET"],
    allow_headers=["*"],
)

app.include_router(skins_router)


@app.exception_handler(SkinSourcingError)
async def skin_sourcing_error_handler(request: Request, exc: SkinSourcingError):
    logger.warning(f"[API] {type(exc).__name__}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.get("/health")
async def health_check(aggregator: Aggregator = Depends(get_aggregator)):
    return {
        "status": "healthy",
        "version": "0.1.0",
        "providers": aggregator.provider_names,
    }


@app.get("/metrics")
async def metrics():
    return Response(generate_latest(metrics_registry), media_type=CONTENT_TYPE_LATEST)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
