# MIT License
# Copyright (c) 2025 Hashborn

from fastapi import FastAPI, HTTPException
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST
from uvicorn import Config, Server
import logging

from .. import __version__
from .metrics import generate_metrics

logger = logging.getLogger(__name__)

app = FastAPI(title="Nimiq Validator Activator")


@app.get("/")
async def root():
    return {"message": "Nimiq Validator Activator", "version": __version__}


@app.get("/metrics")
async def get_metrics():
    """
    Prometheus metrics endpoint.

    Returns metrics in Prometheus text format. Read-only: the lifecycle loop
    is the only writer of the registry.
    """
    try:
        return Response(
            content=generate_metrics(),
            media_type=CONTENT_TYPE_LATEST
        )
    except Exception as e:
        logger.error(f"Failed to render metrics: {e}")
        raise HTTPException(status_code=500, detail=f"Metrics error: {str(e)}")


def create_metrics_server(host: str = "0.0.0.0", port: int = 8000, log_level: str = "info") -> Server:
    config = Config(app=app, host=host, port=port, log_level=log_level.lower())
    return Server(config)
