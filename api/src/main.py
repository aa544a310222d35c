from fastapi import FastAPI
from contextlib import asynccontextmanager
import logging

from api.src.routes import health_router, API_ROUTERS

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting Gatekeeper API")
    yield
    logger.info("Shutting down Gatekeeper API")

app = FastAPI(
    title="Gatekeeper",
    description="Multi-environment CI pipeline gate",
    version="0.1.0",
    lifespan=lifespan
)

app.include_router(health_router)
for router in API_ROUTERS:
    app.include_router(router, prefix="/api")

@app.get("/")
async def root():
    return {
        "name": "Gatekeeper",
        "version": "0.1.0",
        "docs": "/docs"
    }
