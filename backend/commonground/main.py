# commonground discussion service api
# fastapi app with async mongodb, jwt auth, and threaded discussion responses

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from commonground.config import settings
from commonground.errors import CommonGroundError
from commonground.services.db import db
from commonground.routers import auth, discussions, responses

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """startup: connect to mongodb. shutdown: close connection."""
    logger.info("Starting CommonGround discussion service...")
    await db.connect()
    logger.info("CommonGround discussion service ready")
    yield
    logger.info("Shutting down CommonGround discussion service...")
    await db.close()


app = FastAPI(
    title="CommonGround API",
    description="Discussion service for the CommonGround platform: discussions, threaded responses, citations",
    version="0.1.0",
    lifespan=lifespan,
)

# cors, allow frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL, "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(CommonGroundError)
async def commonground_error_handler(request: Request, exc: CommonGroundError) -> JSONResponse:
    """render domain errors as {"detail": ...} like HTTPException does"""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail, **exc.extra})


# register routers
app.include_router(auth.router)
app.include_router(discussions.router)
app.include_router(responses.router)


@app.get("/health")
async def health_check():
    """basic health check endpoint"""
    return {"status": "ok", "service": "commonground-api"}
