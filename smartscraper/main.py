from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from smartscraper.api.routes import scrape
from smartscraper.config import settings
from smartscraper.exceptions import ValidationError
from smartscraper.services.logger import logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("SmartScraper API starting")
    yield
    logger.info("SmartScraper API stopped")


app = FastAPI(
    title="SmartScraper",
    description="Web content retrieval with multi-backend failover",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes
app.include_router(scrape.router)


# Raised from request-model validators (e.g. custom headers that are not JSON)
@app.exception_handler(ValidationError)
async def validation_error_handler(_request: Request, exc: ValidationError):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.get("/api/health")
async def health():
    return {"status": "ok", "service": "smartscraper"}
