"""Novel Illustrator API."""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.routers import analysis, health, illustrations

from exceptions import IllustratorError, ValidationError  # noqa: E402
from logging_config import setup_logging  # noqa: E402

logger = setup_logging("app")

app = FastAPI(
    title=settings.API_TITLE,
    description="Scene segmentation, reference analysis and consistent illustration generation",
    version=settings.API_VERSION
)

# CORS middleware for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(IllustratorError)
async def illustrator_error_handler(request: Request, exc: IllustratorError):
    logger.error(f"{request.url.path} failed: {exc}")
    return JSONResponse(status_code=500, content={"detail": str(exc)})


# Register routers
app.include_router(health.router)
app.include_router(analysis.router)
app.include_router(illustrations.router)
