import logging

from fastapi import FastAPI, Request, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.api import auth, contact, images, rent_requests
from app.config import settings
from app.core.errors import BuildExError
from app.db.database import init_db
from app.services.image_cache import get_image_cache

logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.app_name,
    description="Construction and rental marketplace backend",
    version="0.1.0",
    debug=settings.debug,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def on_startup():
    """Create tables and the image cache directory. A bad cache directory fails the boot."""
    init_db()
    get_image_cache()


# Register routers
app.include_router(auth.router, prefix="/auth", tags=["Auth"])
app.include_router(images.router, prefix="/images", tags=["Images"])
app.include_router(rent_requests.router, prefix="/rent-requests", tags=["Rent Requests"])
app.include_router(contact.router, prefix="/contact", tags=["Contact"])


@app.get("/")
async def root():
    return {"message": "Welcome to BuildEx", "status": "healthy"}


@app.get("/health")
async def health_check():
    return {"status": "ok"}


@app.exception_handler(BuildExError)
async def buildex_error_handler(request: Request, exc: BuildExError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Ensure all errors return JSON without leaking internals."""
    if isinstance(exc, HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "error": "internal_error",
        },
    )
