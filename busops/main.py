import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from busops.config import settings
from busops.exceptions import BookingEngineError
from busops.registry import router as registry_router
from busops.trips import router as trips_router
from busops.bookings import router as bookings_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    version="1.0.0",
    description="Trip allocation and seat reservation API for a bus operator",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(BookingEngineError)
async def booking_engine_error_handler(request: Request, exc: BookingEngineError):
    """Render domain errors with their status code and kind"""
    content = {"detail": exc.message, "error": exc.kind}
    seat_numbers = getattr(exc, "seat_numbers", None)
    if seat_numbers is not None:
        content["seat_numbers"] = seat_numbers
    resource = getattr(exc, "resource", None)
    if resource is not None:
        content["resource"] = resource
    return JSONResponse(status_code=exc.status_code, content=content)

@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    """Anything outside the taxonomy is an internal error; details stay in the log"""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})

# Include routers
app.include_router(
    registry_router,
    prefix=f"{settings.API_V1_STR}/registry",
    tags=["Resource Registry"]
)

app.include_router(
    trips_router,
    prefix=f"{settings.API_V1_STR}/trips",
    tags=["Trip Scheduling"]
)

app.include_router(
    bookings_router,
    prefix=f"{settings.API_V1_STR}/bookings",
    tags=["Bookings & Reservations"]
)

@app.get("/")
def root():
    """Root endpoint"""
    return {
        "message": settings.PROJECT_NAME,
        "version": "1.0.0",
        "docs": "/docs"
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
