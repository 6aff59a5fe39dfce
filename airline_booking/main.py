import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from airline_booking import __version__
from airline_booking.config import settings
from airline_booking.exceptions import BookingSystemError
from airline_booking.logging_config import configure_logging
from airline_booking.services import Services, build_services
from airline_booking.flights import router as flights_router
from airline_booking.pricing import router as pricing_router
from airline_booking.bookings import router as bookings_router

logger = logging.getLogger(__name__)


def create_app(services: Optional[Services] = None, start_sweep: Optional[bool] = None) -> FastAPI:
    """Build the API around a service graph (a fresh one unless given)"""

    services = services or build_services()
    if start_sweep is None:
        start_sweep = settings.EXPIRATION_SWEEP_ENABLED

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if start_sweep:
            services.expiration.start()
        yield
        services.expiration.stop()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=__version__,
        description="Airline seat inventory, dynamic pricing and booking lifecycle API",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )
    app.state.services = services

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(BookingSystemError)
    async def booking_system_error_handler(request: Request, exc: BookingSystemError):
        logger.info("%s %s -> %d: %s", request.method, request.url.path, exc.status_code, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )

    # Include routers
    app.include_router(
        flights_router,
        prefix=f"{settings.API_V1_STR}/flights",
        tags=["Flights"]
    )

    app.include_router(
        pricing_router,
        prefix=f"{settings.API_V1_STR}/pricing",
        tags=["Pricing"]
    )

    app.include_router(
        bookings_router,
        prefix=f"{settings.API_V1_STR}/bookings",
        tags=["Bookings & Tickets"]
    )

    @app.get("/")
    def root():
        """Root endpoint"""
        return {
            "message": settings.PROJECT_NAME,
            "version": __version__,
            "docs": "/docs"
        }

    @app.get("/health")
    def health_check():
        """Health check endpoint"""
        return {"status": "healthy"}

    return app


configure_logging(settings.LOG_LEVEL)
app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
