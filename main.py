"""
Event Listing & Booking - FastAPI Backend
Main application entry point
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from app.core.config import settings
from app.core.db import Base, sql_connection
from app.core.errors import DomainError
from app.api import routes_admin, routes_public
from app.services.firebase_client import firestore_connection
from app.services.repositories import use_firestore
from app.utils.responses import domain_error_response

# Configure logging
logging.basicConfig(level=settings.LOG_LEVEL.upper())
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management"""
    if not use_firestore():
        # Create database tables
        Base.metadata.create_all(bind=sql_connection.get())
        logger.info("Database tables created")
    yield
    sql_connection.close()
    firestore_connection.close()
    logger.info("Application shutdown")

# Create FastAPI application
app = FastAPI(
    title="Event Listing & Booking",
    description="Event catalog with email bookings",
    version="1.0.0",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(DomainError)
async def handle_domain_error(request: Request, exc: DomainError):
    """Render domain errors in the standard error envelope"""
    return domain_error_response(exc)

# Include routers
app.include_router(routes_public.router, tags=["public"])
app.include_router(routes_admin.router, prefix="/admin", tags=["admin"])

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="127.0.0.1",
        port=8000,
        reload=True
    )
