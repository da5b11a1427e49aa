"""
Wedding Seating Planner - FastAPI Backend
Main application entry point
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from seating_planner.core.config import settings
from seating_planner.core.db import engine, Base
from seating_planner.api import routes_layout
from seating_planner import models  # noqa: F401  registers ORM tables

# Configure logging
logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management"""
    # Create database tables
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created")
    yield
    logger.info("Application shutdown")

# Create FastAPI application
app = FastAPI(
    title="Wedding Seating Planner",
    description="Guest, table and room layout planning for weddings and events",
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

# Include routers
app.include_router(routes_layout.router, prefix="/layouts", tags=["layouts"])

@app.get("/")
async def root():
    """Root endpoint with basic info"""
    return {
        "name": "Wedding Seating Planner",
        "version": "1.0.0",
        "layout_types": ["ceremony", "cocktail", "reception"]
    }

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="127.0.0.1",
        port=8000,
        reload=True
    )
