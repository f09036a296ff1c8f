"""
FastAPI application for Funnel Analytics.

Version: 1.0.0
"""

from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from funnel_analytics.api.models import HealthResponse
from funnel_analytics.api.routes import cache, exports, reports

API_VERSION = "1.0.0"

# Create FastAPI app
app = FastAPI(
    title="Funnel Analytics API",
    description="Per-channel funnel reports for sales outreach activity",
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc"
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure this in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(reports.router, prefix="/api/v1", tags=["Reports"])
app.include_router(exports.router, prefix="/api/v1", tags=["Exports"])
app.include_router(cache.router, prefix="/api/v1", tags=["Cache"])


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        version=API_VERSION
    )


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Funnel Analytics API",
        "version": API_VERSION,
        "docs": "/docs"
    }
