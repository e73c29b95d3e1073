import os
import logging
from contextlib import asynccontextmanager
from typing import Dict, Any

from dotenv import load_dotenv

# Load environment variables before modules read their settings
load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from routers.charts import router as charts_router

from data_ingestion.dtpp_feed import get_dtpp_refresher
from models.responses import HealthResponse
from services.charts_service import charts_service

# Configure logging
logging.basicConfig(
    level=logging.WARNING,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logging.getLogger("httpx").setLevel(logging.WARNING)

logging.getLogger("data_ingestion.dtpp_feed").setLevel(logging.INFO)
logging.getLogger("data_ingestion.dtpp_metafile").setLevel(logging.INFO)
logging.getLogger("services.charts_service").setLevel(logging.INFO)

# Configuration
DEBUG = os.getenv("DEBUG", "false").lower() == "true"
STATIC_CHARTS_DIR = os.getenv("STATIC_CHARTS_DIR", "static")
VERSION = "1.0.0"


def _add_cors(application: FastAPI):
    """Add CORS middleware to an app."""
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


# ── v1 sub-application ───────────────────────────────────────────────────────

v1_app = FastAPI(
    title="Charts API v1",
    description=(
        "## Charts API v1\n\n"
        "FAA terminal procedure charts (d-TPP) by airport:\n\n"
        "- **Chart listing** — Charts for one or more airports, by FAA or ICAO identifier, "
        "optionally filtered to one chart group\n"
        "- **Single chart** — Redirect to the first chart whose name matches a search term\n\n"
        "Links point at the FAA-hosted PDFs for the current chart cycle."
    ),
    version=VERSION,
    openapi_version="3.0.2",
    openapi_tags=[
        {
            "name": "Charts",
            "description": "Chart PDF links grouped as General, Departures, Arrivals, "
                           "Approaches, APD (airport diagram) and Other.",
        },
    ],
)
_add_cors(v1_app)

v1_app.include_router(charts_router)


# ── Main application (root + mounting) ────────────────────────────────────────

@asynccontextmanager
async def lifespan(main_app: FastAPI):
    """Application lifespan events"""
    print("Charts API starting up...")

    refresher = get_dtpp_refresher()
    refresher.start()
    if refresher.enabled:
        print(f"d-TPP refresher started, serving cycle {refresher.current_cycle()}")
    else:
        print("d-TPP refresher disabled (set DTPP_REFRESH_ENABLED=true)")

    yield

    print("Charts API shutting down...")
    refresher.stop()
    print("d-TPP refresher stopped")


app = FastAPI(
    title="Charts API",
    description=(
        "## Charts API\n\n"
        "FAA aeronautical chart links by airport.\n\n"
        "| Version | Status | Documentation |\n"
        "|---------|--------|---------------|\n"
        "| **v1** | Stable | [/v1/docs](/v1/docs) |\n"
    ),
    version=VERSION,
    lifespan=lifespan,
    debug=DEBUG,
    openapi_version="3.0.2",
)
_add_cors(app)

# Mount versioned sub-applications
app.mount("/v1", v1_app)

# Locally curated charts the FAA does not publish
if os.path.isdir(STATIC_CHARTS_DIR):
    app.mount("/static", StaticFiles(directory=STATIC_CHARTS_DIR), name="static")


# ── Root-level endpoints ──────────────────────────────────────────────────────

@app.get("/")
async def root() -> Dict[str, Any]:
    """API information and version overview"""
    return {
        "name": "Charts API",
        "version": VERSION,
        "status": "operational",
        "description": "Links to FAA terminal procedure chart PDFs by airport identifier",
        "cycle": charts_service.index.cycle,
        "versions": {
            "v1": {
                "status": "stable",
                "base_url": "/v1",
                "documentation": "/v1/docs",
            }
        },
    }


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Simple health check endpoint"""
    return HealthResponse(
        status="healthy" if charts_service.loaded else "loading",
        version=VERSION,
        cycle=charts_service.index.cycle,
    )


# Application entry point
if __name__ == "__main__":
    import uvicorn
    port = int(os.environ.get("PORT", 8000))
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=port,
        reload=DEBUG,
        access_log=DEBUG
    )
