"""
Sentinel Backend - FastAPI Application.

Campaign trigger evaluation and performance insights.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config.logging_config import setup_logging
from config.settings import settings, get_model_name
from routes import trigger_router
from schemas.responses import HealthResponse

setup_logging(level=settings.log_level, json_output=settings.log_json)

app = FastAPI(
    title="Sentinel Campaign Triggers",
    description="Threshold triggers, automated actions and insights for marketing campaigns",
    version="0.1.0",
    docs_url="/docs" if settings.environment == "development" else None,
    redoc_url="/redoc" if settings.environment == "development" else None,
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        settings.frontend_url,
        "http://localhost:5173",
        "http://localhost:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(trigger_router)


@app.get("/", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(
        status="ok",
        version="0.1.0",
        environment=settings.environment,
    )


@app.get("/health")
async def health():
    """Alternative health check for Cloud Run."""
    return {
        "status": "healthy",
        "ai_provider": settings.ai_provider,
        "model": get_model_name(),
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port)
