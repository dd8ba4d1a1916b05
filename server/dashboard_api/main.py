"""Vitals Notification API - FastAPI application entry point."""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings
from .routes import notifications, assessments, identity

settings = get_settings()

app = FastAPI(
    title="Vitals Notification API",
    description="Notification reconciliation and guided assessment flows",
    version="1.0.0",
)

# Configure CORS for the mobile/web client
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["*"],
)

# Include routers
app.include_router(notifications.router)
app.include_router(assessments.router)
app.include_router(identity.router)


@app.get("/health")
async def health_check():
    """Health check endpoint for the API."""
    return {"status": "healthy", "service": "vitals-notification-api"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "server.dashboard_api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=True,
    )
