# start_server.py
# Runs the API under /api with uvicorn

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

from finance_tracker.config import get_settings
from finance_tracker.main import app as api_app

settings = get_settings()

# Outer app so the API can sit next to a frontend
app = FastAPI(title=f"{settings.app_name} - Server")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Mount the API under /api prefix
app.mount("/api", api_app)


@app.get("/health")
async def health_check():
    return {"status": "healthy", "version": settings.app_version, "api": "/api"}


if __name__ == "__main__":
    logger.info("Starting %s (%s)", settings.app_name, settings.environment)
    logger.info("API docs: http://localhost:8000/api/docs")

    uvicorn.run(
        "start_server:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
        log_level="info"
    )
