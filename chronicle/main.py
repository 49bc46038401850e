import logging

from fastapi import FastAPI

from chronicle.api.routes import router
from chronicle.api.tracker_routes import router as tracker_router
from chronicle.settings import settings_from_env

APP_NAME = "chronicle"
APP_VERSION = "0.1.0"

# Configure logging
logging.basicConfig(
    level=settings_from_env().log_level,
    format="%(asctime)s %(levelname)-5s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title=APP_NAME, version=APP_VERSION)
app.include_router(router)
app.include_router(tracker_router)


@app.get("/info")
async def info() -> dict[str, str]:
    return {"name": APP_NAME, "version": APP_VERSION}
