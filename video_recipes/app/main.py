# video_recipes/app/main.py
from __future__ import annotations
import logging
import sys
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from video_recipes import __version__
from video_recipes.app.config import settings
from video_recipes.app.routers.extract import router as extract_router
from video_recipes.app.routers.swaps import router as swaps_router

# Plain stdout logging for dev and containers
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)

app = FastAPI(title="Video Recipes API", version=__version__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.FRONTEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(extract_router)
app.include_router(swaps_router)


@app.on_event("startup")
async def startup() -> None:
    if not settings.GEMINI_API_KEY:
        logger.warning("GEMINI_API_KEY is not set; extraction jobs will fail until it is configured")
    logger.info(
        "Extraction pipeline: threshold=%.2f, text model=%s, video model=%s",
        settings.CONFIDENCE_THRESHOLD,
        settings.GEMINI_TEXT_MODEL,
        settings.GEMINI_VIDEO_MODEL,
    )


@app.get("/health")
def health():
    return {"ok": True}
