import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from app.db.couchdb import ensure_databases
from app.routers import auth, contact, images, pages, posts
from app.security import get_current_user
from app.settings import settings

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper()),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).resolve().parent / "static"

app = FastAPI(title="Portfolio API", description="Personal portfolio and blog")


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        ensure_databases()
        logger.info("CouchDB databases ready")
    except Exception as e:
        # pages and API report the failure per request until CouchDB is back
        logger.error(f"CouchDB unavailable at startup: {e}")
    yield
    logger.info("Portfolio API stopped")


app.router.lifespan_context = lifespan

app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])
app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

app.include_router(posts.router)
app.include_router(posts.admin_router, dependencies=[Depends(get_current_user)])
app.include_router(images.router)
app.include_router(images.admin_router, dependencies=[Depends(get_current_user)])
app.include_router(auth.router)
app.include_router(contact.router)
app.include_router(pages.router)


@app.get("/health")
async def health():
    return {"message": "Portfolio API is running"}
