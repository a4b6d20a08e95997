from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.docs import get_swagger_ui_html
from fastapi.responses import JSONResponse

from .dependencies import get_search_service
from .routers.catalog import router as catalog_router
from .routers.search import router as search_router


# Configure logging
logging.basicConfig(
    level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
    format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # The search service (and its clients) is built lazily on the first request.
    yield
    get_search_service.cache_clear()


"""
FastAPI application

Note on OpenAPI/Swagger docs:
Some FastAPI/Starlette combinations serve the OpenAPI schema with the vendor
media type "application/vnd.oai.openapi+json", which strict clients answer with
406 Not Acceptable. The auto-registered docs routes are disabled and explicit
JSONResponse-based endpoints are added instead.
"""

# Optional base path for deployments under a subpath (e.g. https://example.com/shop-search/).
# Used as the ASGI root_path and advertised via OpenAPI "servers".
_env_base_path = os.getenv("API_BASE_PATH", "").strip()
if _env_base_path and not _env_base_path.startswith("/"):
    _env_base_path = "/" + _env_base_path
if _env_base_path.endswith("/") and _env_base_path != "/":
    _env_base_path = _env_base_path.rstrip("/")

app = FastAPI(
    title="Catalog Search API",
    lifespan=lifespan,
    docs_url=None,
    redoc_url=None,
    openapi_url=None,
    root_path=_env_base_path or "",
)


# The storefront UI is served from another origin.
app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ALLOW_ORIGINS", "*").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


app.include_router(search_router)
app.include_router(catalog_router)


@app.get("/health", tags=["ops"], summary="Health check")
async def health():
    return {"status": "ok"}


def _with_servers(base_path: str | None):
    """Return OpenAPI schema optionally annotated with servers -> [{url: base_path}]."""
    schema = app.openapi()
    if base_path and base_path != "/":
        # FastAPI caches app.openapi(); copy instead of mutating it
        schema = {**schema, "servers": [{"url": base_path}]}
    return schema


@app.get("/openapi.json", include_in_schema=False)
def openapi_json():
    return JSONResponse(_with_servers(_env_base_path or None))


# Relative openapi_url so the UI works behind a reverse proxy subpath.
@app.get("/docs", include_in_schema=False)
def swagger_ui():
    return get_swagger_ui_html(openapi_url="openapi.json", title="Catalog Search API Docs")
