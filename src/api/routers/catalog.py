from __future__ import annotations

import asyncio
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from src.api.dependencies import get_search_service, http_error
from src.search import SearchService
from src.utils.errors import SearchError


router = APIRouter(tags=["catalog"])


class CatalogProduct(BaseModel):
    id: str = Field(..., description="Product id.")
    name: str = Field(..., description="Display name.")
    image_url: str = Field(..., description="Full-resolution image URL.")
    thumbnail_url: Optional[str] = Field(None, description="Grid-sized image URL.")


class ListProductsResponse(BaseModel):
    products: List[CatalogProduct] = Field(
        default_factory=list, description="Searchable products, newest first."
    )


class AnalyzeImageRequest(BaseModel):
    image_url: str = Field(
        "", description="Public URL of the product image; the provider fetches it."
    )


class AnalyzeImageResponse(BaseModel):
    embedding: List[float] = Field(
        ..., description="Raw image embedding in the shared text/image space."
    )


@router.get(
    "/products",
    summary="List searchable products",
    response_model=ListProductsResponse,
)
async def list_products(
    service: SearchService = Depends(get_search_service),
) -> ListProductsResponse:
    try:
        products = await asyncio.to_thread(service.list_products)
    except SearchError as exc:
        raise http_error(exc) from exc
    return ListProductsResponse(products=products)


@router.post(
    "/analyze",
    summary="Embed a product image",
    response_model=AnalyzeImageResponse,
)
async def analyze_image(
    request: AnalyzeImageRequest,
    service: SearchService = Depends(get_search_service),
) -> AnalyzeImageResponse:
    if not request.image_url.strip():
        raise HTTPException(status_code=400, detail="Image URL is required")
    try:
        embedding = await asyncio.to_thread(service.embed_image, request.image_url)
    except SearchError as exc:
        raise http_error(exc) from exc
    except NotImplementedError as exc:
        raise HTTPException(status_code=501, detail=str(exc)) from exc
    return AnalyzeImageResponse(embedding=embedding)


@router.get(
    "/keep-alive",
    summary="Wake the embedding provider",
)
async def keep_alive(service: SearchService = Depends(get_search_service)):
    """Ping the embedding provider; meant to be called by a scheduled job."""
    result = await asyncio.to_thread(service.warm_up)
    return JSONResponse(result, status_code=200 if result["success"] else 503)
