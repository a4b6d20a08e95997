from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from src.api.dependencies import get_search_service, http_error
from src.search import SearchService
from src.utils.errors import SearchError


router = APIRouter(prefix="/search", tags=["search"])


class SearchRequest(BaseModel):
    query: str = Field(
        ...,
        description="Free-text query, e.g. 'chocolate birthday'. Debounce keystrokes before calling.",
    )
    debug: bool = Field(
        False, description="Include ranking diagnostics in the response."
    )


class ProductResult(BaseModel):
    id: str = Field(..., description="Product id.")
    name: str = Field(..., description="Display name.")
    image_url: str = Field(..., description="Full-resolution image URL.")
    thumbnail_url: Optional[str] = Field(
        None, description="Grid-sized image URL (stored or derived)."
    )
    similarity: float = Field(
        ..., description="Cosine similarity between the query and the product image."
    )


class ScorePreview(BaseModel):
    name: str
    similarity: float


class SearchDebug(BaseModel):
    query: str
    ranking_path: str = Field(..., description="'delegated' or 'fallback'.")
    total_results: int
    top_score: Optional[float] = None
    bottom_score: Optional[float] = None
    scores_preview: List[ScorePreview] = Field(default_factory=list)


class SearchResponseModel(BaseModel):
    products: List[ProductResult] = Field(
        default_factory=list, description="Products ordered by similarity, best first."
    )
    debug: Optional[SearchDebug] = None


@router.post(
    "",
    summary="Semantic product search",
    response_model=SearchResponseModel,
)
async def search_products(
    request: SearchRequest,
    service: SearchService = Depends(get_search_service),
) -> SearchResponseModel:
    """Rank catalog products by similarity to a natural-language query."""

    try:
        response = await service.asearch(request.query)
    except SearchError as exc:
        raise http_error(exc) from exc

    return SearchResponseModel(**response.to_dict(debug=request.debug))
