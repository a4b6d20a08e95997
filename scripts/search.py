"""Product search script using the SearchService.

Configuration via constants below (no CLI args). Run:
	python scripts/search.py

Environment:
	CLIP_API_URL     (embedding service, defaults to config.yaml)
	SUPABASE_URL / SUPABASE_KEY, or MILVUS_URI / MILVUS_TOKEN with CATALOG_BACKEND=milvus
"""

from __future__ import annotations

import logging
from pathlib import Path
import sys
from typing import List

# Ensure the repository root is importable
CURRENT_DIR = Path(__file__).resolve().parent
ROOT_DIR = CURRENT_DIR.parent
if str(ROOT_DIR) not in sys.path:
	sys.path.insert(0, str(ROOT_DIR))

from src.search import SearchService  # type: ignore  # noqa: E402
from src.utils.errors import SearchError  # type: ignore  # noqa: E402
from src.vectorstore.schemas import ScoredProduct, format_scored_product  # type: ignore  # noqa: E402


# ---------------------------------------------------------------------------
# Configuration Constants
# ---------------------------------------------------------------------------
QUERY_TEXT: str = "chocolate birthday cake"
LOG_LEVEL: str = "INFO"


def search(query: str) -> List[ScoredProduct]:
	"""Run one search and log an aggregated multi-line block with the results."""
	logger = logging.getLogger(__name__)

	response = SearchService().search(query)
	header = (
		f"Returned {len(response.results)} results via {response.ranking_path.value} ranking. \n"
		f"Query: {query!r} \n"
	)
	lines: List[str] = [header]
	for idx, item in enumerate(response.results, start=1):
		lines.append(f"{idx}. {format_scored_product(item)}")
		lines.append(f"    image: {item.product.image_url}")
	logger.info("\n".join(lines))
	return response.results


def main() -> int:
	logging.basicConfig(
		level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
		format="%(asctime)s %(levelname)s %(name)s - %(message)s",
	)
	try:
		search(QUERY_TEXT)
		return 0
	except SearchError as e:
		logging.error("Search failed (%s): %s", e.code, e)
		return 1

if __name__ == "__main__":  # pragma: no cover
	raise SystemExit(main())
