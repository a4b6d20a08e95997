"""Keep the hosted CLIP embedding service awake.

Free-tier model hosts put idle deployments to sleep, and the first query after
that times out. Schedule this daily (cron, GitHub Actions, ...):
	python scripts/keep_alive.py

Exit code 0 when the service answered, 1 otherwise.
"""

from __future__ import annotations

import logging
from pathlib import Path
import sys

CURRENT_DIR = Path(__file__).resolve().parent
ROOT_DIR = CURRENT_DIR.parent
if str(ROOT_DIR) not in sys.path:
	sys.path.insert(0, str(ROOT_DIR))

from src.utils.config import load_settings  # type: ignore  # noqa: E402
from src.vectorstore.embeddings import Embedder  # type: ignore  # noqa: E402
from src.utils.errors import EmbeddingUnavailable  # type: ignore  # noqa: E402


LOG_LEVEL: str = "INFO"


def main() -> int:
	logging.basicConfig(
		level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
		format="%(asctime)s %(levelname)s %(name)s - %(message)s",
	)
	logger = logging.getLogger("keep_alive")

	# Only the embedder is needed; no catalog connection.
	embedder = Embedder(config=load_settings())
	try:
		embedder.ping()
	except EmbeddingUnavailable as e:
		logger.error("Embedding service did not answer: %s", e)
		return 1
	logger.info("Embedding service is awake")
	return 0

if __name__ == "__main__":  # pragma: no cover
	raise SystemExit(main())
