from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict

import yaml
from dotenv import load_dotenv

load_dotenv(override=True)

CONFIG_FILE_PATH = Path(__file__).resolve().parent.parent / "vectorstore" / "config.yaml"


def load_config(config_path: Path | str) -> Dict[str, Any]:
    """Load configuration from a given YAML file path.

    Args:
        config_path: Explicit path to the configuration file.

    Returns:
        Parsed configuration dictionary.

    Raises:
        FileNotFoundError: If the configuration file is not found.
        ValueError: If there is an error parsing the YAML file.
    """
    path = Path(config_path)

    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise FileNotFoundError(f"Configuration file not found: {path}") from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ValueError(f"Error parsing YAML file '{path}': {e}") from e

    return data or {}


def load_settings(config_path: Path | str | None = None) -> Dict[str, Any]:
    """Load the YAML defaults and apply deployment overrides from the environment.

    Env overrides:
      - CLIP_API_URL     -> embedding_model.base_url
      - CATALOG_BACKEND  -> catalog.backend ("supabase" or "milvus")
    """
    try:
        cfg = load_config(config_path or CONFIG_FILE_PATH)
    except FileNotFoundError:
        cfg = {}

    embedding_cfg = dict(cfg.get("embedding_model") or {})
    catalog_cfg = dict(cfg.get("catalog") or {})

    base_url = os.getenv("CLIP_API_URL", "").strip()
    if base_url:
        embedding_cfg["base_url"] = base_url
    backend = os.getenv("CATALOG_BACKEND", "").strip().lower()
    if backend:
        catalog_cfg["backend"] = backend

    cfg["embedding_model"] = embedding_cfg
    cfg["catalog"] = catalog_cfg
    cfg.setdefault("search", {})
    return cfg
