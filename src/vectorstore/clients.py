"""Client factories for the catalog store backends.

Env defaults (loaded from .env):
  - MILVUS_URI (default http://localhost:19530), MILVUS_TOKEN (default root:Milvus)
  - SUPABASE_URL, SUPABASE_KEY (falls back to SUPABASE_SERVICE_KEY)
"""

import os
import time
from typing import Optional

from dotenv import load_dotenv
from pymilvus import MilvusClient
from supabase import Client, ClientOptions, create_client

load_dotenv(override=True)


def get_milvus_client(
    uri: Optional[str] = None,
    token: Optional[str] = None,
    *,
    timeout: Optional[float] = None,
    wait_ready: bool = True,
    retries: int = 10,
    backoff_sec: float = 1.0,
) -> MilvusClient:
    """Create a Milvus client and optionally wait until the server answers."""
    uri = uri or os.environ.get("MILVUS_URI", "http://localhost:19530")
    token = token or os.environ.get("MILVUS_TOKEN", "root:Milvus")
    client = MilvusClient(uri=uri, token=token, timeout=timeout)

    if wait_ready:
        for i in range(max(1, retries)):
            try:
                client.list_collections(timeout=timeout)
                break
            except Exception:  # pragma: no cover
                if i == retries - 1:
                    raise
                time.sleep(backoff_sec)
    return client


def get_supabase_client(
    url: Optional[str] = None,
    key: Optional[str] = None,
    *,
    timeout: float = 10.0,
) -> Client:
    """Create a Supabase client; every PostgREST request is bounded by ``timeout``."""
    url = url or os.environ.get("SUPABASE_URL")
    key = key or os.environ.get("SUPABASE_KEY") or os.environ.get("SUPABASE_SERVICE_KEY")
    if not url or not key:
        raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set")

    return create_client(url, key, options=ClientOptions(postgrest_client_timeout=timeout))
