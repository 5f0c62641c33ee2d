from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

BASE_DIR = Path(__file__).resolve().parent
DATA_DIR = (BASE_DIR / ".." / "data").resolve()

DEFAULT_CHAT_MODELS = "llama-3.3-70b-versatile,llama-3.1-8b-instant"

DEFAULT_BRAND_CONTEXT = (
    "Izas es una marca española de ropa y calzado outdoor. "
    "Envíos en 24/72h a península. Devoluciones gratuitas durante 30 días."
)


@dataclass(frozen=True)
class Settings:
    """Runtime configuration for collaborators, index files and ranking limits."""
    shopify_store: str
    shopify_admin_token: str
    shopify_api_version: str
    openai_api_key: str
    embedding_model: str
    groq_api_key: str
    chat_models: Tuple[str, ...]
    brand_name: str
    brand_context: str
    index_snapshot_path: Path
    faq_source_path: Path
    faq_snapshot_path: Path
    page_size: int = 50
    variant_page_size: int = 50
    retry_attempts: int = 3
    retry_backoff_seconds: float = 1.0
    product_top_k: int = 8
    faq_top_k: int = 2
    candidate_cap: int = 10
    history_window: int = 4
    query_refinement: bool = True
    live_stock_refresh: bool = True
    warm_index_on_startup: bool = True
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    supabase_table: str = "conversations"
    max_sessions: int = 1000


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_path(name: str, default: Path) -> Path:
    value = os.getenv(name)
    return Path(value) if value else default


def load_settings() -> Settings:
    """Build Settings from environment variables, falling back to defaults.

    Invalid numeric values (e.g. PAGE_SIZE=abc) raise ValueError at startup.
    """
    chat_models = tuple(
        m.strip() for m in os.getenv("CHAT_MODELS", DEFAULT_CHAT_MODELS).split(",") if m.strip()
    )
    brand_context = os.getenv("BRAND_CONTEXT", DEFAULT_BRAND_CONTEXT)
    brand_context_file = os.getenv("BRAND_CONTEXT_FILE")
    if brand_context_file and Path(brand_context_file).exists():
        brand_context = Path(brand_context_file).read_text(encoding="utf-8")

    return Settings(
        shopify_store=os.getenv("SHOPIFY_STORE", ""),
        shopify_admin_token=os.getenv("SHOPIFY_ADMIN_TOKEN", ""),
        shopify_api_version=os.getenv("SHOPIFY_API_VERSION", "2024-01"),
        openai_api_key=os.getenv("OPENAI_API_KEY", ""),
        embedding_model=os.getenv("EMBEDDING_MODEL", "text-embedding-3-large"),
        groq_api_key=os.getenv("GROQ_API_KEY", ""),
        chat_models=chat_models,
        brand_name=os.getenv("BRAND_NAME", "Izas"),
        brand_context=brand_context,
        index_snapshot_path=_env_path("INDEX_SNAPSHOT_PATH", DATA_DIR / "ai-index.json"),
        faq_source_path=_env_path("FAQ_SOURCE_PATH", DATA_DIR / "faqs.json"),
        faq_snapshot_path=_env_path("FAQ_SNAPSHOT_PATH", DATA_DIR / "faq-index.json"),
        page_size=int(os.getenv("PAGE_SIZE", "50")),
        variant_page_size=int(os.getenv("VARIANT_PAGE_SIZE", "50")),
        retry_attempts=int(os.getenv("RETRY_ATTEMPTS", "3")),
        retry_backoff_seconds=float(os.getenv("RETRY_BACKOFF_SECONDS", "1.0")),
        product_top_k=int(os.getenv("PRODUCT_TOP_K", "8")),
        faq_top_k=int(os.getenv("FAQ_TOP_K", "2")),
        candidate_cap=int(os.getenv("CANDIDATE_CAP", "10")),
        history_window=int(os.getenv("HISTORY_WINDOW", "4")),
        query_refinement=_env_flag("QUERY_REFINEMENT", True),
        live_stock_refresh=_env_flag("LIVE_STOCK_REFRESH", True),
        warm_index_on_startup=_env_flag("WARM_INDEX_ON_STARTUP", True),
        supabase_url=os.getenv("SUPABASE_URL") or None,
        supabase_key=os.getenv("SUPABASE_KEY") or None,
        supabase_table=os.getenv("SUPABASE_TABLE", "conversations"),
        max_sessions=int(os.getenv("MAX_SESSIONS", "1000")),
    )
