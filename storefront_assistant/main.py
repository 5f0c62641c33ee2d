from contextlib import asynccontextmanager
from functools import lru_cache

from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

load_dotenv()

from .config import load_settings
from .data_engine import CatalogIndex, FaqIndex
from .llm_gateway import LLMGateway
from .logger import get_logger
from .models import ChatRequest, ChatResponse, LogRequest
from .pipeline import AssistantPipeline
from .session_manager import SessionManager, SupabaseConversationStore
from .shopify_client import ShopifyClient

logger = get_logger("main")


@lru_cache(maxsize=1)
def get_pipeline() -> AssistantPipeline:
    settings = load_settings()
    shopify = ShopifyClient(
        settings.shopify_store,
        settings.shopify_admin_token,
        api_version=settings.shopify_api_version,
        page_size=settings.page_size,
        variant_page_size=settings.variant_page_size,
        retry_attempts=settings.retry_attempts,
        retry_backoff=settings.retry_backoff_seconds,
    )
    llm = LLMGateway(
        groq_api_key=settings.groq_api_key,
        openai_api_key=settings.openai_api_key,
        embedding_model=settings.embedding_model,
        model_cascade=settings.chat_models,
    )
    if settings.supabase_url and settings.supabase_key:
        store = SupabaseConversationStore(settings.supabase_url, settings.supabase_key, settings.supabase_table)
    else:
        logger.info("ℹ️ SUPABASE_URL not set, conversations kept in memory")
        store = SessionManager(max_sessions=settings.max_sessions)
    return AssistantPipeline(
        settings=settings,
        shopify=shopify,
        llm=llm,
        catalog=CatalogIndex(shopify, llm.embed, settings.index_snapshot_path, settings.embedding_model),
        faqs=FaqIndex(settings.faq_source_path, llm.embed, settings.faq_snapshot_path, settings.embedding_model),
        store=store,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    if load_settings().warm_index_on_startup:
        try:
            pipeline = get_pipeline()
            pipeline.catalog.ensure_loaded()
            pipeline.faqs.ensure_loaded()
        except Exception:
            logger.exception("❌ Index warm-up failed, indexes will load on first request")
    yield


app = FastAPI(title="Storefront Assistant", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.post("/api/ai/search", response_model=ChatResponse)
def search(
    request: ChatRequest,
    background_tasks: BackgroundTasks,
    pipeline: AssistantPipeline = Depends(get_pipeline),
):
    query = (request.q or "").strip()
    if not query:
        raise HTTPException(status_code=400, detail="Missing query")

    history = [m.model_dump() for m in request.history]
    try:
        response = pipeline.answer(query, history, request.visible_ids)
    except Exception:
        logger.exception("❌ ERROR in search pipeline")
        raise HTTPException(status_code=500, detail="Internal error")

    background_tasks.add_task(pipeline.record_turn, request.session_id, query, response)
    return response


@app.post("/api/ai/log")
def log_turn(
    request: LogRequest,
    background_tasks: BackgroundTasks,
    pipeline: AssistantPipeline = Depends(get_pipeline),
):
    if not request.content.strip():
        raise HTTPException(status_code=400, detail="Missing content")
    background_tasks.add_task(pipeline.record_manual_turn, request.session_id, request.role, request.content)
    return {"ok": True}


@app.get("/health")
def health(pipeline: AssistantPipeline = Depends(get_pipeline)):
    return {"status": "ok", **pipeline.status()}
