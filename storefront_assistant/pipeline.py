import time
from typing import Any, Dict, List, Optional

from .config import Settings
from .data_engine import CatalogIndex, FaqIndex
from .llm_gateway import LLMGateway, build_system_prompt, parse_reply
from .logger import get_logger
from .materializer import materialize_products
from .models import ChatResponse, ConversationTurn, ParsedFallback, ProductRecord
from .order_lookup import check_order
from .query_normalizer import QueryNormalizer
from .ranker import DEFAULT_POLICY, RankingPolicy, merge_candidates, rank_faqs, rank_products
from .session_manager import append_turns
from .shopify_client import ShopifyClient

logger = get_logger("pipeline")


class AssistantPipeline:
    """One chat turn: retrieve candidates, ask the model, map its answer back to products."""

    def __init__(
        self,
        settings: Settings,
        shopify: ShopifyClient,
        llm: LLMGateway,
        catalog: CatalogIndex,
        faqs: FaqIndex,
        store,
        normalizer: Optional[QueryNormalizer] = None,
        policy: RankingPolicy = DEFAULT_POLICY,
    ):
        self.settings = settings
        self.shopify = shopify
        self.llm = llm
        self.catalog = catalog
        self.faqs = faqs
        self.store = store
        self.normalizer = normalizer or QueryNormalizer()
        self.policy = policy

    # ---------------------------------------------------------
    # RETRIEVAL
    # ---------------------------------------------------------
    def _search_query(self, query: str, history: List[Dict[str, str]]) -> str:
        if not self.settings.query_refinement or not history:
            return query
        try:
            return self.llm.refine_query(query, history[-self.settings.history_window:])
        except Exception as e:
            logger.warning(f"⚠️ Query refinement failed, using raw query: {e}")
            return query

    def retrieve(self, query: str, history: List[Dict[str, str]], visible_ids: List[str]):
        search_query = self._search_query(query, history)
        normalized = self.normalizer.normalize(search_query)
        vector = self.llm.embed(normalized)

        products = self.catalog.ensure_loaded(expected_dimension=len(vector))
        faq_items = self.faqs.ensure_loaded(expected_dimension=len(vector))

        ranked = rank_products(vector, normalized, products, self.settings.product_top_k, self.policy)
        visible = self.catalog.get_by_ids(visible_ids)
        candidates = merge_candidates(visible, [s.item for s in ranked], self.settings.candidate_cap)
        faq_hits = [s.item for s in rank_faqs(vector, faq_items, self.settings.faq_top_k)]
        return candidates, faq_hits

    def refresh_stock(self, candidates: List[ProductRecord]) -> List[ProductRecord]:
        """Overlays live availability on candidate copies; indexed stock is kept on failure."""
        if not self.settings.live_stock_refresh or not candidates:
            return candidates
        variant_ids = [v.id for p in candidates for v in p.variants]
        try:
            fresh = self.shopify.fetch_variants(variant_ids)
        except Exception as e:
            logger.warning(f"⚠️ Live stock refresh failed, using indexed stock: {e}")
            return candidates

        refreshed = []
        for p in candidates:
            variants = [
                v.model_copy(update=fresh[v.id]) if v.id in fresh else v
                for v in p.variants
            ]
            refreshed.append(p.model_copy(update={"variants": variants}))
        return refreshed

    # ---------------------------------------------------------
    # TURN
    # ---------------------------------------------------------
    def answer(
        self,
        query: str,
        history: Optional[List[Dict[str, str]]] = None,
        visible_ids: Optional[List[str]] = None,
    ) -> ChatResponse:
        history = history or []
        visible_ids = [str(v) for v in (visible_ids or [])]

        order = check_order(self.shopify, query, history, window=self.settings.history_window)
        candidates, faq_hits = self.retrieve(query, history, visible_ids)
        candidates = self.refresh_stock(candidates)

        system_prompt = build_system_prompt(
            self.settings.brand_name,
            self.settings.brand_context,
            candidates,
            faq_hits,
            order=order,
            visible_ids=visible_ids,
        )
        try:
            raw = self.llm.complete(system_prompt, history[-2:], query, structured=True)
            parsed = parse_reply(raw)
        except Exception as e:
            logger.error(f"❌ Generation failed: {e}")
            parsed = ParsedFallback()

        products = materialize_products(parsed, candidates)
        logger.info(f"💬 Reply ready: {len(products)} products, category={parsed.category}")
        return ChatResponse(text=parsed.reply, products=products, category=parsed.category)

    def record_turn(self, session_id: Optional[str], query: str, response: ChatResponse) -> None:
        now = time.time()
        append_turns(
            self.store,
            session_id,
            [
                ConversationTurn(role="user", content=query, timestamp=now),
                ConversationTurn(role="assistant", content=response.text, timestamp=now),
            ],
            category=response.category,
        )

    def record_manual_turn(self, session_id: str, role: str, content: str) -> None:
        append_turns(self.store, session_id, [ConversationTurn(role=role, content=content, timestamp=time.time())])

    def status(self) -> Dict[str, Any]:
        return {"products": len(self.catalog.items), "faqs": len(self.faqs.items)}
