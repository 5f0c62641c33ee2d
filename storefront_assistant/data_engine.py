import json
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pandas as pd
from pydantic import ValidationError

from .logger import get_logger
from .models import FaqRecord, ProductRecord
from .shopify_client import ShopifyClient

logger = get_logger("data_engine")

Embedder = Callable[[str], List[float]]


def build_ai_text(product: ProductRecord) -> str:
    return (
        f"TIPO: {product.product_type}\n"
        f"TITULO: {product.title}\n"
        f"DESC: {product.description}\n"
        f"TAGS: {', '.join(product.tags)}"
    )


class VectorIndex:
    """
    Lazily built list of embedded records with a JSON snapshot on disk.

    ensure_loaded() is single-flight: concurrent callers block on one build.
    The snapshot is trusted only if it was produced by the same embedding
    model and its vectors match the expected dimension.
    """

    label = "items"
    record_type: Any = None

    def __init__(self, embed: Embedder, snapshot_path: Path, embedding_model: str):
        self._embed = embed
        self.snapshot_path = Path(snapshot_path)
        self.embedding_model = embedding_model
        self.items: List[Any] = []
        self._lock = threading.Lock()

    @property
    def dimension(self) -> Optional[int]:
        return len(self.items[0].embedding) if self.items else None

    def _is_ready(self, expected_dimension: Optional[int]) -> bool:
        if not self.items:
            return False
        return expected_dimension is None or self.dimension == expected_dimension

    def ensure_loaded(self, expected_dimension: Optional[int] = None) -> List[Any]:
        if self._is_ready(expected_dimension):
            return self.items
        with self._lock:
            if self._is_ready(expected_dimension):
                return self.items
            if self.items:
                logger.warning(
                    f"⚠️ {self.label} index dimension {self.dimension} != query dimension "
                    f"{expected_dimension}, rebuilding"
                )
            items = self._load_snapshot(expected_dimension)
            if items:
                logger.info(f"📦 {self.label} loaded from snapshot: {len(items)}")
            else:
                logger.info(f"🤖 Indexing {self.label} (this can take a while)...")
                items = self._build()
                if items:
                    self._save_snapshot(items)
            self.items = items
            logger.info(f"✅ {self.label} ready: {len(self.items)}")
        return self.items

    def reset(self) -> None:
        with self._lock:
            self.items = []

    # ---------------------------------------------------------
    # SNAPSHOT
    # ---------------------------------------------------------
    def _snapshot_meta(self) -> Dict[str, Any]:
        return {"embedding_model": self.embedding_model}

    def _load_snapshot(self, expected_dimension: Optional[int]) -> List[Any]:
        if not self.snapshot_path.exists():
            return []
        try:
            payload = json.loads(self.snapshot_path.read_text(encoding="utf-8"))
            for key, value in self._snapshot_meta().items():
                if payload.get(key) != value:
                    logger.info(f"♻️ {self.label} snapshot is stale ({key} changed)")
                    return []
            items = [self.record_type.model_validate(i) for i in payload["items"]]
        except (OSError, ValueError, KeyError, TypeError, AttributeError, ValidationError) as e:
            logger.warning(f"⚠️ Unreadable {self.label} snapshot, rebuilding: {e}")
            return []

        dimensions = {len(i.embedding or []) for i in items}
        if len(dimensions) != 1 or 0 in dimensions:
            logger.warning(f"⚠️ {self.label} snapshot has inconsistent embeddings, rebuilding")
            return []
        if expected_dimension is not None and dimensions != {expected_dimension}:
            logger.warning(f"⚠️ {self.label} snapshot dimension {dimensions} != {expected_dimension}, rebuilding")
            return []
        return items

    def _save_snapshot(self, items: List[Any]) -> None:
        payload = dict(self._snapshot_meta())
        payload["dimension"] = len(items[0].embedding)
        payload["items"] = [i.model_dump() for i in items]
        try:
            self.snapshot_path.parent.mkdir(parents=True, exist_ok=True)
            self.snapshot_path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
        except OSError as e:
            logger.warning(f"⚠️ Could not write {self.label} snapshot: {e}")

    def _embed_or_skip(self, text: str, name: str) -> Optional[List[float]]:
        try:
            return self._embed(text)
        except Exception as e:
            logger.warning(f"⚠️ Embedding failed for {name}, skipping: {e}")
            return None

    def _build(self) -> List[Any]:
        raise NotImplementedError


class CatalogIndex(VectorIndex):
    label = "products"
    record_type = ProductRecord

    def __init__(self, client: ShopifyClient, embed: Embedder, snapshot_path: Path, embedding_model: str):
        super().__init__(embed, snapshot_path, embedding_model)
        self.client = client

    def _build(self) -> List[ProductRecord]:
        indexed: Dict[str, ProductRecord] = {}
        pages = self.client.iter_product_pages()
        while True:
            try:
                page = next(pages)
            except StopIteration:
                break
            except Exception as e:
                logger.error(f"❌ Catalog paging failed, keeping partial index ({len(indexed)}): {e}")
                break
            for product in page:
                if product.id in indexed:
                    continue
                vector = self._embed_or_skip(build_ai_text(product), product.id)
                if vector is not None:
                    indexed[product.id] = product.model_copy(update={"embedding": vector})
        return list(indexed.values())

    def get_by_ids(self, ids: List[str]) -> List[ProductRecord]:
        by_id = {p.id: p for p in self.items}
        found, seen = [], set()
        for raw in ids:
            pid = str(raw)
            if pid in by_id and pid not in seen:
                seen.add(pid)
                found.append(by_id[pid])
        return found


class FaqIndex(VectorIndex):
    label = "faqs"
    record_type = FaqRecord

    def __init__(self, source_path: Path, embed: Embedder, snapshot_path: Path, embedding_model: str):
        super().__init__(embed, snapshot_path, embedding_model)
        self.source_path = Path(source_path)

    def _snapshot_meta(self) -> Dict[str, Any]:
        meta = super()._snapshot_meta()
        meta["source_mtime"] = self.source_path.stat().st_mtime if self.source_path.exists() else None
        return meta

    def _read_source(self) -> pd.DataFrame:
        if not self.source_path.exists():
            logger.info(f"ℹ️ No FAQ source at {self.source_path}")
            return pd.DataFrame(columns=["question", "answer"])
        if self.source_path.suffix.lower() == ".csv":
            df = pd.read_csv(self.source_path, encoding="utf-8-sig", dtype=str)
        else:
            df = pd.read_json(self.source_path, orient="records", dtype=False)
        df.columns = df.columns.str.strip().str.lower()
        return df.fillna("").astype(str)

    def _build(self) -> List[FaqRecord]:
        try:
            df = self._read_source()
        except (OSError, ValueError) as e:
            logger.error(f"❌ Error loading FAQ source: {e}")
            return []
        if not {"question", "answer"}.issubset(df.columns):
            logger.error("❌ FAQ source needs 'question' and 'answer' columns")
            return []

        faqs = []
        for row in df.itertuples(index=False):
            question = str(row.question).strip()
            if not question:
                continue
            vector = self._embed_or_skip(question, question[:40])
            if vector is not None:
                faqs.append(FaqRecord(question=question, answer=str(row.answer), embedding=vector))
        return faqs
