"""
Tests for the catalog and FAQ index lifecycle: snapshot restore, rebuild,
partial builds and the single-flight guard.

Run with: pytest tests/test_data_engine.py -v
"""

import json
import os
import threading
import time

import pytest

from storefront_assistant.data_engine import CatalogIndex, FaqIndex, build_ai_text
from fakes import FakeEmbedder, FakeShopify, make_product

MODEL = "fake-embedding"


@pytest.fixture
def pages():
    return [
        [make_product("1", title="Chaqueta Naluns"), make_product("2", title="Mochila Trail")],
        [make_product("3", title="Zapatillas Aneto"), make_product("1", title="Chaqueta Naluns")],
    ]


@pytest.fixture
def embedder():
    return FakeEmbedder()


def catalog(tmp_path, shopify, embedder, model=MODEL):
    return CatalogIndex(shopify, embedder, tmp_path / "ai-index.json", model)


class TestCatalogIndex:

    def test_build_text(self):
        product = make_product("1", title="Chaqueta", product_type="Chaquetas", tags=["a", "b"])
        assert build_ai_text(product) == "TIPO: Chaquetas\nTITULO: Chaqueta\nDESC: Chaqueta para montaña\nTAGS: a, b"

    def test_cold_build_dedupes_and_writes_snapshot(self, tmp_path, pages, embedder):
        index = catalog(tmp_path, FakeShopify(pages=pages), embedder)
        items = index.ensure_loaded()
        assert [p.id for p in items] == ["1", "2", "3"]
        assert all(len(p.embedding) == embedder.dimension for p in items)

        snapshot = json.loads((tmp_path / "ai-index.json").read_text(encoding="utf-8"))
        assert snapshot["embedding_model"] == MODEL
        assert snapshot["dimension"] == embedder.dimension
        assert len(snapshot["items"]) == 3

    def test_idempotent(self, tmp_path, pages, embedder):
        shopify = FakeShopify(pages=pages)
        index = catalog(tmp_path, shopify, embedder)
        index.ensure_loaded()
        calls = len(embedder.calls)
        index.ensure_loaded()
        assert len(embedder.calls) == calls
        assert shopify.page_requests == 2

    def test_restores_from_snapshot_without_remote_calls(self, tmp_path, pages, embedder):
        catalog(tmp_path, FakeShopify(pages=pages), embedder).ensure_loaded()

        shopify = FakeShopify(pages=pages)
        fresh_embedder = FakeEmbedder()
        items = catalog(tmp_path, shopify, fresh_embedder).ensure_loaded()
        assert len(items) == 3
        assert shopify.page_requests == 0
        assert fresh_embedder.calls == []

    def test_corrupt_snapshot_triggers_rebuild(self, tmp_path, pages, embedder):
        (tmp_path / "ai-index.json").write_text("{not json", encoding="utf-8")
        shopify = FakeShopify(pages=pages)
        items = catalog(tmp_path, shopify, embedder).ensure_loaded()
        assert len(items) == 3
        assert shopify.page_requests == 2

    def test_snapshot_from_other_model_is_rebuilt(self, tmp_path, pages, embedder):
        catalog(tmp_path, FakeShopify(pages=pages), embedder, model="old-model").ensure_loaded()
        shopify = FakeShopify(pages=pages)
        catalog(tmp_path, shopify, embedder).ensure_loaded()
        assert shopify.page_requests == 2

    def test_snapshot_with_other_dimension_is_rebuilt(self, tmp_path, pages, embedder):
        catalog(tmp_path, FakeShopify(pages=pages), embedder).ensure_loaded()
        shopify = FakeShopify(pages=pages)
        index = catalog(tmp_path, shopify, embedder)
        index.ensure_loaded(expected_dimension=embedder.dimension + 1)
        assert shopify.page_requests == 2

    def test_in_memory_dimension_mismatch_rebuilds(self, tmp_path, pages):
        small = FakeEmbedder(axes=["chaqueta"])
        index = catalog(tmp_path, FakeShopify(pages=pages), small)
        index.ensure_loaded()
        assert index.dimension == 2

        big = FakeEmbedder()
        index._embed = big
        index.client = FakeShopify(pages=pages)
        index.ensure_loaded(expected_dimension=big.dimension)
        assert index.dimension == big.dimension

    def test_paging_failure_keeps_partial_index(self, tmp_path, pages, embedder):
        shopify = FakeShopify(pages=pages, fail_after_pages=1)
        items = catalog(tmp_path, shopify, embedder).ensure_loaded()
        assert [p.id for p in items] == ["1", "2"]

    def test_embedding_failure_skips_item(self, tmp_path, pages):
        embedder = FakeEmbedder(fail_on="Mochila")
        items = catalog(tmp_path, FakeShopify(pages=pages), embedder).ensure_loaded()
        assert [p.id for p in items] == ["1", "3"]

    def test_unwritable_snapshot_is_not_fatal(self, tmp_path, pages, embedder):
        blocker = tmp_path / "file"
        blocker.write_text("x", encoding="utf-8")
        index = CatalogIndex(FakeShopify(pages=pages), embedder, blocker / "ai-index.json", MODEL)
        assert len(index.ensure_loaded()) == 3

    def test_empty_catalog_retries_next_time(self, tmp_path, pages, embedder):
        index = catalog(tmp_path, FakeShopify(pages=[]), embedder)
        assert index.ensure_loaded() == []
        assert not (tmp_path / "ai-index.json").exists()
        index.client = FakeShopify(pages=pages)
        assert len(index.ensure_loaded()) == 3

    def test_get_by_ids_keeps_request_order(self, tmp_path, pages, embedder):
        index = catalog(tmp_path, FakeShopify(pages=pages), embedder)
        index.ensure_loaded()
        assert [p.id for p in index.get_by_ids(["3", 1, "missing", "3"])] == ["3", "1"]

    def test_reset(self, tmp_path, pages, embedder):
        index = catalog(tmp_path, FakeShopify(pages=pages), embedder)
        index.ensure_loaded()
        index.reset()
        assert index.items == []

    def test_concurrent_cold_start_builds_once(self, tmp_path, pages):
        class SlowEmbedder(FakeEmbedder):
            def __call__(self, text):
                time.sleep(0.01)
                return super().__call__(text)

        embedder = SlowEmbedder()
        shopify = FakeShopify(pages=pages)
        index = catalog(tmp_path, shopify, embedder)

        threads = [threading.Thread(target=index.ensure_loaded) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert shopify.page_requests == 2
        assert len(embedder.calls) == 3


class TestFaqIndex:

    def write_faqs(self, path, rows):
        path.write_text(json.dumps(rows, ensure_ascii=False), encoding="utf-8")

    def test_builds_from_json_source(self, tmp_path, embedder):
        source = tmp_path / "faqs.json"
        self.write_faqs(source, [
            {"question": "¿Cuánto tarda el envío?", "answer": "24/72h"},
            {"question": "", "answer": "sin pregunta"},
        ])
        index = FaqIndex(source, embedder, tmp_path / "faq-index.json", MODEL)
        faqs = index.ensure_loaded()
        assert [f.question for f in faqs] == ["¿Cuánto tarda el envío?"]
        assert embedder.calls == ["¿Cuánto tarda el envío?"]

    def test_builds_from_csv_source(self, tmp_path, embedder):
        source = tmp_path / "faqs.csv"
        source.write_text("Question,Answer\n¿Devoluciones?,30 días\n", encoding="utf-8")
        faqs = FaqIndex(source, embedder, tmp_path / "faq-index.json", MODEL).ensure_loaded()
        assert [(f.question, f.answer) for f in faqs] == [("¿Devoluciones?", "30 días")]

    def test_missing_source_gives_empty_index(self, tmp_path, embedder):
        index = FaqIndex(tmp_path / "nope.json", embedder, tmp_path / "faq-index.json", MODEL)
        assert index.ensure_loaded() == []

    def test_source_without_columns(self, tmp_path, embedder):
        source = tmp_path / "faqs.json"
        self.write_faqs(source, [{"q": "x", "a": "y"}])
        assert FaqIndex(source, embedder, tmp_path / "faq-index.json", MODEL).ensure_loaded() == []

    def test_snapshot_reused_until_source_changes(self, tmp_path):
        source = tmp_path / "faqs.json"
        self.write_faqs(source, [{"question": "¿Envío?", "answer": "24h"}])
        FaqIndex(source, FakeEmbedder(), tmp_path / "faq-index.json", MODEL).ensure_loaded()

        reused = FakeEmbedder()
        FaqIndex(source, reused, tmp_path / "faq-index.json", MODEL).ensure_loaded()
        assert reused.calls == []

        self.write_faqs(source, [{"question": "¿Tallas?", "answer": "Guía"}])
        stat = source.stat()
        os.utime(source, (stat.st_atime, stat.st_mtime + 10))
        rebuilt = FakeEmbedder()
        faqs = FaqIndex(source, rebuilt, tmp_path / "faq-index.json", MODEL).ensure_loaded()
        assert [f.question for f in faqs] == ["¿Tallas?"]
        assert rebuilt.calls == ["¿Tallas?"]
