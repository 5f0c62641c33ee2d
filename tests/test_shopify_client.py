"""
Tests for the Shopify Admin GraphQL client using a scripted HTTP session.

Run with: pytest tests/test_shopify_client.py -v
"""

import pytest
import requests

from storefront_assistant.shopify_client import ShopifyAPIError, ShopifyClient, clean_id, safe_parse


class FakeResponse:
    def __init__(self, payload=None, status_code=200):
        self.payload = payload
        self.status_code = status_code
        self.text = str(payload)

    def json(self):
        return self.payload


class ScriptedSession:
    """Returns the scripted responses in order; exceptions in the script are raised."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def post(self, url, headers=None, json=None, timeout=None):
        self.requests.append({"url": url, "headers": headers, "json": json})
        result = self.responses.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def client(session, attempts=3):
    return ShopifyClient("https://tienda.myshopify.com/", "shpat_test", session=session,
                         page_size=2, retry_attempts=attempts, retry_backoff=0)


def product_node(pid, title, variants=()):
    return {
        "id": f"gid://shopify/Product/{pid}",
        "title": title,
        "handle": title.lower(),
        "description": "Desc",
        "descriptionHtml": "<p>Desc</p>",
        "productType": "Chaquetas",
        "tags": ["outdoor"],
        "images": {"edges": [{"node": {"url": f"https://cdn.example.com/{pid}.jpg"}}]},
        "options": [{"name": "Color", "values": ["Rojo"]}],
        "variants": {"edges": [{"node": v} for v in variants]},
        "metafields": {"edges": [
            {"node": {"namespace": "custom", "key": "specs", "value": '{"peso": "300g"}'}},
            {"node": {"namespace": "custom", "key": "material", "value": "Poliéster"}},
        ]},
    }


def products_page(nodes, next_cursor=None):
    return FakeResponse({"data": {"products": {
        "pageInfo": {"hasNextPage": next_cursor is not None, "endCursor": next_cursor},
        "edges": [{"node": n} for n in nodes],
    }}})


VARIANT = {
    "id": "gid://shopify/ProductVariant/501",
    "title": "Rojo / M",
    "price": "89.90",
    "availableForSale": True,
    "inventoryQuantity": 3,
    "image": {"url": "https://cdn.example.com/501.jpg"},
    "selectedOptions": [{"name": "Color", "value": "Rojo"}, {"name": "Talla", "value": "M"}],
}


class TestHelpers:

    def test_clean_id(self):
        assert clean_id("gid://shopify/Product/123") == "123"
        assert clean_id(None) == ""

    def test_safe_parse(self):
        assert safe_parse('{"a": 1}') == {"a": 1}
        assert safe_parse("texto") == "texto"

    def test_base_url(self):
        c = client(ScriptedSession())
        assert c.base_url == "https://tienda.myshopify.com/admin/api/2024-01"
        assert c.headers["X-Shopify-Access-Token"] == "shpat_test"


class TestCatalog:

    def test_maps_product_node(self):
        session = ScriptedSession(products_page([product_node(1, "Naluns", [VARIANT])]))
        [page] = list(client(session).iter_product_pages())
        [product] = page
        assert product.id == "1"
        assert product.price == "89.90"
        assert product.image == "https://cdn.example.com/1.jpg"
        assert product.metafields == {"custom.specs": {"peso": "300g"}, "custom.material": "Poliéster"}
        variant = product.variants[0]
        assert (variant.id, variant.inventory_quantity, variant.available) == ("501", 3, True)
        assert variant.selected_options[1].value == "M"

    def test_follows_cursor(self):
        session = ScriptedSession(
            products_page([product_node(1, "A"), product_node(2, "B")], next_cursor="c1"),
            products_page([product_node(3, "C")]),
        )
        pages = list(client(session).iter_product_pages())
        assert [[p.id for p in page] for page in pages] == [["1", "2"], ["3"]]
        assert session.requests[0]["json"]["variables"] == {"cursor": None, "pageSize": 2, "variantPageSize": 50}
        assert session.requests[1]["json"]["variables"]["cursor"] == "c1"

    def test_product_without_variants(self):
        session = ScriptedSession(products_page([product_node(9, "Gorro")]))
        [[product]] = list(client(session).iter_product_pages())
        assert product.price == "Consultar"
        assert product.variants == []

    def test_malformed_node_skipped(self):
        session = ScriptedSession(products_page([{"title": "sin id"}, product_node(2, "B")]))
        [page] = list(client(session).iter_product_pages())
        assert [p.id for p in page] == ["2"]


class TestTransport:

    def test_retries_transient_failures(self):
        session = ScriptedSession(
            requests.ConnectionError("reset"),
            FakeResponse({"error": "busy"}, status_code=503),
            products_page([product_node(1, "A")]),
        )
        pages = list(client(session).iter_product_pages())
        assert len(pages) == 1
        assert len(session.requests) == 3

    def test_gives_up_after_attempts(self):
        session = ScriptedSession(*[FakeResponse({}, status_code=500) for _ in range(2)])
        with pytest.raises(ShopifyAPIError):
            client(session, attempts=2).graphql("{ shop { name } }")

    def test_graphql_errors_raise(self):
        session = ScriptedSession(FakeResponse({"errors": [{"message": "Throttled"}]}))
        with pytest.raises(ShopifyAPIError, match="Throttled"):
            client(session, attempts=1).graphql("{ shop { name } }")


class TestOrdersAndVariants:

    def test_fetch_order(self):
        node = {
            "id": "gid://shopify/Order/77",
            "name": "#10234",
            "email": "ana@example.com",
            "displayFulfillmentStatus": "FULFILLED",
            "totalPriceSet": {"shopMoney": {"amount": "129.90", "currencyCode": "EUR"}},
            "lineItems": {"edges": [{"node": {"title": "Naluns", "quantity": 2, "variantTitle": "Rojo / M"}}]},
            "fulfillments": [{"trackingInfo": []}, {"trackingInfo": [{"company": "0003", "number": "JD1", "url": "u"}]}],
        }
        session = ScriptedSession(FakeResponse({"data": {"orders": {"edges": [{"node": node}]}}}))
        order = client(session).fetch_order("10234")
        assert session.requests[0]["json"]["variables"] == {"query": "name:#10234"}
        assert order["id"] == "#10234"
        assert order["carrier_code"] == "0003"
        assert order["tracking_number"] == "JD1"
        assert order["items"] == [{"title": "Naluns", "quantity": 2, "variant": "Rojo / M"}]
        assert order["price"] == "129.90 EUR"

    def test_fetch_order_absent(self):
        session = ScriptedSession(FakeResponse({"data": {"orders": {"edges": []}}}))
        assert client(session).fetch_order("1") is None

    def test_fetch_variants(self):
        session = ScriptedSession(FakeResponse({"data": {"nodes": [
            {"id": "gid://shopify/ProductVariant/501", "availableForSale": False, "inventoryQuantity": 0},
            None,
        ]}}))
        fresh = client(session).fetch_variants(["501", "502"])
        assert fresh == {"501": {"available": False, "inventory_quantity": 0}}
        assert session.requests[0]["json"]["variables"]["ids"] == [
            "gid://shopify/ProductVariant/501", "gid://shopify/ProductVariant/502",
        ]

    def test_fetch_variants_empty_makes_no_call(self):
        session = ScriptedSession()
        assert client(session).fetch_variants([]) == {}
        assert session.requests == []

    def test_fetch_variants_splits_large_batches(self):
        ids = [str(n) for n in range(600)]
        session = ScriptedSession(*[
            FakeResponse({"data": {"nodes": [
                {"id": f"gid://shopify/ProductVariant/{n}", "availableForSale": True, "inventoryQuantity": 1}
            ]}})
            for n in ("0", "250", "500")
        ])
        fresh = client(session).fetch_variants(ids)
        assert [len(r["json"]["variables"]["ids"]) for r in session.requests] == [250, 250, 100]
        assert set(fresh) == {"0", "250", "500"}


class TestRetryPolicy:

    @pytest.mark.parametrize("status", [401, 403, 404])
    def test_client_errors_fail_fast(self, status):
        session = ScriptedSession(*[FakeResponse({}, status_code=status) for _ in range(3)])
        with pytest.raises(ShopifyAPIError) as exc_info:
            client(session).graphql("{ shop { name } }")
        assert exc_info.value.status_code == status
        assert len(session.requests) == 1

    def test_rate_limit_is_retried(self):
        session = ScriptedSession(
            FakeResponse({}, status_code=429),
            FakeResponse({"data": {"shop": {"name": "Izas"}}}),
        )
        assert client(session).graphql("{ shop { name } }") == {"shop": {"name": "Izas"}}
        assert len(session.requests) == 2

    def test_query_errors_fail_fast(self):
        session = ScriptedSession(*[
            FakeResponse({"errors": [{"message": "Field 'foo' doesn't exist"}]}) for _ in range(3)
        ])
        with pytest.raises(ShopifyAPIError):
            client(session).graphql("{ foo }")
        assert len(session.requests) == 1

    def test_throttled_query_is_retried(self):
        session = ScriptedSession(
            FakeResponse({"errors": [{"message": "Throttled", "extensions": {"code": "THROTTLED"}}]}),
            FakeResponse({"data": {"shop": {"name": "Izas"}}}),
        )
        assert client(session).graphql("{ shop { name } }") == {"shop": {"name": "Izas"}}
        assert len(session.requests) == 2
