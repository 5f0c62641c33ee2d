import json
import requests
from typing import Any, Dict, Iterator, List, Optional
from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_incrementing
from .logger import get_logger
from .models import ProductRecord, ProductVariant, ProductOption, SelectedOption

logger = get_logger("shopify_client")

PRODUCTS_QUERY = """
query getProducts($cursor: String, $pageSize: Int!, $variantPageSize: Int!) {
  products(first: $pageSize, after: $cursor, query: "status:active") {
    pageInfo { hasNextPage endCursor }
    edges {
      node {
        id title handle description descriptionHtml productType tags
        images(first: 1) { edges { node { url } } }
        options { name values }
        variants(first: $variantPageSize) {
          edges {
            node {
              id title price availableForSale inventoryQuantity
              image { url }
              selectedOptions { name value }
            }
          }
        }
        metafields(first: 20) { edges { node { namespace key value } } }
      }
    }
  }
}
"""

ORDER_QUERY = """
query getOrder($query: String!) {
  orders(first: 1, query: $query) {
    edges {
      node {
        id name email displayFulfillmentStatus
        totalPriceSet { shopMoney { amount currencyCode } }
        lineItems(first: 50) { edges { node { title quantity variantTitle } } }
        fulfillments(first: 5) { trackingInfo(first: 1) { company number url } }
      }
    }
  }
}
"""

VARIANTS_QUERY = """
query getVariants($ids: [ID!]!) {
  nodes(ids: $ids) {
    ... on ProductVariant { id availableForSale inventoryQuantity }
  }
}
"""

PRODUCT_GID = "gid://shopify/Product/"
VARIANT_GID = "gid://shopify/ProductVariant/"
# Admin API limit for nodes(ids:)
NODES_PER_REQUEST = 250


class ShopifyAPIError(Exception):
    """Transport failure or GraphQL error payload from the Admin API."""

    def __init__(self, message: str, status_code: Optional[int] = None, transient: bool = False):
        super().__init__(message)
        self.status_code = status_code
        self.transient = transient


def is_retryable_error(exc: BaseException) -> bool:
    """Network errors, 429, 5xx and GraphQL throttling. Auth and query errors fail fast."""
    if isinstance(exc, requests.RequestException):
        return True
    return isinstance(exc, ShopifyAPIError) and exc.transient


def clean_id(gid: Optional[str]) -> str:
    return str(gid or "").split("/")[-1]


def safe_parse(value: Any) -> Any:
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        return value


class ShopifyClient:
    def __init__(
        self,
        domain: str,
        access_token: str,
        api_version: str = "2024-01",
        page_size: int = 50,
        variant_page_size: int = 50,
        retry_attempts: int = 3,
        retry_backoff: float = 1.0,
        session: Optional[requests.Session] = None,
        timeout: float = 30.0,
    ):
        self.domain = domain.replace("https://", "").replace("/", "")
        self.base_url = f"https://{self.domain}/admin/api/{api_version}"
        self.headers = {
            "X-Shopify-Access-Token": access_token,
            "Content-Type": "application/json"
        }
        self.page_size = page_size
        self.variant_page_size = variant_page_size
        self.timeout = timeout
        self.session = session or requests.Session()
        # Linear backoff: retry_backoff, 2*retry_backoff, ...
        self._retrying = Retrying(
            retry=retry_if_exception(is_retryable_error),
            stop=stop_after_attempt(retry_attempts),
            wait=wait_incrementing(start=retry_backoff, increment=retry_backoff),
            reraise=True,
        )

    # ---------------------------------------------------------
    # TRANSPORT
    # ---------------------------------------------------------
    def _post_graphql(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        response = self.session.post(
            f"{self.base_url}/graphql.json",
            headers=self.headers,
            json={"query": query, "variables": variables},
            timeout=self.timeout,
        )
        status = response.status_code
        if status != 200:
            raise ShopifyAPIError(
                f"Shopify API Error: {status} - {response.text[:200]}",
                status_code=status,
                transient=status == 429 or status >= 500,
            )
        payload = response.json()
        errors = payload.get("errors")
        if errors:
            throttled = isinstance(errors, list) and any(
                isinstance(e, dict) and (e.get("extensions") or {}).get("code") == "THROTTLED" for e in errors
            )
            raise ShopifyAPIError(f"GraphQL Error: {errors}", status_code=status, transient=throttled)
        return payload.get("data") or {}

    def graphql(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self._retrying(self._post_graphql, query, variables or {})

    # ---------------------------------------------------------
    # CATALOG
    # ---------------------------------------------------------
    def iter_product_pages(self) -> Iterator[List[ProductRecord]]:
        """Yields one page of active products at a time, following the cursor."""
        cursor = None
        while True:
            data = self.graphql(PRODUCTS_QUERY, {
                "cursor": cursor,
                "pageSize": self.page_size,
                "variantPageSize": self.variant_page_size,
            })
            products = data.get("products") or {}
            page = []
            for edge in products.get("edges", []):
                try:
                    page.append(self._map_to_product(edge["node"]))
                except (KeyError, TypeError, ValueError) as e:
                    logger.warning(f"⚠️ Skipping malformed product node: {e}")
            yield page

            page_info = products.get("pageInfo") or {}
            if not page_info.get("hasNextPage"):
                break
            cursor = page_info.get("endCursor")

    def fetch_variants(self, variant_ids: List[str]) -> Dict[str, Dict[str, Any]]:
        """Fresh availability for the given variant ids: {id: {available, inventory_quantity}}."""
        fresh = {}
        for start in range(0, len(variant_ids), NODES_PER_REQUEST):
            chunk = variant_ids[start:start + NODES_PER_REQUEST]
            gids = [f"{VARIANT_GID}{vid}" for vid in chunk]
            data = self.graphql(VARIANTS_QUERY, {"ids": gids})
            for node in data.get("nodes") or []:
                if not node or "id" not in node:
                    continue
                fresh[clean_id(node["id"])] = {
                    "available": bool(node.get("availableForSale")),
                    "inventory_quantity": int(node.get("inventoryQuantity") or 0),
                }
        return fresh

    def _map_to_product(self, node: Dict) -> ProductRecord:
        variants = []
        for edge in node.get("variants", {}).get("edges", []):
            v = edge["node"]
            variants.append(ProductVariant(
                id=clean_id(v["id"]),
                title=str(v.get("title") or ""),
                price=str(v.get("price") or "0"),
                image=(v.get("image") or {}).get("url") or "",
                available=bool(v.get("availableForSale", True)),
                inventory_quantity=int(v.get("inventoryQuantity") or 0),
                selected_options=[SelectedOption(**o) for o in v.get("selectedOptions") or []],
            ))

        images = node.get("images", {}).get("edges", [])
        metafields = {
            f"{m['node']['namespace']}.{m['node']['key']}": safe_parse(m["node"]["value"])
            for m in node.get("metafields", {}).get("edges", [])
        }
        return ProductRecord(
            id=clean_id(node["id"]),
            title=str(node.get("title") or ""),
            handle=str(node.get("handle") or ""),
            description=str(node.get("description") or ""),
            description_html=str(node.get("descriptionHtml") or ""),
            product_type=str(node.get("productType") or ""),
            tags=list(node.get("tags") or []),
            image=images[0]["node"]["url"] if images else "",
            price=variants[0].price if variants else "Consultar",
            options=[ProductOption(name=o["name"], values=o.get("values") or []) for o in node.get("options") or []],
            variants=variants,
            metafields=metafields,
        )

    # ---------------------------------------------------------
    # ORDERS
    # ---------------------------------------------------------
    def fetch_order(self, order_number: str) -> Optional[Dict[str, Any]]:
        """Looks an order up by its number (e.g. "1234"). Returns None when absent."""
        data = self.graphql(ORDER_QUERY, {"query": f"name:#{order_number}"})
        edges = (data.get("orders") or {}).get("edges") or []
        if not edges:
            return None
        node = edges[0]["node"]

        tracking = {}
        for fulfillment in node.get("fulfillments") or []:
            info = fulfillment.get("trackingInfo") or []
            if info:
                tracking = info[0]
                break

        money = (node.get("totalPriceSet") or {}).get("shopMoney") or {}
        return {
            "id": node.get("name") or clean_id(node.get("id")),
            "email": node.get("email") or "",
            "status": node.get("displayFulfillmentStatus") or "UNFULFILLED",
            "carrier_code": tracking.get("company"),
            "tracking_number": tracking.get("number"),
            "tracking_url": tracking.get("url"),
            "items": [
                {
                    "title": e["node"].get("title", ""),
                    "quantity": int(e["node"].get("quantity") or 1),
                    "variant": e["node"].get("variantTitle") or "",
                }
                for e in (node.get("lineItems") or {}).get("edges", [])
            ],
            "price": f"{money.get('amount', '')} {money.get('currencyCode', '')}".strip(),
        }
