import re
from typing import Dict, List, Optional, Tuple
from bs4 import BeautifulSoup
from .models import ProductRecord, ProductVariant

ALMOST_GONE_THRESHOLD = 2
ALMOST_GONE_MARKER = "¡últimas unidades!"
SOLD_OUT_LABEL = "AGOTADO"
NO_COLOR_LABEL = "Único"

CARRIER_PENDING = "pending"
TRACKING_PENDING = "in preparation"

CARRIERS = {
    "0002": "Correos Express",
    "0003": "DHL",
}
DHL_TRACKING_URL = "https://www.dhl.com/es-es/home/tracking/tracking-express.html?submit=1&tracking-id={number}"

_COLOR_OPTION = re.compile(r"color|colour|cor", re.IGNORECASE)
_SIZE_OPTION = re.compile(r"talla|size|tamaño", re.IGNORECASE)


class BusinessRules:

    # ---------------------------------------------------------
    # 1. STOCK AVAILABILITY RULES
    # ---------------------------------------------------------
    @staticmethod
    def is_available(variant: ProductVariant) -> bool:
        return variant.available and variant.inventory_quantity > 0

    @staticmethod
    def _option_value(variant: ProductVariant, pattern: re.Pattern) -> Optional[str]:
        for opt in variant.selected_options:
            if pattern.search(opt.name):
                return opt.value
        return None

    @staticmethod
    def get_stock_summary(variants: List[ProductVariant]) -> str:
        """
        Stock per color, e.g. "Rojo: S, M (¡últimas unidades!) | Azul: AGOTADO".
        Exact quantities are never exposed, only availability and urgency.
        """
        if not variants:
            return SOLD_OUT_LABEL

        by_color: Dict[str, List[str]] = {}
        for v in variants:
            color = BusinessRules._option_value(v, _COLOR_OPTION) or NO_COLOR_LABEL
            sizes = by_color.setdefault(color, [])
            if not BusinessRules.is_available(v):
                continue
            size = BusinessRules._option_value(v, _SIZE_OPTION) or v.title or "Talla única"
            if v.inventory_quantity <= ALMOST_GONE_THRESHOLD:
                size = f"{size} ({ALMOST_GONE_MARKER})"
            sizes.append(size)

        parts = []
        for color, sizes in by_color.items():
            parts.append(f"{color}: {', '.join(sizes) if sizes else SOLD_OUT_LABEL}")
        return " | ".join(parts)

    # ---------------------------------------------------------
    # 2. CATALOG PRESENTATION RULES
    # ---------------------------------------------------------
    @staticmethod
    def get_color_values(product: ProductRecord) -> List[str]:
        option = next((o for o in product.options if _COLOR_OPTION.search(o.name)), None)
        return list(option.values) if option else []

    @staticmethod
    def clean_text(text: str, limit: int = 600) -> str:
        """Strips HTML and collapses whitespace for prompt context."""
        if not text:
            return "Sin información"
        plain = BeautifulSoup(text, "html.parser").get_text(separator=" ")
        return re.sub(r"\s+", " ", plain).strip()[:limit]

    # ---------------------------------------------------------
    # 3. SHIPPING RULES
    # ---------------------------------------------------------
    @staticmethod
    def resolve_carrier(
        company: Optional[str], tracking_number: Optional[str], tracking_url: Optional[str]
    ) -> Tuple[str, str, str]:
        """
        Maps an upstream carrier code to (carrier, tracking_number, tracking_url).
        DHL links are rebuilt from the tracking number; unfulfilled orders get
        the pending sentinels.
        """
        code = (company or "").strip()
        number = (tracking_number or "").strip()
        if not code and not number:
            return CARRIER_PENDING, TRACKING_PENDING, ""

        carrier = CARRIERS.get(code, code or CARRIER_PENDING)
        url = (tracking_url or "").strip()
        if carrier == "DHL" and number:
            url = DHL_TRACKING_URL.format(number=number)
        return carrier, number or TRACKING_PENDING, url
