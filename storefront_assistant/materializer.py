from typing import Any, Dict, List
from .models import ParsedReply, ProductRecord

DEFAULT_TITLE = "Producto"
DEFAULT_PRICE = "Consultar"


def materialize_products(parsed: ParsedReply, candidates: List[ProductRecord]) -> List[Dict[str, Any]]:
    """
    Turns the product references of a model reply into display records.

    Only ids from the candidate list are honoured (the model never saw the rest
    of the catalog); unknown ids and repeats are dropped, first mention wins.
    """
    by_id = {str(p.id): p for p in candidates}
    seen = set()
    products = []

    for ref in parsed.products:
        original = by_id.get(str(ref.id))
        if original is None or original.id in seen:
            continue
        seen.add(original.id)

        display_image = original.image or ""
        display_url_params = ""
        selected_variant = None
        if ref.variant_id:
            selected_variant = next((v for v in original.variants if str(v.id) == str(ref.variant_id)), None)
            if selected_variant:
                if selected_variant.image:
                    display_image = selected_variant.image
                display_url_params = f"?variant={selected_variant.id}"

        record = original.model_dump(exclude={"embedding"})
        record.update({
            "title": original.title or DEFAULT_TITLE,
            "price": (selected_variant.price if selected_variant else original.price) or DEFAULT_PRICE,
            "image": original.image or "",
            "variants": record.get("variants") or [],
            "options": record.get("options") or [],
            "variant_id": selected_variant.id if selected_variant else None,
            "displayImage": display_image,
            "displayUrlParams": display_url_params,
        })
        products.append(record)

    return products
