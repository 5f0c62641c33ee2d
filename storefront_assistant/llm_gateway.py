import json
from typing import List, Dict, Any, Optional, Sequence
from groq import Groq
from openai import OpenAI
from pydantic import ValidationError
from .business_rules import BusinessRules
from .logger import get_logger
from .models import (
    FaqRecord, OrderLookupResult, ParsedFallback, ParsedReply, ProductRecord, ProductRef,
)

logger = get_logger("llm_gateway")

VISIBLE_MARKER = "(EN PANTALLA)"

REFINE_PROMPT = """Eres un experto en entender el contexto de una conversación de compras.

TU OBJETIVO:
Traducir lo que dice el usuario a una búsqueda clara para una base de datos vectorial.

REGLAS DE CONTEXTO:
1. Mira el último mensaje del ASISTENTE en el historial. ¿Mencionó algún producto específico?
2. Si el usuario hace una pregunta de seguimiento ("¿qué colores tiene?", "¿y en rosa?"), incluye el NOMBRE DEL PRODUCTO.
3. Si el usuario dice solo colores ("en negro y rosa"), asume que se refiere al producto anterior.
Responde solo con la búsqueda, sin explicaciones."""


class LLMGateway:
    """Embeddings through OpenAI, chat completions through a Groq model cascade."""

    def __init__(
        self,
        groq_api_key: str,
        openai_api_key: str,
        embedding_model: str = "text-embedding-3-large",
        model_cascade: Sequence[str] = ("llama-3.3-70b-versatile", "llama-3.1-8b-instant"),
        groq_client: Optional[Any] = None,
        openai_client: Optional[Any] = None,
    ):
        if not groq_client and not groq_api_key:
            logger.error("❌ CRITICAL: GROQ_API_KEY missing.")
        if not openai_client and not openai_api_key:
            logger.error("❌ CRITICAL: OPENAI_API_KEY missing.")
        self.client = groq_client or Groq(api_key=groq_api_key)
        self.embeddings = openai_client or OpenAI(api_key=openai_api_key)
        self.embedding_model = embedding_model
        self.model_cascade = list(model_cascade)

    def embed(self, text: str) -> List[float]:
        response = self.embeddings.embeddings.create(model=self.embedding_model, input=text)
        return list(response.data[0].embedding)

    def complete(
        self,
        system_prompt: str,
        history: List[Dict[str, str]],
        user_message: str,
        structured: bool = False,
    ) -> str:
        messages = [{"role": "system", "content": system_prompt}]
        messages.extend({"role": m["role"], "content": m["content"]} for m in history)
        messages.append({"role": "user", "content": user_message})

        kwargs: Dict[str, Any] = {"temperature": 0.0, "max_tokens": 1024}
        if structured:
            kwargs["response_format"] = {"type": "json_object"}

        last_error = None
        for model in self.model_cascade:
            try:
                completion = self.client.chat.completions.create(model=model, messages=messages, **kwargs)
                return completion.choices[0].message.content or ""
            except Exception as e:
                logger.warning(f"⚠️ Model {model} failed: {e}")
                last_error = e
        raise RuntimeError("All chat models failed") from last_error

    def refine_query(self, query: str, history: List[Dict[str, str]]) -> str:
        """Rewrites a follow-up question into a standalone search phrase."""
        refined = self.complete(REFINE_PROMPT, history, query).strip()
        return refined or query


# ---------------------------------------------------------
# CONTEXT BLOCK
# ---------------------------------------------------------
def build_product_context(product: ProductRecord, visible: bool = False) -> str:
    colors = BusinessRules.get_color_values(product)
    specs = json.dumps(product.metafields, ensure_ascii=False, sort_keys=True) if product.metafields else "Sin especificaciones"
    marker = f" {VISIBLE_MARKER}" if visible else ""
    return (
        f"PRODUCTO{marker}:\n"
        f"- ID: {product.id}\n"
        f"- Título: {product.title}\n"
        f"- Precio: {product.price} €\n"
        f"- Colores: {', '.join(colors) if colors else 'Único'}\n"
        f"- Stock: {BusinessRules.get_stock_summary(product.variants)}\n"
        f"- Descripción: {BusinessRules.clean_text(product.description_html or product.description)}\n"
        f"- Specs: {specs}"
    )


def build_order_context(order: Optional[OrderLookupResult]) -> str:
    if order is None:
        return "Sin consulta de pedido."
    if order.found:
        return "PEDIDO VERIFICADO:\n" + json.dumps(order.data.model_dump(), ensure_ascii=False)
    if order.reason == "missing_email":
        return "El usuario ha dado el número de pedido pero falta el EMAIL de compra. Pídeselo."
    if order.reason == "missing_order_id":
        return "El usuario ha dado su email pero falta el NÚMERO DE PEDIDO. Pídeselo."
    if order.reason == "email_mismatch":
        return ("El email no coincide con el del pedido. NO des ningún dato del pedido ni confirmes "
                "que existe. Pide que revise el número y el email.")
    if order.reason == "not_found":
        return "No existe ningún pedido con ese número y email. Pide que revise los datos."
    return "No se ha podido consultar el pedido ahora mismo. Pide disculpas y sugiere intentarlo más tarde."


def build_system_prompt(
    brand_name: str,
    brand_context: str,
    candidates: List[ProductRecord],
    faqs: List[FaqRecord],
    order: Optional[OrderLookupResult] = None,
    visible_ids: Optional[List[str]] = None,
) -> str:
    visible = {str(v) for v in (visible_ids or [])}
    products_block = "\n\n".join(
        build_product_context(p, visible=p.id in visible) for p in candidates
    ) or "NO HAY PRODUCTOS CANDIDATOS."
    faq_block = "\n".join(f"- P: {f.question} | R: {f.answer}" for f in faqs) or "Sin FAQs relevantes."

    return f"""Eres un asistente experto de {brand_name}.

SOBRE LA MARCA:
{brand_context}

CONTEXTO ACTUAL:
El usuario está viendo {len(visible)} productos. Si pide "diferencias", "cuál es mejor" o detalles,
refiérete principalmente a los productos marcados como "{VISIBLE_MARKER}", salvo que sea una búsqueda nueva.

MODO A: ESCAPARATE / BUSCADOR ("Quiero chaqueta", "Enséñame algo para hombre")
- "reply": frase breve de introducción con nombres de productos, sin precios ni specs.
- "products": lista de productos a mostrar.

MODO B: INFORMACIÓN / DETALLES / PRECIOS / PEDIDOS
- "reply": responde exactamente a la pregunta con los datos de abajo.
- "products": [] salvo que sea imprescindible mostrar un producto.

Solo puedes referenciar IDs de la lista de CANDIDATOS. Nunca muestres cantidades exactas de stock.

Responde SOLO JSON:
{{
  "reply": "Texto...",
  "products": [ {{ "id": "ID", "variant_id": "ID opcional" }} ],
  "category": "product_search | product_info | order_status | faq | other"
}}

CONTEXTO FAQs:
{faq_block}

CONTEXTO PEDIDO:
{build_order_context(order)}

CANDIDATOS PRODUCTOS:
{products_block}
"""


# ---------------------------------------------------------
# STRUCTURED OUTPUT
# ---------------------------------------------------------
def extract_json(text: str) -> Optional[Dict[str, Any]]:
    """Parses the outermost {...} of a model reply, ignoring any wrapping text."""
    if not text:
        return None
    start, end = text.find("{"), text.rfind("}")
    if start == -1 or end <= start:
        return None
    try:
        data = json.loads(text[start:end + 1])
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def parse_reply(text: str) -> ParsedReply:
    data = extract_json(text)
    if data is None:
        logger.warning("⚠️ Model reply is not JSON, using fallback reply")
        return ParsedFallback()

    raw_products = data.get("products") or []
    if not isinstance(raw_products, list):
        return ParsedFallback()

    refs = []
    for item in raw_products:
        if isinstance(item, (str, int)):
            refs.append(ProductRef(id=str(item)))
        elif isinstance(item, dict) and item.get("id") is not None:
            variant = item.get("variant_id")
            refs.append(ProductRef(id=str(item["id"]), variant_id=str(variant) if variant else None))

    try:
        return ParsedReply(
            reply=data["reply"],
            products=refs,
            category=data.get("category") or "general",
        )
    except (KeyError, ValidationError):
        logger.warning("⚠️ Model reply misses required fields, using fallback reply")
        return ParsedFallback()
