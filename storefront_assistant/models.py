from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Any, Literal

# ---------------------------------------------------------
# HTTP PAYLOADS
# ---------------------------------------------------------
class HistoryMessage(BaseModel):
    role: str
    content: str = ""

class ChatRequest(BaseModel):
    q: Optional[str] = None
    history: List[HistoryMessage] = []
    visible_ids: List[str] = []
    session_id: Optional[str] = None

class ChatResponse(BaseModel):
    text: str
    products: List[Dict[str, Any]] = []
    category: str = "general"

class LogRequest(BaseModel):
    session_id: str
    role: Literal["user", "assistant", "system"]
    content: str

# ---------------------------------------------------------
# CATALOG
# ---------------------------------------------------------
class SelectedOption(BaseModel):
    name: str
    value: str

class ProductOption(BaseModel):
    name: str
    values: List[str] = []

class ProductVariant(BaseModel):
    id: str
    title: str = ""
    price: str = "0"
    image: str = ""
    available: bool = True
    inventory_quantity: int = 0
    selected_options: List[SelectedOption] = []

class ProductRecord(BaseModel):
    id: str
    title: str = ""
    handle: str = ""
    description: str = ""
    description_html: str = ""
    product_type: str = ""
    tags: List[str] = []
    image: str = ""
    price: str = "Consultar"
    options: List[ProductOption] = []
    variants: List[ProductVariant] = []
    metafields: Dict[str, Any] = {}
    embedding: Optional[List[float]] = None

class FaqRecord(BaseModel):
    question: str
    answer: str
    embedding: Optional[List[float]] = None

class Scored(BaseModel):
    """A product or FAQ annotated with its adjusted similarity score."""
    item: Any
    score: float

# ---------------------------------------------------------
# ORDERS
# ---------------------------------------------------------
class OrderItem(BaseModel):
    title: str
    quantity: int = 1
    variant: str = ""

class OrderData(BaseModel):
    id: str
    status: str
    trackingNumber: str
    trackingUrl: str
    carrier: str
    items: List[OrderItem] = []
    price: str = ""

class OrderLookupResult(BaseModel):
    found: bool
    reason: Optional[Literal[
        "not_found", "email_mismatch", "error", "missing_order_id", "missing_email"
    ]] = None
    data: Optional[OrderData] = None

# ---------------------------------------------------------
# GENERATION OUTPUT
# ---------------------------------------------------------
class ProductRef(BaseModel):
    id: str
    variant_id: Optional[str] = None

class ParsedReply(BaseModel):
    kind: Literal["ok", "fallback"] = "ok"
    reply: str
    products: List[ProductRef] = []
    category: str = "general"

class ParsedFallback(ParsedReply):
    kind: Literal["ok", "fallback"] = "fallback"
    reply: str = (
        "Lo siento, ahora mismo no puedo procesar tu consulta. "
        "¿Puedes intentarlo de nuevo en unos segundos?"
    )
    category: str = "error"

# ---------------------------------------------------------
# CONVERSATIONS
# ---------------------------------------------------------
class ConversationTurn(BaseModel):
    role: str
    content: str
    timestamp: float = Field(default=0.0)
