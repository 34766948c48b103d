"""Pydantic models for API I/O and the chat pipeline contracts.

JSON keys follow what the table UI sends and reads (camelCase), the Python
attributes stay snake_case.
"""
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..data.models import CartItem, Product


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class ProductInfo(BaseModel):
    name: str
    slug: str


class ChatResult(BaseModel):
    """What the orchestrator hands back to the caller."""
    message: str
    product_info: Optional[ProductInfo] = None


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    session_id: str = Field(default="default", alias="sessionId")


class ChatResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    success: bool
    session_id: str = Field(alias="sessionId")
    product_info: Optional[ProductInfo] = Field(default=None, alias="productInfo")


class StatusResponse(BaseModel):
    message: str
    success: bool
    error: Optional[str] = None


class AddItemRequest(BaseModel):
    product: Product


class UpdateQuantityRequest(BaseModel):
    quantity: int = Field(alias="quantidade")


class CategoryGroup(BaseModel):
    category: str = Field(serialization_alias="categoria")
    products: List[Dict[str, Any]] = Field(serialization_alias="produtos")


class CartView(BaseModel):
    """Cart snapshot returned by every cart endpoint."""
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(serialization_alias="sessionId")
    items: List[Dict[str, Any]]
    finalized_items: List[str] = Field(serialization_alias="finalizedItems")
    cancelled_items: List[str] = Field(serialization_alias="cancelledItems")
    is_order_completed: bool = Field(serialization_alias="isOrderCompleted")
    is_modal_open: bool = Field(serialization_alias="isModalOpen")
    show_success_modal: bool = Field(serialization_alias="showSuccessModal")
    show_cancel_modal: bool = Field(serialization_alias="showCancelModal")
    total_items: int = Field(serialization_alias="totalItems")
    total_price: float = Field(serialization_alias="totalPrice")
    status: str

    @classmethod
    def items_payload(cls, items: List[CartItem]) -> List[Dict[str, Any]]:
        return [item.model_dump(by_alias=True) for item in items]
