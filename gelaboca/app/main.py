#!/usr/bin/env python3
"""
Main FastAPI application for the GelaBoca table-side ordering service.
"""

from typing import Any, Dict, List

from fastapi import Body, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from .config import Config
from .controller import APOLOGY_MESSAGE, ChatController
from .embed import EmbeddingClient
from .generate import GenerationClient
from .postprocess import product_question, slug_to_name
from .retrieval import ProductRetriever, create_index
from .session import SessionManager, create_store
from ..data.catalog import CatalogService, group_by_category
from ..order.cart import (
    AddItem, CartState, ClearCart, CloseModal, FinalizeOrder, HideCancelModal,
    HideSuccessModal, OpenModal, RemoveItem, RequestCancellation, StartNewOrder,
    UpdateQuantity,
)
from ..order.service import CartService
from ..order.storage import CartStorage
from ..schemas.io_models import (
    AddItemRequest, CartView, CategoryGroup, ChatRequest, ChatResponse,
    StatusResponse, UpdateQuantityRequest,
)
from ..utils.logger import get_logger

logger = get_logger()

# Initialize FastAPI app
app = FastAPI(
    title="GelaBoca Ordering API",
    description="Table-side menu, cart and GelinhIA chat assistant",
    version="1.0.0"
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify your frontend domain
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize components
store = create_store()
session_manager = SessionManager(store)
vector_index = create_index()
embed_client = EmbeddingClient()
gen_client = GenerationClient()
retriever = ProductRetriever(vector_index, embed_client)
chat_controller = ChatController(gen_client, retriever)
catalog = CatalogService(vector_index)
cart_service = CartService(CartStorage(store))


def _error(status_code: int, message: str, error: str = None) -> JSONResponse:
    body = {"message": message, "success": False}
    if error:
        body["error"] = error
    return JSONResponse(status_code=status_code, content=body)


@app.post("/chat")
def chat(payload: Any = Body(None)):
    """
    Run one chat turn for a session.

    The session lock is held for the whole turn so concurrent requests of
    one session append to its history in arrival order.
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("message"), str) \
            or not payload.get("message"):
        return JSONResponse(
            status_code=400,
            content={"error": "Mensagem é obrigatória e deve ser uma string"},
        )
    try:
        request = ChatRequest.model_validate(payload)
    except ValidationError as e:
        return JSONResponse(status_code=400, content={"error": str(e)})

    session_id = request.session_id or "default"
    try:
        with session_manager.lock(session_id):
            history = session_manager.append(session_id, "user", request.message)
            result = chat_controller.process_chat_message(request.message, history)
            session_manager.append(session_id, "assistant", result.message)
    except Exception as e:
        logger.exception("Chat request failed for session %s", session_id)
        return _error(500, APOLOGY_MESSAGE, str(e))

    response = ChatResponse(
        message=result.message,
        success=True,
        session_id=session_id,
        product_info=result.product_info,
    )
    return response.model_dump(by_alias=True, exclude_none=True)


@app.delete("/chat", response_model=StatusResponse)
def clear_chat(session_id: str = Query("default", alias="sessionId")):
    """Forget a session's conversation history."""
    try:
        with session_manager.lock(session_id):
            session_manager.clear(session_id)
    except Exception as e:
        logger.exception("Failed to clear history for session %s", session_id)
        return _error(500, "Erro ao limpar histórico", str(e))
    return StatusResponse(message="Histórico limpo com sucesso!", success=True)


@app.get("/products")
def list_products() -> List[Dict[str, Any]]:
    return [p.to_api() for p in catalog.list_active()]


@app.get("/promotional-products")
def list_promotional_products() -> List[Dict[str, Any]]:
    return [p.to_api() for p in catalog.list_promotional()]


@app.get("/categories")
def list_categories() -> List[Dict[str, Any]]:
    groups = group_by_category(catalog.list_active())
    return [
        CategoryGroup(
            category=g["category"], products=[p.to_api() for p in g["products"]]
        ).model_dump(by_alias=True)
        for g in groups
    ]


@app.get("/products/{slug}")
def get_product(slug: str) -> Dict[str, Any]:
    """Product page payload, with the message its "ask GelinhIA" button sends."""
    product = catalog.find_by_name(slug_to_name(slug))
    if product is None:
        raise HTTPException(status_code=404, detail="Produto não encontrado")
    payload = product.to_api()
    payload["perguntaAssistente"] = product_question(product.name)
    return payload


# --- cart ---

def _cart_view(session_id: str, state: CartState) -> Dict[str, Any]:
    return CartView(
        session_id=session_id,
        items=CartView.items_payload(list(state.items)),
        finalized_items=list(state.finalized_items),
        cancelled_items=list(state.cancelled_items),
        is_order_completed=state.is_order_completed,
        is_modal_open=state.is_modal_open,
        show_success_modal=state.show_success_modal,
        show_cancel_modal=state.show_cancel_modal,
        total_items=state.total_items,
        total_price=round(state.total_price, 2),
        status=state.status.value,
    ).model_dump(by_alias=True)


@app.get("/cart")
def get_cart(session_id: str = Query("default", alias="sessionId")):
    return _cart_view(session_id, cart_service.get(session_id))


@app.post("/cart/items")
def add_cart_item(request: AddItemRequest, session_id: str = Query("default", alias="sessionId")):
    state = cart_service.dispatch(session_id, AddItem(product=request.product))
    return _cart_view(session_id, state)


@app.patch("/cart/items/{product_id}")
def update_cart_item(product_id: str, request: UpdateQuantityRequest,
                     session_id: str = Query("default", alias="sessionId")):
    state = cart_service.dispatch(
        session_id, UpdateQuantity(product_id=product_id, quantity=request.quantity)
    )
    return _cart_view(session_id, state)


@app.delete("/cart/items/{product_id}")
def remove_cart_item(product_id: str, session_id: str = Query("default", alias="sessionId")):
    state = cart_service.dispatch(session_id, RemoveItem(product_id=product_id))
    return _cart_view(session_id, state)


@app.post("/cart/items/{product_id}/cancel")
def request_cancellation(product_id: str, session_id: str = Query("default", alias="sessionId")):
    state = cart_service.dispatch(session_id, RequestCancellation(product_id=product_id))
    return _cart_view(session_id, state)


@app.post("/cart/clear")
def clear_cart(session_id: str = Query("default", alias="sessionId")):
    return _cart_view(session_id, cart_service.dispatch(session_id, ClearCart()))


@app.post("/cart/finalize")
def finalize_order(session_id: str = Query("default", alias="sessionId")):
    return _cart_view(session_id, cart_service.dispatch(session_id, FinalizeOrder()))


@app.post("/cart/new-order")
def start_new_order(session_id: str = Query("default", alias="sessionId")):
    return _cart_view(session_id, cart_service.dispatch(session_id, StartNewOrder()))


_MODAL_COMMANDS = {
    "open": OpenModal,
    "close": CloseModal,
}


@app.post("/cart/modal/{action}")
def toggle_cart_modal(action: str, session_id: str = Query("default", alias="sessionId")):
    command = _MODAL_COMMANDS.get(action)
    if command is None:
        raise HTTPException(status_code=404, detail=f"Unknown modal action: {action}")
    return _cart_view(session_id, cart_service.dispatch(session_id, command()))


@app.post("/cart/success-modal/hide")
def hide_success_modal(session_id: str = Query("default", alias="sessionId")):
    return _cart_view(session_id, cart_service.dispatch(session_id, HideSuccessModal()))


@app.post("/cart/cancel-modal/hide")
def hide_cancel_modal(session_id: str = Query("default", alias="sessionId")):
    return _cart_view(session_id, cart_service.dispatch(session_id, HideCancelModal()))


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "vector_backend": Config.VECTOR_BACKEND,
        "session_backend": type(store).__name__,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
