"""Cart state machine.

The cart is an immutable ``CartState`` value transformed by commands through
``reduce``. ``reduce`` has no side effects; persisting the result is the
caller's job (see ``order/service.py``).

Lifecycle::

    Empty/Building --FinalizeOrder--> Finalized
    Finalized --RequestCancellation--> PartiallyCancelled
    any --StartNewOrder--> Empty

Finalized items are frozen: they cannot be re-added, removed or have their
quantity changed until a new order is started. Cancellation only marks an
item, it never removes it, and a cancelled id never becomes uncancelled.
"""
from enum import Enum
from typing import Literal, Tuple, Union

from pydantic import BaseModel, ConfigDict

from ..data.models import CartItem, Product


class CartStatus(str, Enum):
    empty = "Empty"
    building = "Building"
    finalized = "Finalized"
    partially_cancelled = "PartiallyCancelled"


class CartState(BaseModel):
    model_config = ConfigDict(frozen=True)

    items: Tuple[CartItem, ...] = ()
    finalized_items: Tuple[str, ...] = ()
    cancelled_items: Tuple[str, ...] = ()
    is_order_completed: bool = False

    # transient UI flags, never persisted
    is_modal_open: bool = False
    show_success_modal: bool = False
    show_cancel_modal: bool = False

    def get_item(self, product_id: str):
        for item in self.items:
            if item.id == product_id:
                return item
        return None

    def is_finalized(self, product_id: str) -> bool:
        return product_id in self.finalized_items

    def is_cancelled(self, product_id: str) -> bool:
        return product_id in self.cancelled_items

    @property
    def total_items(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def total_price(self) -> float:
        return sum(item.line_total for item in self.items)

    @property
    def status(self) -> CartStatus:
        if self.cancelled_items:
            return CartStatus.partially_cancelled
        if self.is_order_completed:
            return CartStatus.finalized
        if self.items:
            return CartStatus.building
        return CartStatus.empty


# --- commands ---

class _Command(BaseModel):
    model_config = ConfigDict(frozen=True)


class AddItem(_Command):
    type: Literal["ADD_ITEM"] = "ADD_ITEM"
    product: Product


class RemoveItem(_Command):
    type: Literal["REMOVE_ITEM"] = "REMOVE_ITEM"
    product_id: str


class UpdateQuantity(_Command):
    type: Literal["UPDATE_QUANTITY"] = "UPDATE_QUANTITY"
    product_id: str
    quantity: int


class ClearCart(_Command):
    type: Literal["CLEAR_CART"] = "CLEAR_CART"


class FinalizeOrder(_Command):
    type: Literal["FINALIZE_ORDER"] = "FINALIZE_ORDER"


class RequestCancellation(_Command):
    type: Literal["REQUEST_CANCELLATION"] = "REQUEST_CANCELLATION"
    product_id: str


class StartNewOrder(_Command):
    type: Literal["START_NEW_ORDER"] = "START_NEW_ORDER"


class LoadState(_Command):
    """Replace the persisted part of the state with a restored snapshot."""
    type: Literal["LOAD_CART_STATE"] = "LOAD_CART_STATE"
    items: Tuple[CartItem, ...] = ()
    finalized_items: Tuple[str, ...] = ()
    cancelled_items: Tuple[str, ...] = ()
    is_order_completed: bool = False


class OpenModal(_Command):
    type: Literal["OPEN_MODAL"] = "OPEN_MODAL"


class CloseModal(_Command):
    type: Literal["CLOSE_MODAL"] = "CLOSE_MODAL"


class HideSuccessModal(_Command):
    type: Literal["HIDE_SUCCESS_MODAL"] = "HIDE_SUCCESS_MODAL"


class HideCancelModal(_Command):
    type: Literal["HIDE_CANCEL_MODAL"] = "HIDE_CANCEL_MODAL"


CartCommand = Union[
    AddItem, RemoveItem, UpdateQuantity, ClearCart, FinalizeOrder,
    RequestCancellation, StartNewOrder, LoadState,
    OpenModal, CloseModal, HideSuccessModal, HideCancelModal,
]

# commands whose result must be written to storage
PERSISTED_COMMANDS = (AddItem, RemoveItem, UpdateQuantity, ClearCart, FinalizeOrder, RequestCancellation)


def _without(ids: Tuple[str, ...], product_id: str) -> Tuple[str, ...]:
    return tuple(i for i in ids if i != product_id)


def _remove(state: CartState, product_id: str) -> CartState:
    return state.model_copy(update={
        "items": tuple(item for item in state.items if item.id != product_id),
        "cancelled_items": _without(state.cancelled_items, product_id),
    })


def reduce(state: CartState, command: CartCommand) -> CartState:
    """Apply one command and return the next state. Never mutates ``state``."""
    if isinstance(command, AddItem):
        product = command.product
        if state.is_finalized(product.id):
            return state
        if state.get_item(product.id) is not None:
            items = tuple(
                item.with_quantity(item.quantity + 1) if item.id == product.id else item
                for item in state.items
            )
        else:
            items = state.items + (CartItem.from_product(product),)
        return state.model_copy(update={"items": items})

    if isinstance(command, RemoveItem):
        if state.is_finalized(command.product_id):
            return state
        return _remove(state, command.product_id)

    if isinstance(command, UpdateQuantity):
        if state.is_finalized(command.product_id):
            return state
        if command.quantity <= 0:
            return _remove(state, command.product_id)
        items = tuple(
            item.with_quantity(command.quantity) if item.id == command.product_id else item
            for item in state.items
        )
        return state.model_copy(update={"items": items})

    if isinstance(command, ClearCart):
        keep = set(state.finalized_items) | set(state.cancelled_items)
        return state.model_copy(update={
            "items": tuple(item for item in state.items if item.id in keep),
        })

    if isinstance(command, FinalizeOrder):
        return state.model_copy(update={
            "finalized_items": tuple(item.id for item in state.items),
            "is_order_completed": True,
            "show_success_modal": True,
        })

    if isinstance(command, RequestCancellation):
        # cancelled ids are always a subset of finalized ids
        if not state.is_finalized(command.product_id):
            return state
        cancelled = state.cancelled_items
        if command.product_id not in cancelled:
            cancelled = cancelled + (command.product_id,)
        return state.model_copy(update={
            "cancelled_items": cancelled,
            "show_cancel_modal": True,
        })

    if isinstance(command, StartNewOrder):
        return state.model_copy(update={
            "items": (),
            "finalized_items": (),
            "cancelled_items": (),
            "is_order_completed": False,
        })

    if isinstance(command, LoadState):
        return state.model_copy(update={
            "items": command.items,
            "finalized_items": command.finalized_items,
            "cancelled_items": command.cancelled_items,
            "is_order_completed": command.is_order_completed,
        })

    if isinstance(command, OpenModal):
        return state.model_copy(update={"is_modal_open": True})
    if isinstance(command, CloseModal):
        return state.model_copy(update={"is_modal_open": False})
    if isinstance(command, HideSuccessModal):
        return state.model_copy(update={"show_success_modal": False})
    if isinstance(command, HideCancelModal):
        return state.model_copy(update={"show_cancel_modal": False})

    return state
