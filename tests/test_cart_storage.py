#!/usr/bin/env python3
"""
Cart persistence and cart service tests.

USAGE:
    Run from project root: python -m pytest tests/test_cart_storage.py -v
"""

import json
import threading
import unittest

from gelaboca.app.session import InMemoryStore
from gelaboca.order.cart import (
    AddItem, CartState, FinalizeOrder, OpenModal, RequestCancellation, StartNewOrder, reduce,
)
from gelaboca.order.service import CartService
from gelaboca.order.storage import (
    CANCELLED_KEY, CART_KEY, FINALIZED_KEY, ORDER_COMPLETED_KEY, CartStorage,
)
from helpers import make_product


class BrokenStore(InMemoryStore):
    """Store whose every operation fails, like an unreachable Redis."""

    def get(self, key):
        raise ConnectionError("store down")

    def set(self, key, value):
        raise ConnectionError("store down")

    def delete(self, key):
        raise ConnectionError("store down")


class FlakyStore(InMemoryStore):
    """Store that rejects writes while ``down`` is set; reads keep working."""

    def __init__(self):
        super().__init__()
        self.down = False

    def set(self, key, value):
        if self.down:
            raise ConnectionError("store down")
        super().set(key, value)


class SlowStore(InMemoryStore):
    """Writes for the ``slow`` session block until ``release`` is set."""

    def __init__(self):
        super().__init__()
        self.writing = threading.Event()
        self.release = threading.Event()

    def set(self, key, value):
        if key.startswith("cart:slow:"):
            self.writing.set()
            self.release.wait(2)
        super().set(key, value)


class TestCartStorage(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryStore()
        self.storage = CartStorage(self.store)
        self.choc = make_product("p1", "Sorvete de Chocolate", price=8.90)
        self.straw = make_product("p2", "Sorvete de Morango", price=10.00)

    def _key(self, name):
        return f"cart:s1:{name}"

    def test_absent_keys_restore_empty(self):
        loaded = self.storage.load("s1")
        self.assertEqual(loaded.items, ())
        self.assertEqual(loaded.finalized_items, ())
        self.assertEqual(loaded.cancelled_items, ())
        self.assertFalse(loaded.is_order_completed)

    def test_save_writes_four_entries(self):
        state = CartState()
        for command in (AddItem(product=self.choc), AddItem(product=self.choc),
                        AddItem(product=self.straw), FinalizeOrder(),
                        RequestCancellation(product_id="p2")):
            state = reduce(state, command)

        self.assertTrue(self.storage.save("s1", state))

        items = json.loads(self.store.get(self._key(CART_KEY)))
        self.assertEqual([(i["id"], i["quantidade"]) for i in items], [("p1", 2), ("p2", 1)])
        self.assertEqual(items[0]["nome"], "Sorvete de Chocolate")
        self.assertEqual(json.loads(self.store.get(self._key(FINALIZED_KEY))), ["p1", "p2"])
        self.assertEqual(json.loads(self.store.get(self._key(CANCELLED_KEY))), ["p2"])
        self.assertTrue(json.loads(self.store.get(self._key(ORDER_COMPLETED_KEY))))

    def test_save_then_load_restores_persisted_fields(self):
        state = CartState()
        for command in (AddItem(product=self.choc), AddItem(product=self.straw), FinalizeOrder(),
                        RequestCancellation(product_id="p1"), OpenModal()):
            state = reduce(state, command)
        self.storage.save("s1", state)

        restored = reduce(CartState(), self.storage.load("s1"))
        self.assertEqual(restored.items, state.items)
        self.assertEqual(restored.finalized_items, state.finalized_items)
        self.assertEqual(restored.cancelled_items, state.cancelled_items)
        self.assertTrue(restored.is_order_completed)
        # modal flags are not persisted
        self.assertFalse(restored.is_modal_open)
        self.assertFalse(restored.show_success_modal)
        self.assertFalse(restored.show_cancel_modal)

    def test_malformed_entry_restores_empty(self):
        self.store.set(self._key(CART_KEY), "{not json")
        loaded = self.storage.load("s1")
        self.assertEqual(loaded.items, ())
        self.assertFalse(loaded.is_order_completed)

    def test_invalid_item_restores_empty(self):
        self.store.set(self._key(CART_KEY), json.dumps([{"nome": "sem id"}]))
        self.assertEqual(self.storage.load("s1").items, ())

    def test_erase_removes_every_key(self):
        state = reduce(reduce(CartState(), AddItem(product=self.choc)), FinalizeOrder())
        self.storage.save("s1", state)
        self.assertTrue(self.storage.erase("s1"))
        for name in (CART_KEY, FINALIZED_KEY, CANCELLED_KEY, ORDER_COMPLETED_KEY):
            self.assertIsNone(self.store.get(self._key(name)))

    def test_sessions_are_isolated(self):
        self.storage.save("s1", reduce(CartState(), AddItem(product=self.choc)))
        self.assertEqual(self.storage.load("s2").items, ())

    def test_failing_store_is_logged_not_raised(self):
        storage = CartStorage(BrokenStore())
        state = reduce(CartState(), AddItem(product=self.choc))
        with self.assertLogs("gelaboca", level="ERROR"):
            self.assertFalse(storage.save("s1", state))
        with self.assertLogs("gelaboca", level="ERROR"):
            self.assertIsNone(storage.load("s1"))
        with self.assertLogs("gelaboca", level="ERROR"):
            self.assertFalse(storage.erase("s1"))


class TestCartService(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryStore()
        self.service = CartService(CartStorage(self.store))
        self.choc = make_product("p1", "Sorvete de Chocolate", price=8.90)

    def test_dispatch_persists_and_new_service_restores(self):
        self.service.dispatch("s1", AddItem(product=self.choc))
        self.service.dispatch("s1", AddItem(product=self.choc))
        self.service.dispatch("s1", FinalizeOrder())

        restarted = CartService(CartStorage(self.store))
        state = restarted.get("s1")
        self.assertEqual(state.items[0].quantity, 2)
        self.assertEqual(state.finalized_items, ("p1",))
        self.assertTrue(state.is_order_completed)

    def test_modal_commands_are_not_written(self):
        self.service.dispatch("s1", OpenModal())
        self.assertIsNone(self.store.get("cart:s1:gelaboca-cart"))
        self.assertTrue(self.service.get("s1").is_modal_open)

    def test_start_new_order_erases_storage(self):
        self.service.dispatch("s1", AddItem(product=self.choc))
        self.service.dispatch("s1", FinalizeOrder())
        state = self.service.dispatch("s1", StartNewOrder())

        self.assertEqual(state.items, ())
        self.assertIsNone(self.store.get("cart:s1:gelaboca-finalized"))
        self.assertEqual(CartService(CartStorage(self.store)).get("s1").items, ())

    def test_failed_write_keeps_memory_state(self):
        service = CartService(CartStorage(BrokenStore()))
        with self.assertLogs("gelaboca", level="ERROR"):
            state = service.dispatch("s1", AddItem(product=self.choc))
        self.assertEqual(state.items[0].id, "p1")
        self.assertEqual(service.get("s1").items[0].id, "p1")

    def test_services_sharing_a_store_see_each_other(self):
        other = CartService(CartStorage(self.store))
        self.service.dispatch("s1", AddItem(product=self.choc))
        self.assertEqual(other.get("s1").items[0].quantity, 1)

        other.dispatch("s1", AddItem(product=self.choc))
        self.assertEqual(self.service.get("s1").items[0].quantity, 2)

        other.dispatch("s1", StartNewOrder())
        self.assertEqual(self.service.get("s1").items, ())

    def test_modal_flags_survive_reload(self):
        self.service.dispatch("s1", AddItem(product=self.choc))
        self.service.dispatch("s1", OpenModal())
        state = self.service.dispatch("s1", AddItem(product=self.choc))
        self.assertTrue(state.is_modal_open)
        self.assertEqual(state.items[0].quantity, 2)

    def test_cache_is_bounded(self):
        service = CartService(CartStorage(self.store), max_sessions=2)
        for session_id in ("a", "b", "c", "d"):
            service.dispatch(session_id, OpenModal())
        self.assertEqual(len(service._cache), 2)
        self.assertEqual(list(service._cache), ["c", "d"])
        self.assertEqual(len(service.locks), 0)

    def test_memory_wins_until_write_recovers(self):
        store = FlakyStore()
        service = CartService(CartStorage(store))
        service.dispatch("s1", AddItem(product=self.choc))

        store.down = True
        with self.assertLogs("gelaboca", level="ERROR"):
            service.dispatch("s1", AddItem(product=self.choc))
        # the store still holds quantity 1, this process knows better
        self.assertEqual(service.get("s1").items[0].quantity, 2)

        store.down = False
        service.dispatch("s1", AddItem(product=self.choc))
        restored = CartService(CartStorage(store)).get("s1")
        self.assertEqual(restored.items[0].quantity, 3)

    def test_slow_write_does_not_block_other_sessions(self):
        store = SlowStore()
        service = CartService(CartStorage(store))
        slow = threading.Thread(target=service.dispatch, args=("slow", AddItem(product=self.choc)))
        slow.start()
        try:
            self.assertTrue(store.writing.wait(1))
            fast = threading.Thread(target=service.dispatch, args=("fast", AddItem(product=self.choc)))
            fast.start()
            fast.join(1)
            self.assertFalse(fast.is_alive())
            self.assertEqual(service.get("fast").items[0].id, "p1")
        finally:
            store.release.set()
            slow.join()
        self.assertEqual(service.get("slow").items[0].id, "p1")


if __name__ == '__main__':
    unittest.main()
