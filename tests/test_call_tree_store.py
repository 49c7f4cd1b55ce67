import logging
import threading
import unittest

from calltree.errors import ContractViolation, UnknownParentError
from calltree.store import CallTreeStore, LogBufferHandler
from calltree.types import CallError, Exit, Poll, RunResponse, Status, TailCall
from calltree.utils import redirect_loggers, restore_loggers

from helpers import FakeClock, request


def exit_response(status, **kwargs):
    return RunResponse(status=status, directive=Exit(**kwargs))


class StoreTestCase(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock(1000.0)
        self.store = CallTreeStore(clock=self.clock)

    def node(self, dispatch_id):
        return self.store.snapshot().nodes[dispatch_id]


class TestObserveRequest(StoreTestCase):
    def _observe_chain(self):
        self.store.observe_request(request("A", "root_fn"))
        self.store.observe_request(request("a", "fa", root="A", parent="A"))
        self.store.observe_request(request("b", "fb", root="A", parent="a"))
        self.store.observe_request(request("c", "fc", root="A", parent="b"))

    def test_chain_registers_root_once(self):
        for _ in range(3):
            self._observe_chain()
        snapshot = self.store.snapshot()
        self.assertEqual(snapshot.roots, ("A",))
        self.assertEqual(snapshot.nodes["A"].children, ["a"])
        self.assertEqual(snapshot.nodes["a"].children, ["b"])
        self.assertEqual(snapshot.nodes["b"].children, ["c"])
        self.assertEqual(snapshot.nodes["c"].children, [])

    def test_request_sets_fields(self):
        self.store.observe_request(request("A", "f", creation=900.0, expiration=960.0))
        node = self.node("A")
        self.assertEqual(node.function, "f")
        self.assertTrue(node.running)
        self.assertEqual(node.creation_time, 900.0)
        self.assertEqual(node.expiration_time, 960.0)

    def test_creation_time_defaults_to_now(self):
        self.store.observe_request(request("A"))
        self.assertEqual(self.node("A").creation_time, 1000.0)
        self.clock.advance(5)
        self.store.observe_request(request("A"))
        self.assertEqual(self.node("A").creation_time, 1000.0)

    def test_children_are_not_duplicated_or_reordered(self):
        self.store.observe_request(request("R"))
        for child in ("x", "y", "z"):
            self.store.observe_request(request(child, root="R", parent="R"))
        self.store.observe_request(request("y", root="R", parent="R"))
        self.store.observe_request(request("x", root="R", parent="R"))
        self.assertEqual(self.node("R").children, ["x", "y", "z"])

    def test_missing_root_parent_gets_placeholder(self):
        self.store.observe_request(request("x", "child", root="R", parent="R"))
        snapshot = self.store.snapshot()
        self.assertEqual(snapshot.roots, ("R",))
        self.assertEqual(snapshot.nodes["R"].function, "")
        self.assertEqual(snapshot.nodes["R"].children, ["x"])

    def test_unknown_parent_is_a_contract_violation(self):
        with self.assertRaises(UnknownParentError) as ctx:
            self.store.observe_request(request("x", root="R", parent="ghost"))
        self.assertIsInstance(ctx.exception, ContractViolation)
        self.assertEqual(ctx.exception.parent_id, "ghost")
        snapshot = self.store.snapshot()
        self.assertEqual(snapshot.roots, ())
        self.assertEqual(snapshot.nodes, {})

    def test_independent_roots_keep_registration_order(self):
        for root in ("B", "A", "C", "A"):
            self.store.observe_request(request(root))
        self.assertEqual(self.store.snapshot().roots, ("B", "A", "C"))


class TestObserveResponse(StoreTestCase):
    def test_success_exit_is_done(self):
        req = request("A")
        self.store.observe_request(req)
        self.clock.advance(2)
        self.store.observe_response(req, response=exit_response(Status.OK))
        node = self.node("A")
        self.assertTrue(node.done)
        self.assertFalse(node.running)
        self.assertEqual(node.responses, 1)
        self.assertEqual(node.failures, 0)
        self.assertEqual(node.status, Status.OK)
        self.assertEqual(node.done_time, 1002.0)

    def test_retryable_exit_is_not_done(self):
        req = request("A")
        self.store.observe_request(req)
        self.store.observe_response(req, response=exit_response(Status.TIMEOUT))
        node = self.node("A")
        self.assertFalse(node.done)
        self.assertEqual(node.failures, 1)
        self.assertEqual(node.status, Status.TIMEOUT)
        self.assertIsNone(node.done_time)

    def test_poll_leaves_call_open(self):
        req = request("A")
        self.store.observe_request(req)
        self.store.observe_response(req, response=RunResponse(status=Status.OK, directive=Poll()))
        node = self.node("A")
        self.assertFalse(node.done)
        self.assertEqual(node.responses, 1)
        self.assertEqual(node.status, Status.UNSPECIFIED)

    def test_incompatible_state_resets_node(self):
        req = request("A", "f")
        self.store.observe_request(req)
        self.store.observe_request(request("child", root="A", parent="A"))
        self.store.observe_response(req, response=exit_response(Status.TEMPORARY_ERROR))
        self.store.observe_request(req)
        self.store.observe_response(req, response=exit_response(Status.INCOMPATIBLE_STATE))
        node = self.node("A")
        self.assertEqual(node.function, "f")
        self.assertEqual(node.failures, 0)
        self.assertEqual(node.responses, 0)
        self.assertEqual(node.children, [])
        self.assertIsNone(node.creation_time)
        self.assertFalse(node.done)

    def test_tail_call_replaces_node(self):
        req = request("A", "f")
        self.store.observe_request(req)
        self.store.observe_response(req, response=exit_response(Status.TIMEOUT))
        self.store.observe_request(req)
        self.store.observe_response(req, response=exit_response(Status.OK, tail_call=TailCall("g")))
        node = self.node("A")
        self.assertEqual(node.function, "g")
        self.assertFalse(node.done)
        self.assertEqual(node.failures, 0)
        self.assertEqual(node.responses, 0)
        self.assertIsNone(node.done_time)

    def test_application_error_is_formatted(self):
        req = request("A")
        self.store.observe_request(req)
        self.store.observe_response(
            req,
            response=exit_response(Status.PERMANENT_ERROR, error=CallError("ValueError", "bad input")),
        )
        node = self.node("A")
        self.assertEqual(node.error, "ValueError: bad input")
        self.assertTrue(node.done)
        self.assertEqual(node.failures, 1)

        self.store.observe_response(
            req, response=exit_response(Status.PERMANENT_ERROR, error=CallError("KeyError"))
        )
        self.assertEqual(self.node("A").error, "KeyError")

    def test_error_without_type_is_ignored(self):
        req = request("A")
        self.store.observe_request(req)
        self.store.observe_response(
            req, response=exit_response(Status.PERMANENT_ERROR, error=CallError("", "oops"))
        )
        self.assertIsNone(self.node("A").error)

    def test_http_failure(self):
        req = request("A")
        self.store.observe_request(req)
        self.store.observe_response(req, http_status=503)
        node = self.node("A")
        self.assertEqual(node.failures, 1)
        self.assertEqual(node.error, "unexpected HTTP status code 503")
        self.assertFalse(node.done)

        self.store.observe_request(req)
        self.store.observe_response(req, http_status=404)
        node = self.node("A")
        self.assertEqual(node.failures, 2)
        self.assertTrue(node.done)
        self.assertEqual(node.done_time, 1000.0)

    def test_bare_error_keeps_done_flag(self):
        req = request("A")
        self.store.observe_request(req)
        self.store.observe_response(req, error=ConnectionRefusedError("connection refused"))
        node = self.node("A")
        self.assertEqual(node.failures, 1)
        self.assertEqual(node.error, "connection refused")
        self.assertFalse(node.done)

    def test_new_response_clears_previous_error(self):
        req = request("A")
        self.store.observe_request(req)
        self.store.observe_response(req, http_status=503)
        self.store.observe_request(req)
        self.store.observe_response(req, response=exit_response(Status.OK))
        node = self.node("A")
        self.assertIsNone(node.error)
        self.assertEqual(node.status, Status.OK)

    def test_done_time_is_set_once(self):
        req = request("A")
        self.store.observe_request(req)
        self.store.observe_response(req, response=exit_response(Status.OK))
        self.clock.advance(10)
        self.store.observe_response(req, response=exit_response(Status.OK))
        node = self.node("A")
        self.assertTrue(node.done)
        self.assertEqual(node.done_time, 1000.0)

    def test_response_for_unknown_call_is_tolerated(self):
        with self.assertLogs("calltree.store", level="WARNING"):
            self.store.observe_response(request("ghost"), response=exit_response(Status.OK))
        node = self.node("ghost")
        self.assertEqual(node.function, "")
        self.assertEqual(node.responses, 1)
        self.assertEqual(self.store.snapshot().roots, ())


class TestSnapshot(StoreTestCase):
    def test_snapshot_is_a_copy(self):
        self.store.observe_request(request("A"))
        snapshot = self.store.snapshot()
        snapshot.nodes["A"].failures = 99
        snapshot.nodes["A"].children.append("zzz")
        node = self.node("A")
        self.assertEqual(node.failures, 0)
        self.assertEqual(node.children, [])

    def test_empty_snapshot_is_falsy(self):
        self.assertFalse(self.store.snapshot())
        self.assertFalse(self.store.has_calls())
        self.store.observe_request(request("A"))
        self.assertTrue(self.store.snapshot())
        self.assertTrue(self.store.has_calls())


class TestLogBuffer(StoreTestCase):
    def test_write_and_drain(self):
        self.assertEqual(self.store.write(b"hello "), 6)
        self.store.write(b"world\n")
        self.assertEqual(self.store.log_text(), "hello world\n")
        self.assertEqual(self.store.read(5), b"hello")
        self.assertEqual(self.store.read(), b" world\n")
        self.assertEqual(self.store.read(), b"")
        self.assertEqual(self.store.log_text(), "")

    def test_log_handler_writes_records(self):
        logger = logging.getLogger("calltree.test.buffer")
        logger.propagate = False
        handler = LogBufferHandler(self.store)
        handler.setFormatter(logging.Formatter("%(levelname)s %(message)s"))
        logger.addHandler(handler)
        try:
            logger.warning("disk %s", "full")
        finally:
            logger.removeHandler(handler)
        self.assertEqual(self.store.log_text(), "WARNING disk full\n")

    def _run_redirected(self, target):
        saved = redirect_loggers("calltree", LogBufferHandler(self.store))
        try:
            worker = threading.Thread(target=target, daemon=True)
            worker.start()
            worker.join(timeout=2)
        finally:
            restore_loggers(saved)
        self.assertFalse(worker.is_alive())

    def test_unobserved_response_logs_into_own_buffer(self):
        self._run_redirected(
            lambda: self.store.observe_response(request("ghost"), response=exit_response(Status.OK))
        )
        self.assertIn("response for unobserved call ghost", self.store.log_text())
        self.assertEqual(self.node("ghost").responses, 1)

    def test_new_root_debug_logs_into_own_buffer(self):
        store_logger = logging.getLogger("calltree.store")
        old_level = store_logger.level
        store_logger.setLevel(logging.DEBUG)
        try:
            self._run_redirected(lambda: self.store.observe_request(request("A")))
        finally:
            store_logger.setLevel(old_level)
        self.assertIn("new call tree rooted at A", self.store.log_text())


if __name__ == "__main__":
    unittest.main()
