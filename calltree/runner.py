"""
Call tree monitor runner with two operation modes:

1. LIVE: synthetic calls stream into the store while the TUI renders them
2. HEADLESS: the same calls are logged line by line, no TUI

Usage:
    python -m calltree.runner --mode live
    python -m calltree.runner --mode headless --calls 5
"""
from __future__ import annotations

import argparse
import random
import threading
import time
import uuid
from typing import Optional

from .config import MonitorConfig, load_monitor_config
from .errors import ConfigError, ContractViolation
from .observer import FunctionCallObserver, LoggingObserver
from .store import CallTreeStore
from .types import CallError, Exit, Poll, RunRequest, RunResponse, Status, TailCall
from .utils import apply_log_level, setup_logger

logger = setup_logger("calltree.runner")

_FUNCTIONS = ["fetch_page", "parse_links", "store_result", "resize_image", "send_email", "charge_card"]
_RETRYABLE = [Status.TIMEOUT, Status.THROTTLED, Status.TEMPORARY_ERROR]


class CallSimulator:
    """Plays the forwarding layer: feeds nested calls with retries into an observer."""

    def __init__(
        self,
        observer: FunctionCallObserver,
        *,
        seed: Optional[int] = None,
        delay: float = 0.3,
        stopped: Optional[threading.Event] = None,
    ) -> None:
        self.observer = observer
        self.rng = random.Random(seed)
        self.delay = delay
        self.stopped = stopped or threading.Event()

    def _sleep(self) -> bool:
        if self.delay > 0:
            self.stopped.wait(self.rng.uniform(0, self.delay))
        return not self.stopped.is_set()

    def _new_id(self) -> str:
        return uuid.uuid4().hex[:12]

    def run_call(self, request: RunRequest, depth: int = 0) -> None:
        """Attempt ``request`` until it reaches a terminal outcome."""
        while self._sleep():
            try:
                self.observer.observe_request(request)
            except ContractViolation as exc:
                logger.error("dropping call %s: %s", request.dispatch_id, exc)
                return
            if not self._sleep():
                return

            roll = self.rng.random()
            if depth < 2 and roll < 0.25:
                children = [
                    RunRequest(
                        dispatch_id=self._new_id(),
                        function=self.rng.choice(_FUNCTIONS),
                        root_dispatch_id=request.root_dispatch_id,
                        parent_dispatch_id=request.dispatch_id,
                        creation_time=time.time(),
                    )
                    for _ in range(self.rng.randint(1, 3))
                ]
                self.observer.observe_response(request, response=RunResponse(status=Status.OK, directive=Poll()))
                for child in children:
                    self.run_call(child, depth + 1)
                continue
            if roll < 0.45:
                status = self.rng.choice(_RETRYABLE)
                self.observer.observe_response(request, response=RunResponse(status=status, directive=Exit()))
                continue
            if roll < 0.5:
                self.observer.observe_response(request, http_status=self.rng.choice([429, 503]))
                continue
            if roll < 0.55:
                self.observer.observe_response(
                    request,
                    response=RunResponse(
                        status=Status.PERMANENT_ERROR,
                        directive=Exit(error=CallError(type="ValueError", message="bad input")),
                    ),
                )
                return
            if roll < 0.6 and depth == 0:
                request.function = self.rng.choice(_FUNCTIONS)
                self.observer.observe_response(
                    request,
                    response=RunResponse(status=Status.OK, directive=Exit(tail_call=TailCall(request.function))),
                )
                continue
            self.observer.observe_response(request, response=RunResponse(status=Status.OK, directive=Exit()))
            return

    def run(self, calls: int) -> None:
        for _ in range(calls):
            if self.stopped.is_set():
                break
            root_id = self._new_id()
            request = RunRequest(
                dispatch_id=root_id,
                function=self.rng.choice(_FUNCTIONS),
                root_dispatch_id=root_id,
                creation_time=time.time(),
                expiration_time=time.time() + 60.0,
            )
            self.run_call(request)
        logger.info("simulated %d root calls", calls)


def run_live(config: MonitorConfig, calls: int, seed: Optional[int] = None) -> None:
    from .tui.app import CallTreeMonitor

    apply_log_level("calltree", config.log_level)
    store = CallTreeStore()
    stopped = threading.Event()
    simulator = CallSimulator(store, seed=seed, stopped=stopped)
    producer = threading.Thread(target=simulator.run, args=(calls,), daemon=True)
    producer.start()

    app = CallTreeMonitor(store, config)
    try:
        app.run()
    except KeyboardInterrupt:
        pass
    finally:
        app.restore_logging()
        stopped.set()
        producer.join(timeout=2.0)


def run_headless(config: MonitorConfig, calls: int, seed: Optional[int] = None) -> None:
    observer = LoggingObserver()
    apply_log_level("calltree", config.log_level)
    CallSimulator(observer, seed=seed, delay=0.05).run(calls)


def main(argv: Optional[list] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Live monitor for dispatched function calls",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--mode", choices=["live", "headless"], default="live")
    parser.add_argument("--config", default=None, help="JSON file with monitor settings")
    parser.add_argument("--calls", type=int, default=10, help="Number of root calls to simulate")
    parser.add_argument("--seed", type=int, default=None)
    args = parser.parse_args(argv)

    try:
        config = load_monitor_config(args.config)
    except ConfigError as exc:
        parser.error(str(exc))

    if args.mode == "headless":
        run_headless(config, args.calls, args.seed)
    else:
        run_live(config, args.calls, args.seed)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
