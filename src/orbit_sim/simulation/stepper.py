"""
Background stepping of a SimulationRun.

A worker thread steps the run in batches. Each batch holds the run's lock
until a terminal condition is hit or the wall-clock budget for one update
elapses, then releases it and publishes one message on a StepChannel:

- StepOutcome(done=False, "Sim running... t = X days", latest)   progress
- StepOutcome(done=True, "Reached max time: ...", latest)         terminal
- StepOutcome(done=True, "Satellite deorbited at ...", latest)    terminal
- a SimulationError instance                                      terminal

The worker closes its side of the channel after a terminal message, and
exits quietly if the receiver has closed the channel.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional, Union

from orbit_sim.core.constants import UI_UPDATE_PERIOD_MS
from orbit_sim.core.errors import ChannelClosedError, ConcurrencyError, SimulationError
from orbit_sim.simulation.run import SimulationRun, SimulationStateAtStep

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StepOutcome:
    done: bool
    status_line: str
    latest_telemetry: Optional[SimulationStateAtStep] = None


StepMessage = Union[StepOutcome, SimulationError]


class SharedRun:
    """
    Mutually exclusive handle on a SimulationRun.

    If an exception escapes while the run is held, the handle is poisoned:
    the run may be half-updated, so every later lock() raises
    ConcurrencyError instead of handing it out.
    """

    def __init__(self, run: SimulationRun):
        self._run = run
        self._lock = threading.Lock()
        self._poisoned = False

    @property
    def poisoned(self) -> bool:
        return self._poisoned

    @contextmanager
    def lock(self) -> Iterator[SimulationRun]:
        with self._lock:
            if self._poisoned:
                raise ConcurrencyError("Poisoned run lock")
            try:
                yield self._run
            except Exception:
                self._poisoned = True
                raise


_CLOSED = object()


class StepChannel:
    """
    One-way, totally ordered channel from the stepper to its observer.

    The receiver may close() at any time; the sender's next send() then
    raises ChannelClosedError. Once the sender has closed its side and the
    queue is drained, recv() raises ChannelClosedError.
    """

    def __init__(self):
        self._queue: "queue.Queue[object]" = queue.Queue()
        self._receiver_closed = threading.Event()
        self._sender_closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._receiver_closed.is_set()

    def send(self, message: StepMessage) -> None:
        if self._receiver_closed.is_set():
            raise ChannelClosedError("Step channel receiver is closed")
        if self._sender_closed.is_set():
            raise ChannelClosedError("Step channel sender is closed")
        self._queue.put(message)

    def close_sender(self) -> None:
        if not self._sender_closed.is_set():
            self._sender_closed.set()
            self._queue.put(_CLOSED)

    def close(self) -> None:
        """Receiver side: stop accepting messages."""
        self._receiver_closed.set()

    def recv(self, timeout: Optional[float] = None) -> StepMessage:
        """
        Next message, blocking up to `timeout` seconds.
        Raises queue.Empty on timeout.
        """
        item = self._queue.get(timeout=timeout)
        if item is _CLOSED:
            # Leave the marker for any later recv()
            self._queue.put(_CLOSED)
            raise ChannelClosedError("Step channel sender is closed")
        return item  # type: ignore[return-value]

    def __iter__(self) -> Iterator[StepMessage]:
        while True:
            try:
                yield self.recv()
            except ChannelClosedError:
                return


def _status_days(hours: float) -> str:
    return f"{hours / 24.0:.2f}"


def _run_batch(run: SimulationRun, started: float, period_s: float) -> StepMessage:
    settings = run.initial.simulation_settings
    max_hours = settings.max_days * 24.0
    step_h = settings.step_interval_hours

    while True:
        if run.hours_since_epoch() >= max_hours:
            return StepOutcome(
                done=True,
                status_line=f"Reached max time: {max_hours:.2f} hours ({_status_days(max_hours)} days).",
                latest_telemetry=run.latest_telemetry,
            )

        try:
            telemetry = run.step()
        except SimulationError as e:
            logger.info("Run stopped at %.2f hours: %s", run.hours_since_epoch(), e)
            return e

        if telemetry.is_deorbited:
            # The clock already moved on; report the tick the record belongs to
            deorbit_h = max(0.0, telemetry.hours_since_epoch - step_h)
            return StepOutcome(
                done=True,
                status_line=f"Satellite deorbited at {deorbit_h:.2f} hours ({_status_days(deorbit_h)} days).",
                latest_telemetry=run.latest_telemetry,
            )

        if time.monotonic() - started >= period_s:
            return StepOutcome(
                done=False,
                status_line=f"Sim running... t = {_status_days(telemetry.hours_since_epoch)} days",
                latest_telemetry=run.latest_telemetry,
            )


def _stepper_loop(run_handle: SharedRun, channel: StepChannel, update_period_ms: int) -> None:
    period_s = update_period_ms / 1000.0

    while True:
        started = time.monotonic()
        try:
            with run_handle.lock() as run:
                message = _run_batch(run, started, period_s)
        except ConcurrencyError as e:
            message = e
        except Exception:
            logger.exception("Unexpected error while stepping; run handle poisoned")
            continue

        done = isinstance(message, SimulationError) or message.done
        try:
            channel.send(message)
        except ChannelClosedError:
            logger.debug("Step channel closed by receiver; stepper exiting")
            return

        if done:
            if isinstance(message, StepOutcome):
                logger.info(message.status_line)
            channel.close_sender()
            return
        logger.debug("Published batch: %s", message.status_line)


def spawn_stepper_loop(
    run_handle: SharedRun,
    channel: StepChannel,
    update_period_ms: int = UI_UPDATE_PERIOD_MS,
) -> threading.Thread:
    """Start the stepping worker as a daemon thread and return it."""
    worker = threading.Thread(
        target=_stepper_loop,
        args=(run_handle, channel, update_period_ms),
        name="orbit-sim-stepper",
        daemon=True,
    )
    worker.start()
    return worker
