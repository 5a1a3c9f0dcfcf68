"""
app/services/execution.py

Execution strategies for workbook aggregation runs.

Two strategies run the same ``run_workbook`` message stream:

    BackgroundExecution  -- a child process owns the input bytes and sends
                            messages back over a one-way pipe
    ForegroundExecution  -- the stream runs on the caller's thread; every
                            progress message hands control back to the caller

Message order is the same on both: zero or more ``ProgressMessage`` then
exactly one ``ResultMessage`` or ``ErrorMessage``.

There is no cancellation. ``AggregationRun.close()`` only severs the channel;
a background process keeps running until it finishes on its own.
"""

from __future__ import annotations

import logging
import multiprocessing
from abc import ABC, abstractmethod
from multiprocessing.connection import Connection
from typing import Generator, Iterator

from app.domain.invoice_aggregate import (
    ErrorMessage,
    ProgressMessage,
    ResultMessage,
    RunMessage,
)
from app.logging_utils import log_event
from app.readers.workbook_reader import read_workbook_rows
from app.services.aggregation_service import iter_aggregation
from app.services.progress import DEFAULT_PROGRESS_STEPS

logger = logging.getLogger(__name__)

EXECUTION_MODES: frozenset[str] = frozenset({"auto", "background", "foreground"})

STRATEGY_BACKGROUND = "background"
STRATEGY_FOREGROUND = "foreground"

ADVISORY_UNAVAILABLE = "Background worker unavailable; the workbook was processed on the calling thread."
ADVISORY_HANDOFF_FAILED = "Background worker could not be started; the workbook was processed on the calling thread."


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class BufferDetachedError(RuntimeError):
    """
    Raised when an input buffer is used after its bytes were transferred.
    """


class HandoffError(RuntimeError):
    """
    Raised when the input could not be handed to a background worker.

    ``buffer`` holds the reclaimed input so the caller can process it itself.
    """

    def __init__(self, message: str, *, buffer: "InputBuffer") -> None:
        super().__init__(message)
        self.buffer = buffer


# ---------------------------------------------------------------------------
# Input buffer
# ---------------------------------------------------------------------------


class InputBuffer:
    """
    Single-owner holder for the raw source bytes.

    ``transfer()`` moves the bytes out; the holder is unusable afterwards.
    """

    def __init__(self, data: bytes) -> None:
        self._data: bytes | None = bytes(data)

    @property
    def detached(self) -> bool:
        return self._data is None

    def __len__(self) -> int:
        return len(self.read())

    def read(self) -> bytes:
        if self._data is None:
            raise BufferDetachedError("Input buffer was transferred and can no longer be read.")
        return self._data

    def transfer(self) -> bytes:
        data = self.read()
        self._data = None
        return data


# ---------------------------------------------------------------------------
# Shared message stream
# ---------------------------------------------------------------------------


def is_terminal(message: RunMessage) -> bool:
    if isinstance(message, ProgressMessage):
        return False
    if isinstance(message, (ResultMessage, ErrorMessage)):
        return True
    raise TypeError(f"Unknown run message: {message!r}")


def run_workbook(
    data: bytes,
    *,
    progress_steps: int = DEFAULT_PROGRESS_STEPS,
) -> Generator[RunMessage, None, None]:
    """
    Decode and aggregate one workbook as a message stream.

    Any fault ends the stream with a single ``ErrorMessage``; no partial
    result is emitted.
    """

    try:
        rows = read_workbook_rows(data)
        for message in iter_aggregation(rows, progress_steps=progress_steps):
            yield message
    except Exception as exc:  # noqa: BLE001
        logger.exception("Workbook aggregation failed")
        yield ErrorMessage(message=str(exc), error_type=type(exc).__name__)


def _background_main(data: bytes, channel: Connection, progress_steps: int) -> None:
    """
    Child-process entry point: stream messages into the pipe.
    """

    try:
        for message in run_workbook(data, progress_steps=progress_steps):
            channel.send(message)
    except (BrokenPipeError, ConnectionResetError):
        # Consumer severed the channel; the remaining output is discarded.
        return
    finally:
        channel.close()


# ---------------------------------------------------------------------------
# Runs
# ---------------------------------------------------------------------------


class AggregationRun(ABC):
    """
    Handle to one in-flight run; iterate it to receive messages.
    """

    strategy: str = ""

    def __init__(self) -> None:
        self.advisory: str | None = None

    @abstractmethod
    def __iter__(self) -> Iterator[RunMessage]:
        raise NotImplementedError

    @abstractmethod
    def close(self) -> None:
        raise NotImplementedError


class ForegroundRun(AggregationRun):
    strategy = STRATEGY_FOREGROUND

    def __init__(self, messages: Generator[RunMessage, None, None]) -> None:
        super().__init__()
        self._messages = messages

    def __iter__(self) -> Iterator[RunMessage]:
        for message in self._messages:
            yield message
            if is_terminal(message):
                return

    def close(self) -> None:
        self._messages.close()


class BackgroundRun(AggregationRun):
    strategy = STRATEGY_BACKGROUND

    def __init__(self, process: multiprocessing.process.BaseProcess, channel: Connection) -> None:
        super().__init__()
        self._process = process
        self._channel = channel

    def __iter__(self) -> Iterator[RunMessage]:
        try:
            while True:
                try:
                    message = self._channel.recv()
                except EOFError:
                    self._process.join()
                    yield ErrorMessage(
                        message=(
                            "Background worker exited without a result "
                            f"(exit code {self._process.exitcode})."
                        ),
                        error_type="WorkerExitError",
                    )
                    return
                yield message
                if is_terminal(message):
                    self._process.join()
                    return
        finally:
            self._channel.close()

    @property
    def process(self) -> multiprocessing.process.BaseProcess:
        return self._process

    def close(self) -> None:
        """
        Sever the channel; the worker exits on its next send.

        A worker that already finished is reaped here, one still running is
        reaped by the next background start.
        """

        self._channel.close()
        self._process.join(timeout=0)


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


class ExecutionStrategy(ABC):
    """
    Starts aggregation runs for an input buffer.
    """

    name: str = ""

    def __init__(self, *, progress_steps: int = DEFAULT_PROGRESS_STEPS) -> None:
        self._progress_steps = max(1, progress_steps)

    @abstractmethod
    def start(self, buffer: InputBuffer) -> AggregationRun:
        raise NotImplementedError


class ForegroundExecution(ExecutionStrategy):
    """
    Runs on the caller's thread, yielding at every progress checkpoint.
    """

    name = STRATEGY_FOREGROUND

    def start(self, buffer: InputBuffer) -> AggregationRun:
        return ForegroundRun(run_workbook(buffer.read(), progress_steps=self._progress_steps))


class BackgroundExecution(ExecutionStrategy):
    """
    Runs in a child process that takes ownership of the input bytes.
    """

    name = STRATEGY_BACKGROUND

    def __init__(
        self,
        *,
        progress_steps: int = DEFAULT_PROGRESS_STEPS,
        start_method: str | None = None,
    ) -> None:
        super().__init__(progress_steps=progress_steps)
        self._start_method = start_method

    def start(self, buffer: InputBuffer) -> AggregationRun:
        try:
            context = multiprocessing.get_context(self._start_method)
            receiver, sender = context.Pipe(duplex=False)
        except (ValueError, OSError) as exc:
            raise HandoffError(str(exc), buffer=buffer) from exc

        reap_finished_workers()
        payload = buffer.transfer()
        process = context.Process(
            target=_background_main,
            args=(payload, sender, self._progress_steps),
            name="workbook-aggregation",
            daemon=True,
        )
        try:
            process.start()
        except (OSError, RuntimeError, ValueError) as exc:
            receiver.close()
            sender.close()
            raise HandoffError(str(exc), buffer=InputBuffer(payload)) from exc

        # The child holds the only send end from here on, so EOF means it exited.
        sender.close()
        return BackgroundRun(process, receiver)


def reap_finished_workers() -> int:
    """
    Join every finished child process; returns how many are still running.
    """

    return len(multiprocessing.active_children())


def background_available() -> bool:
    """
    Whether this host can run child processes with working synchronization.
    """

    try:
        import multiprocessing.synchronize  # noqa: F401, PLC0415
    except ImportError:
        return False
    return True


def select_execution_strategy(
    mode: str,
    *,
    progress_steps: int = DEFAULT_PROGRESS_STEPS,
    start_method: str | None = None,
) -> tuple[ExecutionStrategy, str | None]:
    """
    Pick the strategy for one run; returns it with an optional advisory.
    """

    normalized = mode.strip().lower()
    if normalized not in EXECUTION_MODES:
        raise ValueError(
            f"Execution mode '{mode}' is not valid. Allowed values: {sorted(EXECUTION_MODES)}."
        )

    if normalized == STRATEGY_FOREGROUND:
        return ForegroundExecution(progress_steps=progress_steps), None
    if normalized == STRATEGY_BACKGROUND or background_available():
        return BackgroundExecution(progress_steps=progress_steps, start_method=start_method), None
    return ForegroundExecution(progress_steps=progress_steps), ADVISORY_UNAVAILABLE


def dispatch(
    buffer: InputBuffer,
    *,
    mode: str = "auto",
    progress_steps: int = DEFAULT_PROGRESS_STEPS,
    start_method: str | None = None,
) -> AggregationRun:
    """
    Start one run, falling back to the calling thread if handoff fails.
    """

    strategy, advisory = select_execution_strategy(
        mode,
        progress_steps=progress_steps,
        start_method=start_method,
    )
    try:
        run = strategy.start(buffer)
    except HandoffError as exc:
        log_event(
            logger,
            logging.WARNING,
            "background_handoff_failed",
            error=str(exc),
            fallback=STRATEGY_FOREGROUND,
        )
        run = ForegroundExecution(progress_steps=progress_steps).start(exc.buffer)
        advisory = ADVISORY_HANDOFF_FAILED

    run.advisory = advisory
    log_event(
        logger,
        logging.INFO,
        "aggregation_run_started",
        strategy=run.strategy,
        advisory=advisory,
    )
    return run
