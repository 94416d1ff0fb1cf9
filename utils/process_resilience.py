"""
Process-wide fault supervision.

Handles uncaught exceptions, unhandled task failures, termination signals,
closed output streams and runtime warnings. Unrecoverable faults and signals
lead to a single graceful shutdown that ends in a process exit.
"""
import asyncio
import inspect
import logging
import os
import signal
import sys
import threading
import traceback
import warnings
from dataclasses import asdict, dataclass
from enum import Enum
from pathlib import PurePath
from typing import Any, Callable, Optional

from config import Config
from utils.constants import FaultMarkers
from utils.logger import get_logger

logger = get_logger("process")


class FaultCategory(str, Enum):
    """Categories of process-level faults."""
    NETWORK = "network"
    AI_SERVICE = "ai_service"
    LOGIC = "logic"


@dataclass(frozen=True)
class FaultClassification:
    category: FaultCategory
    recoverable: bool


@dataclass
class FaultMetrics:
    """Monotonic fault counters for the lifetime of the process."""
    uncaught: int = 0
    rejections: int = 0
    warnings: int = 0

    def as_dict(self) -> dict:
        return asdict(self)


def hard_exit(code: int) -> None:
    """Flush log handlers and terminate the process immediately."""
    logging.shutdown()
    os._exit(code)


class ProcessResilienceLayer:
    """
    Supervisor created once at startup and passed to whoever needs it.

    Args:
        cleanup_window: Seconds to wait for in-flight work before cleanup runs
        exit_func: Called with the final exit code
    """

    def __init__(self, cleanup_window: float = Config.SHUTDOWN_CLEANUP_WINDOW,
                 exit_func: Callable[[int], Any] = hard_exit):
        self.metrics = FaultMetrics()
        self._cleanup_window = cleanup_window
        self._exit = exit_func
        self._shutting_down = False
        self._shutdown_task: Optional[asyncio.Task] = None
        self._cleanups: list[Callable[[], Any]] = []
        self._recovery_hooks: list[Callable[[], Any]] = []
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._installed = False
        self._previous_hooks: dict[str, Any] = {}
        self._signals: dict[signal.Signals, tuple[Any, bool]] = {}
        self._stream_closed = False

    @property
    def is_shutting_down(self) -> bool:
        return self._shutting_down

    @property
    def stream_closed(self) -> bool:
        return self._stream_closed

    @property
    def shutdown_task(self) -> Optional[asyncio.Task]:
        return self._shutdown_task

    def add_cleanup(self, callback: Callable[[], Any]) -> None:
        """Register a sync or async callable run during graceful shutdown."""
        self._cleanups.append(callback)

    def add_recovery_hook(self, hook: Callable[[], Any]) -> None:
        """Register a remediation run when a recoverable fault is handled."""
        self._recovery_hooks.append(hook)

    # Registration

    def install(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        if self._installed:
            raise RuntimeError("Process resilience layer is already installed")

        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                loop = None
        self._loop = loop

        self._previous_hooks = {
            "excepthook": sys.excepthook,
            "threading_excepthook": threading.excepthook,
            "showwarning": warnings.showwarning,
        }
        sys.excepthook = self._excepthook
        threading.excepthook = self._threading_excepthook
        warnings.showwarning = self._showwarning

        if loop is not None:
            self._previous_hooks["loop_exception_handler"] = loop.get_exception_handler()
            loop.set_exception_handler(self._loop_exception_handler)

        self._install_signal(signal.SIGTERM, self.handle_signal, "SIGTERM")
        self._install_signal(signal.SIGINT, self.handle_signal, "SIGINT")
        if hasattr(signal, "SIGPIPE"):
            self._install_signal(signal.SIGPIPE, self.handle_stream_closed)

        self._installed = True
        logger.info("Process resilience layer installed")

    def _install_signal(self, sig: signal.Signals, callback: Callable, *args) -> None:
        previous = signal.getsignal(sig)
        if self._loop is not None:
            try:
                self._loop.add_signal_handler(sig, callback, *args)
                self._signals[sig] = (previous, True)
                return
            except (NotImplementedError, RuntimeError, ValueError):
                pass

        try:
            signal.signal(sig, lambda signum, frame: callback(*args))
        except (ValueError, OSError) as e:
            logger.warning(f"Could not install handler for {sig.name}: {e}")
            return
        self._signals[sig] = (previous, False)

    def _release_signal(self, sig: signal.Signals, via_loop: bool, disposition: Any) -> None:
        """Detach our handler from ``sig`` and set ``disposition`` (None keeps whatever is left)."""
        if via_loop and self._loop is not None and not self._loop.is_closed():
            self._loop.remove_signal_handler(sig)
        if disposition is None:
            return
        try:
            signal.signal(sig, disposition)
        except (ValueError, OSError, TypeError) as e:
            logger.warning(f"Could not restore handler for {sig.name}: {e}")

    def uninstall(self) -> None:
        if not self._installed:
            return

        sys.excepthook = self._previous_hooks["excepthook"]
        threading.excepthook = self._previous_hooks["threading_excepthook"]
        warnings.showwarning = self._previous_hooks["showwarning"]

        if self._loop is not None and not self._loop.is_closed():
            self._loop.set_exception_handler(self._previous_hooks.get("loop_exception_handler"))

        for sig, (previous, via_loop) in self._signals.items():
            self._release_signal(sig, via_loop, previous)

        self._signals.clear()
        self._installed = False

    # Hook adapters

    def _excepthook(self, exc_type, exc, tb) -> None:
        if issubclass(exc_type, KeyboardInterrupt):
            self.handle_signal("SIGINT")
            return
        if exc.__traceback__ is None and tb is not None:
            exc = exc.with_traceback(tb)
        self.handle_uncaught_exception(exc)

    def _threading_excepthook(self, args: threading.ExceptHookArgs) -> None:
        if args.exc_value is None or issubclass(args.exc_type, SystemExit):
            return
        self.handle_uncaught_exception(args.exc_value)

    def _loop_exception_handler(self, loop: asyncio.AbstractEventLoop, context: dict) -> None:
        reason = context.get("exception") or context.get("message", "unknown")
        self.handle_unhandled_rejection(reason, context)

    def _showwarning(self, message, category, filename, lineno, file=None, line=None) -> None:
        self.handle_warning(message, category, filename, lineno)

    # Event handling

    def handle_uncaught_exception(self, exc: BaseException) -> bool:
        """
        Count, categorize and either recover from or shut down on an uncaught exception.

        Returns:
            True if the process recovered and keeps running
        """
        self.metrics.uncaught += 1
        classification = self.categorize(exc)
        logger.error(
            f"Uncaught exception [{classification.category.value}]: {exc}",
            exc_info=(type(exc), exc, exc.__traceback__)
        )

        if classification.recoverable and self.attempt_recovery(exc):
            logger.warning(f"Recovered from {classification.category.value} fault, continuing")
            return True

        self.begin_shutdown("uncaught_exception", exc)
        return False

    def handle_unhandled_rejection(self, reason: Any, context: Optional[dict] = None) -> None:
        self.metrics.rejections += 1
        detail = f" ({context['message']})" if context and context.get("message") else ""
        if isinstance(reason, BaseException):
            logger.error(f"Unhandled rejection: {reason}{detail}",
                         exc_info=(type(reason), reason, reason.__traceback__))
        else:
            logger.error(f"Unhandled rejection: {reason}")

    def handle_stream_closed(self) -> None:
        """
        Log the closed stream once, then leave SIGPIPE ignored.

        Writing to the closed stream would raise SIGPIPE again, so our handler
        is detached before anything is logged.
        """
        if self._stream_closed:
            return
        self._stream_closed = True

        sigpipe = getattr(signal, "SIGPIPE", None)
        if sigpipe in self._signals:
            previous, via_loop = self._signals[sigpipe]
            self._release_signal(sigpipe, via_loop, signal.SIG_IGN)
            self._signals[sigpipe] = (previous, False)

        logger.warning("SIGPIPE received - output stream closed, console output stopped")

    def handle_signal(self, signal_name: str) -> None:
        logger.info(f"{signal_name} received - initiating graceful shutdown")
        self.begin_shutdown(signal_name)

    def handle_warning(self, message: Any, category: type = Warning, filename: str = "", lineno: int = 0) -> None:
        self.metrics.warnings += 1
        location = f" ({filename}:{lineno})" if filename else ""
        logger.warning(f"Process warning: {category.__name__}: {message}{location}")

    # Categorization and recovery

    @staticmethod
    def categorize(exc: BaseException) -> FaultClassification:
        """First match wins: network marker, inference backend in the stack, else logic."""
        message = str(exc)
        if any(marker in message for marker in FaultMarkers.NETWORK):
            return FaultClassification(FaultCategory.NETWORK, recoverable=True)

        frames = traceback.extract_tb(exc.__traceback__) if exc.__traceback__ else []
        if any(ProcessResilienceLayer._is_inference_frame(frame.filename) for frame in frames):
            return FaultClassification(FaultCategory.AI_SERVICE, recoverable=False)

        return FaultClassification(FaultCategory.LOGIC, recoverable=False)

    @staticmethod
    def _is_inference_frame(filename: str) -> bool:
        """True for frames inside the ollama client package or our backend adapter."""
        path = PurePath(filename)
        return FaultMarkers.AI_SERVICE_PACKAGE in path.parts[:-1] or path.name == FaultMarkers.AI_SERVICE_MODULE

    def attempt_recovery(self, exc: BaseException) -> bool:
        """Only timeouts are recoverable; every recovery hook must succeed."""
        message = str(exc).lower()
        if not any(marker in message for marker in FaultMarkers.RECOVERABLE_TIMEOUT):
            return False

        logger.warning("Attempting recovery from timeout")
        for hook in self._recovery_hooks:
            try:
                hook()
            except Exception as e:
                logger.error(f"Recovery hook failed: {e}")
                return False
        return True

    # Shutdown

    def begin_shutdown(self, reason: str, error: Optional[BaseException] = None) -> bool:
        """
        Start the shutdown sequence unless one is already running.

        Returns:
            True if this call started the sequence
        """
        if self._shutting_down:
            logger.warning(f"Shutdown already in progress, ignoring {reason}")
            return False
        self._shutting_down = True

        sequence = self._shutdown_sequence(reason, error)
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is not None:
            self._shutdown_task = running.create_task(sequence)
        elif self._loop is not None and self._loop.is_running():
            asyncio.run_coroutine_threadsafe(sequence, self._loop)
        else:
            asyncio.run(sequence)
        return True

    async def _run_cleanups(self) -> None:
        for callback in self._cleanups:
            result = callback()
            if inspect.isawaitable(result):
                await result

    async def _shutdown_sequence(self, reason: str, error: Optional[BaseException]) -> None:
        logger.info(f"Starting graceful shutdown due to: {reason}")
        try:
            await asyncio.sleep(self._cleanup_window)
            await self._run_cleanups()
            logger.info("Graceful shutdown completed")
            exit_code = 1 if error is not None else 0
        except Exception as e:
            logger.error(f"Error during graceful shutdown: {e}")
            exit_code = 1
        self._exit(exit_code)

    def snapshot(self) -> dict:
        return {
            "shutting_down": self._shutting_down,
            "stream_closed": self._stream_closed,
            "faults": self.metrics.as_dict(),
        }
