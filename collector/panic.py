"""
Panic Reporter

Formats an unhandled exception plus its stack trace into a PanicReport
and ships it to the collector.

Two entry points share one send routine:
- report()      spawns the send and returns immediately
- report_sync() spawns the same send and waits for it to finish

DESIGN RULES:
- Reporting is best-effort: no retries, failures logged and swallowed
- The shipped payload never depends on local logging settings
"""

import json
import logging
import threading
import traceback
from contextlib import contextmanager
from typing import Any, Iterator

from collector.client import CollectorClient, PANICS_PATH
from schemas.report import PanicReport


logger = logging.getLogger(__name__)


def format_error_message(error: Any) -> str:
    """
    Collapse an error value to a single printable line.

    The value is quoted with escapes (newlines become a literal \\n and so
    on), then every double quote is dropped.
    """
    quoted = json.dumps(str(error), ensure_ascii=False)
    return quoted.replace('"', "")


def clean_trace(body: str) -> str:
    """Escape a stack trace for transport."""
    body = body.replace("\n", "\\n")
    body = body.replace("\t", "\\t")
    body = body.replace("\x00", " ")
    return body.strip()


def back_trace(error: Any) -> str:
    """Formatted traceback of error, or the current stack if it has none."""
    if isinstance(error, BaseException) and error.__traceback__ is not None:
        return "".join(traceback.format_exception(type(error), error, error.__traceback__))
    return "".join(traceback.format_stack())


class PanicReporter:
    """
    Ships captured failures to the collector's panic-ingest endpoint.
    """

    def __init__(self, client: CollectorClient, print_panics: bool = False):
        """
        Args:
            client: Shared collector client
            print_panics: Also log the full stack trace locally
        """
        self._client = client
        self.print_panics = print_panics

    def report(self, error: Any, span_id: int = 0) -> None:
        """Report error without waiting for the send."""
        self._prepare(error, span_id, synchronous=False)

    def report_sync(self, error: Any, span_id: int = 0) -> None:
        """Report error and block until the send attempt has completed."""
        self._prepare(error, span_id, synchronous=True)

    def _prepare(self, error: Any, span_id: int, synchronous: bool) -> None:
        error_message = format_error_message(error)
        body = back_trace(error)

        if self.print_panics:
            logger.error(f"[PANIC] {error_message}\n{body}")

        if not synchronous:
            threading.Thread(
                target=self.ship,
                args=(body, error_message, span_id),
                name="deferwatch-panic",
                daemon=True,
            ).start()
            return

        done = threading.Event()

        def ship_and_signal() -> None:
            try:
                self.ship(body, error_message, span_id)
            finally:
                done.set()

        threading.Thread(target=ship_and_signal, name="deferwatch-panic", daemon=True).start()
        done.wait()

    def ship(self, back_trace_text: str, error_message: str, span_id: int = 0) -> None:
        """
        POST a PanicReport to the collector.

        span_id is omitted from the payload unless positive.
        """
        try:
            report = PanicReport(
                error_name=error_message,
                body=clean_trace(back_trace_text),
                span_id=span_id if span_id > 0 else None,
            )
            self._client.post(report.to_json(), self._client.url(PANICS_PATH), analyse_response=False)
        except Exception as e:
            logger.warning(f"[PANIC] Failed to ship panic report: {e}")

    @contextmanager
    def persist(self) -> Iterator[None]:
        """
        Report any exception raised inside the block, then swallow it.

        Typically wraps the body of a background thread.
        """
        try:
            yield
        except Exception as e:
            self.report(e)

    @contextmanager
    def persist_reraise(self) -> Iterator[None]:
        """Report any exception raised inside the block, then re-raise it."""
        try:
            yield
        except Exception as e:
            self.report_sync(e)
            raise
