"""Module Base Frame.

Every sidebar module subclasses :class:`ModuleFrame`.  Store calls must
never run on the Tk main loop, so the frame offers one helper that runs
a service call on a daemon thread and hands the result back to the main
thread via ``self.after(0, ...)``, with a pending indicator shown
meanwhile.

**Thin UI Rule**: subclasses only gather inputs, call services, and
render ``ServiceResult`` / ``BookingResult`` objects.
"""

from __future__ import annotations

import threading
import tkinter as tk
from typing import Callable, Optional, TypeVar

import customtkinter as ctk

from carwash.logger import StructuredLogger
from carwash.ui.theme import (
    CONTENT_BG,
    ERROR_TEXT,
    FONT_HEADING,
    FONT_SMALL,
    PADDING_LG,
    PADDING_MD,
    SUCCESS_TEXT,
    TEXT_PRIMARY,
    TEXT_SECONDARY,
)

R = TypeVar("R")


def run_threaded(
    widget: tk.Misc,
    work: Callable[[], R],
    on_done: Callable[[R], None],
    on_error: Callable[[Exception], None],
    *,
    name: str,
) -> None:
    """Run *work* on a daemon thread; deliver its outcome on the Tk thread.

    Neither callback runs once *widget* has been destroyed.
    """

    def deliver(callback: Callable[[], None]) -> None:
        if widget.winfo_exists():
            callback()

    def target() -> None:
        try:
            result = work()
        except Exception as exc:
            widget.after(0, lambda error=exc: deliver(lambda: on_error(error)))
            return
        widget.after(0, lambda: deliver(lambda: on_done(result)))

    threading.Thread(target=target, name=name, daemon=True).start()


class ModuleFrame(ctk.CTkFrame):
    """Content-area frame with a heading, a status line and background calls.

    Parameters
    ----------
    parent:
        Content container provided by the Host Shell.
    title:
        Heading shown at the top of the module.
    logger:
        Structured logger instance.
    """

    def __init__(
        self,
        parent: ctk.CTkFrame,
        title: str,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(parent, fg_color=CONTENT_BG)
        self._logger = logger
        self._pending: int = 0

        header = ctk.CTkFrame(self, fg_color="transparent")
        header.pack(fill="x", padx=PADDING_LG, pady=(PADDING_LG, PADDING_MD))

        ctk.CTkLabel(
            header,
            text=title,
            font=FONT_HEADING,
            text_color=TEXT_PRIMARY,
            anchor="w",
        ).pack(side="left")

        self._status_label = ctk.CTkLabel(
            header,
            text="",
            font=FONT_SMALL,
            text_color=TEXT_SECONDARY,
            anchor="e",
        )
        self._status_label.pack(side="right")

        self.body = ctk.CTkFrame(self, fg_color="transparent")
        self.body.pack(fill="both", expand=True, padx=PADDING_LG, pady=(0, PADDING_LG))

    # ------------------------------------------------------------------
    # Background execution
    # ------------------------------------------------------------------

    def run_in_background(
        self,
        work: Callable[[], R],
        on_done: Callable[[R], None],
        *,
        name: str = "store-call",
    ) -> None:
        """Run *work* off the main thread, then ``on_done(result)`` on it.

        Services report store failures inside their result objects, so
        an exception here is a programming error: it is logged and shown
        as a generic message.
        """
        self._set_pending(1)

        def done(result: R) -> None:
            self._set_pending(-1)
            on_done(result)

        def failed(exc: Exception) -> None:
            self._set_pending(-1)
            self._logger.error(
                "Background call '%s' failed: %s", name, exc,
                exc_info=(type(exc), exc, exc.__traceback__),
            )
            self.show_status(f"Erro inesperado: {exc}", error=True)

        run_threaded(self, work, done, failed, name=name)

    def _set_pending(self, delta: int) -> None:
        self._pending = max(0, self._pending + delta)
        if self._pending:
            self._status_label.configure(text="A carregar…", text_color=TEXT_SECONDARY)
        elif self._status_label.cget("text") == "A carregar…":
            self._status_label.configure(text="")

    @property
    def is_busy(self) -> bool:
        return self._pending > 0

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def show_status(self, message: Optional[str], *, error: bool = False) -> None:
        """Show a one-line result message in the header."""
        self._status_label.configure(
            text=message or "",
            text_color=ERROR_TEXT if error else SUCCESS_TEXT,
        )
