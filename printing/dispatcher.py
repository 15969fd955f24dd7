"""
Print dispatcher

Delivers a composed sheet to a printer:
- resolve the target printer (explicit name, else system default, else first)
- validate it against a fresh enumeration before doing any work
- try the native spooler with the original file
- fall back to rendering a physically sized page on an offscreen surface

When both paths fail the native error is raised; the fallback error is kept
as its __cause__.
"""

from __future__ import annotations

import logging
import sys
import threading
from pathlib import Path
from typing import Any, Callable, Optional

from imaging.print_layout import DEFAULT_PRINT_PAGE, PrintPage
from imaging.print_renderer import PreparedPage, prepare_print_page
from printing.printer_base import (
    FallbackPrepareFailed,
    FallbackRenderFailed,
    FallbackSubmitFailed,
    NativePrinter,
    NativePrintFailed,
    NoPrinterFound,
    PrinterError,
    PrintRequest,
)
from printing.printer_registry import PrinterRegistry
from printing.surface_base import DisplaySurface, PageOptions, RenderSurface

logger = logging.getLogger(__name__)

# Platforms whose native driver binding is known to drop jobs silently.
NATIVE_UNRELIABLE_PLATFORMS = ("win32",)


class _OneShot:
    """Holds the first value delivered to it; later deliveries are ignored."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._event = threading.Event()
        self.value: Any = None

    def resolve(self, value: Any = None) -> bool:
        with self._lock:
            if self._event.is_set():
                return False
            self.value = value
            self._event.set()
            return True

    def wait(self, timeout: float) -> bool:
        return self._event.wait(timeout)


def _remove_temp_file(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Could not delete temporary print file %s: %s", path, e)


class PrintDispatcher:
    LOAD_TIMEOUT = 10.0  # seconds to wait for the surface to signal "loaded"
    SUBMIT_TIMEOUT = 60.0  # seconds to wait for the print callback

    def __init__(
            self,
            registry: PrinterRegistry,
            display: DisplaySurface,
            native: Optional[NativePrinter] = None,
            *,
            platform: str = sys.platform,
            page: PrintPage = DEFAULT_PRINT_PAGE,
            prepare: Callable[[Path, PrintPage], PreparedPage] = prepare_print_page,
            load_timeout: float = LOAD_TIMEOUT,
            submit_timeout: float = SUBMIT_TIMEOUT,
    ) -> None:
        self._registry = registry
        self._display = display
        self._native = native
        self._platform = platform
        self._page = page
        self._prepare = prepare
        self._load_timeout = load_timeout
        self._submit_timeout = submit_timeout

    @property
    def native_enabled(self) -> bool:
        return self._native is not None and self._platform not in NATIVE_UNRELIABLE_PLATFORMS

    # ---------- Public API ----------

    def print_image(self, request: PrintRequest) -> None:
        if request.copies < 1:
            raise PrinterError(f"copies must be >= 1 (got {request.copies})")
        if not request.image_path.is_file():
            raise PrinterError(f"Print file does not exist: {request.image_path}")

        printer_name = self._registry.resolve(request.printer_name)
        if printer_name is None:
            raise NoPrinterFound()

        self._registry.validate(printer_name)

        native_error: Optional[NativePrintFailed] = None
        if self.native_enabled:
            try:
                self._native.print_file(request.image_path, printer_name=printer_name, copies=request.copies)
                logger.info("Printed %s on %s via native spooler", request.image_path, printer_name)
                return
            except Exception as e:
                # Any native failure, whatever the binding raised, goes to the fallback.
                if isinstance(e, NativePrintFailed):
                    native_error = e
                else:
                    native_error = NativePrintFailed(f"Native printing on '{printer_name}' failed: {e}")
                logger.warning("Native printing on %s failed, trying rendered page: %s", printer_name, e)

        try:
            self._print_rendered(request.image_path, printer_name, request.copies)
        except PrinterError as e:
            if native_error is not None:
                logger.error("Rendered-page printing also failed on %s: %s", printer_name, e)
                raise native_error from e
            logger.error("Printing on %s failed: %s", printer_name, e)
            raise

        logger.info("Printed %s on %s via rendered page", request.image_path, printer_name)

    # ---------- Fallback path ----------

    def _print_rendered(self, image_path: Path, printer_name: str, copies: int) -> None:
        try:
            page = self._prepare(image_path, self._page)
        except Exception as e:
            raise FallbackPrepareFailed(f"Could not prepare the print page: {e}") from e

        try:
            try:
                surface = self._display.open_offscreen()
            except Exception as e:
                raise FallbackRenderFailed(f"Could not open the print surface: {e}") from e

            try:
                self._render_and_submit(surface, page, printer_name, copies)
            finally:
                surface.close()
        finally:
            _remove_temp_file(page.path)

    def _render_and_submit(self, surface: RenderSurface, page: PreparedPage, printer_name: str, copies: int) -> None:
        loaded = _OneShot()
        try:
            surface.load_image(page.path, on_loaded=loaded.resolve, on_failed=loaded.resolve)
        except Exception as e:
            raise FallbackRenderFailed(f"Print surface failed to load the page: {e}") from e

        if not loaded.wait(self._load_timeout):
            # Never hang on a surface that forgot to signal; submit what we have.
            logger.warning("Print surface did not report loaded within %.1fs, printing anyway", self._load_timeout)
        elif loaded.value is not None:
            raise FallbackRenderFailed(f"Print surface failed: {loaded.value}")

        options = PageOptions(
            device_name=printer_name,
            page_size_microns=page.page_size_microns,
            dpi=self._page.dpi,
            copies=copies,
            landscape=page.landscape,
        )
        submitted = _OneShot()
        try:
            surface.print_page(options, lambda ok, reason: submitted.resolve((ok, reason)))
        except Exception as e:
            raise FallbackSubmitFailed(f"Printing on '{printer_name}' failed: {e}") from e

        if not submitted.wait(self._submit_timeout):
            raise FallbackSubmitFailed(f"Printer '{printer_name}' did not respond to the print request")

        ok, reason = submitted.value
        if not ok:
            raise FallbackSubmitFailed(f"Printing on '{printer_name}' failed: {reason or 'unknown error'}")
