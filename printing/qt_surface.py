# printing/qt_surface.py

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Callable, List, Optional

from PySide6.QtCore import QMarginsF, QSizeF
from PySide6.QtGui import QGuiApplication, QImage, QPageLayout, QPageSize, QPainter
from PySide6.QtPrintSupport import QPrinter, QPrinterInfo

from printing.printer_base import PrinterDevice
from printing.status import STATUS_ERROR, STATUS_NOT_AVAILABLE
from printing.surface_base import DisplaySurface, PageOptions, PrintCallback, RenderSurface

logger = logging.getLogger(__name__)


def _status_from_state(state: QPrinter.PrinterState) -> int:
    if state == QPrinter.PrinterState.Error:
        return STATUS_ERROR
    if state == QPrinter.PrinterState.Aborted:
        return STATUS_NOT_AVAILABLE
    return 0


class QtRenderSurface(RenderSurface):
    def __init__(self) -> None:
        self._image: Optional[QImage] = None
        self._closed = False

    def load_image(
            self,
            image_path: Path,
            *,
            on_loaded: Callable[[], None],
            on_failed: Callable[[str], None],
    ) -> None:
        image = QImage(str(image_path))
        if image.isNull():
            on_failed(f"Could not load {image_path} into the print surface")
            return
        self._image = image
        on_loaded()

    def print_page(self, options: PageOptions, callback: PrintCallback) -> None:
        if self._closed:
            callback(False, "Print surface is closed")
            return
        if self._image is None:
            callback(False, "Nothing loaded to print")
            return

        printer = QPrinter(QPrinter.PrinterMode.HighResolution)
        printer.setPrinterName(options.device_name)
        printer.setResolution(options.dpi)
        printer.setFullPage(True)
        printer.setCopyCount(options.copies)

        width_um, height_um = options.page_size_microns
        top, right, bottom, left = (m / 1000 for m in options.margins_microns)
        page_size = QPageSize(
            QSizeF(width_um / 1000, height_um / 1000),
            QPageSize.Unit.Millimeter,
            "Photo 4x6",
            QPageSize.SizeMatchPolicy.ExactMatch,
        )
        orientation = QPageLayout.Orientation.Landscape if options.landscape else QPageLayout.Orientation.Portrait
        layout = QPageLayout(page_size, orientation, QMarginsF(left, top, right, bottom), QPageLayout.Unit.Millimeter)
        if not printer.setPageLayout(layout):
            callback(False, f"Printer '{options.device_name}' rejected the page layout")
            return

        painter = QPainter()
        if not painter.begin(printer):
            callback(False, f"Could not start a print job on '{options.device_name}'")
            return
        # Stretched to the full page; the image is already rendered at page size.
        painter.drawImage(painter.viewport(), self._image)
        if not painter.end():
            callback(False, f"Print job on '{options.device_name}' did not finish")
            return
        callback(True, None)

    def close(self) -> None:
        self._image = None
        self._closed = True


class QtDisplaySurface(DisplaySurface):
    """Windowing-layer printing through QtPrintSupport."""

    source = "qt"

    def __init__(self) -> None:
        # The kiosk UI is served over HTTP; Qt only needs an offscreen platform.
        os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
        self._app = QGuiApplication.instance() or QGuiApplication(sys.argv[:1])

    def list_printers(self) -> List[PrinterDevice]:
        devices = []
        for info in QPrinterInfo.availablePrinters():
            devices.append(
                PrinterDevice(
                    name=info.printerName(),
                    display_name=info.description() or None,
                    is_default=info.isDefault(),
                    source=self.source,
                    status=_status_from_state(info.state()),
                )
            )
        return devices

    def open_offscreen(self) -> QtRenderSurface:
        return QtRenderSurface()
