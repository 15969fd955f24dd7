# printing/cups_printer.py

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, List, Mapping, Optional

from printing.printer_base import NativePrinter, NativePrintFailed, PrinterDevice
from printing.status import STATUS_ERROR, STATUS_NOT_AVAILABLE, STATUS_OFFLINE

logger = logging.getLogger(__name__)

IPP_PRINTER_STOPPED = 5

_OFFLINE_REASONS = ("offline-report", "connecting-to-device", "shutdown")


def status_from_attributes(attrs: Mapping[str, Any]) -> int:
    """Fold CUPS printer attributes into the shared status bitmask."""
    status = 0
    reasons = [str(r) for r in attrs.get("printer-state-reasons") or []]

    if any(r.startswith(_OFFLINE_REASONS) for r in reasons):
        status |= STATUS_OFFLINE
    if any(r.endswith("-error") for r in reasons):
        status |= STATUS_ERROR
    if attrs.get("printer-state") == IPP_PRINTER_STOPPED or attrs.get("printer-is-accepting-jobs") is False:
        status |= STATUS_NOT_AVAILABLE
    return status


class CupsPrinter(NativePrinter):
    """
    CUPS-backed native printing through a pycups connection.

    Design constraints:
    - Fire-and-forget submission (the job id is logged, not tracked).
    - Prints the original file; CUPS filters handle scaling.
    - Printer/queue configuration happens in CUPS.
    - A pycups connection is not thread-safe, so every operation opens its own.
    """

    source = "cups"

    def __init__(self, connect: Callable[[], Any]) -> None:
        self._connect = connect

    def list_printers(self) -> List[PrinterDevice]:
        conn = self._connect()
        printers = conn.getPrinters()
        default_name: Optional[str] = conn.getDefault()

        devices = []
        for name, attrs in printers.items():
            devices.append(
                PrinterDevice(
                    name=name,
                    display_name=attrs.get("printer-info") or None,
                    is_default=name == default_name,
                    source=self.source,
                    status=status_from_attributes(attrs),
                )
            )
        return devices

    def print_file(self, file_path: Path, *, printer_name: str, copies: int = 1, job_name: str | None = None) -> None:
        if copies < 1:
            raise NativePrintFailed(f"copies must be >= 1 (got {copies})")
        if not file_path.exists():
            raise NativePrintFailed(f"Print file does not exist: {file_path}")
        if not file_path.is_file():
            raise NativePrintFailed(f"Print path is not a file: {file_path}")

        title = job_name or file_path.name
        options = {"copies": str(copies)}
        try:
            job_id = self._connect().printFile(printer_name, str(file_path), title, options)
        except Exception as e:
            raise NativePrintFailed(f"CUPS rejected the print job for '{printer_name}': {e}") from e

        logger.info("Sent %s to printer %s with job id %s", file_path, printer_name, job_id)


def load_native_printer() -> Optional[CupsPrinter]:
    """Check CUPS once at startup; None when native printing is unavailable."""
    try:
        import cups
    except ImportError:
        logger.warning("pycups is not installed; native printing is disabled")
        return None

    try:
        cups.Connection()
    except Exception as e:
        logger.warning("Could not connect to CUPS; native printing is disabled: %s", e)
        return None
    return CupsPrinter(cups.Connection)
