# printing/printer_base.py

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional


class PrinterError(RuntimeError):
    """Raised when a print request cannot be delivered to a printer."""


class NoPrinterFound(PrinterError):
    def __init__(self, message: str = "No printer found. Check that a printer is installed on this system.") -> None:
        super().__init__(message)


class PrinterUnavailable(PrinterError):
    def __init__(self, printer_name: str) -> None:
        super().__init__(f"Printer '{printer_name}' was not found. Check the printer connection.")
        self.printer_name = printer_name


class PrinterFault(PrinterError):
    def __init__(self, printer_name: str, status: int, description: str) -> None:
        super().__init__(f"Printer '{printer_name}': {description}")
        self.printer_name = printer_name
        self.status = status
        self.description = description


class NativePrintFailed(PrinterError):
    """Spooler submission failed; the fallback path may still succeed."""


class FallbackPrepareFailed(PrinterError):
    pass


class FallbackRenderFailed(PrinterError):
    pass


class FallbackSubmitFailed(PrinterError):
    pass


@dataclass
class PrinterDevice:
    name: str
    display_name: Optional[str] = None
    is_default: bool = False
    source: Optional[str] = None
    status: Optional[int] = None  # bitmask, None when unknown

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "displayName": self.display_name,
            "isDefault": self.is_default,
            "source": self.source,
            "status": self.status,
        }


@dataclass(frozen=True)
class PrintRequest:
    image_path: Path
    printer_name: Optional[str] = None
    copies: int = 1


class NativePrinter(ABC):
    """
    Native spooler capability.

    Implementations talk to the platform print system directly and hand it the
    original file; no page rendering happens on our side.
    """

    source = "native"

    @abstractmethod
    def list_printers(self) -> List[PrinterDevice]:
        raise NotImplementedError

    @abstractmethod
    def print_file(self, file_path: Path, *, printer_name: str, copies: int = 1, job_name: str | None = None) -> None:
        """
        Submit `file_path` to `printer_name`.

        - `copies` is the number of copies requested from the spooler.
        - Implementations should raise NativePrintFailed on failure; the
          dispatcher treats any other exception the same way.
        """
        raise NotImplementedError
