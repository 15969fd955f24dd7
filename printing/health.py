from dataclasses import dataclass, field
from datetime import datetime, UTC
from enum import Enum, auto
from typing import List, Optional

from printing.printer_base import NoPrinterFound, PrinterFault, PrinterUnavailable
from printing.printer_registry import PrinterRegistry
from printing.status import STATUS_ERROR, STATUS_NOT_AVAILABLE, STATUS_OFFLINE


class HealthLevel(Enum):
    OK = auto()
    WARNING = auto()
    ERROR = auto()


class HealthCode(Enum):
    NO_PRINTER = auto()
    PRINTER_NOT_FOUND = auto()
    PRINTER_OFFLINE = auto()
    PRINTER_ERROR = auto()
    PRINTER_NOT_AVAILABLE = auto()


@dataclass(frozen=True)
class HealthStatus:
    level: HealthLevel
    code: Optional[HealthCode] = None
    message: Optional[str] = None
    instructions: List[str] | None = None
    recoverable: bool = True
    printer_name: Optional[str] = None
    last_updated: datetime = field(default_factory=lambda: datetime.now(UTC))

    @staticmethod
    def ok(printer_name: Optional[str] = None) -> "HealthStatus":
        return HealthStatus(level=HealthLevel.OK, printer_name=printer_name)

    @staticmethod
    def error(
            *,
            code: HealthCode,
            message: str,
            instructions: List[str],
            recoverable: bool = True,
            printer_name: Optional[str] = None,
    ) -> "HealthStatus":
        return HealthStatus(
            level=HealthLevel.ERROR,
            code=code,
            message=message,
            instructions=instructions,
            recoverable=recoverable,
            printer_name=printer_name,
        )

    def to_dict(self) -> dict:
        if self.level == HealthLevel.OK:
            return {"level": "OK", "printer": self.printer_name}

        return {
            "level": self.level.name,
            "code": self.code.name if self.code else None,
            "message": self.message,
            "instructions": self.instructions,
            "recoverable": self.recoverable,
            "printer": self.printer_name,
        }


_CONNECTION_STEPS = [
    "Check that the printer is powered on",
    "Check the USB or network cable",
]


def _fault_code(status: int) -> HealthCode:
    # Same priority as the status descriptions.
    if status & STATUS_OFFLINE:
        return HealthCode.PRINTER_OFFLINE
    if status & STATUS_ERROR:
        return HealthCode.PRINTER_ERROR
    if status & STATUS_NOT_AVAILABLE:
        return HealthCode.PRINTER_NOT_AVAILABLE
    return HealthCode.PRINTER_ERROR


def printer_health(registry: PrinterRegistry, preferred: Optional[str] = None) -> HealthStatus:
    name = registry.resolve(preferred)
    try:
        if name is None:
            raise NoPrinterFound()
        registry.validate(name)
    except NoPrinterFound as e:
        return HealthStatus.error(
            code=HealthCode.NO_PRINTER,
            message=str(e),
            instructions=["Install a printer on this system", *_CONNECTION_STEPS],
        )
    except PrinterUnavailable as e:
        return HealthStatus.error(
            code=HealthCode.PRINTER_NOT_FOUND,
            message=str(e),
            instructions=[*_CONNECTION_STEPS, "Select another printer in settings"],
            printer_name=name,
        )
    except PrinterFault as e:
        return HealthStatus.error(
            code=_fault_code(e.status),
            message=str(e),
            instructions=[*_CONNECTION_STEPS, "Check paper and ink", "Clear any paper jam"],
            printer_name=name,
        )

    return HealthStatus.ok(printer_name=name)
