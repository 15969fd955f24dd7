from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, List, Optional

from printing.printer_base import NativePrinter, PrinterDevice, PrinterFault, PrinterUnavailable
from printing.status import describe_status
from printing.surface_base import DisplaySurface

logger = logging.getLogger(__name__)


def merge_devices(*sources: List[PrinterDevice]) -> List[PrinterDevice]:
    """Merge device lists by name, keeping first-seen order.

    A later record only fills fields the earlier one left unset; the default
    flag is kept if any source reports it.
    """
    merged: Dict[str, PrinterDevice] = {}
    for devices in sources:
        for device in devices:
            existing = merged.get(device.name)
            if existing is None:
                merged[device.name] = replace(device)
                continue
            if not existing.display_name and device.display_name:
                existing.display_name = device.display_name
            if not existing.source and device.source:
                existing.source = device.source
            if existing.status is None and device.status is not None:
                existing.status = device.status
            existing.is_default = existing.is_default or device.is_default
    return list(merged.values())


class PrinterRegistry:
    def __init__(self, display: DisplaySurface, native: Optional[NativePrinter] = None) -> None:
        self._display = display
        self._native = native

    def enumerate(self) -> List[PrinterDevice]:
        native_devices: List[PrinterDevice] = []
        if self._native is not None:
            try:
                native_devices = self._native.list_printers()
            except Exception as e:
                logger.warning("Native printer enumeration failed: %s", e)

        display_devices = self._display.list_printers()
        return merge_devices(native_devices, display_devices)

    def resolve(self, preferred: Optional[str] = None) -> Optional[str]:
        # Existence of an explicit name is checked later, by validate().
        if preferred:
            return preferred

        devices = self.enumerate()
        for device in devices:
            if device.is_default:
                return device.name
        if devices:
            return devices[0].name
        return None

    def find(self, name: str) -> Optional[PrinterDevice]:
        for device in self.enumerate():
            if device.name == name:
                return device
        return None

    def validate(self, name: str) -> PrinterDevice:
        """Return the live device record for `name` or raise why it cannot print."""
        device = self.find(name)
        if device is None:
            raise PrinterUnavailable(name)

        description = describe_status(device.status)
        if description is not None:
            raise PrinterFault(name, device.status, description)
        return device
