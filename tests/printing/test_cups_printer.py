# tests/printing/test_cups_printer.py

import sys

import pytest

from printing.cups_printer import CupsPrinter, load_native_printer, status_from_attributes
from printing.printer_base import NativePrintFailed
from printing.status import STATUS_ERROR, STATUS_NOT_AVAILABLE, STATUS_OFFLINE
from tests.fakes.fake_printing import FakeCupsConnection


def test_list_printers_maps_attributes():
    conn = FakeCupsConnection(
        printers={
            "SELPHY": {"printer-info": "Canon SELPHY CP1500", "printer-state": 3, "printer-state-reasons": ["none"]},
            "Office": {"printer-info": "", "printer-state": 5, "printer-state-reasons": ["offline-report"]},
        },
        default="SELPHY",
    )

    devices = {d.name: d for d in CupsPrinter(lambda: conn).list_printers()}

    assert devices["SELPHY"].display_name == "Canon SELPHY CP1500"
    assert devices["SELPHY"].is_default is True
    assert devices["SELPHY"].source == "cups"
    assert devices["SELPHY"].status == 0
    assert devices["Office"].display_name is None
    assert devices["Office"].is_default is False
    assert devices["Office"].status == STATUS_OFFLINE | STATUS_NOT_AVAILABLE


@pytest.mark.parametrize(
    "attrs,expected",
    [
        ({"printer-state": 3, "printer-state-reasons": ["none"]}, 0),
        ({"printer-state-reasons": ["media-empty-error"]}, STATUS_ERROR),
        ({"printer-state-reasons": ["connecting-to-device"]}, STATUS_OFFLINE),
        ({"printer-is-accepting-jobs": False}, STATUS_NOT_AVAILABLE),
        ({}, 0),
    ],
)
def test_status_from_attributes(attrs, expected):
    assert status_from_attributes(attrs) == expected


def test_print_file_submits_copies_option(tmp_path):
    f = tmp_path / "final.png"
    f.write_bytes(b"fake")
    conn = FakeCupsConnection()

    CupsPrinter(lambda: conn).print_file(f, printer_name="SELPHY", copies=2, job_name="Four Cut")

    assert conn.calls == [("SELPHY", str(f), "Four Cut", {"copies": "2"})]


def test_print_file_defaults_title_to_file_name(tmp_path):
    f = tmp_path / "final.png"
    f.write_bytes(b"fake")
    conn = FakeCupsConnection()

    CupsPrinter(lambda: conn).print_file(f, printer_name="SELPHY")

    assert conn.calls[0][2] == "final.png"


def test_print_file_wraps_cups_errors(tmp_path):
    f = tmp_path / "final.png"
    f.write_bytes(b"fake")
    cause = RuntimeError("client-error-not-possible")
    conn = FakeCupsConnection(error=cause)

    with pytest.raises(NativePrintFailed, match="CUPS rejected") as exc:
        CupsPrinter(lambda: conn).print_file(f, printer_name="SELPHY")

    assert exc.value.__cause__ is cause


def test_print_file_raises_if_file_missing(tmp_path):
    with pytest.raises(NativePrintFailed, match="does not exist"):
        CupsPrinter(FakeCupsConnection).print_file(tmp_path / "final.png", printer_name="SELPHY")


def test_print_file_raises_if_path_is_not_a_file(tmp_path):
    d = tmp_path / "not_a_file"
    d.mkdir()

    with pytest.raises(NativePrintFailed, match=r"Print path is not a file"):
        CupsPrinter(FakeCupsConnection).print_file(d, printer_name="SELPHY")


def test_print_file_raises_if_copies_less_than_one(tmp_path):
    f = tmp_path / "final.png"
    f.write_bytes(b"fake")

    with pytest.raises(NativePrintFailed, match=r"copies must be >= 1"):
        CupsPrinter(FakeCupsConnection).print_file(f, printer_name="SELPHY", copies=0)


def test_load_native_printer_absent_module(monkeypatch):
    # A None entry makes `import cups` raise ImportError.
    monkeypatch.setitem(sys.modules, "cups", None)

    assert load_native_printer() is None


def test_load_native_printer_connection_failure(monkeypatch):
    class FakeCupsModule:
        @staticmethod
        def Connection():
            raise RuntimeError("cupsd not running")

    monkeypatch.setitem(sys.modules, "cups", FakeCupsModule)

    assert load_native_printer() is None


def test_each_operation_opens_its_own_connection(monkeypatch, tmp_path):
    f = tmp_path / "final.png"
    f.write_bytes(b"fake")
    opened = []

    class FakeCupsModule:
        @staticmethod
        def Connection():
            conn = FakeCupsConnection(printers={"SELPHY": {}}, default="SELPHY")
            opened.append(conn)
            return conn

    monkeypatch.setitem(sys.modules, "cups", FakeCupsModule)

    native = load_native_printer()
    assert isinstance(native, CupsPrinter)
    startup_checks = len(opened)

    native.list_printers()
    native.print_file(f, printer_name="SELPHY")

    assert len(opened) == startup_checks + 2
    assert len({id(c) for c in opened}) == len(opened)
    assert opened[-1].calls == [("SELPHY", str(f), "final.png", {"copies": "1"})]
