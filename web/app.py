"""
Flask application exposing the kiosk's composition and print operations.
"""
import base64
import binascii
import logging
from pathlib import Path

from flask import Flask, jsonify, request, send_from_directory

from imaging.compositor import compose
from imaging.errors import CompositionError, ImagingError
from imaging.template import DEFAULT_RESOURCE_ROOT
from kiosk.session_storage import (
    CAPTURES_ROOT,
    CaptureStorage,
    default_output_root,
    is_valid_session_id,
    new_session_id,
)
from kiosk.settings import SettingsStore
from printing.cups_printer import load_native_printer
from printing.dispatcher import PrintDispatcher
from printing.health import printer_health
from printing.printer_base import (
    NoPrinterFound,
    PrinterError,
    PrinterFault,
    PrinterUnavailable,
    PrintRequest,
)
from printing.printer_registry import PrinterRegistry
from printing.status import describe_status

logger = logging.getLogger(__name__)

# Device problems the operator can fix; everything else is a failed submission.
_DEVICE_ERRORS = (NoPrinterFound, PrinterUnavailable, PrinterFault)

_PNG_DATA_URL_PREFIX = "data:image/png;base64,"


def _json_object(req) -> dict:
    data = req.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _capture_bytes(req) -> bytes:
    """PNG bytes from a multipart `image` upload or a JSON `image` data URL."""
    upload = req.files.get("image")
    if upload is not None:
        return upload.read()

    data = _json_object(req)
    image = data.get("image")
    if not isinstance(image, str) or not image.startswith(_PNG_DATA_URL_PREFIX):
        raise ValueError("image must be a PNG upload or a PNG data URL")
    try:
        return base64.b64decode(image[len(_PNG_DATA_URL_PREFIX):], validate=True)
    except binascii.Error as e:
        raise ValueError(f"image data URL is not valid base64: {e}") from e


def _capture_session(req) -> str:
    data = _json_object(req)
    session = req.form.get("session") or data.get("session")
    return session if isinstance(session, str) and session else new_session_id()


def create_app(display=None, native=None, settings_store: SettingsStore | None = None,
               resource_root: Path | None = None, output_root: Path | None = None,
               captures_root: Path | None = None):
    app = Flask(__name__)
    app.config["CAPTURES_ROOT"] = captures_root or CAPTURES_ROOT
    app.config["RESOURCE_ROOT"] = resource_root or DEFAULT_RESOURCE_ROOT
    app.config["OUTPUT_ROOT"] = output_root or default_output_root()

    if display is None:
        # Imported lazily: Qt is only needed when no display surface is injected.
        from printing.qt_surface import QtDisplaySurface
        display = QtDisplaySurface()
    if native is None:
        native = load_native_printer()

    store = settings_store or SettingsStore()
    registry = PrinterRegistry(display=display, native=native)
    dispatcher = PrintDispatcher(registry=registry, display=display, native=native)

    app.settings_store = store
    app.registry = registry
    app.dispatcher = dispatcher

    def _output_root(settings) -> Path:
        return settings.output_path or app.config["OUTPUT_ROOT"]

    @app.route("/settings", methods=["GET"])
    def get_settings():
        return jsonify(store.load())

    @app.route("/settings", methods=["POST"])
    def save_settings():
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({"ok": False, "error": "settings must be a JSON object"}), 400
        store.save(data)
        return jsonify({"ok": True})

    @app.route("/printers", methods=["GET"])
    def printers():
        devices = []
        for device in registry.enumerate():
            item = device.to_dict()
            item["statusMessage"] = describe_status(device.status)
            devices.append(item)
        return jsonify(devices)

    @app.route("/health", methods=["GET"])
    def health():
        settings = store.snapshot()
        return jsonify(printer_health(registry, settings.selected_printer).to_dict())

    @app.route("/captures", methods=["POST"])
    def save_capture():
        session = _capture_session(request)
        if not is_valid_session_id(session):
            return jsonify({"ok": False, "error": f"Invalid session id: {session!r}"}), 400

        storage = CaptureStorage(root=app.config["CAPTURES_ROOT"], session_id=session)
        try:
            path = storage.save_capture(_capture_bytes(request))
        except ValueError as e:
            return jsonify({"ok": False, "error": str(e)}), 400

        logger.info("Saved capture %s", path)
        return jsonify({"ok": True, "path": str(path), "session": session})

    @app.route("/compose", methods=["POST"])
    def compose_images():
        data = _json_object(request)
        images = data.get("images")
        if not isinstance(images, list) or not all(isinstance(p, str) and p for p in images):
            return jsonify({"ok": False, "error": "images must be a list of paths"}), 400

        settings = store.snapshot()
        try:
            path = compose(
                images,
                settings,
                resource_root=app.config["RESOURCE_ROOT"],
                output_root=_output_root(settings),
            )
        except CompositionError as e:
            return jsonify({"ok": False, "error": str(e)}), 400
        except ImagingError as e:
            logger.error("Composition failed: %s", e)
            return jsonify({"ok": False, "error": str(e)}), 500

        return jsonify({"ok": True, "path": str(path)})

    @app.route("/print", methods=["POST"])
    def print_image():
        data = _json_object(request)
        image_path = data.get("imagePath")
        if not isinstance(image_path, str) or not image_path:
            return jsonify({"ok": False, "error": "imagePath is required"}), 400

        try:
            copies = int(data.get("copies", 1))
        except (TypeError, ValueError):
            return jsonify({"ok": False, "error": "copies must be a number"}), 400

        if copies < 1:
            return jsonify({"ok": False, "error": "copies must be >= 1"}), 400
        if not Path(image_path).is_file():
            return jsonify({"ok": False, "error": f"Print file does not exist: {image_path}"}), 400

        settings = store.snapshot()
        print_request = PrintRequest(
            image_path=Path(image_path),
            printer_name=data.get("printerName") or settings.selected_printer,
            copies=copies,
        )

        try:
            dispatcher.print_image(print_request)
        except _DEVICE_ERRORS as e:
            return jsonify({"ok": False, "error": str(e)}), 409
        except PrinterError as e:
            return jsonify({"ok": False, "error": str(e)}), 500

        return jsonify({"ok": True})

    @app.route("/outputs/<path:filename>")
    def outputs(filename: str):
        root = _output_root(store.snapshot())
        return send_from_directory(str(root), filename)

    return app
