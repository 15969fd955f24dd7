from pathlib import Path

import pytest
from PIL import Image

from imaging.errors import PagePreparationError
from imaging.print_layout import DEFAULT_PRINT_PAGE, MarginsMM, PrintPage, mm_to_px
from imaging.print_renderer import prepare_print_page, render_print_page

WHITE = (255, 255, 255)


def test_default_page_geometry():
    page = DEFAULT_PRINT_PAGE

    assert page.canvas_size == (1200, 1800)
    assert page.size_microns == (101600, 152400)
    assert page.margins_px == (24, 71, 142, 0)
    assert page.safe_box == (0, 24, 1129, 1634)


def test_mm_to_px_rounds_and_floors_at_zero():
    assert mm_to_px(25.4, 300) == 300
    assert mm_to_px(0, 300) == 0
    assert mm_to_px(-3, 300) == 0


def test_page_is_exact_size_for_portrait_sheet():
    sheet = render_print_page(Image.new("RGB", (600, 1600), (255, 0, 0)))

    assert sheet.size == (1200, 1800)
    assert sheet.mode == "RGB"


def test_margins_stay_white():
    sheet = render_print_page(Image.new("RGB", (1129, 1634), (255, 0, 0)))

    # Top margin band and bottom margin band.
    assert sheet.getpixel((600, 10)) == WHITE
    assert sheet.getpixel((600, 1800 - 100)) == WHITE
    # Right margin band.
    assert sheet.getpixel((1200 - 30, 900)) == WHITE
    # Content fills the safe box.
    assert sheet.getpixel((5, 30)) == (255, 0, 0)
    assert sheet.getpixel((1120, 1650)) == (255, 0, 0)


def test_landscape_source_is_rotated_to_portrait():
    # Wide red image with a blue right-hand edge.
    img = Image.new("RGB", (1634, 1129), (255, 0, 0))
    img.paste((0, 0, 255), (1534, 0, 1634, 1129))

    sheet = render_print_page(img)

    # Rotated clockwise: the right edge ends up at the bottom of the safe box.
    assert sheet.getpixel((560, 1640)) == (0, 0, 255)
    assert sheet.getpixel((560, 40)) == (255, 0, 0)


def test_contain_fit_pads_with_white_instead_of_cropping():
    sheet = render_print_page(Image.new("RGB", (100, 100), (0, 0, 0)))

    # A square fills the 1129px safe width and is centered in the 1634px height.
    assert sheet.getpixel((560, 24 + 100)) == WHITE
    assert sheet.getpixel((560, 24 + 1634 // 2)) == (0, 0, 0)
    assert sheet.getpixel((560, 24 + 1634 - 100)) == WHITE


def test_transparent_areas_print_white():
    img = Image.new("RGBA", (600, 1600), (0, 0, 0, 0))

    sheet = render_print_page(img)

    assert sheet.getpixel((500, 900)) == WHITE


def test_prepare_writes_300_dpi_png(tmp_path: Path):
    src = tmp_path / "sheet.png"
    Image.new("RGB", (1186, 1600), (0, 128, 0)).save(src)

    prepared = prepare_print_page(src, temp_dir=tmp_path)

    assert prepared.path.parent == tmp_path
    assert prepared.page_size_microns == (101600, 152400)
    assert prepared.landscape is False
    with Image.open(prepared.path) as reloaded:
        assert reloaded.size == (1200, 1800)
        dpi = reloaded.info.get("dpi")
        assert dpi is not None
        assert int(round(dpi[0])) == 300
        assert int(round(dpi[1])) == 300


def test_prepare_uses_custom_page(tmp_path: Path):
    src = tmp_path / "sheet.png"
    Image.new("RGB", (100, 150), (0, 0, 0)).save(src)
    page = PrintPage(short_edge_in=1, long_edge_in=2, dpi=100, margins_mm=MarginsMM(0, 0, 0, 0))

    prepared = prepare_print_page(src, page=page, temp_dir=tmp_path)

    assert prepared.page_size_microns == (25400, 50800)
    with Image.open(prepared.path) as reloaded:
        assert reloaded.size == (100, 200)


def test_prepare_rejects_unreadable_image(tmp_path: Path):
    bad = tmp_path / "bad.png"
    bad.write_bytes(b"nope")

    with pytest.raises(PagePreparationError, match="Failed to load image"):
        prepare_print_page(bad, temp_dir=tmp_path)

    assert list(tmp_path.iterdir()) == [bad]
