import io
import re
import xml.etree.ElementTree as ET

from PIL import Image

from qrgen.config import EncodingConfig, RenderConfig
from qrgen.encoder import QrcodeEncoder
from qrgen.renderer import hex_color, render, render_png, render_svg
from qrgen.schemas import OutputFormat, QRMatrix


SVG_NS = "{http://www.w3.org/2000/svg}"


def checker_matrix(size: int = 5) -> QRMatrix:
    modules = tuple(tuple((x + y) % 2 == 0 for x in range(size)) for y in range(size))
    return QRMatrix(version=1, modules=modules)


def real_matrix() -> QRMatrix:
    return QrcodeEncoder().encode("https://example.com/item/42", EncodingConfig(mask=3))


def sample_svg(svg: str, size: int, border: int) -> list[list[bool]]:
    root = ET.fromstring(svg)
    grid = [[False] * size for _ in range(size)]
    for rect in root.iter(f"{SVG_NS}rect"):
        if rect.get("width") == "100%":
            continue
        grid[int(rect.get("y")) - border][int(rect.get("x")) - border] = True
    for path in root.iter(f"{SVG_NS}path"):
        for x, y in re.findall(r"M(\d+),(\d+)h1v1h-1z", path.get("d")):
            grid[int(y) - border][int(x) - border] = True
    return grid


def sample_png(data: bytes, size: int, border: int, scale: int, foreground) -> list[list[bool]]:
    image = Image.open(io.BytesIO(data)).convert("RGB")
    half = scale // 2
    return [
        [image.getpixel(((x + border) * scale + half, (y + border) * scale + half)) == foreground for x in range(size)]
        for y in range(size)
    ]


def as_lists(matrix: QRMatrix) -> list[list[bool]]:
    return [list(row) for row in matrix.modules]


def test_svg_has_one_rect_per_dark_module_and_padded_view_box() -> None:
    matrix = checker_matrix()
    svg = render_svg(matrix, RenderConfig(border=3))

    root = ET.fromstring(svg)
    rects = [rect for rect in root.iter(f"{SVG_NS}rect") if rect.get("width") != "100%"]

    assert root.get("viewBox") == "0 0 11 11"
    assert len(rects) == sum(row.count(True) for row in matrix.modules)


def test_svg_uses_configured_colors() -> None:
    config = RenderConfig(foreground=(0x12, 0x34, 0x56), background=(0xFF, 0xEE, 0xDD))
    root = ET.fromstring(render_svg(checker_matrix(), config))

    background = next(root.iter(f"{SVG_NS}rect"))
    group = next(root.iter(f"{SVG_NS}g"))

    assert background.get("fill") == "#FFEEDD"
    assert group.get("fill") == "#123456"


def test_svg_suppress_rect_draws_a_single_path() -> None:
    matrix = real_matrix()
    svg = render_svg(matrix, RenderConfig(border=4, suppress_rect=True))
    root = ET.fromstring(svg)

    paths = list(root.iter(f"{SVG_NS}path"))
    module_rects = [rect for rect in root.iter(f"{SVG_NS}rect") if rect.get("width") != "100%"]

    assert len(paths) == 1
    assert module_rects == []
    assert sample_svg(svg, matrix.size, 4) == as_lists(matrix)


def test_svg_round_trip_reproduces_matrix() -> None:
    matrix = real_matrix()
    svg = render_svg(matrix, RenderConfig(border=4))

    assert sample_svg(svg, matrix.size, 4) == as_lists(matrix)


def test_png_dimensions_follow_border_and_scale() -> None:
    matrix = real_matrix()
    data = render_png(matrix, RenderConfig(format=OutputFormat.PNG, border=2, module_scale=3))

    image = Image.open(io.BytesIO(data))

    expected = (matrix.size + 4) * 3
    assert image.format == "PNG"
    assert image.size == (expected, expected)


def test_png_round_trip_reproduces_matrix_and_colors() -> None:
    matrix = real_matrix()
    config = RenderConfig(
        format=OutputFormat.PNG,
        border=1,
        module_scale=4,
        foreground=(200, 0, 0),
        background=(0, 0, 200),
    )
    data = render_png(matrix, config)

    assert sample_png(data, matrix.size, 1, 4, (200, 0, 0)) == as_lists(matrix)
    corner = Image.open(io.BytesIO(data)).convert("RGB").getpixel((0, 0))
    assert corner == (0, 0, 200)


def test_png_scale_of_one_maps_modules_to_pixels() -> None:
    matrix = checker_matrix()
    data = render_png(matrix, RenderConfig(format=OutputFormat.PNG, border=0, module_scale=1))

    assert sample_png(data, matrix.size, 0, 1, (0, 0, 0)) == as_lists(matrix)


def test_rendering_is_deterministic() -> None:
    matrix = real_matrix()
    for config in (
        RenderConfig(format=OutputFormat.SVG),
        RenderConfig(format=OutputFormat.SVG, suppress_rect=True),
        RenderConfig(format=OutputFormat.PNG, module_scale=2),
    ):
        assert render(matrix, config) == render(matrix, config)


def test_render_tags_the_format() -> None:
    matrix = checker_matrix()

    assert render(matrix, RenderConfig(format=OutputFormat.PNG)).format is OutputFormat.PNG
    assert render(matrix, RenderConfig()).data.startswith(b"<?xml")


def test_hex_color() -> None:
    assert hex_color((0, 128, 255)) == "#0080FF"


def test_is_dark_indexes_column_then_row() -> None:
    matrix = QRMatrix(version=1, modules=((False, True), (False, False)))

    assert matrix.is_dark(1, 0) is True
    assert matrix.is_dark(0, 1) is False
