import io

from PIL import Image

from qrgen.config import Color, RenderConfig
from qrgen.schemas import OutputFormat, QRMatrix, RenderedImage


def render(matrix: QRMatrix, config: RenderConfig) -> RenderedImage:
    if config.format is OutputFormat.PNG:
        return RenderedImage(data=render_png(matrix, config), format=OutputFormat.PNG)
    return RenderedImage(data=render_svg(matrix, config).encode("utf-8"), format=OutputFormat.SVG)


def hex_color(color: Color) -> str:
    return "#{:02X}{:02X}{:02X}".format(*color)


def _dark_modules(matrix: QRMatrix):
    for y in range(matrix.size):
        for x in range(matrix.size):
            if matrix.is_dark(x, y):
                yield x, y


def render_svg(matrix: QRMatrix, config: RenderConfig) -> str:
    """One unit per module; the viewBox includes ``border`` modules on each edge."""
    border = config.border
    dimension = matrix.size + border * 2
    foreground = hex_color(config.foreground)

    parts = [
        '<?xml version="1.0" encoding="UTF-8"?>\n',
        '<!DOCTYPE svg PUBLIC "-//W3C//DTD SVG 1.1//EN" "http://www.w3.org/Graphics/SVG/1.1/DTD/svg11.dtd">\n',
        f'<svg xmlns="http://www.w3.org/2000/svg" version="1.1" viewBox="0 0 {dimension} {dimension}" stroke="none">\n',
        f'\t<rect width="100%" height="100%" fill="{hex_color(config.background)}"/>\n',
    ]
    if config.suppress_rect:
        path = " ".join(f"M{x + border},{y + border}h1v1h-1z" for x, y in _dark_modules(matrix))
        parts.append(f'\t<path d="{path}" fill="{foreground}"/>\n')
    else:
        parts.append(f'\t<g fill="{foreground}">\n')
        parts.extend(
            f'\t\t<rect x="{x + border}" y="{y + border}" width="1" height="1"/>\n'
            for x, y in _dark_modules(matrix)
        )
        parts.append("\t</g>\n")
    parts.append("</svg>\n")
    return "".join(parts)


def render_png(matrix: QRMatrix, config: RenderConfig) -> bytes:
    border = config.border
    dimension = matrix.size + border * 2

    image = Image.new("RGB", (dimension, dimension), config.background)
    pixels = image.load()
    for x, y in _dark_modules(matrix):
        pixels[x + border, y + border] = config.foreground

    scaled = dimension * config.module_scale
    if config.module_scale != 1:
        image = image.resize((scaled, scaled), Image.Resampling.NEAREST)

    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()
