"""
Rasterise the SVG produced by the layout engine with Pillow.

Supports the subset the layouts emit: ``g`` with ``translate`` transforms,
``rect``, ``circle``, ``line``, ``path`` (absolute M/L/H/V/C/Z) and ``text``.
Fill and stroke come from attributes or the inline style.
"""
import logging
import re
from io import BytesIO
from typing import List, Optional, Tuple

from bs4 import BeautifulSoup, Tag
from PIL import Image, ImageColor, ImageDraw, ImageFont

from .svg import parse_style

logger = logging.getLogger("PolyViz.raster")

TRANSLATE = re.compile(r"translate\(\s*([-\d.eE]+)[\s,]*([-\d.eE]+)?\s*\)")
PATH_TOKEN = re.compile(r"[A-Za-z]|[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")
CURVE_SAMPLES = 16

Point = Tuple[float, float]


def _number(value, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _paint(element: Tag, name: str, inherited: dict) -> Optional[Tuple[int, ...]]:
    """Resolve fill/stroke to an RGBA tuple, or None when nothing is painted."""
    style = parse_style(element.get("style"))
    value = style.get(name, element.get(name, inherited.get(name)))
    if value is None or value in ("none", "transparent"):
        return None
    try:
        rgba = ImageColor.getcolor(value, "RGBA")
    except ValueError:
        logger.debug("Skipping unsupported colour %r", value)
        return None
    opacity = _number(style.get(name + "-opacity", element.get(name + "-opacity",
                                                              style.get("opacity", element.get("opacity")))), 1.0)
    return rgba[:3] + (int(rgba[3] * max(0.0, min(1.0, opacity))),)


def _offset(element: Tag, origin: Point) -> Point:
    match = TRANSLATE.search(element.get("transform") or "")
    if not match:
        return origin
    return origin[0] + float(match.group(1)), origin[1] + _number(match.group(2))


def _cubic(p0: Point, p1: Point, p2: Point, p3: Point) -> List[Point]:
    points = []
    for step in range(1, CURVE_SAMPLES + 1):
        t = step / CURVE_SAMPLES
        u = 1 - t
        points.append((
            u ** 3 * p0[0] + 3 * u * u * t * p1[0] + 3 * u * t * t * p2[0] + t ** 3 * p3[0],
            u ** 3 * p0[1] + 3 * u * u * t * p1[1] + 3 * u * t * t * p2[1] + t ** 3 * p3[1],
        ))
    return points


def path_points(d: str) -> List[List[Point]]:
    """Flatten absolute path data into polylines (one per subpath)."""
    tokens = PATH_TOKEN.findall(d or "")
    subpaths: List[List[Point]] = []
    current: List[Point] = []
    command = None
    position: Point = (0.0, 0.0)
    index = 0
    while index < len(tokens):
        token = tokens[index]
        if token.isalpha():
            command = token.upper()
            index += 1
            if command == "Z":
                if current:
                    current.append(current[0])
                    position = current[0]
                continue
        if command == "M":
            position = (float(tokens[index]), float(tokens[index + 1]))
            if current:
                subpaths.append(current)
            current = [position]
            index += 2
            command = "L"
        elif command == "L":
            position = (float(tokens[index]), float(tokens[index + 1]))
            current.append(position)
            index += 2
        elif command == "H":
            position = (float(tokens[index]), position[1])
            current.append(position)
            index += 1
        elif command == "V":
            position = (position[0], float(tokens[index]))
            current.append(position)
            index += 1
        elif command == "C":
            values = [float(value) for value in tokens[index:index + 6]]
            control1, control2 = (values[0], values[1]), (values[2], values[3])
            end = (values[4], values[5])
            current.extend(_cubic(position, control1, control2, end))
            position = end
            index += 6
        else:
            raise ValueError(f"Unsupported path data: {d!r}")
    if current:
        subpaths.append(current)
    return subpaths


class _Painter:
    def __init__(self, draw: ImageDraw.ImageDraw):
        self.draw = draw
        self.font = ImageFont.load_default()

    def paint(self, element: Tag, origin: Point, inherited: dict) -> None:
        origin = _offset(element, origin)
        style = parse_style(element.get("style"))
        inherited = dict(inherited)
        for name in ("fill", "stroke", "stroke-width"):
            value = style.get(name, element.get(name))
            if value is not None:
                inherited[name] = value
        handler = getattr(self, "_" + element.name.replace("-", "_"), None)
        if handler is not None:
            handler(element, origin, inherited)
        for child in element.find_all(recursive=False):
            self.paint(child, origin, inherited)

    def _stroke_width(self, inherited: dict) -> int:
        return max(1, int(round(_number(inherited.get("stroke-width"), 1.0))))

    def _rect(self, element: Tag, origin: Point, inherited: dict) -> None:
        x = origin[0] + _number(element.get("x"))
        y = origin[1] + _number(element.get("y"))
        width, height = _number(element.get("width")), _number(element.get("height"))
        if width <= 0 or height <= 0:
            return
        self.draw.rectangle([x, y, x + width, y + height], fill=_paint(element, "fill", inherited),
                            outline=_paint(element, "stroke", inherited),
                            width=self._stroke_width(inherited))

    def _circle(self, element: Tag, origin: Point, inherited: dict) -> None:
        cx = origin[0] + _number(element.get("cx"))
        cy = origin[1] + _number(element.get("cy"))
        radius = _number(element.get("r"))
        if radius <= 0:
            return
        self.draw.ellipse([cx - radius, cy - radius, cx + radius, cy + radius],
                          fill=_paint(element, "fill", inherited),
                          outline=_paint(element, "stroke", inherited),
                          width=self._stroke_width(inherited))

    def _line(self, element: Tag, origin: Point, inherited: dict) -> None:
        stroke = _paint(element, "stroke", inherited)
        if stroke is None:
            return
        self.draw.line([origin[0] + _number(element.get("x1")), origin[1] + _number(element.get("y1")),
                        origin[0] + _number(element.get("x2")), origin[1] + _number(element.get("y2"))],
                       fill=stroke, width=self._stroke_width(inherited))

    def _path(self, element: Tag, origin: Point, inherited: dict) -> None:
        fill = _paint(element, "fill", inherited)
        stroke = _paint(element, "stroke", inherited)
        for points in path_points(element.get("d")):
            shifted = [(x + origin[0], y + origin[1]) for x, y in points]
            if fill is not None and len(shifted) > 2:
                self.draw.polygon(shifted, fill=fill)
            if stroke is not None and len(shifted) > 1:
                self.draw.line(shifted, fill=stroke, width=self._stroke_width(inherited))

    def _text(self, element: Tag, origin: Point, inherited: dict) -> None:
        text = element.get_text()
        fill = _paint(element, "fill", inherited) or (0, 0, 0, 255)
        if not text:
            return
        x = origin[0] + _number(element.get("x"))
        y = origin[1] + _number(element.get("y"))
        width = self.draw.textlength(text, font=self.font)
        anchor = parse_style(element.get("style")).get("text-anchor", element.get("text-anchor"))
        if anchor == "middle":
            x -= width / 2
        elif anchor == "end":
            x -= width
        self.draw.text((x, y - 10), text, fill=fill, font=self.font)


def rasterize_svg(svg_markup: str, width: int, height: int, background: Optional[str] = None,
                  image_format: str = "png", quality: float = 0.95) -> bytes:
    """Draw SVG markup onto a width x height image and return the encoded bytes."""
    image_format = image_format.lower()
    if image_format not in ("png", "jpeg"):
        raise ValueError(f"Unsupported raster format: {image_format}")
    soup = BeautifulSoup(svg_markup, "html.parser")
    root = soup.find("svg")
    if root is None:
        raise ValueError("Markup contains no <svg> element")

    fill = background or ("#ffffff" if image_format == "jpeg" else (0, 0, 0, 0))
    size = (int(width), int(height))
    layer = Image.new("RGBA", size, (0, 0, 0, 0))
    _Painter(ImageDraw.Draw(layer, "RGBA")).paint(root, (0.0, 0.0), {"fill": "#000000"})
    img = Image.alpha_composite(Image.new("RGBA", size, fill), layer)

    buffer = BytesIO()
    if image_format == "jpeg":
        img.convert("RGB").save(buffer, format="JPEG",
                                quality=max(1, min(95, int(round(quality * 100)))))
    else:
        img.save(buffer, format="PNG")
    return buffer.getvalue()
