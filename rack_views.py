from __future__ import annotations

from io import BytesIO
from typing import Dict, Iterable, Tuple

from PIL import Image, ImageColor, ImageDraw, ImageFont

from rack_fit import StructureConstants, needed_height_in, needed_width_in

VIEW_NAMES: Tuple[str, ...] = ("front", "isometric")

_PALETTE: dict[str, str] = {
    "background": "#f4f4f5",
    "frame": "#a96c2d",
    "post": "#8b5a2b",
    "shelf": "#0b0d10",
    "tote": "#111418",
    "lid": "#ffd21f",
    "caption": "#111827",
    "warning": "#b3261e",
}

Rgb = Tuple[int, int, int]


def _color(name: str) -> Rgb:
    return ImageColor.getrgb(_PALETTE[name])


def _clamp_int(name: str, value: int, *, min_value: int, max_value: int) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be int (got {type(value).__name__})")
    return max(min_value, min(max_value, value))


def _clamp_float(value: float, *, min_value: float, max_value: float) -> float:
    return max(min_value, min(max_value, float(value)))


def _shade(rgb: Rgb, factor: float) -> Rgb:
    f = max(0.0, min(1.0, float(factor)))
    r, g, b = rgb
    return (int(r * f), int(g * f), int(b * f))


def _encode_png(img: Image.Image) -> bytes:
    buf = BytesIO()
    img.save(buf, format="PNG", optimize=True)
    return buf.getvalue()


def render_rack_views_png(
    *,
    cols: int,
    rows: int,
    tote_width_in: float,
    tote_height_in: float,
    structure: StructureConstants,
    view_names: Iterable[str] = VIEW_NAMES,
    canvas_px: Tuple[int, int] = (900, 520),
) -> Dict[str, bytes]:
    """
    Render the rack preview images as PNG bytes.

    - "front": schematic elevation (frame, posts, shelves, totes with lids) drawn to scale.
    - "isometric": a stylized 3D-ish grid of tote boxes.

    A zero on either axis renders a "does not fit" panel instead of a rack. Output is stable for
    identical inputs.
    """
    c = _clamp_int("cols", cols, min_value=0, max_value=40)
    r = _clamp_int("rows", rows, min_value=0, max_value=20)
    tote_w = _clamp_float(tote_width_in, min_value=1.0, max_value=120.0)
    tote_h = _clamp_float(tote_height_in, min_value=1.0, max_value=120.0)

    cw, ch = canvas_px
    cw = _clamp_int("canvas_width_px", int(cw), min_value=320, max_value=2400)
    ch = _clamp_int("canvas_height_px", int(ch), min_value=240, max_value=1600)

    views: Dict[str, bytes] = {}
    want = {str(v).strip().lower() for v in view_names if str(v).strip()}
    for name in VIEW_NAMES:
        if name not in want:
            continue
        img = Image.new("RGB", (cw, ch), _color("background"))
        d = ImageDraw.Draw(img)
        if c == 0 or r == 0:
            _draw_does_not_fit(d, canvas_px=(cw, ch))
        elif name == "front":
            _draw_front(
                d,
                canvas_px=(cw, ch),
                cols=c,
                rows=r,
                tote_width_in=tote_w,
                tote_height_in=tote_h,
                structure=structure,
            )
        else:
            _draw_isometric(d, canvas_px=(cw, ch), cols=c, rows=r, tote_width_in=tote_w, tote_height_in=tote_h)

        # subtle frame
        d.rectangle([8, 8, cw - 9, ch - 9], outline=(190, 190, 190), width=2)
        views[name] = _encode_png(img)
    return views


def _draw_caption(d: ImageDraw.ImageDraw, *, canvas_px: Tuple[int, int], text: str, fill: Rgb) -> None:
    cw, ch = canvas_px
    font = ImageFont.load_default()
    left, top, right, bottom = d.textbbox((0, 0), text, font=font)
    d.text(((cw - (right - left)) / 2, ch - 28 - (bottom - top)), text, fill=fill, font=font)


def _draw_does_not_fit(d: ImageDraw.ImageDraw, *, canvas_px: Tuple[int, int]) -> None:
    cw, ch = canvas_px
    warn = _color("warning")
    d.rectangle([cw * 0.2, ch * 0.3, cw * 0.8, ch * 0.6], outline=warn, width=3)
    d.line([(cw * 0.2, ch * 0.3), (cw * 0.8, ch * 0.6)], fill=warn, width=2)
    d.line([(cw * 0.2, ch * 0.6), (cw * 0.8, ch * 0.3)], fill=warn, width=2)
    _draw_caption(d, canvas_px=canvas_px, text="Does not fit: not enough space for this configuration", fill=warn)


def _draw_front(
    d: ImageDraw.ImageDraw,
    *,
    canvas_px: Tuple[int, int],
    cols: int,
    rows: int,
    tote_width_in: float,
    tote_height_in: float,
    structure: StructureConstants,
) -> None:
    cw, ch = canvas_px
    rack_w_in = needed_width_in(cols, tote_width_in, structure)
    rack_h_in = needed_height_in(rows, tote_height_in, structure)

    # Leave room for the caption strip at the bottom.
    scale = min((cw * 0.86) / rack_w_in, (ch * 0.78) / rack_h_in)
    rack_w = rack_w_in * scale
    rack_h = rack_h_in * scale
    x0 = (cw - rack_w) / 2
    y0 = (ch - 40 - rack_h) / 2

    frame = _color("frame")
    post = _color("post")
    d.rectangle([x0, y0, x0 + rack_w, y0 + rack_h], fill=frame, outline=_shade(frame, 0.7), width=2)

    post_w = max(2.0, structure.post_width_in * scale)
    gap_w = structure.gap_width_in * scale
    gap_h = structure.gap_height_in * scale
    shelf_h = max(2.0, structure.shelf_height_in * scale)
    tote_w = tote_width_in * scale
    tote_h = tote_height_in * scale

    # Posts: one left of every column plus the closing post on the right.
    x = x0
    for col in range(cols + 1):
        d.rectangle([x, y0, x + post_w, y0 + rack_h], fill=post)
        x += post_w + tote_w + (gap_w if col < cols - 1 else 0)

    # Rows are stacked bottom-up: gap, tote, shelf.
    for row in range(rows):
        row_bottom = y0 + rack_h - gap_h - row * (tote_h + shelf_h + gap_h)
        shelf_top = row_bottom - shelf_h
        tote_top = shelf_top - tote_h
        d.rectangle([x0 + post_w, shelf_top, x0 + rack_w - post_w, row_bottom], fill=_color("shelf"))
        for col in range(cols):
            tx = x0 + post_w + col * (tote_w + gap_w + post_w)
            _draw_tote_front(d, x=tx, y=tote_top, w=tote_w, h=tote_h)

    _draw_caption(d, canvas_px=canvas_px, text=f"{cols} across x {rows} tall", fill=_color("caption"))


def _draw_tote_front(d: ImageDraw.ImageDraw, *, x: float, y: float, w: float, h: float) -> None:
    lid_h = max(2.0, h * 0.18)
    d.rectangle([x, y + lid_h, x + w, y + h], fill=_color("tote"))
    d.rectangle([x - 1, y, x + w + 1, y + lid_h], fill=_color("lid"), outline=_shade(_color("lid"), 0.8))
    # handle hint
    d.rectangle([x + w * 0.25, y + h * 0.55, x + w * 0.75, y + h * 0.55 + max(1.0, h * 0.05)], fill=(60, 60, 60))


def _draw_isometric(
    d: ImageDraw.ImageDraw,
    *,
    canvas_px: Tuple[int, int],
    cols: int,
    rows: int,
    tote_width_in: float,
    tote_height_in: float,
) -> None:
    cw, ch = canvas_px
    # Depth is drawn proportional to tote width; gaps are a fraction of a tote.
    gap_ratio = 0.15
    depth_ratio = 0.55

    grid_w_units = cols * tote_width_in * (1 + gap_ratio)
    grid_h_units = rows * tote_height_in * (1 + gap_ratio)
    depth_units = tote_width_in * depth_ratio

    scale = min(
        (cw * 0.82) / (grid_w_units + depth_units * 0.9),
        (ch * 0.72) / (grid_h_units + depth_units * 0.45),
    )
    tote_w = tote_width_in * scale
    tote_h = tote_height_in * scale
    gap_w = tote_w * gap_ratio
    gap_h = tote_h * gap_ratio
    dx = depth_units * scale * 0.9
    dy = depth_units * scale * 0.45

    total_w = cols * tote_w + (cols - 1) * gap_w + dx
    total_h = rows * tote_h + (rows - 1) * gap_h + dy
    x0 = (cw - total_w) / 2
    y0 = (ch - 40 - total_h) / 2 + dy

    body = _color("tote")
    lid = _color("lid")
    # Back-to-front: top row first, right column first, so nearer boxes overlap farther ones.
    for row in range(rows - 1, -1, -1):
        for col in range(cols - 1, -1, -1):
            x = x0 + col * (tote_w + gap_w)
            y = y0 + (rows - 1 - row) * (tote_h + gap_h)
            front = [(x, y), (x + tote_w, y), (x + tote_w, y + tote_h), (x, y + tote_h)]
            top = [(x, y), (x + dx, y - dy), (x + tote_w + dx, y - dy), (x + tote_w, y)]
            side = [(x + tote_w, y), (x + tote_w + dx, y - dy), (x + tote_w + dx, y + tote_h - dy), (x + tote_w, y + tote_h)]
            d.polygon(side, fill=_shade(body, 0.7), outline=(0, 0, 0))
            d.polygon(top, fill=_shade(lid, 0.92), outline=_shade(lid, 0.7))
            d.polygon(front, fill=body, outline=(0, 0, 0))
            lid_h = tote_h * 0.14
            d.rectangle([x, y, x + tote_w, y + lid_h], fill=lid)

    _draw_caption(d, canvas_px=canvas_px, text=f"{cols} across x {rows} tall ({cols * rows} bays)", fill=_color("caption"))
