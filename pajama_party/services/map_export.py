"""
map_export.py — Compose shareable map images and social share links.

Takes a raw map canvas capture, scales it to the requested size,
draws an optional caption in one of the four corners, a site watermark
(bottom-right) and the map data attribution (bottom-left), and encodes
it as PNG or JPEG.

Used by:
  POST /api/map/export               (server-side compose of an uploaded capture)
  pajama_party.map.export_tool       (client-side compose of MapHandle.capture_image())

Pillow is imported lazily so modules that only need share links or
presets do not pay for it.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from urllib.parse import quote, urlencode

from pajama_party.models.export import ShareLinks

logger = logging.getLogger(__name__)

WATERMARK_TEXT = "pajama-party.eu"
ATTRIBUTION_TEXT = "© Mapbox © OpenStreetMap"
SHARE_HASHTAGS = ("NightTrains", "SustainableTravel", "Europe", "RailRevolution")

_JPEG_QUALITY = {"high": 95, "medium": 80, "low": 60}
_CONTENT_TYPES = {"png": "image/png", "jpeg": "image/jpeg"}
_FONT_CANDIDATES = ("DejaVuSans-Bold.ttf", "DejaVuSans.ttf", "Arial.ttf")

# Platform presets: key → (label, width, height)
PRESETS: dict[str, tuple[str, int, int]] = {
    "twitter":          ("Twitter Post",       1200, 675),
    "instagram-post":   ("Instagram Post",     1080, 1080),
    "instagram-story":  ("Instagram Story",    1080, 1920),
    "facebook":         ("Facebook Post",      1200, 630),
    "linkedin":         ("LinkedIn Post",      1200, 627),
    "presentation":     ("Presentation Slide", 1920, 1080),
    "a4-print":         ("A4 Print",           2480, 3508),
}

POSITIONS = ("top-left", "top-right", "bottom-left", "bottom-right")


class ExportError(Exception):
    """Capture, decode or encode failed."""


@dataclass
class ExportOptions:
    width: int = 1200
    height: int = 630
    format: str = "png"             # png | jpeg
    quality: str = "high"           # high | medium | low (JPEG only)
    overlay_text: str = ""
    overlay_position: str = "bottom-right"
    include_watermark: bool = True
    include_attribution: bool = True

    @classmethod
    def for_preset(cls, preset: str, **overrides) -> "ExportOptions":
        if preset not in PRESETS:
            raise ExportError(f"Unknown export preset '{preset}'")
        _, width, height = PRESETS[preset]
        return cls(width=width, height=height, **overrides)

    @property
    def content_type(self) -> str:
        return _CONTENT_TYPES[self.format]


@dataclass
class ExportResult:
    data: bytes
    filename: str
    content_type: str
    width: int
    height: int


def export_filename(fmt: str, now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"night-train-map-{int(now.timestamp() * 1000)}.{fmt}"


def _load_font(size: int):
    from PIL import ImageFont

    for name in _FONT_CANDIDATES:
        try:
            return ImageFont.truetype(name, size)
        except OSError:
            continue
    return ImageFont.load_default(size=size)


def _text_size(draw, text: str, font, stroke: int = 0) -> tuple[int, int]:
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font, stroke_width=stroke)
    return right - left, bottom - top


def _corner(position: str, canvas: tuple[int, int], box: tuple[int, int], pad: int) -> tuple[int, int]:
    w, h = canvas
    bw, bh = box
    x = pad if position.endswith("left") else w - bw - pad
    y = pad if position.startswith("top") else h - bh - pad
    return x, y


def compose_image(capture: bytes, options: ExportOptions) -> bytes:
    """Scale `capture` to options.width × options.height and draw text overlays."""
    from PIL import Image, ImageDraw, UnidentifiedImageError

    if options.format not in _CONTENT_TYPES:
        raise ExportError(f"Unsupported export format '{options.format}'")
    if options.overlay_position not in POSITIONS:
        raise ExportError(f"Unsupported overlay position '{options.overlay_position}'")

    try:
        image = Image.open(io.BytesIO(capture))
        image.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise ExportError(f"Map capture is not a readable image: {exc}") from exc

    w, h = options.width, options.height
    image = image.convert("RGBA").resize((w, h), Image.LANCZOS)
    draw = ImageDraw.Draw(image)

    if options.overlay_text:
        size = max(20, w // 40)
        font = _load_font(size)
        stroke = max(2, size // 10)
        pad = int(size * 0.8)
        box = _text_size(draw, options.overlay_text, font, stroke)
        x, y = _corner(options.overlay_position, (w, h), box, pad)
        draw.text(
            (x, y), options.overlay_text, font=font,
            fill=(255, 255, 255, 255), stroke_width=stroke, stroke_fill=(0, 0, 0, 200),
        )

    if options.include_watermark:
        font = _load_font(max(14, w // 80))
        box = _text_size(draw, WATERMARK_TEXT, font)
        x, y = _corner("bottom-right", (w, h), box, 10)
        draw.text((x, y), WATERMARK_TEXT, font=font, fill=(255, 255, 255, 204))

    if options.include_attribution:
        font = _load_font(max(10, w // 100))
        box = _text_size(draw, ATTRIBUTION_TEXT, font)
        x, y = _corner("bottom-left", (w, h), box, 10)
        draw.text((x, y), ATTRIBUTION_TEXT, font=font, fill=(0, 0, 0, 153))

    out = io.BytesIO()
    if options.format == "jpeg":
        image.convert("RGB").save(out, format="JPEG", quality=_JPEG_QUALITY.get(options.quality, 95))
    else:
        image.save(out, format="PNG", optimize=True)
    logger.debug("Composed %dx%d %s export (%d bytes)", w, h, options.format, out.tell())
    return out.getvalue()


def export_map(capture: bytes, options: ExportOptions, now: datetime | None = None) -> ExportResult:
    return ExportResult(
        data=compose_image(capture, options),
        filename=export_filename(options.format, now),
        content_type=options.content_type,
        width=options.width,
        height=options.height,
    )


def share_links(url: str, text: str) -> ShareLinks:
    """Prefilled share URLs. Instagram has none, so it gets a caption to paste."""
    twitter = "https://twitter.com/intent/tweet?" + urlencode(
        {"text": text, "url": url, "hashtags": ",".join(SHARE_HASHTAGS)}, quote_via=quote
    )
    linkedin = "https://www.linkedin.com/sharing/share-offsite/?" + urlencode(
        {"url": url, "summary": text}, quote_via=quote
    )
    facebook = "https://www.facebook.com/sharer/sharer.php?" + urlencode(
        {"u": url, "quote": text}, quote_via=quote
    )
    caption = f"{text}\n\n{url}\n\n" + " ".join(f"#{tag}" for tag in SHARE_HASHTAGS)
    return ShareLinks(twitter=twitter, linkedin=linkedin, facebook=facebook, instagram_caption=caption)
