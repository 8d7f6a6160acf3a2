"""
export.py — Map image export request/response models.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field


class ShareLinks(BaseModel):
    twitter: str
    linkedin: str
    facebook: str
    instagram_caption: str   # Instagram has no share URL; the caption is copied instead


class ExportRequest(BaseModel):
    image_b64: str = Field(..., min_length=1)      # canvas capture, any Pillow-readable format
    preset: Optional[str] = None                    # e.g. "twitter", "instagram-story"
    width: int = Field(1200, ge=200, le=4000)
    height: int = Field(630, ge=200, le=4000)
    format: Literal["png", "jpeg"] = "png"
    quality: Literal["high", "medium", "low"] = "high"
    overlay_text: str = Field("", max_length=200)
    overlay_position: Literal["top-left", "top-right", "bottom-left", "bottom-right"] = "bottom-right"
    include_watermark: bool = True
    include_attribution: bool = True
    share_text: str = Field("", max_length=280)


class ExportResponse(BaseModel):
    filename: str
    content_type: str
    image_b64: str
    width: int
    height: int
    share_links: ShareLinks
