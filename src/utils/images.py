from __future__ import annotations

from typing import Optional

CLOUDINARY_HOST = "res.cloudinary.com"
THUMBNAIL_TRANSFORMATION = "w_400,h_400,c_fill,g_auto,q_60,f_auto"


def thumbnail_url_for(image_url: str, thumbnail_url: Optional[str] = None) -> str:
    """Pick the URL to show in a product grid.

    A stored thumbnail always wins. Cloudinary originals get a square, auto-cropped
    delivery transformation; anything else is returned unchanged.
    """
    if thumbnail_url:
        return thumbnail_url

    if CLOUDINARY_HOST in image_url and "/upload/" in image_url:
        return image_url.replace("/upload/", f"/upload/{THUMBNAIL_TRANSFORMATION}/", 1)

    return image_url
