import re
from typing import Optional

IMAGE_URL_RE = re.compile(r"^https?://.+\.(jpg|jpeg|png|gif|webp)$", re.IGNORECASE)


def validate_image_url(value: Optional[str]) -> Optional[str]:
    """Empty means no picture; anything else must be an http(s) image URL."""
    if value is None or not value.strip():
        return None
    value = value.strip()
    if not IMAGE_URL_RE.match(value):
        raise ValueError("Please provide a valid image URL")
    return value
