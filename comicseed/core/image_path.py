import re
from typing import Optional

IMAGE_FILENAME_RE = re.compile(r"\.(png|jpe?g|webp|gif|svg|avif|bmp)(\?.*)?$", re.IGNORECASE)
ABSOLUTE_URL_RE = re.compile(r"^(https?://|data:)", re.IGNORECASE)


def is_image_filename(name: Optional[str]) -> bool:
    if not name:
        return False
    return bool(IMAGE_FILENAME_RE.search(name))


def is_absolute_url(value: Optional[str]) -> bool:
    return bool(value) and bool(ABSOLUTE_URL_RE.match(value.strip()))


def normalize_image_path(value: Optional[str]) -> Optional[str]:
    """
    Normalize an image reference so it matches the public asset layout.

    - http(s) and data: URLs are returned unchanged
    - backslashes become forward slashes
    - a leading "./", "public/" or "/public/" is stripped
    - the result always starts with "/"
    """
    if value is None:
        return None

    s = str(value).strip()
    if not s:
        return None

    if is_absolute_url(s):
        return s

    normalized = re.sub(r"\\+", "/", s)
    normalized = re.sub(r"^(\./+)+", "", normalized)

    if normalized.startswith("/public/"):
        normalized = normalized[len("/public"):]
    elif normalized.startswith("public/"):
        normalized = normalized[len("public"):]

    if not normalized.startswith("/"):
        normalized = "/" + normalized

    return normalized


def looks_like_path(value: str) -> bool:
    """Strings the loader rewrites even without an image extension"""
    return "public/" in value or "public\\" in value or "\\" in value
