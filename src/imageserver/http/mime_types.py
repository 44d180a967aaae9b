"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

Maps image file extensions to the Content-Type sent with them.

The table is deliberately small: the server only knows the raster formats
browsers display natively. Everything else goes out as
application/octet-stream, which makes browsers download the file rather
than guess at its type.

    ┌────────────────────────────────────────────────────────────────────┐
    │  .jpg / .jpeg   → image/jpeg                                       │
    │  .png           → image/png                                        │
    │  .gif           → image/gif                                        │
    │  .bmp           → image/bmp                                        │
    │  .webp          → image/webp                                       │
    │  anything else  → application/octet-stream                         │
    └────────────────────────────────────────────────────────────────────┘

Lookups are case-insensitive: PHOTO.JPG and photo.jpg are both image/jpeg.

=============================================================================
"""

from pathlib import PurePath
from typing import Union


DEFAULT_MIME_TYPE = "application/octet-stream"

# Keys are lowercase and include the leading dot.
MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".bmp": "image/bmp",
    ".webp": "image/webp",
}


def mime_for(extension: str) -> str:
    """
    Get the MIME type for a file extension.

    Args:
        extension: Extension with or without the leading dot ("png", ".PNG").

    Returns:
        The MIME type, or application/octet-stream if unknown.

    Examples:
        >>> mime_for(".JPG")
        'image/jpeg'
        >>> mime_for("tiff")
        'application/octet-stream'
    """
    ext = extension.lower()
    if ext and not ext.startswith("."):
        ext = "." + ext
    return MIME_TYPES.get(ext, DEFAULT_MIME_TYPE)


def get_mime_type(path: Union[str, PurePath]) -> str:
    """
    Get the MIME type for a file path based on its extension.

    Examples:
        >>> get_mime_type("/srv/images/logo.png")
        'image/png'
        >>> get_mime_type("README")
        'application/octet-stream'
    """
    return mime_for(PurePath(path).suffix)

