"""Media type detection for selected photos.

The type is read from the file's magic bytes rather than its extension, since
tagged names keep whatever extension the file started with.
"""
from typing import Optional
import magic

IMAGE_TYPE_NAMES = {
    'image/jpeg': 'JPEG Image',
    'image/png': 'PNG Image',
    'image/gif': 'GIF Image',
    'image/bmp': 'BMP Image',
    'image/tiff': 'TIFF Image',
    'image/heic': 'HEIC Image',
    'image/webp': 'WebP Image',
    'image/x-canon-cr2': 'Canon RAW (CR2)',
    'image/x-nikon-nef': 'Nikon RAW (NEF)',
    'image/x-adobe-dng': 'Adobe DNG RAW',
    'video/mp4': 'MP4 Video',
    'video/quicktime': 'QuickTime Video',
}


def detect_media_type(file_path: str) -> Optional[str]:
    """Detect the media type of a file using libmagic.

    Args:
        file_path: Path to the file

    Returns:
        MIME type such as 'image/jpeg', or None when the file cannot be read.
    """
    try:
        mime = magic.Magic(mime=True)
        return mime.from_file(file_path)
    except Exception:
        return None


def is_supported_media(media_type: Optional[str]) -> bool:
    """True for image and video MIME types.

    Examples:
        >>> is_supported_media('image/jpeg')
        True
        >>> is_supported_media('text/plain')
        False
    """
    if not media_type:
        return False
    return media_type.startswith('image/') or media_type.startswith('video/')


def describe_media_type(media_type: Optional[str]) -> str:
    if not media_type:
        return 'Unknown'
    return IMAGE_TYPE_NAMES.get(media_type, media_type)
