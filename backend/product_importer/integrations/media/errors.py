"""
媒体集成层专用异常类型：把 HTTP/文件/内容类型错误与导入逻辑解耦。
"""

class MediaError(Exception):
    """Base for all media errors."""

class MediaFetchError(MediaError):
    """Network errors or non-2xx responses while downloading."""

class MediaTypeError(MediaError):
    """Downloaded payload is not an accepted image type."""

class MediaTooLargeError(MediaError):
    """Payload exceeds IMAGE_MAX_BYTES."""
