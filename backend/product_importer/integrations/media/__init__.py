"""
对外统一入口：从这里 import 需要的类，内部实现可自由演进。
"""

from .image_downloader import ImageDownloader, DownloadedImage
from .errors import MediaError, MediaFetchError, MediaTypeError, MediaTooLargeError


__all__ = [
    "ImageDownloader", "DownloadedImage",
    "MediaError", "MediaFetchError", "MediaTypeError", "MediaTooLargeError",
]
