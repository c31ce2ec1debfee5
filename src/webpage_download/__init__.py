"""Web Page Downloader

Save web pages to local folders together with their images, scripts and stylesheets.
"""

from webpage_download.downloader import (
    DownloaderConfig,
    DownloaderStats,
    PageDownloader,
    SavedPage,
    mirror_pages,
)
from webpage_download.filesystem import LocalFileSystem
from webpage_download.references import rewrite_and_collect
from webpage_download.transport import DownloadCancelled, HttpTransport, TransportError

__all__ = [
    "DownloadCancelled",
    "DownloaderConfig",
    "DownloaderStats",
    "HttpTransport",
    "LocalFileSystem",
    "PageDownloader",
    "SavedPage",
    "TransportError",
    "mirror_pages",
    "rewrite_and_collect",
]
__version__ = "0.1.0"
