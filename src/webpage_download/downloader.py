"""Core download module: mirror web pages and their resources to local folders."""

import asyncio
import os
from collections.abc import AsyncIterator, Iterable
from dataclasses import dataclass
from urllib.parse import ParseResult, unquote, urlparse

import httpx
from bs4 import BeautifulSoup
from rich.console import Console
from rich.markup import escape
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn

from webpage_download.filesystem import LocalFileSystem
from webpage_download.references import rewrite_and_collect, serialize_html
from webpage_download.transport import (
    DEFAULT_USER_AGENT,
    HttpTransport,
    raise_if_cancelled,
    run_cancellable,
)

console = Console()

DEFAULT_ROOT_FOLDER = "Downloads"
INDEX_FILE_NAME = "index.html"
FALLBACK_RESOURCE_NAME = "resource"


@dataclass
class DownloaderConfig:
    """Configuration for the page downloader."""

    timeout: float = 30.0
    concurrency: int | None = None
    verbose: bool = False
    user_agent: str = DEFAULT_USER_AGENT


@dataclass
class DownloaderStats:
    """Statistics for the download process."""

    pages_saved: int = 0
    pages_failed: int = 0
    resources_downloaded: int = 0
    resources_failed: int = 0


@dataclass(frozen=True)
class SavedPage:
    """Outcome of downloading one page. Exactly one of path or error is set."""

    original_url: str
    saved_html_path: str | None = None
    error: str | None = None


def parse_page_url(url: str) -> ParseResult:
    """Parse an input URL, requiring an absolute http(s) URL with a host."""
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise ValueError(f"Invalid URL: '{url}' is not an absolute http(s) URL")
    return parsed


def host_folder_name(host: str) -> str:
    """Folder name for a host: dots become underscores."""
    return host.replace(".", "_")


def resource_file_name(resource_url: str) -> str:
    """Local file name for a resource, taken from its URL path."""
    path = unquote(urlparse(resource_url).path).lstrip("/")
    if not path.strip():
        return FALLBACK_RESOURCE_NAME
    return path


def _error_message(exc: Exception) -> str:
    return str(exc) or type(exc).__name__


class PageDownloader:
    """Downloads pages with their resources into per-host folders."""

    def __init__(
        self,
        transport: HttpTransport,
        file_system: LocalFileSystem,
        config: DownloaderConfig | None = None,
    ):
        self.transport = transport
        self.file_system = file_system
        self.config = config or DownloaderConfig()
        self.stats = DownloaderStats()

        # Pages run unbounded unless a concurrency limit is configured
        self.semaphore = (
            asyncio.Semaphore(self.config.concurrency) if self.config.concurrency else None
        )

    def _resource_path(self, host_folder: str, resource_url: str) -> str:
        """Convert a resource URL to a file path inside the host folder."""
        file_path = os.path.join(host_folder, resource_file_name(resource_url))

        root = os.path.abspath(host_folder)
        if os.path.commonpath([root, os.path.abspath(file_path)]) != root:
            raise ValueError(f"Resource path escapes host folder: {resource_url}")

        return file_path

    async def _download_resource(
        self, resource_url: str, host_folder: str, cancel_event: asyncio.Event | None
    ) -> None:
        """Fetch one resource and save it. Failures never propagate."""
        try:
            content = await self.transport.get_bytes(resource_url, cancel_event)

            file_path = self._resource_path(host_folder, resource_url)
            self.file_system.create_folder(os.path.dirname(file_path))
            await run_cancellable(self.file_system.save_bytes(file_path, content), cancel_event)

            self.stats.resources_downloaded += 1
            if self.config.verbose:
                console.print(f"[dim]Downloaded resource: {escape(file_path)}[/dim]")

        except Exception as e:
            self.stats.resources_failed += 1
            if self.config.verbose:
                console.print(
                    f"[yellow]Failed to download resource {escape(resource_url)}: "
                    f"{escape(_error_message(e))}[/yellow]"
                )

    async def _download_page(
        self, url: str, root_folder: str, cancel_event: asyncio.Event | None
    ) -> SavedPage:
        """Process a single URL: fetch HTML, rewrite references, save resources and page."""
        try:
            parsed = parse_page_url(url)
            host_folder = os.path.join(root_folder, host_folder_name(parsed.hostname))

            html = await self.transport.get_text(url, cancel_event)

            soup = BeautifulSoup(html, "html.parser")
            resource_urls = rewrite_and_collect(soup, url)

            self.file_system.create_folder(host_folder)
            await asyncio.gather(
                *(
                    self._download_resource(resource_url, host_folder, cancel_event)
                    for resource_url in resource_urls
                )
            )

            # Resource failures are swallowed, so check the signal before writing
            raise_if_cancelled(cancel_event)

            html_path = os.path.join(host_folder, INDEX_FILE_NAME)
            with self.file_system.open_write_stream(html_path) as stream:
                stream.write(serialize_html(soup))

        except Exception as e:
            self.stats.pages_failed += 1
            return SavedPage(url, None, _error_message(e))

        self.stats.pages_saved += 1
        return SavedPage(url, html_path, None)

    async def download_one(
        self,
        url: str,
        root_folder: str = DEFAULT_ROOT_FOLDER,
        cancel_event: asyncio.Event | None = None,
    ) -> SavedPage:
        """Download a page and its resources. Errors are reported in the result."""
        if self.semaphore is None:
            return await self._download_page(url, root_folder, cancel_event)

        async with self.semaphore:
            return await self._download_page(url, root_folder, cancel_event)

    async def download_all(
        self,
        urls: Iterable[str],
        root_folder: str = DEFAULT_ROOT_FOLDER,
        cancel_event: asyncio.Event | None = None,
    ) -> list[SavedPage]:
        """Download every page concurrently and return all results once finished."""
        if self.config.verbose:
            console.print("[cyan]Starting bulk download of web pages[/cyan]")

        tasks = [self.download_one(url, root_folder, cancel_event) for url in urls]
        results = await asyncio.gather(*tasks)

        if self.config.verbose:
            console.print("[cyan]Completed bulk download of web pages[/cyan]")

        return list(results)

    async def download_streaming(
        self,
        urls: Iterable[str],
        root_folder: str = DEFAULT_ROOT_FOLDER,
        cancel_event: asyncio.Event | None = None,
    ) -> AsyncIterator[SavedPage]:
        """Download every page concurrently, yielding results in completion order."""
        tasks = [
            asyncio.create_task(self.download_one(url, root_folder, cancel_event)) for url in urls
        ]

        try:
            for next_done in asyncio.as_completed(tasks):
                yield await next_done
        finally:
            # Consumer stopped early: drop the pages still in flight
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)


async def mirror_pages(
    urls: list[str],
    root_folder: str = DEFAULT_ROOT_FOLDER,
    config: DownloaderConfig | None = None,
    cancel_event: asyncio.Event | None = None,
) -> tuple[list[SavedPage], DownloaderStats]:
    """Download pages with a live progress display, printing each result."""
    config = config or DownloaderConfig()

    console.print("[bold blue]Web Page Downloader[/bold blue]")
    console.print(f"  Pages: {len(urls)}")
    console.print(f"  Output: {root_folder}")
    console.print(f"  Concurrency: {config.concurrency or 'unbounded'}")
    console.print()

    results: list[SavedPage] = []

    async with httpx.AsyncClient(
        follow_redirects=True,
        headers={"User-Agent": config.user_agent},
    ) as client:
        transport = HttpTransport(client, config.timeout)
        downloader = PageDownloader(transport, LocalFileSystem(), config)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=console,
        ) as progress:
            task_id = progress.add_task("[cyan]Downloading pages...", total=len(urls))

            async for saved_page in downloader.download_streaming(urls, root_folder, cancel_event):
                if saved_page.error is None:
                    console.print(
                        f"Downloaded {escape(saved_page.original_url)} "
                        f"to {escape(saved_page.saved_html_path)}"
                    )
                else:
                    console.print(
                        f"[red]Failed {escape(saved_page.original_url)}: "
                        f"{escape(saved_page.error)}[/red]"
                    )
                results.append(saved_page)
                progress.update(task_id, advance=1)

    # Print summary
    stats = downloader.stats
    console.print()
    console.print(f"  Pages saved: {stats.pages_saved}")
    console.print(f"  Pages failed: {stats.pages_failed}")
    console.print(f"  Resources downloaded: {stats.resources_downloaded}")
    console.print(f"  Resources failed: {stats.resources_failed}")

    return results, stats
