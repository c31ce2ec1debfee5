"""Command-line interface for the web page downloader."""

import asyncio
from urllib.parse import urlparse

import click
from rich.console import Console

from webpage_download.downloader import DEFAULT_ROOT_FOLDER, DownloaderConfig, mirror_pages

console = Console()

DEFAULT_URLS = [
    "https://www.entaingroup.com/",
    "https://www.microsoft.com/en-us/",
    "https://www.github.com/",
    "https://www.wikipedia.org/",
    "https://owasp.org/",
    "https://www.opengroup.org/togaf",
]


def is_valid_url(value: str) -> bool:
    """Check if a value is an absolute http or https URL."""
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def split_arguments(args: tuple[str, ...]) -> tuple[str, list[str]]:
    """Split positional arguments into the output folder and the URLs to download."""
    if not args:
        return DEFAULT_ROOT_FOLDER, list(DEFAULT_URLS)

    # No folder given, every argument is a URL
    if is_valid_url(args[0]):
        return DEFAULT_ROOT_FOLDER, list(args)

    return args[0], list(args[1:]) or list(DEFAULT_URLS)


@click.command()
@click.argument("args", nargs=-1, metavar="[DEST] [URL]...")
@click.option(
    "--concurrency",
    "-c",
    default=None,
    type=click.IntRange(min=1),
    help="Maximum number of pages downloaded at once (default: no limit)",
)
@click.option(
    "--timeout",
    "-t",
    default=30.0,
    type=float,
    help="Request timeout in seconds",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose output",
)
def main(args: tuple[str, ...], concurrency: int | None, timeout: float, verbose: bool) -> None:
    """Download web pages and their images, scripts and stylesheets.

    DEST: Output folder (default: Downloads). Omit it to pass URLs only.

    URL: Pages to download. Without URLs a built-in list is used.

    Examples:

        webpage-download https://example.com/

        webpage-download ./mirror https://example.com/ https://owasp.org/
    """
    root_folder, urls = split_arguments(args)

    config = DownloaderConfig(
        timeout=timeout,
        concurrency=concurrency,
        verbose=verbose,
    )

    try:
        asyncio.run(mirror_pages(urls, root_folder, config))
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        raise click.Abort()

    console.print("Downloading process is done")


if __name__ == "__main__":
    main()
