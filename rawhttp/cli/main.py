"""
Command-line interface for rawhttp.

Sends a single request, ordinary or raw, and prints what came back.
"""

import asyncio
import logging
import sys
from typing import List, Optional, Tuple

import click
import httpx
from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn

from rawhttp.clients.client import AsyncClient
from rawhttp.config import TLSSettings, TransportConfiguration
from rawhttp.errors import RawHTTPError
from rawhttp.utils.logging import get_logger, setup_logging

console = Console()

# Bodies longer than this are truncated when printed
MAX_PRINTED_BODY = 4096


@click.group()
@click.version_option()
@click.option('--debug', is_flag=True, help='Enable debug logging')
@click.option('--log-file', help='Log file path')
def cli(debug: bool, log_file: Optional[str]):
    """rawhttp - send HTTP requests, or exact bytes, to a server."""
    setup_logging(level=logging.DEBUG if debug else logging.INFO, log_file=log_file, verbose=debug)


def _parse_headers(header: Tuple[str, ...]) -> List[Tuple[str, str]]:
    headers = []
    for h in header:
        if ':' in h:
            name, value = h.split(':', 1)
            headers.append((name.strip(), value.strip()))
        else:
            console.print(f"[bold yellow]Warning:[/] Ignoring invalid header format: {h}")
    return headers


@cli.command()
@click.argument('url')
@click.option('--method', '-m', default='GET', help='HTTP method to use (RAW sends --raw verbatim)')
@click.option('--header', '-H', multiple=True, help='HTTP header (can be used multiple times)')
@click.option('--data', '-d', help='HTTP request body')
@click.option('--raw', '-r', 'raw_file', type=click.Path(exists=True, dir_okay=False), help='Path to file containing a raw HTTP request to send verbatim')
@click.option('--timeout', '-t', default=15.0, help='Timeout in seconds')
@click.option('--verify-ssl', is_flag=True, help='Verify SSL certificates')
@click.option('--http2', is_flag=True, help='Allow HTTP/2 for ordinary requests')
@click.option('--output', '-o', help='Output file for the response body')
@click.option('--verbose', '-v', is_flag=True, help='Verbose output')
def request(
    url: str,
    method: str,
    header: Tuple[str, ...],
    data: Optional[str],
    raw_file: Optional[str],
    timeout: float,
    verify_ssl: bool,
    http2: bool,
    output: Optional[str],
    verbose: bool,
):
    """Send a request to URL.

    With --raw the file's bytes are sent exactly as they are to the host and
    port of URL (http(s)://hostname:port), and the reply is parsed as an
    HTTP/1.x response.
    """
    parsed = httpx.URL(url)
    if parsed.scheme not in ('http', 'https'):
        console.print(f"[bold red]Error:[/] Invalid URL scheme: {parsed.scheme}. Must be http or https.")
        sys.exit(1)

    raw_request = None
    if raw_file:
        with open(raw_file, 'rb') as f:
            raw_request = f.read()
    elif method.upper() == 'RAW':
        console.print("[bold red]Error:[/] The RAW method needs a request file (--raw)")
        sys.exit(1)

    config = TransportConfiguration(tls=TLSSettings(verify=verify_ssl), http2=http2)
    body = data.encode('utf-8') if data else None

    try:
        response = asyncio.run(
            _run_request(config, url, method, _parse_headers(header), body, raw_request, timeout)
        )
    except KeyboardInterrupt:
        console.print("\n[bold yellow]Request cancelled by user[/]")
        sys.exit(130)
    except (RawHTTPError, httpx.HTTPError) as e:
        console.print(f"[bold red]Error:[/] {escape(str(e))}")
        sys.exit(1)

    _print_response(response, verbose)

    if output:
        with open(output, 'wb') as f:
            f.write(response.content)
        console.print(f"[bold green]Response saved to:[/] {output}")


async def _run_request(
    config: TransportConfiguration,
    url: str,
    method: str,
    headers: List[Tuple[str, str]],
    body: Optional[bytes],
    raw_request: Optional[bytes],
    timeout: float,
) -> httpx.Response:
    """Send one request through an AsyncClient."""
    logger = get_logger()

    with Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        progress.add_task("Sending request...", total=None)
        async with AsyncClient(config, timeout=timeout) as client:
            if raw_request is not None:
                logger.info(f"Sending raw request ({len(raw_request)} bytes)")
                return await client.raw(url, raw_request)
            logger.info(f"Sending {method.upper()} request to {url}")
            return await client.request(method, url, body, dict(headers))


def _print_response(response: httpx.Response, verbose: bool) -> None:
    console.print(f"[bold green]Status:[/] {response.status_code} {response.reason_phrase}")

    if verbose:
        console.print("\n[bold green]Response headers:[/]")
        for name, value in response.headers.multi_items():
            console.print(f"  [blue]{escape(name)}:[/] {escape(value)}")

    body = response.content
    if not verbose:
        console.print(f"\n[bold green]Response body:[/] {len(body)} bytes")
        return

    console.print("\n[bold green]Response body:[/]")
    text = body[:MAX_PRINTED_BODY].decode('utf-8', errors='replace')
    console.print(text, markup=False)
    if len(body) > MAX_PRINTED_BODY:
        console.print("[dim]... (truncated)[/]")


def main():
    """Main entry point for the CLI."""
    try:
        cli()
    except Exception as e:
        console.print(f"[bold red]Unexpected error:[/] {e}")
        get_logger().exception("Unhandled exception in main")
        sys.exit(1)


if __name__ == '__main__':
    main()
