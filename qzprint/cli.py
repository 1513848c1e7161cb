#!/usr/bin/env python3

from __future__ import annotations
import asyncio
import base64
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional

import typer
from rich.console import Console

from qzprint.printer import QZTrayPrinter
from qzprint.transport import BridgeTransport
from qzshared.config import BridgeSettings, load_settings
from qzshared.crypto.signer import RSASignatureSupplier
from qzshared.errors import BridgeError, ConfigurationError
from qzshared.log import configure_root_logging, get_logger

app = typer.Typer(help="Print through a local QZ Tray bridge")
console = Console()
logger = get_logger(__name__)


def _settings(config: Optional[Path], printer: Optional[str], insecure: Optional[bool]) -> BridgeSettings:
    return load_settings(config).merged(printer=printer, insecure=insecure)


def build_printer(settings: BridgeSettings) -> QZTrayPrinter:
    """Build a printer client from resolved settings; raises ConfigurationError on gaps."""
    signature_supplier = None
    if settings.private_key_file:
        key_path = Path(settings.private_key_file).expanduser()
        try:
            signature_supplier = RSASignatureSupplier.from_file(
                key_path, algorithm=settings.sign_algorithm or "SHA512",
            )
        except OSError as e:
            raise ConfigurationError(f"Cannot read private key file {key_path}: {e}") from e
    return QZTrayPrinter(
        certificate_url=settings.certificate_url,
        sign_url=settings.sign_url,
        printer=settings.printer,
        raw_certificate=settings.read_certificate(),
        signature_supplier=signature_supplier,
        sign_algorithm=settings.sign_algorithm,
        transport=BridgeTransport(use_secure=not settings.insecure),
    )


def _run(settings: BridgeSettings, job: Callable[[QZTrayPrinter], Awaitable[Any]]) -> Any:
    async def main() -> Any:
        printer = build_printer(settings)
        await printer.start()
        try:
            return await job(printer)
        finally:
            await printer.close()

    try:
        return asyncio.run(main())
    except BridgeError as e:
        console.print(f"[red]Error[/]: {e}")
        raise typer.Exit(code=1)


def _printer_options(copies: Optional[int], job_name: Optional[str]) -> Dict[str, Any]:
    options: Dict[str, Any] = {}
    if copies is not None:
        options["copies"] = copies
    if job_name:
        options["jobName"] = job_name
    return options


def _document(source: str) -> tuple[str, bool]:
    """Local files are inlined as base64; anything else is passed on as a URL."""
    path = Path(source).expanduser()
    if path.is_file():
        return base64.b64encode(path.read_bytes()).decode("ascii"), True
    return source, False


ConfigOpt = typer.Option(None, "--config", "-c", help="Path to qzprint.yaml")
PrinterOpt = typer.Option(None, "--printer", "-p", help="Printer name (overrides config)")
InsecureOpt = typer.Option(None, "--insecure/--secure", help="Use ws:// ports instead of wss://")
CopiesOpt = typer.Option(None, help="Number of copies")
JobNameOpt = typer.Option(None, help="Name shown in the print queue")


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging")) -> None:
    configure_root_logging("DEBUG" if verbose else "WARNING")


@app.command()
def version(
    config: Optional[Path] = ConfigOpt,
    printer: Optional[str] = PrinterOpt,
    insecure: Optional[bool] = InsecureOpt,
):
    """Connect to the bridge and report its version."""
    result = _run(_settings(config, printer, insecure), lambda p: p.transport.get_version())
    console.print(f"[bold green]Connected[/] to QZ Tray {result}")


@app.command()
def html(
    url: str = typer.Argument(..., help="Page URL, or HTML text with --plain"),
    plain: bool = typer.Option(False, help="Treat URL as inline HTML"),
    config: Optional[Path] = ConfigOpt,
    printer: Optional[str] = PrinterOpt,
    insecure: Optional[bool] = InsecureOpt,
    copies: Optional[int] = CopiesOpt,
    job_name: Optional[str] = JobNameOpt,
):
    """Print an HTML page."""
    options = _printer_options(copies, job_name)
    _run(_settings(config, printer, insecure), lambda p: p.html_print(
        url, format="plain" if plain else "file", printer_options=options,
    ))
    console.print("[bold green]Sent[/] HTML job")


@app.command()
def pdf(
    source: str = typer.Argument(..., help="PDF file path or URL"),
    config: Optional[Path] = ConfigOpt,
    printer: Optional[str] = PrinterOpt,
    insecure: Optional[bool] = InsecureOpt,
    copies: Optional[int] = CopiesOpt,
    job_name: Optional[str] = JobNameOpt,
):
    """Print a PDF document."""
    data, is_base64 = _document(source)
    options = _printer_options(copies, job_name)
    _run(_settings(config, printer, insecure), lambda p: p.pdf_print(
        data, is_base64=is_base64, printer_options=options,
    ))
    console.print(f"[bold green]Sent[/] PDF job for {source}")


@app.command()
def image(
    source: str = typer.Argument(..., help="Image file path or URL"),
    config: Optional[Path] = ConfigOpt,
    printer: Optional[str] = PrinterOpt,
    insecure: Optional[bool] = InsecureOpt,
    copies: Optional[int] = CopiesOpt,
    job_name: Optional[str] = JobNameOpt,
):
    """Print an image."""
    data, is_base64 = _document(source)
    options = _printer_options(copies, job_name)
    _run(_settings(config, printer, insecure), lambda p: p.image_print(
        data, is_base64=is_base64, printer_options=options,
    ))
    console.print(f"[bold green]Sent[/] image job for {source}")


@app.command()
def raw(
    files: List[Path] = typer.Argument(..., help="Files with printer commands (ZPL, EPL, ESC/POS)"),
    encoding: Optional[str] = typer.Option(None, help="Character set the printer expects"),
    config: Optional[Path] = ConfigOpt,
    printer: Optional[str] = PrinterOpt,
    insecure: Optional[bool] = InsecureOpt,
):
    """Send raw printer commands."""
    commands = [f.read_text(encoding="utf-8") for f in files]
    options = {"encoding": encoding} if encoding else {}
    _run(_settings(config, printer, insecure), lambda p: p.raw_print(commands, printer_options=options))
    console.print(f"[bold green]Sent[/] {len(commands)} raw command block(s)")


if __name__ == "__main__":
    app()
