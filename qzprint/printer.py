from __future__ import annotations
from typing import Any, Dict, List, Mapping, Optional

from qzprint.bootstrap import ConnectionBootstrapper, Credentials, LogSink
from qzprint.configs import Printer, PrintConfig
from qzprint.suppliers import HttpFetcher
from qzprint.transport import BridgeTransport, SignatureProvider
from qzshared.errors import ConfigurationError, PrintError
from qzshared.utils import required


class QZTrayPrinter:
    """
    Print client for one printer behind the local bridge application.

    Usage:
        printer = QZTrayPrinter(
            certificate_url="https://example.com/qz/cert",
            sign_url="https://example.com/qz/sign",
            printer="Zebra",
        )
        await printer.start()
        await printer.pdf_print("https://example.com/label.pdf")
        await printer.close()

    Either certificate_url or raw_certificate must be given, and either
    sign_url or a local signature_supplier.
    """

    def __init__(
        self,
        certificate_url: Optional[str] = None,
        sign_url: Optional[str] = None,
        printer: Optional[Printer] = None,
        *,
        raw_certificate: Optional[str] = None,
        signature_supplier: Optional[SignatureProvider] = None,
        sign_algorithm: Optional[str] = None,
        transport: Optional[BridgeTransport] = None,
        fetcher: Optional[HttpFetcher] = None,
        sink: Optional[LogSink] = None,
        bootstrapper: Optional[ConnectionBootstrapper] = None,
    ) -> None:
        if certificate_url is None and not raw_certificate:
            raise ConfigurationError("Required parameter 'certificate_url' was not provided.")
        if signature_supplier is None:
            required("sign_url", sign_url)
        self.printer = required("printer", printer)
        PrintConfig.create(self.printer)  # validates the printer descriptor

        self.certificate_url = certificate_url
        self.raw_certificate = raw_certificate or ""
        self.sign_url = sign_url
        self.signature_supplier = signature_supplier

        algorithm = sign_algorithm or getattr(signature_supplier, "algorithm", None) or "SHA1"
        self.credentials = Credentials(
            certificate_url=certificate_url,
            raw_certificate=raw_certificate or None,
            sign_url=sign_url,
            sign_algorithm=algorithm,
        )
        self.bootstrapper = bootstrapper or ConnectionBootstrapper(
            transport,
            fetcher=fetcher,
            sink=sink,
        )

    @property
    def transport(self) -> BridgeTransport:
        return self.bootstrapper.transport

    @property
    def sink(self) -> LogSink:
        return self.bootstrapper.sink

    async def start(self) -> None:
        """Register the handshake suppliers and connect (launching the bridge if needed)"""
        self.bootstrapper.configure(self.credentials, signature_supplier=self.signature_supplier)
        await self.bootstrapper.connect()

    async def close(self) -> None:
        """Close the bridge connection; never raises"""
        await self.bootstrapper.disconnect()

    # ========================================
    #           PRINT JOBS
    # ========================================

    async def html_print(
        self,
        page_url: str,
        *,
        page_options: Optional[Mapping[str, Any]] = None,
        printer_options: Optional[Mapping[str, Any]] = None,
        format: Optional[str] = None,
    ) -> None:
        """
        Print a web page rendered by the bridge.

        format is "file" (page_url is a URL, the default) or "plain" (page_url
        holds the HTML itself).
        """
        data = [{
            "type": "html",
            "format": format or "file",
            "data": page_url,
            "options": dict(page_options or {}),
        }]
        await self._print(data, printer_options)

    async def pdf_print(
        self,
        pdf_data: str,
        *,
        is_base64: bool = False,
        page_options: Optional[Mapping[str, Any]] = None,
        printer_options: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """Print a PDF given by URL/path, or inline as base64 when is_base64 is set."""
        await self._print([self._document("pdf", pdf_data, is_base64, page_options)], printer_options)

    async def image_print(
        self,
        img_data: str,
        *,
        is_base64: bool = False,
        page_options: Optional[Mapping[str, Any]] = None,
        printer_options: Optional[Mapping[str, Any]] = None,
    ) -> None:
        await self._print([self._document("image", img_data, is_base64, page_options)], printer_options)

    async def raw_print(
        self,
        raw_data: List[Any],
        *,
        printer_options: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """Send printer-language commands (ZPL, EPL, ESC/POS...) as-is."""
        await self._print(list(raw_data), printer_options)

    @staticmethod
    def _document(kind: str, data: str, is_base64: bool,
                  page_options: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        document: Dict[str, Any] = {
            "type": kind,
            "data": data,
            "options": dict(page_options or {}),
        }
        if is_base64:
            document["format"] = "base64"
        return document

    async def _print(self, data: List[Any], printer_options: Optional[Mapping[str, Any]]) -> None:
        config = PrintConfig.create(self.printer, printer_options)
        try:
            await self.transport.print(config, data)
        except Exception as e:
            self.sink.error(f"Print job failed: {e}")
            raise PrintError(f"Print job failed: {e}") from e
