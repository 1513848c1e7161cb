from __future__ import annotations
import asyncio
import logging
import webbrowser
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from qzprint.suppliers import CertificateSupplier, HttpFetcher, SignatureSupplier
from qzprint.transport import BridgeTransport, SignatureProvider
from qzshared.errors import ConnectionError
from qzshared.log import get_logger

logger = get_logger(__name__)

LAUNCH_URI = "qz:launch"


class LogSink(Protocol):
    def info(self, message: str) -> None: ...
    def error(self, message: str) -> None: ...


class LoggerSink:
    """Default sink: forwards to a module logger"""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or get_logger("qzprint")

    def info(self, message: str) -> None:
        self.logger.info(message)

    def error(self, message: str) -> None:
        self.logger.error(message)


def launch_bridge_app() -> None:
    """
    Ask the desktop to open the bridge's custom URI scheme. Fire and forget.

    The opener runs on the default executor; some browser controllers wait
    for their child process, and the event loop must not wait with them.
    """
    future = asyncio.get_running_loop().run_in_executor(None, webbrowser.open, LAUNCH_URI)
    future.add_done_callback(_log_launch_outcome)


def _log_launch_outcome(future: asyncio.Future) -> None:
    if future.cancelled():
        return
    error = future.exception()
    if error is not None:
        logger.error("Opening %s failed: %s", LAUNCH_URI, error)
    elif not future.result():
        logger.warning("No handler accepted %s", LAUNCH_URI)


@dataclass(frozen=True)
class Credentials:
    certificate_url: Optional[str] = None
    raw_certificate: Optional[str] = None
    sign_url: Optional[str] = None
    sign_algorithm: str = "SHA1"

    @property
    def is_anonymous(self) -> bool:
        return not (self.certificate_url or self.raw_certificate or self.sign_url)


@dataclass(frozen=True)
class ConnectionAttempt:
    """Options for one call to transport.connect; created per bootstrap call"""
    retries: int = 0
    delay: int = 0
    is_retry: bool = False


FIRST_ATTEMPT = ConnectionAttempt()
RECOVERY_ATTEMPT = ConnectionAttempt(retries=2, delay=1, is_retry=True)


class ConnectionBootstrapper:
    """
    Establishes the authenticated channel to the bridge before any print call.

    connect() makes one plain attempt. If it fails, the bridge application is
    probably not running: the bootstrapper launches it once and makes exactly
    one more attempt with transport-level retries before giving up.
    """

    def __init__(
        self,
        transport: Optional[BridgeTransport] = None,
        *,
        fetcher: Optional[HttpFetcher] = None,
        sink: Optional[LogSink] = None,
        attempt_external_launch: Callable[[], None] = launch_bridge_app,
    ) -> None:
        self.transport = transport or BridgeTransport()
        self.fetcher = fetcher or HttpFetcher()
        self.sink: LogSink = sink or LoggerSink()
        self.attempt_external_launch = attempt_external_launch

    def configure(self, credentials: Credentials,
                  signature_supplier: Optional[SignatureProvider] = None) -> None:
        """Register the certificate and signature suppliers with the transport."""
        if credentials.is_anonymous and signature_supplier is None:
            self.sink.info("No certificate or signing endpoint configured; using anonymous mode")

        self.transport.set_certificate_supplier(CertificateSupplier(
            certificate_url=credentials.certificate_url,
            raw_certificate=credentials.raw_certificate,
            fetcher=self.fetcher,
        ))
        self.transport.set_signature_supplier(
            signature_supplier or SignatureSupplier(credentials.sign_url, fetcher=self.fetcher),
            algorithm=credentials.sign_algorithm,
        )

    async def connect(self) -> None:
        if self.transport.is_active():
            return
        try:
            await self._attempt(FIRST_ATTEMPT)
            return
        except Exception as e:
            self.sink.info(f"Bridge connection failed ({e}); launching bridge application and retrying")

        try:
            await self._attempt(RECOVERY_ATTEMPT)
        except Exception as e:
            self.sink.error(f"Unable to connect to the bridge application: {e}")
            raise ConnectionError("Unable to connect to the bridge application") from e

    async def _attempt(self, attempt: ConnectionAttempt) -> None:
        if self.transport.is_active():
            return
        if attempt.is_retry:
            self._launch()
            await self.transport.connect(retries=attempt.retries, delay=attempt.delay)
        else:
            await self.transport.connect()
        self.sink.info("Connected to the bridge application")

    def _launch(self) -> None:
        try:
            self.attempt_external_launch()
        except Exception as e:
            self.sink.error(f"Launching the bridge application failed: {e}")

    async def disconnect(self) -> None:
        try:
            await self.transport.disconnect()
        except Exception as e:
            self.sink.error(f"Error closing bridge connection: {e}")
