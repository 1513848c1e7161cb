from __future__ import annotations
import asyncio
import ssl
from contextlib import suppress
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

import websockets

from qzprint.configs import PrintConfig
from qzshared.crypto.crypto import sha256_hex
from qzshared.errors import BadFrameError, BridgeError, ConnectionError
from qzshared.log import get_logger
from qzshared.message import BridgeMessage, BridgeReply

logger = get_logger(__name__)


CertificateProvider = Callable[[], Awaitable[Optional[str]]]
SignatureProvider = Callable[[str], Awaitable[Optional[Any]]]

DEFAULT_HOSTS = ("localhost", "localhost.qz.io")
SECURE_PORTS = (8181, 8282, 8383, 8484)
INSECURE_PORTS = (8182, 8283, 8384, 8485)


class TransportState(str, Enum):
    CLOSED = "closed"
    CONNECTING = "connecting"
    OPEN = "open"


class BridgeTransport:
    """
    Websocket channel to the locally running bridge application.

    Owns the socket lifecycle (closed -> connecting -> open -> closed), the
    certificate handshake and uid-matched request/reply calls. Requests are
    signed through the registered signature supplier before sending.
    """

    def __init__(
        self,
        hosts: Sequence[str] = DEFAULT_HOSTS,
        *,
        secure_ports: Sequence[int] = SECURE_PORTS,
        insecure_ports: Sequence[int] = INSECURE_PORTS,
        use_secure: bool = True,
        ssl_context: Optional[ssl.SSLContext] = None,
        open_timeout: float = 10.0,
        call_timeout: Optional[float] = None,
    ) -> None:
        self.hosts = tuple(hosts)
        self.secure_ports = tuple(secure_ports)
        self.insecure_ports = tuple(insecure_ports)
        self.use_secure = use_secure
        self.ssl_context = ssl_context
        self.open_timeout = open_timeout
        self.call_timeout = call_timeout

        self.state = TransportState.CLOSED
        self.websocket: Optional[websockets.ClientConnection] = None
        self.endpoint: Optional[str] = None
        self.sign_algorithm = "SHA1"
        self._certificate_supplier: Optional[CertificateProvider] = None
        self._signature_supplier: Optional[SignatureProvider] = None
        self._pending: Dict[str, asyncio.Future] = {}
        self._recv_task: Optional[asyncio.Task] = None

    # ---- handshake hooks ----

    def set_certificate_supplier(self, supplier: Optional[CertificateProvider]) -> None:
        self._certificate_supplier = supplier

    def set_signature_supplier(self, supplier: Optional[SignatureProvider], algorithm: Optional[str] = None) -> None:
        self._signature_supplier = supplier
        if algorithm:
            self.sign_algorithm = algorithm.upper()

    # ---- lifecycle ----

    def is_active(self) -> bool:
        return self.state is TransportState.OPEN

    def endpoints(self) -> List[str]:
        scheme = "wss" if self.use_secure else "ws"
        ports = self.secure_ports if self.use_secure else self.insecure_ports
        return [f"{scheme}://{host}:{port}" for host in self.hosts for port in ports]

    async def connect(self, retries: int = 0, delay: float = 0) -> None:
        """
        Open the channel and run the certificate handshake.

        One pass tries every host/port pair in order. A failed pass is
        repeated up to `retries` more times, sleeping `delay` seconds between
        passes.
        """
        if self.state is not TransportState.CLOSED:
            raise ConnectionError(f"Bridge connection is already {self.state.value}")

        self.state = TransportState.CONNECTING
        try:
            websocket = await self._open_with_retries(retries, delay)
            self.websocket = websocket
            self._recv_task = asyncio.create_task(self._recv_loop(websocket))
            await self._send_certificate()
        except BaseException:
            await self._teardown()
            raise

        self.state = TransportState.OPEN
        logger.info("Connected to bridge", extra={"endpoint": self.endpoint})

    async def disconnect(self) -> None:
        if self.websocket is None:
            raise ConnectionError("No open connection with the bridge application")
        await self._teardown()
        logger.info("Disconnected from bridge")

    async def _open_with_retries(self, retries: int, delay: float) -> websockets.ClientConnection:
        attempt = 0
        while True:
            try:
                return await self._open_first_endpoint()
            except ConnectionError as e:
                if attempt >= retries:
                    raise
                attempt += 1
                logger.info(f"{e}; retrying in {delay}s (attempt {attempt}/{retries})")
                await asyncio.sleep(delay)

    async def _open_first_endpoint(self) -> websockets.ClientConnection:
        failures = []
        for url in self.endpoints():
            kwargs: Dict[str, Any] = {}
            if url.startswith("wss://") and self.ssl_context is not None:
                kwargs["ssl"] = self.ssl_context
            try:
                websocket = await websockets.connect(
                    url,
                    open_timeout=self.open_timeout,
                    ping_interval=15,
                    ping_timeout=45,
                    **kwargs,
                )
            except (OSError, asyncio.TimeoutError, websockets.exceptions.WebSocketException) as e:
                logger.debug("Endpoint unavailable: %s", e, extra={"endpoint": url})
                failures.append(url)
                continue
            self.endpoint = url
            return websocket
        raise ConnectionError(f"Unable to reach the bridge application on {len(failures)} endpoint(s)")

    async def _send_certificate(self) -> None:
        certificate = None
        if self._certificate_supplier is not None:
            certificate = await self._certificate_supplier()
        if certificate is None:
            logger.info("No certificate available; connecting anonymously")
        await self._send(BridgeMessage.certificate_frame(certificate))

    async def _teardown(self) -> None:
        websocket, self.websocket = self.websocket, None
        task, self._recv_task = self._recv_task, None
        try:
            if websocket is not None:
                await websocket.close(code=1000)
        finally:
            if task is not None:
                task.cancel()
                with suppress(asyncio.CancelledError):
                    await task
            self._fail_pending(ConnectionError("Connection with the bridge application closed"))
            self.state = TransportState.CLOSED
            self.endpoint = None

    # ---- calls ----

    async def call(self, name: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Send a signed call and wait for its reply"""
        if not self.is_active():
            raise ConnectionError("A connection with the bridge application has not been established")

        message = BridgeMessage(call=name, params=params)
        if message.needs_signing():
            signature = None
            if self._signature_supplier is not None:
                signature = await self._signature_supplier(sha256_hex(message.signing_payload()))
            message.signature = signature or ""
            message.sign_algorithm = self.sign_algorithm
        return await self._send(message)

    async def print(self, config: PrintConfig, data: List[Any]) -> Any:
        return await self.call("print", {
            "printer": config.printer,
            "options": config.options,
            "data": data,
        })

    async def get_version(self) -> Any:
        return await self.call("getVersion")

    async def _send(self, message: BridgeMessage) -> Any:
        if self.websocket is None:
            raise ConnectionError("Connection with the bridge application closed")

        future = asyncio.get_running_loop().create_future()
        self._pending[message.uid] = future
        try:
            try:
                await self.websocket.send(message.to_json())
            except websockets.exceptions.ConnectionClosed as e:
                raise ConnectionError(f"Connection closed while sending {message.call or 'certificate'}") from e
            logger.debug("Sent request", extra={"call": message.call or "certificate", "uid": message.uid})
            return await asyncio.wait_for(future, self.call_timeout)
        finally:
            self._pending.pop(message.uid, None)

    async def _recv_loop(self, websocket: websockets.ClientConnection) -> None:
        try:
            async for raw in websocket:
                try:
                    reply = BridgeReply.from_json(raw)
                except BadFrameError as e:
                    logger.error("Failed to parse inbound frame: %s", e)
                    continue
                future = self._pending.get(reply.uid) if reply.uid else None
                if future is None or future.done():
                    logger.debug("Ignoring unsolicited frame: %s", reply.raw)
                    continue
                if reply.is_error:
                    future.set_exception(BridgeError(reply.error))
                else:
                    future.set_result(reply.result)
        except websockets.exceptions.ConnectionClosedError as e:
            logger.warning("Bridge connection dropped: %s", e)
        except Exception as e:
            logger.error("Receive loop failed: %s", e)
        finally:
            if self.websocket is websocket:
                self.websocket = None
                self.state = TransportState.CLOSED
                self._fail_pending(ConnectionError("Connection with the bridge application closed"))
                await websocket.close(code=1011)

    def _fail_pending(self, error: Exception) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(error)
        self._pending.clear()
