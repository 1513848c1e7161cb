import socket
from typing import Any, Dict, List, Optional

import aiohttp
import pytest


class CaptureSink:
    def __init__(self) -> None:
        self.infos: List[str] = []
        self.errors: List[str] = []

    def info(self, message: str) -> None:
        self.infos.append(message)

    def error(self, message: str) -> None:
        self.errors.append(message)


class FakeFetcher:
    """Records requests; replies from canned values or raises the given error."""

    def __init__(self, text: str = "CERT-FROM-URL", json_reply: Any = "SIGNED", error: Optional[Exception] = None):
        self.text = text
        self.json_reply = json_reply
        self.error = error
        self.requests: List[Dict[str, Any]] = []

    async def get_text(self, url, headers=None):
        self.requests.append({"method": "GET", "url": url, "headers": headers})
        if self.error:
            raise self.error
        return self.text

    async def post_json(self, url, payload, headers=None):
        self.requests.append({"method": "POST", "url": url, "json": payload, "headers": headers})
        if self.error:
            raise self.error
        return self.json_reply

    def by_method(self, method: str) -> List[Dict[str, Any]]:
        return [r for r in self.requests if r["method"] == method]


class FakeTransport:
    """
    Stands in for BridgeTransport. connect() pops outcomes from `outcomes`
    (an exception to raise, or None to succeed). On success it runs the
    registered suppliers the way the real handshake would.
    """

    def __init__(self, outcomes: Optional[List[Optional[Exception]]] = None, active: bool = False,
                 disconnect_error: Optional[Exception] = None, print_error: Optional[Exception] = None):
        self.outcomes = list(outcomes or [])
        self.active = active
        self.disconnect_error = disconnect_error
        self.print_error = print_error
        self.connect_calls: List[Dict[str, Any]] = []
        self.disconnect_calls = 0
        self.printed: List[Any] = []
        self.certificate_supplier = None
        self.signature_supplier = None
        self.sign_algorithm = None
        self.certificates: List[Any] = []

    def is_active(self) -> bool:
        return self.active

    def set_certificate_supplier(self, supplier) -> None:
        self.certificate_supplier = supplier

    def set_signature_supplier(self, supplier, algorithm=None) -> None:
        self.signature_supplier = supplier
        self.sign_algorithm = algorithm

    async def connect(self, **options) -> None:
        self.connect_calls.append(options)
        outcome = self.outcomes.pop(0) if self.outcomes else None
        if outcome is not None:
            raise outcome
        if self.certificate_supplier is not None:
            self.certificates.append(await self.certificate_supplier())
        self.active = True

    async def disconnect(self) -> None:
        self.disconnect_calls += 1
        if self.disconnect_error is not None:
            raise self.disconnect_error
        self.active = False

    async def print(self, config, data) -> None:
        if self.print_error is not None:
            raise self.print_error
        self.printed.append((config, data))


class LaunchRecorder:
    def __init__(self) -> None:
        self.calls = 0

    def __call__(self) -> None:
        self.calls += 1


@pytest.fixture
def sink() -> CaptureSink:
    return CaptureSink()


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def launcher() -> LaunchRecorder:
    return LaunchRecorder()


@pytest.fixture
def network_error() -> Exception:
    return aiohttp.ClientConnectionError("connection refused")


def free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]
