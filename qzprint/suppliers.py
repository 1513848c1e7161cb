"""
Lazy handshake suppliers.

The transport calls these only while it is performing the certificate
handshake or signing a request; constructing them never touches the network.
"""

from __future__ import annotations
import asyncio
from typing import Any, Dict, Optional

import aiohttp

from qzshared.errors import CertificateFetchError, SigningError
from qzshared.log import get_logger

logger = get_logger(__name__)

SIGN_REQUEST_KEY = "request"


class HttpFetcher:
    """Fetch-style GET/POST helpers over aiohttp"""

    def __init__(self, timeout: float = 30.0, session: Optional[aiohttp.ClientSession] = None):
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.session = session

    async def _request(self, method: str, url: str, *, headers: Optional[Dict[str, str]] = None,
                       json: Any = None, parse_json: bool = False) -> Any:
        if self.session is not None:
            return await self._do(self.session, method, url, headers, json, parse_json)
        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            return await self._do(session, method, url, headers, json, parse_json)

    async def _do(self, session: aiohttp.ClientSession, method: str, url: str,
                  headers: Optional[Dict[str, str]], json: Any, parse_json: bool) -> Any:
        async with session.request(method, url, headers=headers, json=json, timeout=self.timeout) as resp:
            resp.raise_for_status()
            if parse_json:
                return await resp.json(content_type=None)
            return await resp.text()

    async def get_text(self, url: str, headers: Optional[Dict[str, str]] = None) -> str:
        return await self._request("GET", url, headers=headers)

    async def post_json(self, url: str, payload: Any, headers: Optional[Dict[str, str]] = None) -> Any:
        return await self._request("POST", url, headers=headers, json=payload, parse_json=True)


class CertificateSupplier:
    """Resolves the public certificate: literal if given, otherwise one GET per call."""

    def __init__(self, certificate_url: Optional[str] = None, raw_certificate: Optional[str] = None,
                 fetcher: Optional[HttpFetcher] = None):
        self.certificate_url = certificate_url
        self.raw_certificate = raw_certificate
        self.fetcher = fetcher or HttpFetcher()

    async def __call__(self) -> Optional[str]:
        if self.raw_certificate:
            return self.raw_certificate
        if not self.certificate_url:
            return None
        try:
            certificate = await self.fetcher.get_text(
                self.certificate_url,
                headers={"Content-Type": "text/plain", "Cache-Control": "no-cache"},
            )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise CertificateFetchError(f"Unable to fetch certificate from {self.certificate_url}: {e}") from e
        logger.debug("Fetched certificate from %s", self.certificate_url)
        return certificate


class SignatureSupplier:
    """Posts {"request": <to_sign>} to the signing endpoint and returns the parsed JSON reply."""

    def __init__(self, sign_url: Optional[str] = None, fetcher: Optional[HttpFetcher] = None):
        self.sign_url = sign_url
        self.fetcher = fetcher or HttpFetcher()

    async def __call__(self, to_sign: str) -> Optional[Any]:
        if not self.sign_url:
            return None
        try:
            return await self.fetcher.post_json(
                self.sign_url,
                {SIGN_REQUEST_KEY: to_sign},
                headers={"Content-Type": "application/json", "Cache-Control": "no-cache"},
            )
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise SigningError(f"Unable to sign request via {self.sign_url}: {e}") from e
