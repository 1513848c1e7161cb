# Local request signing for the bridge handshake

from __future__ import annotations
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

from qzshared.crypto.crypto import hash_for, rsa_pkcs1_sign
from qzshared.errors import SigningError


class Signer(ABC):
    """Abstract base class for signature suppliers handed to the transport"""

    algorithm: str = "SHA1"

    @abstractmethod
    async def __call__(self, to_sign: str) -> Optional[Any]:
        """Sign the hashed request and return the signature"""
        ...


class RSASignatureSupplier(Signer):
    """
    Signs bridge requests with a private key held by this process.

    The bridge verifies the signature against the public certificate sent
    during the handshake, so the key must be the one the certificate was
    issued for. Alternative to posting each request to a signing endpoint.
    """

    def __init__(self, private_pem: bytes, algorithm: str = "SHA512"):
        hash_for(algorithm)  # fail early on unknown names
        self.private_pem = private_pem
        self.algorithm = algorithm.upper()

    @classmethod
    def from_file(cls, path: Path, algorithm: str = "SHA512") -> "RSASignatureSupplier":
        return cls(Path(path).read_bytes(), algorithm=algorithm)

    async def __call__(self, to_sign: str) -> str:
        try:
            return rsa_pkcs1_sign(self.private_pem, to_sign.encode("utf-8"), self.algorithm)
        except (ValueError, TypeError) as e:
            raise SigningError(f"Local signing failed: {e}") from e
