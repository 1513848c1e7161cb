from __future__ import annotations
import base64
from typing import Dict, Type

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa


# Algorithm names as the bridge expects them in "signAlgorithm"
HASH_ALGORITHMS: Dict[str, Type[hashes.HashAlgorithm]] = {
    "SHA1": hashes.SHA1,
    "SHA256": hashes.SHA256,
    "SHA512": hashes.SHA512,
}


def sha256_hex(data: str) -> str:
    digest = hashes.Hash(hashes.SHA256())
    digest.update(data.encode("utf-8"))
    return digest.finalize().hex()


def load_private_key(pem: bytes) -> rsa.RSAPrivateKey:
    key = serialization.load_pem_private_key(pem, password=None)
    if not isinstance(key, rsa.RSAPrivateKey):
        raise TypeError(f"Expected RSA private key, got {type(key).__name__}")
    return key


def hash_for(algorithm: str) -> hashes.HashAlgorithm:
    try:
        return HASH_ALGORITHMS[algorithm.upper()]()
    except KeyError:
        raise ValueError(f"Unsupported signature algorithm: {algorithm}")


def rsa_pkcs1_sign(private_pem: bytes, message: bytes, algorithm: str = "SHA512") -> str:
    """Sign with RSASSA-PKCS1-v1_5 and return standard (padded) base64."""
    priv = load_private_key(private_pem)
    sig = priv.sign(message, padding.PKCS1v15(), hash_for(algorithm))
    return base64.b64encode(sig).decode("ascii")
