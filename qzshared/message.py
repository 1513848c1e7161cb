from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Optional
import json

from qzshared.errors import BadFrameError
from qzshared.utils import new_uid, now_ms, stringify

# calls the bridge accepts without a signature; everything else is signed
UNSIGNED_CALLS: FrozenSet[str] = frozenset({
    "printers.getStatus",
    "printers.stopListening",
    "usb.isClaimed",
    "usb.closeStream",
    "usb.releaseDevice",
    "hid.stopListening",
    "hid.isClaimed",
    "hid.closeStream",
    "hid.releaseDevice",
    "file.stopListening",
    "getVersion",
})


@dataclass
class BridgeMessage:
    """
    Outbound frame sent to the bridge application:
    {
    "call":          "STRING (absent for the certificate frame)",
    "params":        { ... },
    "certificate":   "PEM (certificate frame only)",
    "timestamp":     "INT (unix ms)",
    "uid":           "STRING, echoed back in the reply",
    "position":      {"x": INT, "y": INT},
    "signature":     "STRING (signed calls only)",
    "signAlgorithm": "SHA1 | SHA256 | SHA512"
    }
    """
    call: Optional[str] = None
    params: Optional[Dict[str, Any]] = None
    certificate: Optional[str] = None
    timestamp: int = field(default_factory=now_ms)
    uid: str = field(default_factory=new_uid)
    position: Dict[str, int] = field(default_factory=lambda: {"x": 0, "y": 0})
    signature: Optional[Any] = None
    sign_algorithm: Optional[str] = None
    is_certificate_frame: bool = False

    @classmethod
    def certificate_frame(cls, certificate: Optional[str]) -> 'BridgeMessage':
        return cls(certificate=certificate, is_certificate_frame=True)

    def needs_signing(self) -> bool:
        return self.call is not None and self.call not in UNSIGNED_CALLS

    def signing_payload(self) -> str:
        """JSON text whose SHA-256 the signature supplier signs"""
        obj: Dict[str, Any] = {"call": self.call}
        if self.params is not None:
            obj["params"] = self.params
        obj["timestamp"] = self.timestamp
        return stringify(obj)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        if self.is_certificate_frame:
            result["certificate"] = self.certificate
        if self.call is not None:
            result["call"] = self.call
        if self.params is not None:
            result["params"] = self.params
        result["timestamp"] = self.timestamp
        result["uid"] = self.uid
        result["position"] = self.position
        if self.signature is not None:
            result["signature"] = self.signature
            result["signAlgorithm"] = self.sign_algorithm
        return result

    def to_json(self) -> str:
        return stringify(self.to_dict())


@dataclass
class BridgeReply:
    """Inbound frame: {"uid", "result"} on success or {"uid", "error"} on failure"""
    uid: Optional[str]
    result: Any = None
    error: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_json(cls, json_str: str | bytes) -> 'BridgeReply':
        if isinstance(json_str, bytes):
            try:
                json_str = json_str.decode('utf-8')
            except UnicodeDecodeError as e:
                raise BadFrameError(f"Frame is not valid UTF-8: {e}") from e
        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as e:
            raise BadFrameError(f"Invalid JSON: {e}")
        if not isinstance(data, dict):
            raise BadFrameError("Frame must be a JSON object")

        uid = data.get("uid")
        if uid is not None and not isinstance(uid, str):
            uid = str(uid)
        error = data.get("error")
        if error is not None and not isinstance(error, str):
            error = stringify(error)
        return cls(uid=uid, result=data.get("result"), error=error, raw=data)

    @property
    def is_error(self) -> bool:
        return self.error is not None
