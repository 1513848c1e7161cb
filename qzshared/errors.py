from __future__ import annotations
import builtins


class BridgeError(Exception):
    """Base class for every failure raised by the bridge client."""
    pass
class ConfigurationError(BridgeError):
    """Raised synchronously when a required constructor parameter is missing."""
    pass
class CertificateFetchError(BridgeError):
    """Raised when the certificate URL cannot be fetched."""
    pass
class SigningError(BridgeError):
    """Raised when the signing endpoint fails or answers with unparseable JSON."""
    pass
class ConnectionError(BridgeError, builtins.ConnectionError):
    """Raised when no channel to the bridge application could be opened or it was lost."""
    pass
class PrintError(BridgeError):
    """Raised when the bridge rejects or fails a print job."""
    pass
class BadFrameError(BridgeError):
    """Raised when an inbound websocket frame is not a JSON object."""
    pass
