from qzprint.bootstrap import (
    ConnectionAttempt,
    ConnectionBootstrapper,
    Credentials,
    LoggerSink,
    LogSink,
    launch_bridge_app,
)
from qzprint.configs import PrintConfig
from qzprint.printer import QZTrayPrinter
from qzprint.suppliers import CertificateSupplier, HttpFetcher, SignatureSupplier
from qzprint.transport import BridgeTransport, TransportState
from qzshared.errors import (
    BridgeError,
    CertificateFetchError,
    ConfigurationError,
    ConnectionError,
    PrintError,
    SigningError,
)

__all__ = [
    "BridgeError",
    "BridgeTransport",
    "CertificateFetchError",
    "CertificateSupplier",
    "ConfigurationError",
    "ConnectionAttempt",
    "ConnectionBootstrapper",
    "ConnectionError",
    "Credentials",
    "HttpFetcher",
    "LogSink",
    "LoggerSink",
    "PrintConfig",
    "PrintError",
    "QZTrayPrinter",
    "SignatureSupplier",
    "SigningError",
    "TransportState",
    "launch_bridge_app",
]
