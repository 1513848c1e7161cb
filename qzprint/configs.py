from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Union

from qzshared.errors import ConfigurationError

# Printer given either as a queue name or as {"name"|"file"|"host", "port"}
Printer = Union[str, Mapping[str, Any]]

# Bridge-side defaults for pixel and raw printing options
DEFAULT_OPTIONS: Dict[str, Any] = {
    "colorType": "color",
    "copies": 1,
    "density": 72,
    "duplex": False,
    "fallbackDensity": None,
    "interpolation": "bicubic",
    "jobName": None,
    "legacy": False,
    "margins": 0,
    "orientation": None,
    "paperThickness": None,
    "printerTray": None,
    "rasterize": True,
    "rotation": 0,
    "scaleContent": True,
    "size": None,
    "units": "in",
    "altPrinting": False,
    "encoding": None,
    "endOfDoc": None,
    "perSpool": 1,
}

_PRINTER_KEYS = ("name", "file", "host", "port")


def normalize_printer(printer: Printer) -> Dict[str, Any]:
    if isinstance(printer, str):
        if not printer:
            raise ConfigurationError("Printer name must not be empty")
        return {"name": printer}
    if isinstance(printer, Mapping):
        descriptor = {k: printer[k] for k in _PRINTER_KEYS if printer.get(k) is not None}
        if not any(k in descriptor for k in ("name", "file", "host")):
            raise ConfigurationError("Printer must define one of 'name', 'file' or 'host'")
        return descriptor
    raise ConfigurationError(f"Unsupported printer type: {type(printer).__name__}")


@dataclass
class PrintConfig:
    """Printer descriptor plus the effective job options sent with every print call"""
    printer: Dict[str, Any]
    options: Dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_OPTIONS))

    @classmethod
    def create(cls, printer: Printer, options: Optional[Mapping[str, Any]] = None) -> "PrintConfig":
        merged = dict(DEFAULT_OPTIONS)
        if options:
            merged.update(options)
        return cls(printer=normalize_printer(printer), options=merged)
