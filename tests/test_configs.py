import pytest

from qzprint.configs import DEFAULT_OPTIONS, PrintConfig, normalize_printer
from qzshared.errors import ConfigurationError


def test_printer_name_becomes_descriptor():
    assert normalize_printer("Zebra ZD420") == {"name": "Zebra ZD420"}


def test_printer_mapping_keeps_known_keys_only():
    descriptor = normalize_printer({"file": "/tmp/out.prn", "colour": "red", "port": None})
    assert descriptor == {"file": "/tmp/out.prn"}


@pytest.mark.parametrize("printer", ["", {"port": 9100}, 42])
def test_invalid_printers_rejected(printer):
    with pytest.raises(ConfigurationError):
        normalize_printer(printer)


def test_options_merge_over_defaults_without_mutating_them():
    config = PrintConfig.create("Zebra", {"copies": 4, "units": "mm"})

    assert config.options["copies"] == 4
    assert config.options["units"] == "mm"
    assert config.options["colorType"] == "color"
    assert DEFAULT_OPTIONS["copies"] == 1
