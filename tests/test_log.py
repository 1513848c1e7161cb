import logging

from qzshared.log import BridgeFormatter


def make_record(msg="Sent request", **extra):
    record = logging.LogRecord("qzprint.transport", logging.DEBUG, __file__, 1, msg, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_bridge_context_prefixes_message():
    formatter = BridgeFormatter(fmt="%(message)s")
    record = make_record(call="print", uid="abc", endpoint="ws://localhost:8182")

    assert formatter.format(record) == "[call=print uid=abc endpoint=ws://localhost:8182] Sent request"
    assert record.msg == "Sent request"


def test_plain_record_is_untouched():
    formatter = BridgeFormatter(fmt="%(message)s")

    assert formatter.format(make_record("Disconnected")) == "Disconnected"
