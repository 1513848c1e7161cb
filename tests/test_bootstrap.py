import asyncio
import threading

import pytest

from conftest import FakeFetcher, FakeTransport
from qzprint.bootstrap import LAUNCH_URI, ConnectionBootstrapper, Credentials, LoggerSink, launch_bridge_app
from qzprint.suppliers import CertificateSupplier, SignatureSupplier
from qzshared.errors import ConnectionError


def make_bootstrapper(transport, fetcher, sink, launcher):
    return ConnectionBootstrapper(transport, fetcher=fetcher, sink=sink, attempt_external_launch=launcher)


def test_configure_registers_both_suppliers_without_network(fetcher, sink, launcher):
    transport = FakeTransport()
    boot = make_bootstrapper(transport, fetcher, sink, launcher)

    boot.configure(Credentials(certificate_url="https://x/cert", sign_url="https://x/sign", sign_algorithm="sha512"))

    assert isinstance(transport.certificate_supplier, CertificateSupplier)
    assert isinstance(transport.signature_supplier, SignatureSupplier)
    assert transport.sign_algorithm == "sha512"
    assert fetcher.requests == []


def test_configure_prefers_injected_signature_supplier(fetcher, sink, launcher):
    transport = FakeTransport()
    boot = make_bootstrapper(transport, fetcher, sink, launcher)

    async def local_signer(to_sign):
        return "LOCAL"

    boot.configure(Credentials(raw_certificate="CERT"), signature_supplier=local_signer)

    assert transport.signature_supplier is local_signer


def test_configure_without_credentials_is_anonymous(fetcher, sink, launcher):
    boot = make_bootstrapper(FakeTransport(), fetcher, sink, launcher)

    boot.configure(Credentials())

    assert any("anonymous" in m for m in sink.infos)


@pytest.mark.asyncio
async def test_connect_is_noop_when_already_active(fetcher, sink, launcher):
    transport = FakeTransport(active=True)
    boot = make_bootstrapper(transport, fetcher, sink, launcher)

    await boot.connect()

    assert transport.connect_calls == []
    assert launcher.calls == 0


@pytest.mark.asyncio
async def test_first_attempt_success_uses_no_options(fetcher, sink, launcher):
    transport = FakeTransport()
    boot = make_bootstrapper(transport, fetcher, sink, launcher)

    await boot.connect()

    assert transport.connect_calls == [{}]
    assert launcher.calls == 0
    assert transport.is_active()


@pytest.mark.asyncio
async def test_retry_after_launch_when_first_attempt_fails(fetcher, sink, launcher):
    transport = FakeTransport(outcomes=[OSError("bridge not running"), None])
    boot = make_bootstrapper(transport, fetcher, sink, launcher)
    boot.configure(Credentials(certificate_url="https://x/cert", sign_url="https://x/sign"))

    await boot.connect()

    assert len(transport.connect_calls) == 2
    assert transport.connect_calls[1] == {"retries": 2, "delay": 1}
    assert launcher.calls == 1
    assert sink.errors == []


@pytest.mark.asyncio
async def test_second_failure_raises_connection_error_without_third_attempt(fetcher, sink, launcher):
    transport = FakeTransport(outcomes=[OSError("first"), OSError("second"), None])
    boot = make_bootstrapper(transport, fetcher, sink, launcher)

    with pytest.raises(ConnectionError) as excinfo:
        await boot.connect()

    assert len(transport.connect_calls) == 2
    assert launcher.calls == 1
    assert str(excinfo.value.__cause__) == "second"
    assert len(sink.errors) == 1


@pytest.mark.asyncio
async def test_connection_error_is_also_builtin_connection_error(fetcher, sink, launcher):
    transport = FakeTransport(outcomes=[OSError("a"), OSError("b")])
    boot = make_bootstrapper(transport, fetcher, sink, launcher)

    with pytest.raises(OSError):
        await boot.connect()


@pytest.mark.asyncio
async def test_launch_failure_is_logged_and_retry_still_happens(fetcher, sink):
    transport = FakeTransport(outcomes=[OSError("down"), None])

    def broken_launch():
        raise RuntimeError("no URI handler")

    boot = ConnectionBootstrapper(transport, fetcher=fetcher, sink=sink, attempt_external_launch=broken_launch)

    await boot.connect()

    assert len(transport.connect_calls) == 2
    assert any("no URI handler" in m for m in sink.errors)


@pytest.mark.asyncio
async def test_raw_certificate_never_fetches(sink, launcher):
    fetcher = FakeFetcher()
    transport = FakeTransport(outcomes=[OSError("down"), None])
    boot = make_bootstrapper(transport, fetcher, sink, launcher)
    boot.configure(Credentials(raw_certificate="CERT", sign_url="https://x/sign"))

    await boot.connect()

    assert transport.certificates == ["CERT"]
    assert fetcher.by_method("GET") == []


@pytest.mark.asyncio
async def test_certificate_url_fetched_once_per_handshake(sink, launcher):
    fetcher = FakeFetcher(text="PEM")
    transport = FakeTransport()
    boot = make_bootstrapper(transport, fetcher, sink, launcher)
    boot.configure(Credentials(certificate_url="https://x/cert", sign_url="https://x/sign"))

    await boot.connect()

    gets = fetcher.by_method("GET")
    assert [g["url"] for g in gets] == ["https://x/cert"]
    assert transport.certificates == ["PEM"]


@pytest.mark.asyncio
async def test_disconnect_failure_is_logged_not_raised(fetcher, sink, launcher):
    transport = FakeTransport(active=True, disconnect_error=RuntimeError("socket already gone"))
    boot = make_bootstrapper(transport, fetcher, sink, launcher)

    await boot.disconnect()

    assert transport.disconnect_calls == 1
    assert len(sink.errors) == 1
    assert "socket already gone" in sink.errors[0]


@pytest.mark.asyncio
async def test_disconnect_success_logs_nothing(fetcher, sink, launcher):
    transport = FakeTransport(active=True)
    boot = make_bootstrapper(transport, fetcher, sink, launcher)

    await boot.disconnect()

    assert sink.errors == []
    assert not transport.is_active()


def test_default_sink_wraps_logger():
    messages = []

    class Recorder:
        def info(self, msg):
            messages.append(("info", msg))

        def error(self, msg):
            messages.append(("error", msg))

    sink = LoggerSink(Recorder())
    sink.info("hello")
    sink.error("boom")

    assert messages == [("info", "hello"), ("error", "boom")]


@pytest.mark.asyncio
async def test_launch_does_not_block_event_loop(monkeypatch):
    release = threading.Event()
    opened = []

    def slow_open(uri):
        opened.append(uri)
        release.wait(5)
        return True

    monkeypatch.setattr("qzprint.bootstrap.webbrowser.open", slow_open)
    loop = asyncio.get_running_loop()

    started = loop.time()
    launch_bridge_app()
    assert loop.time() - started < 1

    await asyncio.sleep(0.05)
    assert opened == [LAUNCH_URI]
    release.set()
