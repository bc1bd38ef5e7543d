import pytest

from statskit.factory import UnknownClientError, new_client
from statskit.log import set_handler
from statskit.log_client import LogClient
from statskit.memory_client import MemoryClient
from statskit.noop_client import NoopClient
from statskit.prom_client import PrometheusClient
from statskit.statsd_client import StatsDClient


@pytest.fixture
def quiet_log():
    set_handler(lambda msg, fields, err: None)
    yield
    set_handler(None)


def test_log_client():
    client = new_client("log://")
    assert isinstance(client, LogClient)
    assert client.unicode is False


def test_memory_client():
    client = new_client("memory://")
    assert isinstance(client, MemoryClient)
    assert client.count_metrics == {}


def test_noop_client():
    client = new_client("noop://")
    assert isinstance(client, NoopClient)
    assert client.close() is None


def test_unknown_client():
    with pytest.raises(UnknownClientError) as excinfo:
        new_client("unknown://")
    assert str(excinfo.value) == "unknown stats client type"


@pytest.mark.parametrize(
    ("dsn", "expected"),
    [
        ("memory://?unicode=true", True),
        ("memory://?unicode=1", True),
        ("memory://?unicode=T", True),
        ("memory://?unicode=false", False),
        ("memory://?unicode=yes", False),
        ("memory://", False),
    ],
)
def test_unicode_query_flag(dsn, expected):
    assert new_client(dsn).unicode is expected


def test_log_client_unicode():
    assert new_client("log://?unicode=True").unicode is True


def test_scheme_is_case_insensitive():
    client = new_client("MEMORY://")
    assert isinstance(client, MemoryClient)
    assert client.unicode is False


def test_prometheus_client_uses_host_as_namespace():
    client = new_client("prometheus://myapp")
    assert isinstance(client, PrometheusClient)
    assert client.namespace == "myapp"


def test_statsd_client_address_and_prefix(quiet_log):
    client = new_client("statsd://127.0.0.1:8125/service/?unicode=true")
    try:
        assert isinstance(client, StatsDClient)
        assert client.connection.prefix == "service."
        assert client.unicode is True
    finally:
        client.close()


def test_statsd_client_bad_address(quiet_log):
    with pytest.raises(ValueError):
        new_client("statsd://127.0.0.1:notaport/")