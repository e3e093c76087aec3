"""Tests for the port to service name table."""
import threading

import pytest

from netdiag.core.errors import InvalidArgumentError
from netdiag.modules.services import DEFAULT_SERVICES, UNKNOWN_SERVICE, ServiceTable


@pytest.fixture
def table():
    return ServiceTable()


def test_well_known_ports(table):
    """The built-in table names the common services."""
    assert table.lookup(22) == "SSH"
    assert table.lookup(80) == "HTTP"
    assert table.lookup(443) == "HTTPS"
    assert table.lookup(3306) == "MySQL"
    assert table.lookup(6379) == "Redis"


def test_unknown_port(table):
    assert table.lookup(5040) == UNKNOWN_SERVICE
    assert table.lookup(5040) == "Unknown"


@pytest.mark.parametrize("port", [-1, 65536, 100000])
def test_out_of_range_lookup_is_unknown(table, port):
    """Out-of-range ports never raise on lookup."""
    assert table.lookup(port) == "Unknown"


def test_register_adds_and_overrides(table):
    assert table.register(8888, "Jupyter") is True
    assert table.lookup(8888) == "Jupyter"
    assert table.register(22, "Custom SSH") is True
    assert table.lookup(22) == "Custom SSH"


@pytest.mark.parametrize("port,name", [(70000, "Too big"), (-5, "Negative"), (8888, ""), (8888, "   ")])
def test_register_rejects_invalid(table, port, name):
    """Invalid registrations return False and leave the table unchanged."""
    before = table.all_services()
    assert table.register(port, name) is False
    assert table.all_services() == before


def test_register_quietly_ignores_invalid(table):
    table.register_quietly(70000, "Nope")
    table.register_quietly(9999, "Thing")
    assert table.lookup(9999) == "Thing"
    assert table.lookup(70000) == "Unknown"


def test_add_custom_raises_on_invalid(table):
    with pytest.raises(InvalidArgumentError):
        table.add_custom(70000, "Nope")
    with pytest.raises(InvalidArgumentError):
        table.add_custom(9999, " ")
    table.add_custom(9999, "Thing")
    assert table.lookup(9999) == "Thing"


def test_update_counts_accepted_entries(table):
    assert table.update({8888: "Jupyter", 70000: "Bad", 9000: ""}) == 1
    assert table.lookup(8888) == "Jupyter"


def test_all_services_is_a_copy(table):
    services = table.all_services()
    services[1] = "Changed"
    assert table.lookup(1) == "Unknown"
    assert len(table) == len(DEFAULT_SERVICES)


def test_ports_for_is_case_insensitive(table):
    assert table.ports_for("http") == [80]
    assert table.ports_for("nothing") == []
    with pytest.raises(InvalidArgumentError):
        table.ports_for("")


def test_seeded_table():
    table = ServiceTable({1234: "Custom"})
    assert table.lookup(1234) == "Custom"
    assert table.lookup(22) == "Unknown"
    assert table.is_known(1234)


def test_concurrent_registrations(table):
    """Parallel writers all land without losing entries."""

    def register_block(offset):
        for port in range(offset, offset + 100):
            table.register(port, f"svc-{port}")

    threads = [threading.Thread(target=register_block, args=(40000 + i * 100,)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert all(table.lookup(port) == f"svc-{port}" for port in range(40000, 40800))
