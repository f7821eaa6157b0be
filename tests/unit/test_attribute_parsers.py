"""
Unit tests for the port, link, volume and shm size grammars.
"""
import pytest
from dcompose.errors import ParseError
from dcompose.PARSERS.attribute_parsers import (
    Invalid,
    Parsed,
    parse_link,
    parse_port,
    parse_shm_size,
    parse_volume,
)


class TestParsePort:
    """Tests for parse_port."""

    def test_host_and_container(self):
        port = parse_port("8080:80").unwrap()
        assert port.host_port == "8080"
        assert port.container_port == "80"
        assert port.host_ip is None

    def test_full_triple(self):
        port = parse_port("127.0.0.1:8080:80").unwrap()
        assert (port.host_ip, port.host_port, port.container_port) == ("127.0.0.1", "8080", "80")

    def test_container_only(self):
        port = parse_port("80").unwrap()
        assert port.container_port == "80"
        assert port.host_port is None
        assert port.host_ip is None

    def test_integer_entry(self):
        assert parse_port(5432).unwrap().container_port == "5432"

    def test_host_ip_without_host_port(self):
        result = parse_port("127.0.0.1::80")
        assert isinstance(result, Invalid)
        assert not result.ok
        with pytest.raises(ParseError) as exc:
            result.unwrap()
        assert exc.value.value == "127.0.0.1::80"

    def test_too_many_fields(self):
        assert not parse_port("1:2:3:4").ok

    def test_long_syntax(self):
        port = parse_port({"target": 80, "published": 8080, "host_ip": "0.0.0.0"}).unwrap()
        assert (port.host_ip, port.host_port, port.container_port) == ("0.0.0.0", "8080", "80")

    def test_engine_key(self):
        assert parse_port("80").unwrap().engine_key == "80/tcp"
        assert parse_port("53/udp").unwrap().engine_key == "53/udp"


class TestParseLink:
    """Tests for parse_link."""

    def test_alias_defaults_to_service(self):
        assert parse_link("db") == Parsed(("db", "db"))

    def test_alias(self):
        assert parse_link("db:database").unwrap() == ("db", "database")

    @pytest.mark.parametrize("entry", ["", "db:", ":alias", "a:b:c", None])
    def test_invalid(self, entry):
        assert not parse_link(entry).ok


class TestParseVolume:
    """Tests for parse_volume."""

    def test_anonymous(self):
        volume = parse_volume("/data").unwrap()
        assert volume.target == "/data"
        assert not volume.is_bind

    def test_bind_with_mode(self):
        volume = parse_volume("./data:/data:ro").unwrap()
        assert (volume.source, volume.target, volume.mode) == ("./data", "/data", "ro")
        assert volume.is_bind

    def test_unknown_mode(self):
        assert not parse_volume("./data:/data:rx").ok


class TestParseShmSize:
    """Tests for parse_shm_size."""

    @pytest.mark.parametrize("value, expected", [
        ("1g", 1073741824),
        ("1GB", 1073741824),
        ("512m", 536870912),
        ("512mb", 536870912),
        ("2k", 2048),
        ("2Kb", 2048),
        ("4096", 4096),
        (4096, 4096),
        (None, 67108864),
    ])
    def test_sizes(self, value, expected):
        assert parse_shm_size(value).unwrap() == expected

    @pytest.mark.parametrize("value", ["big", "12t", "m12"])
    def test_invalid(self, value):
        assert not parse_shm_size(value).ok
