import pytest

from ipguard.config.models import WhitelistConfig
from ipguard.services.ip_block.whitelist import (
    is_whitelisted,
    normalize_address,
    normalize_entry,
)


@pytest.mark.parametrize(
    "address",
    [
        "127.0.0.1",
        "127.8.9.10",
        "10.0.0.1",
        "172.16.0.1",
        "172.31.255.254",
        "192.168.0.1",
        "::1",
        "fe80::abcd",
        "fc00::1",
        "fdff:ffff::1",
        "::ffff:127.0.0.1",
        "::ffff:172.16.4.4",
        "::ffff:192.168.10.1",
    ],
)
def test_private_ranges_exempt_even_when_whitelist_disabled(address):
    assert is_whitelisted(address, WhitelistConfig(enabled=False, ips=[])) is True


@pytest.mark.parametrize("address", ["172.15.0.1", "172.32.0.1", "11.0.0.1", "8.8.8.8", "2001:db8::1", "::ffff:8.8.8.8"])
def test_public_addresses_not_exempt_by_default(address):
    assert is_whitelisted(address, WhitelistConfig()) is False


def test_explicit_entries_respect_enabled_flag():
    config = WhitelistConfig(enabled=True, ips=["8.8.8.8", "2001:db8::/32"])

    assert is_whitelisted("8.8.8.8", config) is True
    assert is_whitelisted("2001:db8::42", config) is True
    assert is_whitelisted("8.8.4.4", config) is False

    config.enabled = False
    assert is_whitelisted("8.8.8.8", config) is False


def test_ipv4_mapped_address_matches_ipv4_entry():
    config = WhitelistConfig(ips=["198.51.100.0/24"])

    assert is_whitelisted("::ffff:198.51.100.9", config) is True


def test_invalid_entries_are_ignored():
    config = WhitelistConfig(ips=["not-an-ip", "8.8.8.8"])

    assert is_whitelisted("8.8.8.8", config) is True
    assert is_whitelisted("1.1.1.1", config) is False


def test_invalid_addresses_are_not_whitelisted():
    config = WhitelistConfig(ips=["8.8.8.8"])

    assert is_whitelisted(None, config) is False
    assert is_whitelisted("", config) is False
    assert is_whitelisted("localhost", config) is False


def test_normalization():
    assert normalize_address(" 2001:DB8:0:0::1 ") == "2001:db8::1"
    assert normalize_address("bogus") is None
    assert normalize_address("::ffff:203.0.113.7") == "203.0.113.7"
    assert normalize_address("::FFFF:10.0.0.1") == "10.0.0.1"
    assert normalize_entry("10.1.2.3/8") == "10.0.0.0/8"
    assert normalize_entry("2001:DB8::1") == "2001:db8::1"
    assert normalize_entry("::ffff:8.8.8.8") == "8.8.8.8"
    assert normalize_entry("1.2.3.4/33") is None
    assert normalize_entry(None) is None
