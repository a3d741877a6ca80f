import ipaddress

import dns.flags
import dns.message
import dns.rdatatype
import pytest

from mosdns.domain_matcher import MATCHER_DOMAIN, MixMatcher, load_from_text
from mosdns.hosts import Hosts, IPs, parse_ips

TEST_HOSTS = """
# comment
     # empty line
dns.google 8.8.8.8 8.8.4.4 2001:4860:4860::8844 2001:4860:4860::8888
regexp:^123456789 192.168.1.1
test.com 1.2.3.4 # will be replaced
test.com 2.3.4.5 
# nxdomain.com 1.2.3.4
"""


@pytest.fixture
def hosts():
    m = MixMatcher()
    m.set_default_matcher(MATCHER_DOMAIN)
    load_from_text(m, TEST_HOSTS, parse_ips)
    return Hosts(m)


def _addrs(reply):
    return {
        ipaddress.ip_address(rd.address)
        for rrset in reply.answer
        for rd in rrset
    }


def _ips(*texts):
    return {ipaddress.ip_address(t) for t in texts}


@pytest.mark.parametrize(
    "name,typ,want",
    [
        ("dns.google.", "A", ["8.8.8.8", "8.8.4.4"]),
        ("dns.google.", "AAAA", ["2001:4860:4860::8844", "2001:4860:4860::8888"]),
        ("sub.dns.google.", "A", ["8.8.8.8", "8.8.4.4"]),
        ("123456789.test.", "A", ["192.168.1.1"]),
        ("test.com.", "A", ["2.3.4.5"]),
    ],
)
def test_matched(hosts, name, typ, want):
    q = dns.message.make_query(name, typ, use_edns=False)
    r = hosts.lookup_msg(q)
    assert r is not None
    assert _addrs(r) == _ips(*want)
    assert r.id == q.id
    assert r.flags & dns.flags.QR


@pytest.mark.parametrize("name", ["nxdomain.com.", "0123456789.test."])
def test_not_matched(hosts, name):
    q = dns.message.make_query(name, "A", use_edns=False)
    assert hosts.lookup_msg(q) is None


def test_matched_domain_with_mismatched_type(hosts):
    q = dns.message.make_query("test.com.", "AAAA", use_edns=False)
    r = hosts.lookup_msg(q)
    assert r is not None
    assert r.answer == []
    assert len(r.authority) == 1
    assert r.authority[0].rdtype == dns.rdatatype.SOA


def test_unsupported_type_is_ignored(hosts):
    q = dns.message.make_query("dns.google.", "MX", use_edns=False)
    assert hosts.lookup_msg(q) is None


def test_unsupported_class_is_ignored(hosts):
    q = dns.message.make_query("dns.google.", "A", rdclass="CH", use_edns=False)
    assert hosts.lookup_msg(q) is None


def test_lookup(hosts):
    v4, v6 = hosts.lookup("dns.google")
    assert set(v4) == _ips("8.8.8.8", "8.8.4.4")
    assert set(v6) == _ips("2001:4860:4860::8844", "2001:4860:4860::8888")
    assert hosts.lookup("nxdomain.com.") == ([], [])


def test_parse_ips_splits_families():
    pattern, ips = parse_ips("dns.google 8.8.8.8 2001:4860:4860::8888")
    assert pattern == "dns.google"
    assert ips == IPs(ipv4=list(_ips("8.8.8.8")), ipv6=list(_ips("2001:4860:4860::8888")))


def test_parse_ips_pattern_only():
    pattern, ips = parse_ips("test.com")
    assert pattern == "test.com"
    assert ips.ipv4 == [] and ips.ipv6 == []


def test_parse_ips_errors():
    with pytest.raises(ValueError):
        parse_ips("   ")
    with pytest.raises(ValueError):
        parse_ips("test.com not-an-ip")