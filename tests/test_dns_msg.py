import dns.message
import dns.name
import dns.rcode
import dns.rdataclass
import dns.rdatatype
import dns.rrset

from mosdns.dns_msg import (
    apply_maximum_ttl,
    apply_minimal_ttl,
    fake_soa,
    gen_empty_reply,
    get_minimal_ttl,
    qclass_to_string,
    qtype_to_string,
    set_ttl,
    subtract_ttl,
)


def make_msg(*ttls):
    msg = dns.message.make_query("example.com.", "A")
    for i, ttl in enumerate(ttls):
        msg.answer.append(
            dns.rrset.from_text(f"h{i}.example.com.", ttl, "IN", "A", "192.0.2.1")
        )
    return msg


def ttls(msg):
    return [rrset.ttl for rrset in msg.answer]


def test_minimal_ttl_of_empty_message_is_zero():
    assert get_minimal_ttl(make_msg()) == 0


def test_minimal_ttl():
    msg = make_msg(100, 50, 70)
    assert get_minimal_ttl(msg) == 50


def test_minimal_ttl_ignores_opt():
    msg = make_msg(100)
    msg.use_edns(0)
    assert get_minimal_ttl(msg) == 100


def test_set_ttl():
    msg = make_msg(100, 50)
    set_ttl(msg, 7)
    assert ttls(msg) == [7, 7]


def test_apply_maximum_ttl():
    msg = make_msg(100, 50)
    apply_maximum_ttl(msg, 60)
    assert ttls(msg) == [60, 50]


def test_apply_minimal_ttl():
    msg = make_msg(100, 50)
    apply_minimal_ttl(msg, 60)
    assert ttls(msg) == [100, 60]


def test_subtract_ttl_overflow():
    msg = make_msg(100, 50)
    assert subtract_ttl(msg, 60) is True
    assert ttls(msg) == [40, 1]


def test_subtract_ttl_without_overflow():
    msg = make_msg(100, 50)
    assert subtract_ttl(msg, 0) is False
    assert ttls(msg) == [100, 50]


def test_type_and_class_names():
    assert qtype_to_string(dns.rdatatype.A) == "A"
    assert qtype_to_string(dns.rdatatype.AAAA) == "AAAA"
    assert qclass_to_string(dns.rdataclass.IN) == "IN"


def test_unknown_type_and_class_give_numbers():
    assert qtype_to_string(65280) == "65280"
    assert qclass_to_string(4000) == "4000"


def test_fake_soa():
    rrset = fake_soa("example.com.")
    assert rrset.name == dns.name.from_text("example.com.")
    assert rrset.rdtype == dns.rdatatype.SOA
    assert rrset.ttl == 300
    soa = rrset[0]
    assert soa.mname == dns.name.from_text("fake-ns.mosdns.fake.root.")
    assert soa.rname == dns.name.from_text("fake-mbox.mosdns.fake.root.")
    assert soa.serial == 2021110400
    assert soa.refresh == 1800
    assert soa.retry == 900
    assert soa.expire == 604800
    assert soa.minimum == 86400


def test_gen_empty_reply():
    query = dns.message.make_query("example.com.", "A")
    reply = gen_empty_reply(query, dns.rcode.NXDOMAIN)
    assert reply.id == query.id
    assert reply.rcode() == dns.rcode.NXDOMAIN
    assert reply.answer == []
    assert len(reply.authority) == 1
    assert reply.authority[0].rdtype == dns.rdatatype.SOA
    assert reply.authority[0].name == dns.name.root