import pytest

from dmarckit.codes import AuthOutcome, SpfOrigin
from dmarckit.dns import DmarcDnsResolver, DnsReply
from dmarckit.policy import PolicyContext
from dmarckit.report import policy_to_text

KEYS = [
    "IP_ADDR", "IP_TYPE", "SPF_DOMAIN", "SPF_ORIGIN", "SPF_OUTCOME",
    "SPF_HUMAN_OUTCOME", "DKIM_FINAL", "DKIM_DOMAIN", "DKIM_SELECTOR",
    "DKIM_OUTOME", "DKIM_HUMAN_OUTCOME", "DKIM_ALIGNMENT", "SPF_ALIGNMENT",
    "H_ERRNO", "ADKIM", "ASPF", "P", "SP", "PCT", "RF", "RI", "RUA", "RUF", "FO",
]


def make_context(is_ipv6=False):
    return PolicyContext("192.0.2.1", is_ipv6, DmarcDnsResolver(), None)


def as_dict(text):
    return dict(line.split("=", 1) for line in text.splitlines())


def test_keys_in_order_and_newline_terminated():
    text = policy_to_text(make_context())
    assert text.endswith("\n")
    assert [line.split("=", 1)[0] for line in text.splitlines()] == KEYS


def test_fresh_context_values():
    fields = as_dict(policy_to_text(make_context()))
    assert fields["IP_ADDR"] == "192.0.2.1"
    assert fields["IP_TYPE"] == "IPv4"
    assert fields["SPF_ORIGIN"] == ""
    assert fields["SPF_OUTCOME"] == "NONE"
    assert fields["DKIM_FINAL"] == "FALSE"
    assert fields["DKIM_ALIGNMENT"] == "FAIL"
    assert fields["H_ERRNO"] == ""
    assert fields["ADKIM"] == "UNSPECIFIED"
    assert fields["P"] == "UNSPECIFIED"
    assert fields["RF"] == "UNSPECIFIED"
    assert fields["FO"] == "UNSPECIFIED"


def test_ipv6_type():
    fields = as_dict(policy_to_text(make_context(is_ipv6=True)))
    assert fields["IP_TYPE"] == "IPv6"


def test_cleared_context_has_no_address():
    context = make_context()
    context.clear()
    fields = as_dict(policy_to_text(context))
    assert fields["IP_ADDR"] == ""
    assert fields["IP_TYPE"] == ""


def test_stored_record_is_described():
    context = make_context()
    context.store_dmarc(
        "v=DMARC1; p=reject; sp=quarantine; adkim=s; "
        "rua=mailto:a@example.com,mailto:b@example.com; "
        "ruf=mailto:f@example.com; fo=1:d; rf=afrf,iodef",
        "example.com",
    )
    fields = as_dict(policy_to_text(context))
    assert fields["P"] == "REJECT"
    assert fields["SP"] == "QUARANTINE"
    assert fields["ADKIM"] == "STRICT"
    assert fields["ASPF"] == "RELAXED"
    assert fields["PCT"] == "100"
    assert fields["RI"] == "86400"
    assert fields["RF"] == "AFRF,IODEF"
    assert fields["RUA"] == "mailto:a@example.com,mailto:b@example.com"
    assert fields["RUF"] == "mailto:f@example.com"
    assert fields["FO"] == "1:d:"


def test_failure_options_without_ruf_are_marked_unspecified():
    context = make_context()
    context.store_dmarc("v=DMARC1; p=none; fo=s", "example.com")
    fields = as_dict(policy_to_text(context))
    assert fields["FO"] == "UNSPECIFIEDs:"
    assert fields["RUF"] == ""


def test_spf_results_are_described():
    context = make_context()
    context.store_spf("example.com", AuthOutcome.PASS, SpfOrigin.HELO, "ok")
    fields = as_dict(policy_to_text(context))
    assert fields["SPF_DOMAIN"] == "example.com"
    assert fields["SPF_ORIGIN"] == "HELO"
    assert fields["SPF_OUTCOME"] == "PASS"
    assert fields["SPF_HUMAN_OUTCOME"] == "ok"


def test_dkim_results_and_alignment():
    context = make_context()
    context.store_from_domain("example.com")
    context.store_dkim("example.com", "sel", AuthOutcome.PASS, None)
    context.store_dmarc("v=DMARC1; p=reject", "example.com")
    context.policy_to_enforce()
    fields = as_dict(policy_to_text(context))
    assert fields["DKIM_FINAL"] == "TRUE"
    assert fields["DKIM_DOMAIN"] == "example.com"
    assert fields["DKIM_SELECTOR"] == "sel"
    assert fields["DKIM_OUTOME"] == "PASS"
    assert fields["DKIM_ALIGNMENT"] == "PASS"
    assert fields["SPF_ALIGNMENT"] == "FAIL"


@pytest.mark.parametrize(
    "reply",
    [DnsReply.HOST_NOT_FOUND, DnsReply.TRY_AGAIN, DnsReply.NO_RECOVERY,
     DnsReply.NO_DATA, DnsReply.NETDB_INTERNAL],
)
def test_h_errno_names(reply):
    context = make_context()
    context.h_error = reply
    assert as_dict(policy_to_text(context))["H_ERRNO"] == reply.name


def test_success_reply_leaves_h_errno_empty():
    context = make_context()
    context.h_error = DnsReply.NETDB_SUCCESS
    assert as_dict(policy_to_text(context))["H_ERRNO"] == ""


def test_none_context_is_rejected():
    with pytest.raises(ValueError):
        policy_to_text(None)