import pytest

from dmarckit.codes import AlignmentMode
from dmarckit.domains import check_alignment, check_domain, find_domain, reverse_domain


def _org(domain):
    return ".".join(domain.split(".")[-2:])


@pytest.mark.parametrize("domain", ["example.com", "mail-1.example.com", "_dmarc.example.com", ""])
def test_check_domain_accepts(domain):
    assert check_domain(domain) is True


@pytest.mark.parametrize("domain", ["exa mple.com", "user@example.com", "example.com;", "ex/ample.com"])
def test_check_domain_rejects(domain):
    assert check_domain(domain) is False


def test_find_domain_in_address():
    assert find_domain("user@example.com") == "example.com"


def test_find_domain_in_header():
    assert find_domain('"Some User" <user@example.com>') == "example.com"


def test_find_domain_ignores_comments():
    assert find_domain("user@example.com (a comment)") == "example.com"


def test_find_domain_bare():
    assert find_domain("example.com") == "example.com"


@pytest.mark.parametrize("text", ["<>", "", None, "   "])
def test_find_domain_empty(text):
    assert find_domain(text) is None


def test_reverse_domain():
    assert reverse_domain("mail.example.com") == "com.example.mail"


def test_reverse_domain_round_trip():
    name = "a.b.example.com"
    assert reverse_domain(reverse_domain(name)) == name


def test_exact_match_aligns_in_strict_mode():
    assert check_alignment("example.com", "EXAMPLE.com", AlignmentMode.STRICT)


def test_subdomain_relaxed():
    assert check_alignment("mail.example.com", "example.com", AlignmentMode.RELAXED)
    assert check_alignment("example.com", "mail.example.com", AlignmentMode.RELAXED)


def test_subdomain_strict_fails():
    assert not check_alignment("mail.example.com", "example.com", AlignmentMode.STRICT)


def test_unspecified_acts_as_relaxed():
    assert check_alignment("mail.example.com", "example.com", AlignmentMode.UNSPECIFIED)


def test_unrelated_domains():
    assert not check_alignment("example.com", "example.org", AlignmentMode.RELAXED, _org)


def test_label_boundary_respected():
    assert not check_alignment("myexample.com", "example.com", AlignmentMode.RELAXED)


def test_siblings_need_organizational_domain():
    assert not check_alignment("a.example.com", "b.example.com", AlignmentMode.RELAXED)
    assert check_alignment("a.example.com", "b.example.com", AlignmentMode.RELAXED, _org)


def test_strict_with_organizational_domain_exact():
    assert check_alignment("example.com", "mail.example.com", AlignmentMode.STRICT, _org)
    assert not check_alignment("a.example.com", "b.example.com", AlignmentMode.STRICT, _org)


def test_failing_org_lookup_means_not_aligned():
    def broken(domain):
        raise LookupError(domain)

    assert not check_alignment("a.example.com", "b.example.com", AlignmentMode.RELAXED, broken)


def test_missing_domain_raises():
    with pytest.raises(ValueError):
        check_alignment(None, "example.com")
    with pytest.raises(ValueError):
        check_alignment("example.com", None)