"""DNS helpers for SPF evaluation: addresses, MX hosts, PTR names and SPF text."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Protocol

import dns.exception
import dns.rdatatype
import dns.resolver

from dmarckit.dns import MAX_DNS_HOSTNAME, DnsLookupError, DnsReply

_ADDRESS_TYPES = frozenset({"A", "AAAA"})


class _Resolver(Protocol):
    def resolve(self, qname: str, rdtype: str) -> Iterable[Any]: ...


def _resolver_or_default(resolver: _Resolver | None) -> _Resolver:
    return resolver if resolver is not None else dns.resolver.Resolver()


def _absolute(domain: str) -> str:
    """Make ``domain`` absolute and drop a single leading dot."""
    name = domain[: MAX_DNS_HOSTNAME - 1]
    if not name.endswith("."):
        name += "."
    if name.startswith("."):
        name = name[1:]
    return name or "."


def _name_text(name: Any) -> str:
    if hasattr(name, "to_text"):
        return name.to_text(omit_final_dot=True)
    return str(name).rstrip(".")


def _rdtype_text(rdtype: str | int) -> str:
    return dns.rdatatype.to_text(dns.rdatatype.RdataType.make(rdtype))


def _reply_for(exc: dns.exception.DNSException) -> DnsReply:
    if isinstance(exc, dns.resolver.NXDOMAIN):
        return DnsReply.HOST_NOT_FOUND
    if isinstance(exc, dns.resolver.NoAnswer):
        return DnsReply.NO_DATA
    if isinstance(exc, (dns.exception.Timeout, dns.resolver.NoNameservers)):
        return DnsReply.TRY_AGAIN
    return DnsReply.NO_RECOVERY


def reverse_pointer_name(ip: str) -> str:
    """Return the in-addr.arpa name for a dotted IPv4 address.

    The last three dot-separated parts are reversed in front of whatever
    remains. Raises ValueError when ``ip`` has fewer than three dots.
    """
    if ip is None:
        raise ValueError("an IP address is required")
    parts = ip.rsplit(".", 3)
    if len(parts) < 4:
        raise ValueError(f"not a dotted IPv4 address: {ip!r}")
    rest, third, second, last = parts
    return f"{last}.{second}.{third}.{rest}.in-addr.arpa."


def lookup_addresses_of_type(
    domain: str | None,
    rdtype: str | int,
    resolver: _Resolver | None = None,
) -> list[str]:
    """Return the A or AAAA addresses of ``domain``; empty when none are found."""
    kind = _rdtype_text(rdtype)
    if kind not in _ADDRESS_TYPES:
        raise ValueError(f"only A or AAAA lookups are supported, not {kind}")
    if not domain:
        return []
    try:
        answer = _resolver_or_default(resolver).resolve(_absolute(domain), kind)
    except dns.exception.DNSException:
        return []
    return [str(rdata.address) for rdata in answer]


def lookup_addresses(
    domain: str | None, resolver: _Resolver | None = None
) -> list[str]:
    """Return the IPv4 addresses of ``domain`` followed by its IPv6 addresses."""
    return lookup_addresses_of_type(domain, "A", resolver) + lookup_addresses_of_type(
        domain, "AAAA", resolver
    )


def lookup_mx(domain: str | None, resolver: _Resolver | None = None) -> list[str]:
    """Return the addresses of every MX host of ``domain``, in answer order."""
    if domain is None:
        return []
    resolver = _resolver_or_default(resolver)
    try:
        answer = resolver.resolve(domain, "MX")
    except dns.exception.DNSException:
        return []
    addresses: list[str] = []
    for rdata in answer:
        addresses.extend(lookup_addresses(_name_text(rdata.exchange), resolver))
    return addresses


def lookup_ptr(ip: str, resolver: _Resolver | None = None) -> list[str]:
    """Return the host names that the PTR records of ``ip`` point to."""
    qname = reverse_pointer_name(ip)
    try:
        answer = _resolver_or_default(resolver).resolve(qname, "PTR")
    except dns.exception.DNSException:
        return []
    return [_name_text(rdata.target) for rdata in answer]


def domain_exists(domain: str | None, resolver: _Resolver | None = None) -> bool:
    """Return True if an A or AAAA query for ``domain`` ends without error."""
    if not domain:
        return False
    resolver = _resolver_or_default(resolver)
    for kind in ("A", "AAAA"):
        try:
            resolver.resolve(domain, kind)
        except dns.resolver.NoAnswer:
            return True
        except dns.exception.DNSException:
            continue
        return True
    return False


def is_spf_text(text: str) -> bool:
    """Return True for an SPF ("v=spf") or Sender ID ("spf2.0") record."""
    return "v=spf" in text or text[:6].lower() == "spf2.0"


def _joined(rdata: Any) -> str:
    return "".join(
        chunk.decode("utf-8", errors="replace") if isinstance(chunk, bytes) else chunk
        for chunk in rdata.strings
    )


def get_spf_record(domain: str | None, resolver: _Resolver | None = None) -> str:
    """Return the first SPF text record of ``domain``.

    TXT records are tried first; when there are none, or the name does not
    exist, records of type SPF are tried. Raises DnsLookupError otherwise.
    """
    if not domain:
        raise DnsLookupError(DnsReply.HOST_NOT_FOUND, domain)
    resolver = _resolver_or_default(resolver)
    qname = _absolute(domain)
    try:
        answer = resolver.resolve(qname, "TXT")
    except (dns.resolver.NoAnswer, dns.resolver.NXDOMAIN):
        try:
            answer = resolver.resolve(qname, "SPF")
        except dns.exception.DNSException as exc:
            raise DnsLookupError(_reply_for(exc), domain) from exc
    except dns.exception.DNSException as exc:
        raise DnsLookupError(_reply_for(exc), domain) from exc

    for rdata in answer:
        text = _joined(rdata)
        if is_spf_text(text):
            return text
    raise DnsLookupError(DnsReply.NO_DATA, domain)