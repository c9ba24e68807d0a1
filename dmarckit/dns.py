"""Lookup of DMARC TXT records, with an optional table of fake answers."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from enum import IntEnum

import dns.exception
import dns.flags
import dns.resolver

# Longest host name handed to the resolver, matching the wire limit.
MAX_DNS_HOSTNAME = 256


class DnsReply(IntEnum):
    """Resolver status codes in the style of h_errno."""

    NETDB_INTERNAL = -1
    NETDB_SUCCESS = 0
    HOST_NOT_FOUND = 1
    TRY_AGAIN = 2
    NO_RECOVERY = 3
    NO_DATA = 4


class DnsLookupError(Exception):
    """Raised when no usable TXT record could be found."""

    def __init__(self, reply: DnsReply, domain: str | None = None) -> None:
        self.reply = reply
        self.domain = domain
        where = f" for {domain!r}" if domain else ""
        super().__init__(f"DNS lookup failed{where}: {reply.name}")


def _join_chunks(record: str | bytes | Sequence[str | bytes]) -> str:
    chunks = [record] if isinstance(record, (str, bytes)) else list(record)
    return "".join(
        chunk.decode("utf-8", errors="replace") if isinstance(chunk, bytes) else chunk
        for chunk in chunks
    )


def select_dmarc_text(
    records: Iterable[str | bytes | Sequence[str | bytes]],
) -> str | None:
    """Return the first TXT record whose joined strings contain "v=DMARC".

    Each record is either a single string or a sequence of character-strings,
    which are concatenated as they arrive on the wire.
    """
    for record in records:
        text = _join_chunks(record)
        if "v=DMARC" in text:
            return text
    return None


class DmarcDnsResolver:
    """Looks up DMARC TXT records, live or from a table of fake answers.

    While any fake answer is stored, lookups are served only from that table;
    this lets tests run with no network access.
    """

    def __init__(self, nameservers: Iterable[str] | None = None) -> None:
        self.nameservers = list(nameservers) if nameservers else []
        self._fake: list[tuple[str, str]] = []
        self._resolver: dns.resolver.Resolver | None = None

    def add_fake_record(self, name: str | None, answer: str) -> None:
        """Store a fake answer for ``name``; later entries never shadow earlier ones."""
        if name is None:
            return
        self._fake.append((name, answer))

    def clear_fake_records(self) -> None:
        """Forget all fake answers, so lookups go to live DNS again."""
        self._fake.clear()

    def _live_resolver(self) -> dns.resolver.Resolver:
        if self._resolver is None:
            if self.nameservers:
                resolver = dns.resolver.Resolver(configure=False)
                resolver.nameservers = list(self.nameservers)
            else:
                resolver = dns.resolver.Resolver()
            resolver.use_edns(0, dns.flags.DO, 1232)
            self._resolver = resolver
        return self._resolver

    @staticmethod
    def _query_name(domain: str) -> str:
        name = domain[: MAX_DNS_HOSTNAME - 1]
        if not name.endswith("."):
            name += "."
        return name.lstrip(".") or "."

    def get_record(self, domain: str | None) -> str:
        """Return the DMARC TXT record for ``domain``.

        Raises DnsLookupError carrying a DnsReply when nothing is found.
        """
        if not domain:
            raise DnsLookupError(DnsReply.HOST_NOT_FOUND, domain)

        if self._fake:
            wanted = domain.lower()
            for name, answer in self._fake:
                if name.lower() == wanted:
                    return answer
            raise DnsLookupError(DnsReply.NO_DATA, domain)

        qname = self._query_name(domain)
        try:
            answer = self._live_resolver().resolve(qname, "TXT")
        except dns.resolver.NXDOMAIN as exc:
            raise DnsLookupError(DnsReply.HOST_NOT_FOUND, domain) from exc
        except dns.resolver.NoAnswer as exc:
            raise DnsLookupError(DnsReply.NO_DATA, domain) from exc
        except (dns.exception.Timeout, dns.resolver.NoNameservers) as exc:
            raise DnsLookupError(DnsReply.TRY_AGAIN, domain) from exc
        except dns.exception.DNSException as exc:
            raise DnsLookupError(DnsReply.NO_RECOVERY, domain) from exc

        text = select_dmarc_text(rdata.strings for rdata in answer)
        if text is None:
            raise DnsLookupError(DnsReply.NO_DATA, domain)
        return text