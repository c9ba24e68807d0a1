"""Per-connection DMARC evaluation: gather results, fetch the policy, decide."""

from __future__ import annotations

from collections.abc import Callable

from dmarckit.codes import (
    AlignmentMode,
    AlignmentResult,
    AuthOutcome,
    Disposition,
    DmarcError,
    FailureOption,
    IpType,
    PolicyToken,
    ReportFormat,
    SpfOrigin,
    Status,
)
from dmarckit.dns import DmarcDnsResolver, DnsLookupError, DnsReply
from dmarckit.domains import check_alignment, check_domain, find_domain
from dmarckit.record import parse_record

DNS_MAX_RETRIES = 3

_DISPOSITION_STATUS = {
    Disposition.REJECT: Status.POLICY_REJECT,
    Disposition.QUARANTINE: Status.POLICY_QUARANTINE,
    Disposition.NONE: Status.POLICY_NONE,
}


def _dns_failure_status(reply: DnsReply | None) -> Status:
    if reply in (DnsReply.TRY_AGAIN, DnsReply.NETDB_INTERNAL):
        return Status.DNS_ERROR_TMPERR
    return Status.DNS_ERROR_NO_RECORD


class PolicyContext:
    """State gathered about one message: its From: domain, SPF and DKIM
    results and the DMARC record that applies to it.

    ``org_domain_of`` maps a domain to its organizational domain; without
    it there is no fallback lookup at the organizational domain.
    """

    def __init__(
        self,
        ip_addr: str,
        is_ipv6: bool = False,
        resolver: DmarcDnsResolver | None = None,
        org_domain_of: Callable[[str], str | None] | None = None,
    ) -> None:
        if ip_addr is None:
            raise ValueError("an IP address is required")
        self.resolver = resolver if resolver is not None else DmarcDnsResolver()
        self.org_domain_of = org_domain_of
        self.clear()
        self.ip_addr: str | None = ip_addr
        self.ip_type = IpType.IPV6 if is_ipv6 else IpType.IPV4

    def clear(self) -> None:
        """Forget everything, the client address included."""
        self.ip_addr = None
        self.ip_type = IpType.UNSPECIFIED
        self.from_domain: str | None = None
        self.organizational_domain: str | None = None
        self.spf_domain: str | None = None
        self.spf_origin = SpfOrigin.UNSPECIFIED
        self.spf_outcome = AuthOutcome.NONE
        self.spf_human_outcome: str | None = None
        self.dkim_domain: str | None = None
        self.dkim_selector: str | None = None
        self.dkim_outcome = AuthOutcome.NONE
        self.dkim_human_outcome: str | None = None
        self.dkim_final = False
        self.dkim_alignment = AlignmentResult.FAIL
        self.spf_alignment = AlignmentResult.FAIL
        self.h_error: DnsReply | None = None
        self.p = Disposition.UNSPECIFIED
        self.sp = Disposition.UNSPECIFIED
        self.adkim = AlignmentMode.UNSPECIFIED
        self.aspf = AlignmentMode.UNSPECIFIED
        self.pct = 0
        self.ri = 0
        self.rf = ReportFormat.UNSPECIFIED
        self.fo = FailureOption.UNSPECIFIED
        self.rua: list[str] = []
        self.ruf: list[str] = []

    def reset(self) -> None:
        """Prepare for another message on the same connection."""
        ip_addr, ip_type = self.ip_addr, self.ip_type
        self.clear()
        self.ip_addr, self.ip_type = ip_addr, ip_type

    def store_from_domain(self, from_domain: str) -> None:
        """Record the domain of the From: header (an address is accepted)."""
        if not from_domain:
            raise DmarcError(Status.PARSE_ERROR_EMPTY)
        domain = find_domain(from_domain)
        if domain is None:
            raise DmarcError(Status.PARSE_ERROR_NO_DOMAIN)
        self.from_domain = domain

    def store_spf(
        self,
        domain: str,
        result: AuthOutcome | int,
        origin: SpfOrigin | int,
        human_readable: str | None = None,
    ) -> None:
        """Record the SPF result for ``domain`` (raw MAIL FROM is accepted)."""
        if not domain:
            raise DmarcError(Status.PARSE_ERROR_EMPTY)
        found = find_domain(domain)
        if found is None:
            raise DmarcError(Status.PARSE_ERROR_NO_DOMAIN)
        if not check_domain(found):
            raise DmarcError(Status.PARSE_ERROR_BAD_VALUE)
        if human_readable is not None:
            self.spf_human_outcome = human_readable
        self.spf_domain = found
        try:
            self.spf_outcome = AuthOutcome(result)
        except ValueError:
            raise DmarcError(Status.PARSE_ERROR_BAD_SPF_MACRO) from None
        if origin not in (SpfOrigin.MAILFROM, SpfOrigin.HELO):
            raise DmarcError(Status.PARSE_ERROR_BAD_SPF_MACRO)
        self.spf_origin = SpfOrigin(origin)

    def store_dkim(
        self,
        domain: str,
        selector: str | None,
        result: AuthOutcome | int,
        human_result: str | None = None,
    ) -> None:
        """Record one DKIM signature result, keeping the best one seen.

        An exact match with the From: domain that passes is final; an
        aligned pass replaces an earlier unaligned one; an earlier pass is
        never replaced by a later unaligned signature.
        """
        if not domain:
            raise DmarcError(Status.PARSE_ERROR_EMPTY)
        if self.from_domain is None:
            raise DmarcError(Status.FROM_DOMAIN_ABSENT)
        if not check_domain(domain):
            raise DmarcError(Status.PARSE_ERROR_BAD_VALUE)
        try:
            outcome = AuthOutcome(result)
        except ValueError:
            raise DmarcError(Status.PARSE_ERROR_BAD_DKIM_MACRO) from None
        if self.dkim_final:
            return
        found = find_domain(domain)
        if not found:
            raise DmarcError(Status.PARSE_ERROR_NO_DOMAIN)

        if found.lower() == self.from_domain.lower():
            self.dkim_domain = None
            self.dkim_selector = None
            if outcome is AuthOutcome.PASS:
                self.dkim_final = True
            elif self.dkim_outcome is AuthOutcome.PASS:
                return
        else:
            aligned = check_alignment(
                found, self.from_domain, self.adkim, self.org_domain_of
            )
            passed_aligned = False
            if aligned:
                self.dkim_domain = None
                self.dkim_selector = None
                passed_aligned = outcome is AuthOutcome.PASS
            if not passed_aligned:
                if self.dkim_outcome is AuthOutcome.PASS:
                    return
                self.dkim_domain = None

        if self.dkim_domain is None:
            self.dkim_domain = found
        if self.dkim_selector is None and selector is not None:
            self.dkim_selector = selector
        if human_result is not None:
            self.dkim_human_outcome = human_result
        self.dkim_outcome = outcome

    def parse_dmarc(self, domain: str, record: str) -> None:
        """Parse ``record``, looked up for ``domain``, into this context."""
        if domain is None or not record:
            raise DmarcError(Status.PARSE_ERROR_EMPTY)
        parsed = parse_record(record).with_defaults()
        self.p = parsed.p
        self.sp = parsed.sp
        self.adkim = parsed.adkim
        self.aspf = parsed.aspf
        self.pct = parsed.pct
        self.ri = parsed.ri
        self.rf = parsed.rf
        self.fo = parsed.fo
        self.rua = list(parsed.rua)
        self.ruf = list(parsed.ruf)
        if self.from_domain is None:
            self.from_domain = domain

    def store_dmarc(
        self,
        record: str,
        domain: str,
        organizational_domain: str | None = None,
    ) -> None:
        """Take a DMARC record the caller looked up itself."""
        if record is None:
            raise DmarcError(Status.PARSE_ERROR_EMPTY)
        if domain is None:
            raise DmarcError(Status.PARSE_ERROR_NO_DOMAIN)
        self.parse_dmarc(domain, record)
        self.from_domain = domain
        if organizational_domain is not None:
            self.organizational_domain = organizational_domain

    def _org_domain(self, domain: str) -> str | None:
        if self.org_domain_of is None:
            return None
        try:
            return self.org_domain_of(domain)
        except (LookupError, ValueError):
            return None

    def query_dmarc(self, domain: str | None = None) -> None:
        """Look up and parse the DMARC record for ``domain`` or the From: domain.

        Falls back to the organizational domain, which is then recorded.
        """
        if not domain:
            if self.from_domain is None:
                raise DmarcError(Status.PARSE_ERROR_EMPTY)
            domain = self.from_domain

        try:
            text = self.resolver.get_record(f"_dmarc.{domain}")
        except DnsLookupError as exc:
            reply = exc.reply
        else:
            self.parse_dmarc(domain, text)
            return

        org_domain = self._org_domain(domain)
        if org_domain:
            self.organizational_domain = org_domain
            try:
                text = self.resolver.get_record(f"_dmarc.{org_domain}")
            except DnsLookupError as exc:
                reply = exc.reply
            else:
                self.parse_dmarc(domain, text)
                return

        self.h_error = reply
        raise DmarcError(_dns_failure_status(reply))

    def _xdomain_org(self, domain: str) -> str | None:
        if self.org_domain_of is None:
            return domain
        return self._org_domain(domain)

    def _authorization(self, name: str) -> tuple[str | None, DnsReply | None]:
        reply = None
        for _ in range(DNS_MAX_RETRIES):
            try:
                return self.resolver.get_record(name), DnsReply.NETDB_SUCCESS
            except DnsLookupError as exc:
                reply = exc.reply
                if reply is DnsReply.HOST_NOT_FOUND:
                    break
        return None, reply

    def query_dmarc_xdomain(self, uri: str) -> None:
        """Check that reports may be sent to ``uri``; raise DmarcError if not.

        A destination in another organizational domain must publish an
        authorization record of exactly "v=DMARC1".
        """
        if self.from_domain is None:
            raise DmarcError(Status.PARSE_ERROR_NULL_CTX)
        if uri is None:
            raise DmarcError(Status.PARSE_ERROR_EMPTY)
        if uri[:7].lower() == "mailto:":
            uri = uri[7:]
        domain = find_domain(uri)
        if domain is None:
            raise DmarcError(Status.PARSE_ERROR_NO_DOMAIN)

        uri_org = self._xdomain_org(domain)
        from_org = self._xdomain_org(self.from_domain)
        if uri_org is None or from_org is None:
            raise DmarcError(Status.DNS_ERROR_NO_RECORD)
        if uri_org.lower() == from_org.lower():
            return

        text, reply = self._authorization(f"{self.from_domain}._report._dmarc.{domain}")
        if text is None:
            text, reply = self._authorization(f"*._report._dmarc.{domain}")
        if text is not None:
            if text.lower() == "v=dmarc1":
                return
            raise DmarcError(Status.DNS_ERROR_NO_RECORD)
        raise DmarcError(_dns_failure_status(reply))

    def policy_to_enforce(self) -> Status:
        """Decide what to do with the message and update the alignment results."""
        if self.p == Disposition.UNSPECIFIED:
            return Status.POLICY_ABSENT
        if self.from_domain is None:
            raise DmarcError(Status.FROM_DOMAIN_ABSENT)

        self.dkim_alignment = AlignmentResult.FAIL
        self.spf_alignment = AlignmentResult.FAIL

        if self.dkim_domain is not None and self.dkim_outcome is AuthOutcome.PASS:
            if check_alignment(
                self.from_domain, self.dkim_domain, self.adkim, self.org_domain_of
            ):
                self.dkim_alignment = AlignmentResult.PASS
        if self.spf_domain is not None and self.spf_outcome is AuthOutcome.PASS:
            if check_alignment(
                self.from_domain, self.spf_domain, self.aspf, self.org_domain_of
            ):
                self.spf_alignment = AlignmentResult.PASS

        if AlignmentResult.PASS in (self.dkim_alignment, self.spf_alignment):
            return Status.POLICY_PASS

        if self.organizational_domain is not None and self.sp in _DISPOSITION_STATUS:
            return _DISPOSITION_STATUS[self.sp]
        return _DISPOSITION_STATUS.get(self.p, Status.POLICY_PASS)

    def policy_token_used(self) -> PolicyToken:
        """Return which tag, p= or sp=, governs this message."""
        if (
            self.organizational_domain is not None
            and self.sp != Disposition.UNSPECIFIED
        ):
            return PolicyToken.SP
        return PolicyToken.P

    def _verified(self, uris: list[str]) -> list[str]:
        verified = []
        for uri in uris:
            try:
                self.query_dmarc_xdomain(uri)
            except DmarcError:
                continue
            verified.append(uri)
        return verified

    def fetch_rua(self) -> list[str]:
        """Return the aggregate report addresses that may be used."""
        return self._verified(self.rua)

    def fetch_ruf(self) -> list[str]:
        """Return the failure report addresses that may be used."""
        return self._verified(self.ruf)

    def fetch_fo(self) -> FailureOption:
        """Return the failure options, unspecified when there is no ruf=."""
        return self.fo if self.ruf else FailureOption.UNSPECIFIED

    def fetch_rf(self) -> ReportFormat:
        """Return the report formats, unspecified when there is no ruf=."""
        return self.rf if self.ruf else ReportFormat.UNSPECIFIED

    def utilized_domain(self) -> str:
        """Return the domain whose record applied: organizational or From:."""
        domain = self.organizational_domain or self.from_domain
        if domain is None:
            raise DmarcError(Status.PARSE_ERROR_NO_DOMAIN)
        return domain