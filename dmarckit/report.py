"""Plain-text dump of a policy context, one KEY=value line per field."""

from __future__ import annotations

from collections.abc import Iterator
from typing import TYPE_CHECKING

from dmarckit.codes import (
    AlignmentMode,
    AlignmentResult,
    AuthOutcome,
    Disposition,
    FailureOption,
    IpType,
    ReportFormat,
    SpfOrigin,
)
from dmarckit.dns import DnsReply

if TYPE_CHECKING:
    from dmarckit.policy import PolicyContext

_IP_TYPES = {IpType.IPV4: "IPv4", IpType.IPV6: "IPv6"}
_ORIGINS = {SpfOrigin.MAILFROM: "MAILFROM", SpfOrigin.HELO: "HELO"}
_H_ERRORS = frozenset(
    {
        DnsReply.HOST_NOT_FOUND,
        DnsReply.TRY_AGAIN,
        DnsReply.NO_RECOVERY,
        DnsReply.NO_DATA,
        DnsReply.NETDB_INTERNAL,
    }
)
_FO_MARKS = (
    (FailureOption.ZERO, "0:"),
    (FailureOption.ONE, "1:"),
    (FailureOption.D, "d:"),
    (FailureOption.S, "s:"),
)


def _outcome(value: AuthOutcome | int) -> str:
    try:
        return AuthOutcome(value).name
    except ValueError:
        return AuthOutcome.NONE.name


def _alignment(value: AlignmentResult | int) -> str:
    return "PASS" if value == AlignmentResult.PASS else "FAIL"


def _mode(value: AlignmentMode | int) -> str:
    try:
        return AlignmentMode(value).name
    except ValueError:
        return ""


def _disposition(value: Disposition | int) -> str:
    try:
        return Disposition(value).name
    except ValueError:
        return ""


def _report_format(rf: ReportFormat | int) -> str:
    rf = ReportFormat(rf)
    if not rf:
        return "UNSPECIFIED"
    names = [name for flag, name in ((ReportFormat.AFRF, "AFRF"), (ReportFormat.IODEF, "IODEF")) if flag & rf]
    return ",".join(names)


def _failure_options(context: PolicyContext) -> str:
    fo = FailureOption(context.fo)
    text = "UNSPECIFIED" if not context.ruf or not fo else ""
    return text + "".join(mark for flag, mark in _FO_MARKS if flag & fo)


def _fields(context: PolicyContext) -> Iterator[tuple[str, str]]:
    yield "IP_ADDR", context.ip_addr or ""
    ip_type = _IP_TYPES.get(context.ip_type, "") if context.ip_addr is not None else ""
    yield "IP_TYPE", ip_type
    yield "SPF_DOMAIN", context.spf_domain or ""
    yield "SPF_ORIGIN", _ORIGINS.get(context.spf_origin, "")
    yield "SPF_OUTCOME", _outcome(context.spf_outcome)
    yield "SPF_HUMAN_OUTCOME", context.spf_human_outcome or ""
    yield "DKIM_FINAL", "TRUE" if context.dkim_final else "FALSE"
    yield "DKIM_DOMAIN", context.dkim_domain or ""
    yield "DKIM_SELECTOR", context.dkim_selector or ""
    yield "DKIM_OUTOME", _outcome(context.dkim_outcome)
    yield "DKIM_HUMAN_OUTCOME", context.dkim_human_outcome or ""
    yield "DKIM_ALIGNMENT", _alignment(context.dkim_alignment)
    yield "SPF_ALIGNMENT", _alignment(context.spf_alignment)
    h_error = context.h_error
    yield "H_ERRNO", h_error.name if h_error in _H_ERRORS else ""
    yield "ADKIM", _mode(context.adkim)
    yield "ASPF", _mode(context.aspf)
    yield "P", _disposition(context.p)
    yield "SP", _disposition(context.sp)
    yield "PCT", str(context.pct)
    yield "RF", _report_format(context.rf)
    yield "RI", str(context.ri)
    yield "RUA", ",".join(context.rua)
    yield "RUF", ",".join(context.ruf)
    yield "FO", _failure_options(context)


def policy_to_text(context: PolicyContext) -> str:
    """Describe ``context`` as newline-terminated KEY=value lines."""
    if context is None:
        raise ValueError("a policy context is required")
    return "".join(f"{key}={value}\n" for key, value in _fields(context))