"""Status codes, policy enumerations and the library's exception type."""

from __future__ import annotations

from enum import Enum, IntEnum, IntFlag

UNDEFINED_MESSAGE = "Undefine Value"


class Status(IntEnum):
    """Outcome of a parse, a lookup or a policy evaluation."""

    PARSE_OKAY = 0
    PARSE_ERROR_EMPTY = 1
    PARSE_ERROR_NULL_CTX = 2
    PARSE_ERROR_BAD_VERSION = 3
    PARSE_ERROR_BAD_VALUE = 4
    PARSE_ERROR_NO_REQUIRED_P = 5
    PARSE_ERROR_NO_DOMAIN = 6
    PARSE_ERROR_NO_ALLOC = 7
    PARSE_ERROR_BAD_SPF_MACRO = 8
    PARSE_ERROR_BAD_DKIM_MACRO = 9
    DNS_ERROR_NO_RECORD = 10
    DNS_ERROR_NXDOMAIN = 11
    DNS_ERROR_TMPERR = 12
    TLD_ERROR_UNKNOWN = 13
    FROM_DOMAIN_ABSENT = 14
    POLICY_ABSENT = 15
    POLICY_PASS = 16
    POLICY_REJECT = 17
    POLICY_QUARANTINE = 18
    POLICY_NONE = 19


_MESSAGES: dict[Status, str] = {
    Status.PARSE_OKAY: "Success. No Errors",
    Status.PARSE_ERROR_EMPTY: "Function called with nothing to parse",
    Status.PARSE_ERROR_NULL_CTX: "Function called with NULL Context",
    Status.PARSE_ERROR_BAD_VERSION: "Found DMARC record contained a bad v= value",
    Status.PARSE_ERROR_BAD_VALUE: "Found DMARC record contained a bad token value",
    Status.PARSE_ERROR_NO_REQUIRED_P: "Found DMARC record lacked a required p= entry",
    Status.PARSE_ERROR_NO_DOMAIN: 'Function found the domain empty, e.g. "<>"',
    Status.PARSE_ERROR_NO_ALLOC: "Memory allocation error",
    Status.PARSE_ERROR_BAD_SPF_MACRO: "Attempt to store an illegal value",
    Status.DNS_ERROR_NO_RECORD: "Looked up domain lacked a DMARC record",
    Status.DNS_ERROR_NXDOMAIN: "Looked up domain did not exist",
    Status.DNS_ERROR_TMPERR: "DNS lookup of domain tempfailed",
    Status.TLD_ERROR_UNKNOWN: "Attempt to load an unknown TLD file type",
    Status.FROM_DOMAIN_ABSENT: "No From: domain was supplied",
    Status.POLICY_ABSENT: "Policy up to you. No DMARC record found",
    Status.POLICY_PASS: "Policy OK so accept message",
    Status.POLICY_REJECT: "Policy says to reject message",
    Status.POLICY_QUARANTINE: "Policy says to quarantine message",
    Status.POLICY_NONE: "Policy says to monitor and report",
}


def status_to_str(status: Status | int) -> str:
    """Return a human readable description of ``status``."""
    try:
        return _MESSAGES.get(Status(status), UNDEFINED_MESSAGE)
    except ValueError:
        return UNDEFINED_MESSAGE


class DmarcError(Exception):
    """Raised where an operation ends with an error status."""

    def __init__(self, status: Status | int) -> None:
        try:
            self.status: Status | int = Status(status)
        except ValueError:
            self.status = status
        super().__init__(status_to_str(status))


class Disposition(IntEnum):
    """Value of a record's p= or sp= tag."""

    UNSPECIFIED = 0
    NONE = 1
    QUARANTINE = 2
    REJECT = 3


class AlignmentMode(IntEnum):
    """Value of a record's adkim= or aspf= tag."""

    UNSPECIFIED = 0
    STRICT = 1
    RELAXED = 2


class AuthOutcome(IntEnum):
    """Result of an SPF or DKIM check."""

    NONE = 0
    PASS = 1
    FAIL = 2
    TMPFAIL = 3


class SpfOrigin(IntEnum):
    """Which identity SPF verified."""

    UNSPECIFIED = 0
    MAILFROM = 1
    HELO = 2


class AlignmentResult(IntEnum):
    """Whether an authenticated domain aligns with the From: domain."""

    FAIL = 0
    PASS = 1


class IpType(IntEnum):
    """Address family of the connecting client."""

    UNSPECIFIED = -1
    IPV4 = 4
    IPV6 = 6


class ReportFormat(IntFlag):
    """Failure report formats from a record's rf= tag."""

    UNSPECIFIED = 0
    AFRF = 1
    IODEF = 2


class FailureOption(IntFlag):
    """Failure reporting options from a record's fo= tag."""

    UNSPECIFIED = 0
    ZERO = 1
    ONE = 2
    D = 4
    S = 8


class PolicyToken(Enum):
    """Which policy tag was applied to a message."""

    P = "p"
    SP = "sp"