"""Parsing of DMARC policy records."""

from __future__ import annotations

import re
from dataclasses import dataclass, replace

from dmarckit.codes import (
    AlignmentMode,
    Disposition,
    DmarcError,
    FailureOption,
    ReportFormat,
    Status,
)

DEFAULT_PCT = 100
DEFAULT_RI = 86400

_ULONG_MAX = (1 << 64) - 1

_DISPOSITIONS = (
    ("reject", Disposition.REJECT),
    ("none", Disposition.NONE),
    ("quarantine", Disposition.QUARANTINE),
)
_MODES = (
    ("strict", AlignmentMode.STRICT),
    ("relaxed", AlignmentMode.RELAXED),
)
_FORMATS = (
    ("afrf", ReportFormat.AFRF),
    ("iodef", ReportFormat.IODEF),
)
_FAILURE_OPTIONS = {
    "0": FailureOption.ZERO,
    "1": FailureOption.ONE,
    "d": FailureOption.D,
    "s": FailureOption.S,
}
_LEADING_NUMBER = re.compile(r"\s*([+-]?)(\d*)")


@dataclass(frozen=True)
class DmarcRecord:
    """The tags of one DMARC record.

    ``pct`` and ``ri`` are None when the record does not give them;
    ``with_defaults`` fills in every unspecified tag.
    """

    p: Disposition = Disposition.UNSPECIFIED
    sp: Disposition = Disposition.UNSPECIFIED
    adkim: AlignmentMode = AlignmentMode.UNSPECIFIED
    aspf: AlignmentMode = AlignmentMode.UNSPECIFIED
    pct: int | None = None
    ri: int | None = None
    rf: ReportFormat = ReportFormat.UNSPECIFIED
    rua: tuple[str, ...] = ()
    ruf: tuple[str, ...] = ()
    fo: FailureOption = FailureOption.UNSPECIFIED

    def with_defaults(self) -> DmarcRecord:
        """Return a copy with the standard defaults for unspecified tags."""
        return replace(
            self,
            adkim=self.adkim or AlignmentMode.RELAXED,
            aspf=self.aspf or AlignmentMode.RELAXED,
            pct=DEFAULT_PCT if self.pct is None else self.pct,
            rf=self.rf or ReportFormat.AFRF,
            ri=DEFAULT_RI if self.ri is None else self.ri,
            fo=self.fo or FailureOption.ZERO,
        )


def _bad_value() -> DmarcError:
    return DmarcError(Status.PARSE_ERROR_BAD_VALUE)


def _abbreviation(value: str, choices):
    """Accept any leading part of a keyword, ignoring case."""
    lowered = value.lower()
    for word, member in choices:
        if word.startswith(lowered):
            return member
    raise _bad_value()


def _split_list(value: str, separator: str) -> list[str]:
    pieces = value.split(separator)
    if len(pieces) > 1 and pieces[-1] == "":
        pieces.pop()
    items = [piece.strip() for piece in pieces]
    if not all(items):
        raise _bad_value()
    return items


def _parse_pct(value: str) -> int:
    sign, digits = _LEADING_NUMBER.match(value).groups()
    number = int(digits) if digits else 0
    if (sign == "-" and number) or number > 100:
        raise _bad_value()
    return number


def _parse_ri(value: str) -> int:
    if not (value.isascii() and value.isdigit()):
        raise _bad_value()
    number = int(value)
    if number > _ULONG_MAX:
        raise _bad_value()
    return number


def parse_record(text: str | None) -> DmarcRecord:
    """Parse a DMARC record, without filling in defaults.

    Tag names and keyword values are matched without regard to case, and a
    keyword may be abbreviated ("p=r" means reject). Unknown tags are
    ignored. Raises DmarcError on a bad version, a bad value or a
    missing p= tag.
    """
    if not text:
        raise DmarcError(Status.PARSE_ERROR_EMPTY)

    fields: dict[str, object] = {}
    rf = ReportFormat.UNSPECIFIED
    fo = FailureOption.UNSPECIFIED

    for part in text.split(";"):
        tag, separator, value = part.partition("=")
        if not separator:
            continue
        tag = tag.strip().lower()
        value = value.strip()
        if not tag or not value:
            continue

        if tag == "v":
            if value.lower() != "dmarc1":
                raise DmarcError(Status.PARSE_ERROR_BAD_VERSION)
        elif tag in ("p", "sp"):
            fields[tag] = _abbreviation(value, _DISPOSITIONS)
        elif tag in ("adkim", "aspf"):
            fields[tag] = _abbreviation(value, _MODES)
        elif tag == "pct":
            fields["pct"] = _parse_pct(value)
        elif tag == "ri":
            fields["ri"] = _parse_ri(value)
        elif tag == "rf":
            for item in _split_list(value, ","):
                rf |= _abbreviation(item, _FORMATS)
        elif tag in ("rua", "ruf"):
            if tag in fields:
                raise _bad_value()
            fields[tag] = tuple(_split_list(value, ","))
        elif tag == "fo":
            for item in _split_list(value, ":"):
                option = _FAILURE_OPTIONS.get(item[0].lower())
                if option is None:
                    raise _bad_value()
                fo |= option

    if fields.get("p", Disposition.UNSPECIFIED) == Disposition.UNSPECIFIED:
        raise DmarcError(Status.PARSE_ERROR_NO_REQUIRED_P)
    return DmarcRecord(rf=rf, fo=fo, **fields)