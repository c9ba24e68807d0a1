import pytest

from dmarckit.codes import (
    AlignmentMode,
    Disposition,
    DmarcError,
    FailureOption,
    ReportFormat,
    Status,
)
from dmarckit.record import DEFAULT_PCT, DEFAULT_RI, DmarcRecord, parse_record


def _status_of(text):
    with pytest.raises(DmarcError) as info:
        parse_record(text)
    return info.value.status


def test_full_record():
    record = parse_record(
        "v=DMARC1; p=reject; sp=quarantine; adkim=s; aspf=r; pct=50; "
        "ri=3600; rua=mailto:a@example.com, mailto:b@example.com; "
        "ruf=mailto:f@example.com; fo=1:d"
    )
    assert record.p == Disposition.REJECT
    assert record.sp == Disposition.QUARANTINE
    assert record.adkim == AlignmentMode.STRICT
    assert record.aspf == AlignmentMode.RELAXED
    assert record.pct == 50
    assert record.ri == 3600
    assert record.rua == ("mailto:a@example.com", "mailto:b@example.com")
    assert record.ruf == ("mailto:f@example.com",)
    assert record.fo == FailureOption.ONE | FailureOption.D


@pytest.mark.parametrize(
    "value, expected",
    [
        ("r", Disposition.REJECT),
        ("REJ", Disposition.REJECT),
        ("n", Disposition.NONE),
        ("q", Disposition.QUARANTINE),
        ("quarantine", Disposition.QUARANTINE),
    ],
)
def test_policy_abbreviations(value, expected):
    assert parse_record(f"v=DMARC1; p={value}").p == expected


@pytest.mark.parametrize("value", ["rejected", "maybe", "x"])
def test_unknown_policy_rejected(value):
    assert _status_of(f"v=DMARC1; p={value}") == Status.PARSE_ERROR_BAD_VALUE


def test_bad_version():
    assert _status_of("v=DMARC2; p=none") == Status.PARSE_ERROR_BAD_VERSION


def test_missing_p():
    assert _status_of("v=DMARC1; sp=none") == Status.PARSE_ERROR_NO_REQUIRED_P


@pytest.mark.parametrize("text", ["", None])
def test_empty(text):
    assert _status_of(text) == Status.PARSE_ERROR_EMPTY


@pytest.mark.parametrize("value", ["101", "-5"])
def test_pct_out_of_range(value):
    assert _status_of(f"v=DMARC1; p=none; pct={value}") == Status.PARSE_ERROR_BAD_VALUE


def test_pct_takes_leading_digits():
    assert parse_record("v=DMARC1; p=none; pct=50abc").pct == 50


def test_ri_must_be_digits():
    assert _status_of("v=DMARC1; p=none; ri=12h") == Status.PARSE_ERROR_BAD_VALUE


def test_rf_list():
    record = parse_record("v=DMARC1; p=none; rf=afrf, iodef")
    assert record.rf == ReportFormat.AFRF | ReportFormat.IODEF


def test_rf_unknown():
    assert _status_of("v=DMARC1; p=none; rf=xml") == Status.PARSE_ERROR_BAD_VALUE


def test_rua_trailing_comma_allowed():
    record = parse_record("v=DMARC1; p=none; rua=mailto:a@example.com,")
    assert record.rua == ("mailto:a@example.com",)


def test_rua_empty_item_rejected():
    text = "v=DMARC1; p=none; rua=mailto:a@example.com,,mailto:b@example.com"
    assert _status_of(text) == Status.PARSE_ERROR_BAD_VALUE


def test_duplicate_rua_rejected():
    text = "v=DMARC1; p=none; rua=mailto:a@example.com; rua=mailto:b@example.com"
    assert _status_of(text) == Status.PARSE_ERROR_BAD_VALUE


def test_fo_unknown_option():
    assert _status_of("v=DMARC1; p=none; fo=x") == Status.PARSE_ERROR_BAD_VALUE


def test_unknown_tags_and_bare_words_ignored():
    record = parse_record("v=DMARC1; junk; zz=top; P=None;")
    assert record.p == Disposition.NONE
    assert record.rua == ()


def test_defaults_filled():
    record = parse_record("v=DMARC1; p=none").with_defaults()
    assert record.pct == DEFAULT_PCT == 100
    assert record.ri == DEFAULT_RI == 86400
    assert record.adkim == AlignmentMode.RELAXED
    assert record.aspf == AlignmentMode.RELAXED
    assert record.rf == ReportFormat.AFRF
    assert record.fo == FailureOption.ZERO


def test_defaults_keep_explicit_values():
    record = parse_record("v=DMARC1; p=none; adkim=s; pct=0; ri=60").with_defaults()
    assert record.adkim == AlignmentMode.STRICT
    assert record.pct == 0
    assert record.ri == 60


def test_raw_record_leaves_unspecified():
    record = parse_record("v=DMARC1; p=none")
    assert record == DmarcRecord(p=Disposition.NONE)