# dmarckit

A library for evaluating DMARC policy on incoming mail. It gathers what a
mail server learns about a message: the connecting IP address, the `From:`
domain, and the SPF and DKIM results. It then reports what the sending
domain's DMARC record asks to have done with the message.

## Installation

```
pip install dmarckit
```

The only runtime dependency is `dnspython`.

## Modules

- `dmarckit.policy.PolicyContext` holds the state for one message.
  - Store the message's data with `store_from_domain()`, `store_spf()` and
    `store_dkim()`. `store_dkim()` may be called once per signature and keeps
    the best one seen.
  - Get the DMARC record in one of two ways. `query_dmarc()` looks it up in
    DNS, and falls back to the organizational domain if one can be found.
    `store_dmarc()` takes a record that you looked up yourself.
  - `policy_to_enforce()` checks alignment. It returns a `Status`:
    `POLICY_PASS`, `POLICY_REJECT`, `POLICY_QUARANTINE`, `POLICY_NONE`, or
    `POLICY_ABSENT` when no record is known.
  - `policy_token_used()` tells whether `p=` or `sp=` applied.
  - `fetch_rua()` and `fetch_ruf()` return only those report addresses whose
    cross-domain authorization checks out through `query_dmarc_xdomain()`.
  - `fetch_fo()`, `fetch_rf()` and `utilized_domain()` return the remaining
    record details.
  - `reset()` prepares the context for another message on the same
    connection and keeps the client address. `clear()` forgets everything.
- `dmarckit.record.parse_record()` parses a DMARC TXT record into a frozen
  `DmarcRecord`.
  - Tag names and keywords are matched without regard to case.
  - Keywords may be left-abbreviated, as in `p=r` or `adkim=s`.
  - Unknown tags are ignored.
  - `DmarcRecord.with_defaults()` fills in the standard defaults: relaxed
    alignment, `pct=100`, `rf=afrf`, `ri=86400` and `fo=0`.
- `dmarckit.domains` works with domain names:
  - `find_domain()` takes the domain out of an address or header value.
  - `check_domain()` checks that a domain uses only letters, digits, `.`,
    `-` and `_`.
  - `reverse_domain()` reverses the labels of a domain.
  - `check_alignment()` compares two domains in strict or relaxed mode.
- `dmarckit.dns.DmarcDnsResolver` looks up `_dmarc` TXT records with
  dnspython. It can also answer from a table of fake records, filled with
  `add_fake_record()`. While that table holds any entry, it alone is
  consulted, so tests need no network access. Failed lookups raise
  `DnsLookupError`, which carries a `DnsReply` code.
- `dmarckit.spf_dns` has the DNS helpers an SPF evaluator needs:
  - `lookup_addresses()` and `lookup_addresses_of_type()` for A and AAAA
    records;
  - `lookup_mx()`, which returns the addresses of each MX host;
  - `lookup_ptr()` and `reverse_pointer_name()` for reverse lookups;
  - `domain_exists()`;
  - `get_spf_record()`, which tries TXT first and then the SPF type;
  - `is_spf_text()`.
- `dmarckit.hashtable.HashTable` is a thread-safe table keyed by strings.
  - `lookup()` and `store()` ignore the case of keys.
  - `drop()` matches the key exactly.
  - `expire(age)` removes entries older than `age` seconds.
  - An optional `on_free` callback is called with each value that is
    replaced or removed.
- `dmarckit.report.policy_to_text()` writes a context out as `KEY=value`
  lines, which is useful for logging.
- `dmarckit.codes` holds the `Status` codes, the `DmarcError` exception,
  `status_to_str()` and the enumerations used throughout the library.

## Example

```python
from dmarckit.codes import AuthOutcome, SpfOrigin, Status
from dmarckit.dns import DmarcDnsResolver
from dmarckit.policy import PolicyContext

resolver = DmarcDnsResolver()
resolver.add_fake_record(
    "_dmarc.example.com",
    "v=DMARC1; p=reject; rua=mailto:reports@example.com",
)

ctx = PolicyContext("192.0.2.1", False, resolver, None)
ctx.store_from_domain("Sender <sender@example.com>")
ctx.store_spf("example.com", AuthOutcome.PASS, SpfOrigin.MAILFROM, None)
ctx.query_dmarc(None)

assert ctx.policy_to_enforce() is Status.POLICY_PASS
```

Errors are raised as `dmarckit.codes.DmarcError`. Its `status` attribute is
the `Status` that explains the failure, and its message is the text from
`status_to_str()`.

## Organizational domains

The library has no public-suffix list and cannot load one. To get the
organizational domain of a name, pass a callable as `org_domain_of` to
`PolicyContext` or to `check_alignment()`. It takes a domain and returns its
organizational domain, or None.

Without such a callable, the library has no organizational domain to work
with:

- `query_dmarc()` makes no fallback lookup.
- Alignment only compares the two domains as given.
- `query_dmarc_xdomain()` treats each domain as its own organizational
  domain.

## What it does not do

dmarckit is a library only. It provides:

- no command-line program;
- no mail filter or server to attach to an MTA;
- no aggregate or failure report generation or sending;
- no persistent storage of results.

## Running the tests

```
pip install -e .[test]
pytest
```