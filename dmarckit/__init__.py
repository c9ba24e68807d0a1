"""DMARC policy evaluation: record parsing, alignment checks and DNS lookups."""

__version__ = "0.1.0"

__all__ = ["codes", "dns", "domains", "hashtable", "policy", "record", "report", "spf_dns"]