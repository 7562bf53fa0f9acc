"""iacguard - rule engine for infrastructure-as-code compliance checks."""

__version__ = "0.1.0"
