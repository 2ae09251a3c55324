"""Expiration checks for X509 certificates and CRLs."""

__version__ = "1.0.0"
