"""TrustLink attestation registry."""

__version__ = "0.1.0"
