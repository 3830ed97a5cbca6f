"""Data models, hashing and host collaborators for the TrustLink registry."""
