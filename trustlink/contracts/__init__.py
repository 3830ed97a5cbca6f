"""Registry components: roles, attestation records, indexes and lifecycle engine."""
