# Infrastructure layer - database repositories, object storage
"""
Infrastructure layer contains:
- Database repositories
- Storage adapters (local filesystem, S3-compatible)

Services in the application layer depend on this layer, not vice versa.
"""
