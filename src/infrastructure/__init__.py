"""
Infrastructure layer - external service integrations.

Each subdirectory wraps an external dependency:
- snowflake: Catalog, views and reactions persistence
- storage: Object storage (R2/S3) and URL signing
- youtube: YouTube Data API search

These wrappers translate between external formats and our domain models.
"""
