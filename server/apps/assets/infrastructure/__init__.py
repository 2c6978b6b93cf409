"""Infrastructure layer for assets app.

This package contains integrations with external systems:
- Storage backend that holds the asset bytes (S3/MinIO/R2)
- MIME type detection and file classification

The business logic only ever sees storage locators, never bytes.
"""
