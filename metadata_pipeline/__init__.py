"""Image metadata pipeline — S3 ingestion and idempotent metadata extraction."""
