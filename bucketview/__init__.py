"""Read-only virtual filesystem over local disk and S3-compatible object storage."""
