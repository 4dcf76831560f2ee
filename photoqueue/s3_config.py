"""
S3Config - Connection settings for the S3/MinIO remote store.
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class S3Config:
    """
    S3 configuration.

    Attributes:
        endpoint: S3 endpoint URL (e.g., MinIO server)
        bucket: Bucket name
        prefix: Key prefix for all uploads
        folder: Event folder under the prefix
        access_key: Access key id
        secret_key: Secret access key
        region: Region name
        verify_ssl: Verify TLS certificates
        public_base_url: Base URL for public links (default: endpoint/bucket)
        tags: Tags stored as object metadata
    """
    endpoint: Optional[str] = None
    bucket: Optional[str] = None
    prefix: str = 'uploads'
    folder: str = 'guest_photos'
    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    region: str = 'us-east-1'
    verify_ssl: bool = True
    public_base_url: Optional[str] = None
    tags: List[str] = field(default_factory=lambda: ['guest_photos'])

    @classmethod
    def from_env(cls) -> 'S3Config':
        """Create configuration from S3_* environment variables."""
        tags = os.environ.get('S3_TAGS')
        return cls(
            endpoint=os.environ.get('S3_ENDPOINT'),
            bucket=os.environ.get('S3_BUCKET'),
            prefix=os.environ.get('S3_PREFIX', 'uploads'),
            folder=os.environ.get('S3_FOLDER', 'guest_photos'),
            access_key=os.environ.get('S3_ACCESS_KEY'),
            secret_key=os.environ.get('S3_SECRET_KEY'),
            region=os.environ.get('S3_REGION', 'us-east-1'),
            verify_ssl=os.environ.get('S3_VERIFY_SSL', 'true').lower() not in ('0', 'false', 'no'),
            public_base_url=os.environ.get('S3_PUBLIC_BASE_URL'),
            tags=[t.strip() for t in tags.split(',') if t.strip()] if tags else ['guest_photos'],
        )

    def validate(self) -> List[str]:
        """
        Validate configuration.

        Returns:
            List of error messages (empty if valid)
        """
        errors = []
        if not self.endpoint:
            errors.append("S3_ENDPOINT is required")
        if not self.bucket:
            errors.append("S3_BUCKET is required")
        if not self.access_key:
            errors.append("S3_ACCESS_KEY is required")
        if not self.secret_key:
            errors.append("S3_SECRET_KEY is required")
        return errors

    def object_key(self, item_id: str, extension: str) -> str:
        """Build the object key for an item; the same item always maps to the same key."""
        parts = [p.strip('/') for p in (self.prefix, self.folder) if p and p.strip('/')]
        parts.append(f"{item_id}{extension}")
        return '/'.join(parts)

    def public_url(self, key: str) -> str:
        """Public URL for an object key (path-style addressing by default)."""
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{key}"
        return f"{(self.endpoint or '').rstrip('/')}/{self.bucket}/{key}"
