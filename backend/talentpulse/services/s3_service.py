"""S3 storage for rendered report PDFs.

When AWS credentials are not configured every operation logs a warning and
returns None/False, so local development works without S3.
"""

from __future__ import annotations

import logging
from typing import Optional

logger = logging.getLogger("talentpulse.s3")


def _get_client():
    """Lazy-create S3 client. Returns (None, None) if credentials missing."""
    from ..platform.config import settings

    if not settings.AWS_ACCESS_KEY_ID or not settings.AWS_SECRET_ACCESS_KEY:
        return None, None

    import boto3

    client = boto3.client(
        "s3",
        aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
        aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
        region_name=settings.AWS_REGION,
    )
    return client, settings.AWS_S3_BUCKET


def build_report_pdf_key(assignment_id: str, version: int) -> str:
    return f"reports/{assignment_id}/v{version}.pdf"


def upload_bytes(data: bytes, key: str, content_type: str = "application/pdf") -> Optional[str]:
    """Store ``data`` under ``key``.

    Returns:
        The object key, or None if S3 is not configured or the upload fails.
    """
    client, bucket = _get_client()
    if client is None:
        logger.warning("S3 not configured, cannot upload: %s", key)
        return None

    try:
        client.put_object(Bucket=bucket, Key=key, Body=data, ContentType=content_type)
        logger.info("Uploaded to S3: %s (%d bytes)", key, len(data))
        return key
    except Exception as e:
        logger.error("S3 upload failed for %s: %s", key, e)
        return None


def generate_presigned_url(key: str, expires_in: Optional[int] = None) -> Optional[str]:
    """Time-limited download URL for a stored object."""
    from ..platform.config import settings

    client, bucket = _get_client()
    if client is None:
        logger.warning("S3 not configured, cannot presign: %s", key)
        return None

    try:
        return client.generate_presigned_url(
            "get_object",
            Params={"Bucket": bucket, "Key": key},
            ExpiresIn=expires_in or settings.REPORT_PDF_URL_EXPIRY_SECONDS,
        )
    except Exception as e:
        logger.error("S3 presign failed for %s: %s", key, e)
        return None
