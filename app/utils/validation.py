"""
Input validation utilities
"""

import base64
import binascii
from pathlib import Path
from typing import List

from fastapi import UploadFile, HTTPException, status

from app.utils.errors import MalformedImageError

PDF_MAGIC = b"%PDF-"
PNG_DATA_URL_PREFIX = "data:image/png;base64,"


def decode_signature_data_url(data_url: str, max_size: int) -> bytes:
    """Decode a 'data:image/png;base64,...' signature capture into PNG bytes"""
    if not data_url:
        raise MalformedImageError("Signature image is required")

    payload = data_url.strip()
    if payload.startswith("data:"):
        header, _, payload = payload.partition(",")
        if not header.lower().startswith("data:image/png") or ";base64" not in header.lower():
            raise MalformedImageError("Signature must be a base64 PNG data URL")

    # Encoded length bounds the decoded size
    if len(payload) * 3 // 4 > max_size:
        raise MalformedImageError(f"Signature image too large. Maximum size: {max_size // 1024}KB")

    try:
        image_bytes = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedImageError(f"Signature image is not valid base64: {e}") from e

    if not image_bytes:
        raise MalformedImageError("Signature image is empty")
    return image_bytes


def validate_file_upload(
    file: UploadFile,
    allowed_extensions: List[str],
    max_size: int,
) -> bool:
    """Validate uploaded file"""

    # Check file extension
    file_extension = Path(file.filename or "").suffix.lower()
    if file_extension not in [ext.lower() for ext in allowed_extensions]:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File type not allowed. Allowed types: {', '.join(allowed_extensions)}"
        )

    # Check file size
    if file.size and file.size > max_size:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File too large. Maximum size: {max_size // (1024*1024)}MB"
        )

    return True


def validate_pdf_content(content: bytes, max_size: int) -> bool:
    """Check the payload really is a PDF within the size limit"""
    if len(content) > max_size:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File too large. Maximum size: {max_size // (1024*1024)}MB"
        )

    if not content.startswith(PDF_MAGIC):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid file type. Expected: application/pdf"
        )
    return True
