"""
Utility functions for the signature service
"""

from .errors import SigningError
from .validation import validate_file_upload, validate_pdf_content, decode_signature_data_url

__all__ = [
    "SigningError",
    "validate_file_upload",
    "validate_pdf_content",
    "decode_signature_data_url"
]
