"""
PDF stamping engine

Embeds one signature raster at every registered spot of an existing PDF and
writes a "Signed: <date>" label under each stamp. The original bytes are never
modified; a new document is serialized.
"""

import io
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

import fitz  # PyMuPDF
from PIL import Image, UnidentifiedImageError

from app.services.coordinate_mapper import (
    DrawRect,
    SpotGeometry,
    compute_placement,
    format_signed_label,
)
from app.utils.errors import MalformedDocumentError, MalformedImageError

logger = logging.getLogger(__name__)

LABEL_COLOR = (0.4, 0.4, 0.4)
LABEL_FONT = "helv"

_PDF_SUFFIX = re.compile(r"\.pdf$", re.IGNORECASE)


def signed_document_path(original_path: str, attempt_id: Optional[str] = None) -> str:
    """contracts/lease.pdf -> contracts/lease_signed.pdf

    With an attempt id every signing attempt gets its own artifact:
    contracts/lease.pdf -> contracts/lease_<attempt_id>_signed.pdf
    """
    suffix = f"_{attempt_id}_signed.pdf" if attempt_id else "_signed.pdf"
    if _PDF_SUFFIX.search(original_path):
        return _PDF_SUFFIX.sub(suffix, original_path)
    return f"{original_path}{suffix}"


@dataclass
class StampedSpot:
    page_number: int
    rect: DrawRect


@dataclass
class StampResult:
    document_bytes: bytes
    stamped: List[StampedSpot] = field(default_factory=list)
    skipped: List[Tuple[int, str]] = field(default_factory=list)  # (page_number, reason)

    @property
    def modified(self) -> bool:
        return bool(self.stamped)


class PdfStampingService:
    """Signature stamping over PyMuPDF documents"""

    def __init__(self, label_font_size: float = 8.0):
        self.label_font_size = label_font_size

    @staticmethod
    def load_document(document_bytes: bytes) -> fitz.Document:
        try:
            doc = fitz.open(stream=document_bytes, filetype="pdf")
        except Exception as e:
            raise MalformedDocumentError(f"Invalid PDF file: {e}") from e

        if not doc.is_pdf or doc.page_count == 0:
            doc.close()
            raise MalformedDocumentError("The original document has no pages")
        return doc

    @staticmethod
    def decode_signature(image_bytes: bytes) -> Tuple[int, int]:
        """Validate the PNG and return its natural pixel size"""
        try:
            with Image.open(io.BytesIO(image_bytes)) as image:
                if image.format != "PNG":
                    raise MalformedImageError(f"Expected a PNG signature, got {image.format}")
                image.load()
                width, height = image.size
        except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
            raise MalformedImageError(f"Invalid signature image: {e}") from e

        if width <= 0 or height <= 0:
            raise MalformedImageError("Signature image is empty")
        return width, height

    def stamp(
        self,
        original_bytes: bytes,
        signature_png: bytes,
        spots: Sequence,
        signed_on: Optional[datetime] = None,
    ) -> StampResult:
        """Stamp the signature onto every spot and serialize a new document.

        Malformed input (PDF or PNG) fails the whole operation. A spot on a
        page the document does not have is skipped and the rest are stamped.
        """
        signed_on = signed_on or datetime.utcnow()
        doc = self.load_document(original_bytes)

        try:
            image_width, image_height = self.decode_signature(signature_png)
            label = format_signed_label(signed_on)
            result = StampResult(document_bytes=b"")
            image_xref = 0

            for spot in spots:
                geometry = SpotGeometry.from_spot(spot)

                if not 0 <= geometry.page_index < doc.page_count:
                    reason = f"page {geometry.page_number} outside 1..{doc.page_count}"
                    logger.warning(f"Skipping signature spot: {reason}")
                    result.skipped.append((geometry.page_number, reason))
                    continue

                page = doc[geometry.page_index]
                page_width = page.rect.width
                page_height = page.rect.height

                try:
                    rect = compute_placement(geometry, page_width, page_height, image_width, image_height)
                except ValueError as e:
                    logger.warning(f"Skipping signature spot on page {geometry.page_number}: {e}")
                    result.skipped.append((geometry.page_number, str(e)))
                    continue

                image_xref = self._draw_image(page, rect, signature_png, image_xref)
                self._draw_label(page, rect, label)
                result.stamped.append(StampedSpot(page_number=geometry.page_number, rect=rect))

            if not result.stamped:
                # Nothing drawn: hand back the original content untouched
                result.document_bytes = bytes(original_bytes)
            else:
                result.document_bytes = doc.tobytes(garbage=3, deflate=True)

            logger.info(
                f"Stamped signature at {len(result.stamped)} spot(s), "
                f"skipped {len(result.skipped)}"
            )
            return result
        finally:
            doc.close()

    @staticmethod
    def _to_page_rect(page_height: float, rect: DrawRect) -> fitz.Rect:
        """PDF space (origin bottom-left) to PyMuPDF page space (origin top-left)"""
        return fitz.Rect(rect.x, page_height - rect.top, rect.right, page_height - rect.y)

    def _draw_image(self, page: fitz.Page, rect: DrawRect, signature_png: bytes, image_xref: int) -> int:
        target = self._to_page_rect(page.rect.height, rect)
        if image_xref:
            # Reuse the already embedded raster instead of storing it again
            return page.insert_image(target, xref=image_xref, keep_proportion=False)
        return page.insert_image(target, stream=signature_png, keep_proportion=False)

    def _draw_label(self, page: fitz.Page, rect: DrawRect, label: str):
        baseline = fitz.Point(rect.label_x, page.rect.height - rect.label_y)
        page.insert_text(
            baseline,
            label,
            fontname=LABEL_FONT,
            fontsize=self.label_font_size,
            color=LABEL_COLOR,
        )
