"""
PDF text decoder.

Turns a PDF into one plain-text string per page using pdfplumber. Scanned
pages carry no selectable text; a document where every page is empty is
rejected, since OCR is not part of this service.
"""

import io
import logging
from dataclasses import dataclass, field

import pdfplumber
from pdfminer.psparser import PSException
from pdfplumber.utils.exceptions import PdfminerException

from pickup_intake.exceptions import UnreadableDocumentError

logger = logging.getLogger("intake.parser")

PDF_MAGIC = b"%PDF"


@dataclass
class DecodedDocument:
    """Per-page selectable text, in page order."""

    pages: list[str] = field(default_factory=list)

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @property
    def has_text(self) -> bool:
        return any(page.strip() for page in self.pages)

    @property
    def empty_pages(self) -> int:
        return sum(1 for page in self.pages if not page.strip())


class PdfTextDecoder:
    """Decodes PDF bytes into per-page text."""

    def decode(self, content: bytes) -> DecodedDocument:
        """Extract the selectable text of every page.

        Raises:
            UnreadableDocumentError: not a PDF, corrupt, or no selectable text.
        """
        if not content.startswith(PDF_MAGIC):
            raise UnreadableDocumentError("File is not a PDF document")

        try:
            with pdfplumber.open(io.BytesIO(content)) as pdf:
                pages = [page.extract_text() or "" for page in pdf.pages]
        except (PdfminerException, PSException) as e:
            raise UnreadableDocumentError(f"Unable to read PDF: {e}") from e

        document = DecodedDocument(pages=pages)

        logger.info(
            "Decoded PDF: %d pages, %d without text, %d chars",
            document.page_count,
            document.empty_pages,
            sum(len(page) for page in pages),
        )

        if not document.has_text:
            raise UnreadableDocumentError(
                "PDF has no selectable text (scanned documents are not supported)"
            )

        return document
