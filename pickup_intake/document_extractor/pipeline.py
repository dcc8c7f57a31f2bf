"""
Heuristic extraction pipeline for pickup order documents.

Flow:
  1. Decode PDF → per-page text (pdfplumber)
  2. Normalize → single whitespace-collapsed string
  3. Scan once for numeric and company-name candidates
  4. Run the per-field strategy chains
  5. Aggregate confidence, quality score and review list
"""

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date

from pickup_intake.document_extractor.confidence import ConfidenceReport, aggregate
from pickup_intake.document_extractor.fields import FieldExtraction, extract_fields
from pickup_intake.document_extractor.normalizer import normalize_pages
from pickup_intake.document_extractor.parser import PdfTextDecoder
from pickup_intake.document_extractor.scanner import ScanResult, scan
from pickup_intake.schemas.extraction import ExtractedDocumentData

logger = logging.getLogger("intake.extractor")


@dataclass
class ExtractionResult:
    """Complete result of one extraction pass."""

    data: ExtractedDocumentData
    report: ConfidenceReport
    fields: FieldExtraction
    scan: ScanResult
    page_count: int = 0
    processing_time_ms: int = 0
    metadata: dict = field(default_factory=dict)


def extract_from_text(
    pages: Sequence[str],
    *,
    today: date | None = None,
    quality_threshold: int = 70,
) -> ExtractionResult:
    """Run normalization, scanning, field extraction and aggregation.

    Deterministic: identical page text always yields identical results.
    """
    start_time = time.monotonic()

    text = normalize_pages(pages)
    scan_result = scan(text)
    extraction = extract_fields(text, scan_result, today=today)
    report = aggregate(extraction.outcomes, quality_threshold=quality_threshold)

    data = ExtractedDocumentData(
        **extraction.values,
        confidence=report.confidence,
        raw_text=text,
    )

    for outcome in extraction.outcomes:
        logger.debug(
            "Field %s: %s via %s (penalty %d)",
            outcome.field_name,
            outcome.status.value,
            outcome.strategy,
            outcome.penalty,
        )

    if report.needs_review:
        logger.info("Fields needing review: %s", ", ".join(report.needs_review))

    return ExtractionResult(
        data=data,
        report=report,
        fields=extraction,
        scan=scan_result,
        page_count=len(pages),
        processing_time_ms=int((time.monotonic() - start_time) * 1000),
        metadata={
            "text_chars": len(text),
            "token_count": len(scan_result.tokens),
        },
    )


class ExtractionPipeline:
    """Decodes a PDF and extracts the pickup order fields from its text."""

    def __init__(self, decoder: PdfTextDecoder | None = None, quality_threshold: int = 70):
        self.decoder = decoder or PdfTextDecoder()
        self.quality_threshold = quality_threshold

    def run(self, content: bytes, *, today: date | None = None) -> ExtractionResult:
        """Run the full extraction on PDF bytes.

        Raises:
            UnreadableDocumentError: the decoder rejected the document.
        """
        decoded = self.decoder.decode(content)
        result = extract_from_text(
            decoded.pages,
            today=today,
            quality_threshold=self.quality_threshold,
        )

        logger.info(
            "Extraction complete: order=%s confidence=%d quality=%d review=%s (%d ms)",
            result.data.order_number or "-",
            result.report.confidence,
            result.report.quality_score,
            result.report.requires_review,
            result.processing_time_ms,
        )
        return result
