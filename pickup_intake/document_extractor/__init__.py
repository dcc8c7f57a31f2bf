from pickup_intake.document_extractor.confidence import ConfidenceReport, aggregate
from pickup_intake.document_extractor.parser import DecodedDocument, PdfTextDecoder
from pickup_intake.document_extractor.pipeline import (
    ExtractionPipeline,
    ExtractionResult,
    extract_from_text,
)
from pickup_intake.document_extractor.scanner import CandidateToken, ScanResult, TokenKind, scan

__all__ = [
    "CandidateToken",
    "ConfidenceReport",
    "DecodedDocument",
    "ExtractionPipeline",
    "ExtractionResult",
    "PdfTextDecoder",
    "ScanResult",
    "TokenKind",
    "aggregate",
    "extract_from_text",
    "scan",
]
