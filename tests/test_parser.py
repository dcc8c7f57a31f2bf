"""Tests for the pdfplumber text decoder and the full extraction pipeline."""

from datetime import date

import pytest

from pickup_intake.document_extractor.parser import DecodedDocument, PdfTextDecoder
from pickup_intake.document_extractor.pipeline import ExtractionPipeline
from pickup_intake.exceptions import UnreadableDocumentError


@pytest.fixture
def decoder():
    return PdfTextDecoder()


class TestDecoder:
    def test_single_page(self, decoder, sample_pdf):
        result = decoder.decode(sample_pdf)
        assert isinstance(result, DecodedDocument)
        assert result.page_count == 1
        assert result.has_text
        assert "PROD 12 34567890123" in result.pages[0]

    def test_pages_kept_in_order(self, decoder, make_pdf):
        result = decoder.decode(make_pdf(["Pagina uno"], ["Pagina due"], ["Pagina tre"]))
        assert result.page_count == 3
        assert [page.strip() for page in result.pages] == ["Pagina uno", "Pagina due", "Pagina tre"]

    def test_blank_pages_counted(self, decoder, make_pdf):
        result = decoder.decode(make_pdf(["Testo"], []))
        assert result.page_count == 2
        assert result.empty_pages == 1

    def test_not_a_pdf(self, decoder):
        with pytest.raises(UnreadableDocumentError, match="not a PDF"):
            decoder.decode(b"PROD 12 34567890123")

    def test_corrupt_pdf(self, decoder):
        with pytest.raises(UnreadableDocumentError):
            decoder.decode(b"%PDF-1.4 garbage without objects")

    def test_scanned_pdf_without_text(self, decoder, make_pdf):
        with pytest.raises(UnreadableDocumentError, match="no selectable text"):
            decoder.decode(make_pdf([]))


class TestPipeline:
    def test_run_on_pdf(self, sample_pdf):
        result = ExtractionPipeline().run(sample_pdf, today=date(2024, 5, 1))

        assert result.page_count == 1
        assert result.data.order_number == "34567890123"
        assert result.data.basin_code == "1234567"
        assert result.data.sender_name == "CC ECO SERVIZI SICILIA"
        assert result.data.recipient_name == "CSS PLASTICHE RIUNITE SRL"
        assert result.data.issue_date == date(2024, 3, 15)
        assert result.metadata["token_count"] > 0

    def test_raw_text_is_normalized(self, sample_pdf):
        result = ExtractionPipeline().run(sample_pdf)
        assert "\n" not in result.data.raw_text
        assert "  " not in result.data.raw_text

    def test_unreadable_propagates(self):
        with pytest.raises(UnreadableDocumentError):
            ExtractionPipeline().run(b"not a pdf")
