"""Tests for the normalizer, token scanner and per-field strategy chains."""

from datetime import date

import pytest

from pickup_intake.document_extractor.fields import (
    RECIPIENT_RULE,
    SENDER_RULE,
    FieldContext,
    FieldStatus,
    basin_from_seven_digit_token,
    extract_contacts,
    extract_distance,
    extract_fields,
    extract_transport_type,
    is_blacklisted,
    loading_unloading_dates,
    run_rule,
    uppercase_run,
)
from pickup_intake.document_extractor.normalizer import normalize_pages, normalize_text
from pickup_intake.document_extractor.pipeline import extract_from_text
from pickup_intake.document_extractor.scanner import TokenKind, scan

TODAY = date(2024, 5, 1)


def fields_of(text: str):
    return extract_fields(normalize_text(text), scan(normalize_text(text)), today=TODAY)


# ── Normalizer ──


class TestNormalizer:
    def test_collapses_whitespace_and_newlines(self):
        assert normalize_text("  PROD\n\n12 \t 345  ") == "PROD 12 345"

    def test_pages_joined_in_order(self):
        assert normalize_pages(["Pagina uno\n", "\nPagina due"]) == "Pagina uno Pagina due"

    def test_empty_input(self):
        assert normalize_pages([]) == ""
        assert normalize_pages(["", "   "]) == ""


# ── Scanner ──


class TestScanner:
    def test_token_kinds_in_text_order(self):
        result = scan("PROD 12 34567890123 bacino 1234567 distanza 12,5 CSS ECOLOGISTIC SRL")
        kinds = [token.kind for token in result.tokens]
        assert kinds[:3] == [TokenKind.LONG_NUMBER, TokenKind.MEDIUM_NUMBER, TokenKind.DECIMAL_NUMBER]
        assert result.long_numbers[0].value == "34567890123"
        assert result.medium_numbers[0].value == "1234567"
        assert result.decimal_numbers[0].value == "12,5"
        assert result.company_names[0].value == "CSS ECOLOGISTIC SRL"

    def test_positions_sorted(self):
        result = scan("codice 1234567 poi 987654321")
        positions = [token.position for token in result.tokens]
        assert positions == sorted(positions)
        assert result.tokens[0].kind == TokenKind.MEDIUM_NUMBER

    def test_digit_runs_are_not_split(self):
        result = scan("1234567890123")
        assert result.long_numbers == []
        assert result.medium_numbers == []

    def test_keyword_company(self):
        result = scan("ritiro presso DOMUS RICYCLE oggi")
        assert [token.value for token in result.company_names] == ["DOMUS RICYCLE"]


# ── Uppercase runs ──


class TestUppercaseRun:
    def test_stops_at_address_word(self):
        assert uppercase_run("CC ECO SERVIZI VIA ROMA", 0) == "CC ECO SERVIZI"

    def test_stops_at_lowercase(self):
        assert uppercase_run("ALFA RICICLI SRL consegna", 0) == "ALFA RICICLI SRL"

    def test_party_prefix_only_opens_a_name(self):
        assert uppercase_run("ALFA BETA CSS GAMMA", 0) == "ALFA BETA"

    def test_too_short(self):
        assert uppercase_run("ABC def", 0) is None


# ── Order number ──


class TestOrderNumber:
    def test_label_and_basin_list(self):
        extraction = fields_of("PROD 12 34567890123 Lista bacini 1234567")
        assert extraction.values["order_number"] == "34567890123"
        assert extraction.values["basin_code"] == "1234567"
        assert extraction.outcome("order_number").strategy == "prod_label"
        assert extraction.outcome("basin_code").strategy == "lista_bacini_label"

    def test_second_long_number_in_head(self):
        text = "Rif 111111111 Buono 222222222 " + "testo " * 30 + "333333333"
        extraction = fields_of(text)
        assert extraction.values["order_number"] == "222222222"

    def test_first_long_number_fallback(self):
        text = "Buono 123456789 " + "testo " * 30 + "987654321"
        extraction = fields_of(text)
        assert extraction.values["order_number"] == "123456789"
        assert extraction.outcome("order_number").strategy == "order_from_first_long_number"

    def test_missing_order_costs_and_flags(self):
        outcome = fields_of("nessun numero qui").outcome("order_number")
        assert outcome.status == FieldStatus.MISSING
        assert outcome.penalty == 15
        assert outcome.flag_for_review


# ── Basin code and flow type ──


class TestBasinAndFlow:
    def test_bacino_label(self):
        assert fields_of("Bacino di raccolta n. 7654321").values["basin_code"] == "7654321"

    def test_seven_digit_fallback(self):
        extraction = fields_of("PROD 1 12345678901 codice 7654321")
        assert extraction.values["basin_code"] == "7654321"
        assert extraction.outcome("basin_code").strategy == "basin_from_seven_digit_token"

    def test_seven_digit_order_number_is_not_a_basin(self):
        text = "7654321 1234567"
        context = FieldContext(order_number="7654321")
        assert basin_from_seven_digit_token(text, scan(text), context) == "1234567"
        assert basin_from_seven_digit_token(text, scan(text), FieldContext()) == "7654321"

    def test_eight_digit_token_is_not_a_basin(self):
        assert fields_of("codice 76543210").values["basin_code"] == ""

    def test_flow_type_label(self):
        assert fields_of("Tipo flusso: B").values["flow_type"] == "B"

    def test_flow_type_from_basin_row(self):
        assert fields_of("Lista bacini 1234567 C COMUNE DI NOTO").values["flow_type"] == "C"

    def test_flow_type_rejects_other_letters(self):
        outcome = fields_of("Tipo flusso: E").outcome("flow_type")
        assert outcome.status == FieldStatus.MISSING
        assert outcome.penalty == 10


# ── Dates ──


class TestDates:
    def test_issue_date_label(self):
        extraction = fields_of("Data emissione buono 15 marzo 2024")
        assert extraction.values["issue_date"] == date(2024, 3, 15)

    def test_issue_date_any_date_fallback(self):
        assert fields_of("Siracusa, 3 gennaio 2025").values["issue_date"] == date(2025, 1, 3)

    def test_no_date_keeps_today_silently(self):
        result = extract_from_text(["PROD 12 34567890123 Lista bacini 1234567"], today=TODAY)
        assert result.data.issue_date == TODAY
        assert "issue_date" not in result.report.needs_review

    def test_unknown_month_is_discarded(self):
        assert fields_of("Data emissione 15 brumaio 2024").values["issue_date"] == TODAY

    def test_loading_pair(self):
        assert loading_unloading_dates("Data carico 18 marzo 2024 / 20 marzo 2024") == (
            date(2024, 3, 18),
            date(2024, 3, 20),
        )

    def test_loading_pair_with_carico_label(self):
        window = loading_unloading_dates("1 aprile 2024 carico 2 aprile 2024")
        assert window == (date(2024, 4, 1), date(2024, 4, 2))

    def test_loading_pair_needs_both_dates(self):
        assert loading_unloading_dates("18 marzo 2024 / 31 febbraio 2024") is None
        extraction = fields_of("18 marzo 2024 / 31 febbraio 2024")
        assert "loading_date" not in extraction.values
        assert "unloading_date" not in extraction.values

    def test_scheduled_falls_back_to_availability(self):
        extraction = fields_of("Data Disponibilita 17 marzo 2024")
        assert extraction.values["availability_date"] == date(2024, 3, 17)
        assert extraction.values["scheduled_date"] == date(2024, 3, 17)


# ── Sender / recipient ──


class TestParties:
    def test_sender_from_label(self):
        assert fields_of("Mittente: CC ECO SERVIZI SICILIA Via Roma").values["sender_name"] == (
            "CC ECO SERVIZI SICILIA"
        )

    def test_sender_from_cc_prefix(self):
        outcome = fields_of("ritiro CC AMBIENTE PULITO Via Etnea").outcome("sender_name")
        assert outcome.value == "CC AMBIENTE PULITO"
        assert outcome.strategy == "cc_prefix"

    def test_sender_guess_costs_five(self):
        text = "ECOLOGISTIC SRL ritira il materiale"
        outcome = run_rule(SENDER_RULE, text, scan(text), FieldContext())
        assert outcome.status == FieldStatus.GUESSED
        assert outcome.value == "ECOLOGISTIC SRL"
        assert outcome.penalty == 5
        assert not outcome.flag_for_review

    def test_recipient_css_legal_name(self):
        assert fields_of("Destinatario: CSS PLASTICHE RIUNITE SRL Indirizzo").values[
            "recipient_name"
        ] == "CSS PLASTICHE RIUNITE SRL"

    def test_recipient_blacklist_rejects_false_positive(self):
        text = "CSS Distanza 45 km"
        outcome = run_rule(RECIPIENT_RULE, text, scan(text), FieldContext())
        assert outcome.status == FieldStatus.MISSING
        assert outcome.penalty == 15
        assert outcome.flag_for_review

    def test_recipient_containing_data_letters_is_kept(self):
        text = "Mittente: CC ALFA RICYCLE CSS MANDATARIA SRL Lista bacini 1234567 A"
        extraction = fields_of(text)
        assert extraction.values["recipient_name"] == "CSS MANDATARIA SRL"
        assert extraction.outcome("recipient_name").status == FieldStatus.FOUND

    @pytest.mark.parametrize(
        "value, rejected",
        [
            ("Distanza 45", True),
            ("ritiro Note varie", True),
            ("Data carico", True),
            ("MANDATARIA SRL", False),
            ("NOTEVOLE AMBIENTE", False),
            ("DATASERVICE SPA", False),
        ],
    )
    def test_blacklist_matches_labels_only(self, value, rejected):
        assert is_blacklisted(value) is rejected

    def test_recipient_label(self):
        text = "Destinatario: VETRERIA MERIDIONALE Via Catania"
        assert fields_of(text).values["recipient_name"] == "VETRERIA MERIDIONALE"

    def test_recipient_guess_skips_sender(self):
        text = "Mittente: ALFA RICICLI SRL consegna a BETA AMBIENTE"
        extraction = fields_of(text)
        assert extraction.values["sender_name"] == "ALFA RICICLI SRL"
        outcome = extraction.outcome("recipient_name")
        assert outcome.status == FieldStatus.GUESSED
        assert outcome.value == "BETA AMBIENTE"


# ── Optional fields ──


class TestOptionalFields:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("Distanza Chilometrica 65,5 km", 65.5),
            ("Distanza: 45", 45.0),
            ("Percorso 120,500", 120.5),
            ("Distanza 12000 km", None),
            ("0 km", None),
            ("nessuna distanza", None),
        ],
    )
    def test_distance(self, text, expected):
        assert extract_distance(text) == expected

    def test_transport_type_quoted(self):
        assert extract_transport_type('Mezzo "CAMION" previsto') == "CAMION"

    def test_transport_type_label(self):
        assert extract_transport_type("Trasportatore: ROSSI") == "ROSSI"

    def test_transport_type_absent(self):
        assert extract_transport_type("nessun mezzo") is None

    def test_basin_description_comune(self):
        extraction = fields_of("Lista bacini 1234567 A COMUNE DI SIRACUSA Distanza")
        assert extraction.values["basin_description"] == "COMUNE DI SIRACUSA"

    def test_basin_description_after_code_and_flow(self):
        extraction = fields_of("Lista bacini 1234567 A UNIONE DEI COMUNI ETNEI km 10")
        assert extraction.values["basin_description"] == "UNIONE DEI COMUNI ETNEI"

    def test_basin_description_defaults_empty(self):
        assert fields_of("nulla").values["basin_description"] == ""

    def test_contacts_stay_inside_party_window(self, sample_text):
        text = normalize_text(sample_text)
        sender = extract_contacts(text, "sender")
        recipient = extract_contacts(text, "recipient")
        assert sender == {
            "sender_address": "Via Roma 12",
            "sender_city": "Siracusa SR",
            "sender_phone": "0931 123456",
            "sender_email": "info@ecoservizi.it",
        }
        assert recipient["recipient_address"] == "Zona Industriale Catania"
        assert recipient["recipient_phone"] == "095 654321"
        assert "recipient_email" not in recipient


# ── Whole document ──


class TestFullDocument:
    def test_sample_document(self, sample_text):
        result = extract_from_text([sample_text], today=TODAY)
        data = result.data
        assert data.order_number == "34567890123"
        assert data.issue_date == date(2024, 3, 15)
        assert data.sender_name == "CC ECO SERVIZI SICILIA"
        assert data.recipient_name == "CSS PLASTICHE RIUNITE SRL"
        assert data.basin_code == "1234567"
        assert data.flow_type == "A"
        assert data.basin_description == "COMUNE DI SIRACUSA"
        assert data.distance_km == 65.5
        assert data.loading_date == date(2024, 3, 18)
        assert data.unloading_date == date(2024, 3, 20)
        assert data.availability_date == date(2024, 3, 17)
        assert data.scheduled_date == date(2024, 3, 17)
        assert data.transport_type == "ROSSI"
        assert data.confidence == 95
        assert result.report.quality_score == 90
        assert result.report.needs_review == []
        assert not result.report.requires_review

    def test_empty_document_degrades_without_error(self):
        result = extract_from_text([""], today=TODAY)
        assert result.data.order_number == ""
        assert result.report.needs_review == [
            "order_number", "basin_code", "flow_type", "sender_name", "recipient_name",
        ]
        assert result.report.requires_review
