"""Tests for row normalization."""

import uuid
from datetime import UTC, datetime

import pytest

from conftest import make_detail, make_list_item
from convsync.services.row_builder import (
    build_row,
    dig,
    extract_tokens,
    extract_user_name,
    first_model_usage,
)

AGENT_DB_ID = uuid.UUID("2f7b3c8e-1d4a-4f6b-9c2e-8a1b2c3d4e5f")
SYNCED_AT = datetime(2026, 1, 18, 10, 0, 0, tzinfo=UTC)


class TestDig:
    """Tests for nested lookup."""

    def test_present(self):
        assert dig({"a": {"b": {"c": 1}}}, "a", "b", "c") == 1

    def test_missing_step(self):
        assert dig({"a": {}}, "a", "b", "c") is None
        assert dig({"a": {}}, "a", "b", default=[]) == []

    def test_non_dict_step(self):
        assert dig({"a": "text"}, "a", "b") is None
        assert dig(None, "a") is None

    def test_falsy_values_are_kept(self):
        assert dig({"a": 0}, "a") == 0
        assert dig({"a": ""}, "a") == ""


class TestModelUsage:
    """Tests for token extraction from the model usage mapping."""

    def test_no_entries(self):
        assert first_model_usage({}) == {}
        assert first_model_usage(None) == {}
        assert extract_tokens({}) == (None, None)

    def test_single_entry(self):
        charging = make_detail("c", 1)["metadata"]["charging"]
        assert extract_tokens(charging) == (500, 200)

    def test_multiple_entries_first_wins(self):
        charging = {
            "llm_usage": {
                "irreversible_generation": {
                    "model_usage": {
                        "gpt-4.1-nano": {"input": {"tokens": 10}, "output_total": {"tokens": 5}},
                        "gemini-2.0-flash": {"input": {"tokens": 99}, "output_total": {"tokens": 99}},
                    }
                }
            }
        }
        assert extract_tokens(charging) == (10, 5)

    def test_partial_usage(self):
        charging = {
            "llm_usage": {
                "irreversible_generation": {"model_usage": {"m": {"input": {"tokens": 7}}}}
            }
        }
        assert extract_tokens(charging) == (7, None)


class TestExtractUserName:
    """Tests for the caller name heuristics."""

    def test_explicit_dynamic_variable(self):
        detail = {
            "conversation_initiation_client_data": {
                "dynamic_variables": {"user_name": "Maria", "customer_name": "Other"}
            }
        }
        assert extract_user_name(detail, []) == "Maria"

    def test_name_like_dynamic_variable(self):
        detail = {
            "conversation_initiation_client_data": {
                "dynamic_variables": {"system__time": "noon", "customerName": "Tom"}
            }
        }
        assert extract_user_name(detail, []) == "Tom"

    def test_overlong_variable_ignored(self):
        detail = {
            "conversation_initiation_client_data": {
                "dynamic_variables": {"user_notes": "x" * 60}
            }
        }
        assert extract_user_name(detail, []) is None

    def test_agent_greeting(self):
        transcript = [
            {"role": "user", "message": "Hi Bob"},
            {"role": "agent", "message": "hello Sarah! What can I do for you?"},
        ]
        assert extract_user_name({}, transcript) == "Sarah"

    def test_user_turns_not_scanned(self):
        transcript = [{"role": "user", "message": "Hi Bob, is this the clinic?"}]
        assert extract_user_name({}, transcript) is None

    def test_greeting_beyond_scanned_turns(self):
        transcript = [{"role": "agent", "message": "..."}] * 20
        transcript.append({"role": "agent", "message": "Hi Sarah"})
        assert extract_user_name({}, transcript) is None

    def test_capitalized_non_name_is_picked_up(self):
        """Known false positive of the greeting scan."""
        transcript = [{"role": "agent", "message": "Hi There, welcome to the clinic."}]
        assert extract_user_name({}, transcript) == "There"

    def test_lowercase_name_is_missed(self):
        """Known false negative of the greeting scan."""
        transcript = [{"role": "agent", "message": "hi sarah, welcome back"}]
        assert extract_user_name({}, transcript) is None

    def test_nothing_found(self):
        assert extract_user_name(None, []) is None


class TestBuildRow:
    """Tests for build_row."""

    def test_full_detail(self):
        item = make_list_item("conv_1", 300)
        row = build_row(AGENT_DB_ID, "agent_el_1", item, make_detail("conv_1", 300), synced_at=SYNCED_AT)

        assert row["conversation_id"] == "conv_1"
        assert row["agent_db_id"] == AGENT_DB_ID
        assert row["agent_el_id"] == "agent_el_1"
        assert row["status"] == "done"
        assert row["start_time_unix"] == 300
        assert row["duration_secs"] == 60
        assert row["user_name"] == "Sarah"
        assert len(row["transcript"]) == 2
        assert row["metadata"]["cost"] == 0.0042
        assert row["cost"] == pytest.approx(0.0042)
        assert row["llm_cost"] == pytest.approx(0.0021)
        assert row["llm_price"] == pytest.approx(0.001)
        assert row["tokens_in"] == 500
        assert row["tokens_out"] == 200
        assert row["transcript_summary"] == "Caller asked about opening hours."
        assert row["confidence_score"] == {
            "result": "success",
            "rationale": "Answer came straight from the knowledge base.",
        }
        assert row["knowledge_coverage_score"] is None
        assert row["primary_question"] == "When do you open?"
        assert row["question_category"] == "hours"
        assert row["synced_at"] == SYNCED_AT

    def test_degraded_row_from_list_item(self):
        """Without detail the row keeps list-level status, start time and duration."""
        item = make_list_item("conv_2", 200, status="failed", duration=45)
        row = build_row(AGENT_DB_ID, "agent_el_1", item, None, synced_at=SYNCED_AT)

        assert row["conversation_id"] == "conv_2"
        assert row["status"] == "failed"
        assert row["start_time_unix"] == 200
        assert row["duration_secs"] == 45
        assert row["transcript"] == []
        assert row["metadata"] == {}
        assert row["cost"] is None
        assert row["llm_cost"] is None
        assert row["llm_price"] is None
        assert row["tokens_in"] is None
        assert row["transcript_summary"] is None
        assert row["confidence_score"] is None
        assert row["user_name"] is None

    def test_missing_charging(self):
        """Cost fields default to None when charging is absent."""
        detail = make_detail("conv_3", 100)
        del detail["metadata"]["charging"]
        del detail["metadata"]["cost"]

        row = build_row(AGENT_DB_ID, "agent_el_1", make_list_item("conv_3", 100), detail)

        assert row["cost"] is None
        assert row["llm_cost"] is None
        assert row["llm_price"] is None
        assert row["tokens_in"] is None
        assert row["tokens_out"] is None
        assert row["start_time_unix"] == 100

    def test_zero_values_are_kept(self):
        """Zero cost and duration are real values, not missing ones."""
        detail = make_detail("conv_4", 100, cost=0)
        detail["metadata"]["call_duration_secs"] = 0

        row = build_row(AGENT_DB_ID, "agent_el_1", make_list_item("conv_4", 100), detail)

        assert row["cost"] == 0
        assert row["duration_secs"] == 0

    def test_missing_transcript_and_metadata(self):
        detail = {"conversation_id": "conv_5", "status": "processing"}

        row = build_row(AGENT_DB_ID, None, make_list_item("conv_5", 150), detail)

        assert row["transcript"] == []
        assert row["metadata"] == {}
        assert row["status"] == "processing"
        assert row["start_time_unix"] == 150
        assert row["agent_el_id"] is None

    def test_malformed_types_do_not_raise(self):
        detail = {
            "transcript": "not a list",
            "metadata": {"cost": "n/a", "charging": ["bad"]},
            "analysis": {
                "transcript_summary": 42,
                "evaluation_criteria_results": "bad",
                "data_collection_results": {"primary_question": {"value": 7}},
            },
        }

        row = build_row(AGENT_DB_ID, "agent_el_1", make_list_item("conv_6", 10), detail)

        assert row["transcript"] == []
        assert row["cost"] is None
        assert row["llm_cost"] is None
        assert row["transcript_summary"] is None
        assert row["confidence_score"] is None
        assert row["primary_question"] == "7"

    def test_synced_at_defaults_to_now(self):
        row = build_row(AGENT_DB_ID, "agent_el_1", make_list_item("conv_7", 10), None)
        assert row["synced_at"].tzinfo is not None
