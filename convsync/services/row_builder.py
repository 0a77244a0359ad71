"""Normalization of ElevenLabs list items and details into conversation rows.

ElevenLabs detail response shape (fields read here):

    {
      "conversation_id": "conv_xxx",
      "status": "done",
      "transcript": [{"role": "agent", "message": "...", "time_in_call_secs": 0}],
      "metadata": {
        "start_time_unix_secs": 1234567890,
        "call_duration_secs": 120,
        "cost": 0.0042,
        "charging": {
          "llm_charge": 0.0021,
          "llm_price": 0.001,
          "llm_usage": {
            "irreversible_generation": {
              "model_usage": {
                "<model name>": {"input": {"tokens": 500}, "output_total": {"tokens": 200}}
              }
            }
          }
        }
      },
      "analysis": {
        "transcript_summary": "...",
        "evaluation_criteria_results": {
          "confidence_score": {"criteria_id": "...", "result": "success", "rationale": "..."},
          "knowledge_coverage_score": {...}
        },
        "data_collection_results": {
          "primary_question": {"data_collection_id": "...", "value": "..."},
          "question_category": {...}
        }
      },
      "conversation_initiation_client_data": {"dynamic_variables": {"user_name": "..."}}
    }

Any of these paths may be missing. Each extracted field below names its path
and its default; nothing here raises on a malformed payload.
"""

import logging
import re
import uuid
from datetime import UTC, datetime
from typing import Any

logger = logging.getLogger(__name__)

NAME_SCAN_TURNS = 20
MAX_NAME_LENGTH = 40
GREETING_PATTERN = re.compile(r"\b(?i:hey|hello|hi)\s+([A-Z][a-z]{1,30})\b")


def dig(payload: Any, *path: str, default: Any = None) -> Any:
    """Follow ``path`` through nested dicts; ``default`` when any step is missing."""
    current = payload
    for key in path:
        if not isinstance(current, dict):
            return default
        current = current.get(key)
        if current is None:
            return default
    return current


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_number(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _as_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _first_present(*values: Any) -> Any:
    """First value that is not None (zero and empty strings count as present)."""
    for value in values:
        if value is not None:
            return value
    return None


def first_model_usage(model_usage: Any) -> dict[str, Any]:
    """
    Usage entry of the single model in ``model_usage``.

    Upstream keys this mapping by model name (e.g. ``gpt-4.1-nano``) and sends
    one relevant entry. With several entries the first in mapping order wins;
    with none the result is empty.
    """
    for usage in _as_dict(model_usage).values():
        return _as_dict(usage)
    return {}


def extract_tokens(charging: dict[str, Any]) -> tuple[int | None, int | None]:
    """Input and output token counts from the irreversible generation usage.

    ``initiated_generation`` duplicates the same counts and is ignored.
    """
    usage = first_model_usage(
        dig(charging, "llm_usage", "irreversible_generation", "model_usage")
    )
    tokens_in = _as_int(dig(usage, "input", "tokens"))
    tokens_out = _as_int(dig(usage, "output_total", "tokens"))
    return tokens_in, tokens_out


def _evaluation(results: dict[str, Any], name: str) -> dict[str, Any] | None:
    entry = results.get(name)
    if not isinstance(entry, dict):
        return None
    return {"result": entry.get("result"), "rationale": entry.get("rationale")}


def _collected_value(results: dict[str, Any], name: str) -> str | None:
    value = dig(results, name, "value")
    return None if value is None else str(value)


def extract_user_name(detail: dict[str, Any] | None, transcript: list[Any]) -> str | None:
    """
    Best-effort caller name for a conversation.

    Tries, in order: the ``user_name`` dynamic variable; any other dynamic
    variable whose key mentions "name" or "user" holding a short string; an
    agent greeting such as "Hi Sarah" in the first transcript turns. The
    greeting scan is a heuristic and will both miss names and pick up
    capitalized non-names.
    """
    variables = _as_dict(dig(detail, "conversation_initiation_client_data", "dynamic_variables"))

    explicit = variables.get("user_name")
    if isinstance(explicit, str) and explicit:
        return explicit

    for key, value in variables.items():
        lowered = key.lower()
        if "name" in lowered or "user" in lowered:
            if isinstance(value, str) and value and len(value) < MAX_NAME_LENGTH:
                return value

    for turn in transcript[:NAME_SCAN_TURNS]:
        if not isinstance(turn, dict) or turn.get("role") != "agent":
            continue
        message = turn.get("message")
        if not isinstance(message, str):
            continue
        match = GREETING_PATTERN.search(message)
        if match:
            return match.group(1)

    return None


def build_row(
    agent_db_id: uuid.UUID,
    agent_el_id: str | None,
    list_item: dict[str, Any],
    detail: dict[str, Any] | None,
    *,
    synced_at: datetime | None = None,
) -> dict[str, Any]:
    """
    Build one ``conversations`` row from a list item and its (optional) detail.

    Detail data wins over list data, list data wins over the typed default.
    With ``detail=None`` the result is a degraded row carrying list-level
    status, start time and duration only.
    """
    detail = _as_dict(detail)
    list_meta = _as_dict(list_item.get("metadata"))

    meta = _as_dict(detail.get("metadata")) or list_meta
    charging = _as_dict(meta.get("charging"))
    transcript = detail.get("transcript")
    transcript = transcript if isinstance(transcript, list) else []

    analysis = _as_dict(detail.get("analysis"))
    eval_results = _as_dict(analysis.get("evaluation_criteria_results"))
    data_results = _as_dict(analysis.get("data_collection_results"))

    tokens_in, tokens_out = extract_tokens(charging)
    summary = analysis.get("transcript_summary")

    return {
        "conversation_id": list_item["conversation_id"],
        "agent_db_id": agent_db_id,
        "agent_el_id": agent_el_id or None,
        "status": detail.get("status") or list_item.get("status") or None,
        "start_time_unix": _as_int(
            _first_present(
                meta.get("start_time_unix_secs"),
                list_meta.get("start_time_unix_secs"),
                list_item.get("start_time_unix_secs"),
            )
        ),
        "duration_secs": _as_int(
            _first_present(
                meta.get("call_duration_secs"),
                list_meta.get("call_duration_secs"),
                list_item.get("call_duration_secs"),
            )
        ),
        "user_name": extract_user_name(detail, transcript),
        "transcript": transcript,
        "metadata": meta,
        "cost": _as_number(meta.get("cost")),
        "llm_cost": _as_number(charging.get("llm_charge")),
        "llm_price": _as_number(charging.get("llm_price")),
        "tokens_in": tokens_in,
        "tokens_out": tokens_out,
        "transcript_summary": summary if isinstance(summary, str) else None,
        "confidence_score": _evaluation(eval_results, "confidence_score"),
        "knowledge_coverage_score": _evaluation(eval_results, "knowledge_coverage_score"),
        "primary_question": _collected_value(data_results, "primary_question"),
        "question_category": _collected_value(data_results, "question_category"),
        "synced_at": synced_at or datetime.now(UTC),
    }
