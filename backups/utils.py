"""
Utility functions for the backup store.

Handles:
- ISO-8601 timestamps in the format stored in `originalTime`/`_backupTime`
- Content summaries for PUT and preview responses
- Preview details for chat app config documents
"""

import math
from datetime import datetime, timezone
from typing import Any, Dict

from backups.hashing import parse_json

SUMMARY_COLLECTIONS = ("providers", "memories", "sessions")
MAX_PREVIEW_PROVIDERS = 10


def iso_timestamp(moment: datetime) -> str:
    """
    UTC timestamp with millisecond precision and a `Z` suffix.

    Example:
        >>> iso_timestamp(datetime(2024, 5, 1, 8, 30, tzinfo=timezone.utc))
        '2024-05-01T08:30:00.000Z'
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def extract_summary(content: str) -> Dict[str, int]:
    """
    Count the known sub-collections of a JSON config document.

    Returns:
        {"providers": n, "memories": n, "sessions": n} for JSON objects,
        {} for anything else.
    """
    is_json, document = parse_json(content)
    if not is_json or not isinstance(document, dict):
        return {}

    summary = {}
    for name in SUMMARY_COLLECTIONS:
        value = document.get(name)
        summary[name] = len(value) if isinstance(value, (list, str)) else 0
    return summary


def _provider_name(provider: Any) -> str:
    if not isinstance(provider, dict):
        return ""
    return str(provider.get("name") or provider.get("id") or "")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def extract_details(content: str) -> Dict[str, Any]:
    """
    Selected settings of a chat app config document, without exposing content.

    Returns an empty dict for non-JSON content.
    """
    is_json, config = parse_json(content)
    if not is_json or not isinstance(config, dict):
        return {}

    providers = config.get("providers")
    selected_model = config.get("selectedGlobalModelID")
    temperature = config.get("temperature")
    history_count = config.get("historyMessageCount")
    custom_prompt = config.get("customSystemPrompt")

    if _is_number(history_count) and math.isfinite(history_count):
        history_count = math.floor(history_count)
    else:
        history_count = ""

    return {
        "providerNames": [
            _provider_name(p) for p in providers[:MAX_PREVIEW_PROVIDERS]
        ] if isinstance(providers, list) else [],
        "selectedModel": str(selected_model) if selected_model else None,
        "temperature": temperature if _is_number(temperature) else None,
        "historyCount": history_count,
        "thinkingMode": bool(config.get("thinkingMode")),
        "memoryEnabled": bool(config.get("memoryEnabled")),
        "hasCustomPrompt": bool(custom_prompt) and len(str(custom_prompt)) > 0,
    }
