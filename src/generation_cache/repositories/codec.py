"""JSON encoding of cache entries and conversation records for storage."""

import json
from datetime import datetime

from generation_cache.entities import (
    CacheEntryEntity,
    ConversationStateEntity,
    GenerationResultEntity,
)


_STATE_REQUIRED = ("id", "subject_id", "scope", "created_at", "updated_at")


def encode_entry(entry: CacheEntryEntity) -> str:
    """Serialize a cache entry to a JSON string."""
    return json.dumps(
        {
            "fingerprint": entry.fingerprint,
            "subject_id": entry.subject_id,
            "created_at": entry.created_at.isoformat(),
            "result": {
                "payload": entry.result.payload,
                "continuation_token": entry.result.continuation_token,
                "conversation_state_id": entry.result.conversation_state_id,
            },
        },
        separators=(",", ":"),
    )


def decode_entry(raw: str | bytes) -> CacheEntryEntity:
    """Deserialize a cache entry produced by encode_entry."""
    data = json.loads(raw)
    result = data["result"]
    return CacheEntryEntity(
        fingerprint=data["fingerprint"],
        subject_id=data["subject_id"],
        created_at=datetime.fromisoformat(data["created_at"]),
        result=GenerationResultEntity(
            payload=result["payload"],
            continuation_token=result.get("continuation_token"),
            conversation_state_id=result.get("conversation_state_id"),
        ),
    )


def encode_state(state: ConversationStateEntity) -> dict[str, str]:
    """Flatten a conversation record into a string hash mapping."""
    mapping = {
        "id": state.id,
        "subject_id": state.subject_id,
        "scope": state.scope,
        "created_at": state.created_at.isoformat(),
        "updated_at": state.updated_at.isoformat(),
    }
    if state.last_continuation_token is not None:
        mapping["last_continuation_token"] = state.last_continuation_token
    return mapping


def decode_state(mapping: dict) -> ConversationStateEntity | None:
    """Rebuild a conversation record from a hash mapping.

    Returns None for a hash missing any identifying field.
    """
    data = {
        (k.decode() if isinstance(k, bytes) else k): (v.decode() if isinstance(v, bytes) else v)
        for k, v in mapping.items()
    }
    if any(not data.get(field) for field in _STATE_REQUIRED):
        return None
    return ConversationStateEntity(
        id=data["id"],
        subject_id=data["subject_id"],
        scope=data["scope"],
        created_at=datetime.fromisoformat(data["created_at"]),
        updated_at=datetime.fromisoformat(data["updated_at"]),
        last_continuation_token=data.get("last_continuation_token") or None,
    )
