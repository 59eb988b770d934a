"""Tests for request and payload validation."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from generation_cache.dto import (
    ChallengeRequest,
    FocusAreaRequest,
    parse_generation_request,
    validate_payload,
)
from generation_cache.errors import ValidationError


def test_parse_selects_variant_by_request_type():
    request = parse_generation_request(
        {"subject_id": "user-1", "request_type": "focus_area", "domain_params": {"count": 5}}
    )
    assert isinstance(request, FocusAreaRequest)
    assert request.domain_params.count == 5
    assert request.scope == "focus_area"


def test_parse_returns_models_unchanged():
    request = ChallengeRequest(subject_id="user-1", domain_params={"challenge_type": "logic"})
    assert parse_generation_request(request) is request


def test_conversation_scope_overrides_default():
    request = parse_generation_request(
        {
            "subject_id": "user-1",
            "request_type": "challenge",
            "conversation_scope": "challenge_gen_for_user-1",
            "domain_params": {"challenge_type": "logic"},
        }
    )
    assert request.scope == "challenge_gen_for_user-1"


@pytest.mark.parametrize(
    "data",
    [
        {"request_type": "challenge", "domain_params": {"challenge_type": "logic"}},
        {"subject_id": "", "request_type": "challenge", "domain_params": {"challenge_type": "logic"}},
        {"subject_id": "user-1", "request_type": "unknown"},
        {"subject_id": "user-1", "request_type": "challenge", "domain_params": {"challenge_type": "logic", "x": 1}},
        {"subject_id": "user-1", "request_type": "focus_area", "domain_params": {"count": 0}},
        {"subject_id": "user-1", "request_type": "focus_area", "sampling": {"temperature": 3}},
        {"subject_id": "user-1", "request_type": "focus_area", "attitudes": {"tech_savvy": 150}},
        {"subject_id": "user-1", "request_type": "focus_area", "attitudes": {"skeptical": -1}},
    ],
)
def test_invalid_requests_raise_validation_error(data):
    with pytest.raises(ValidationError) as exc_info:
        parse_generation_request(data)
    assert exc_info.value.stage == "validation"


def test_validation_error_carries_context():
    with pytest.raises(ValidationError) as exc_info:
        parse_generation_request({"subject_id": "user-1", "request_type": "challenge", "domain_params": {}})
    assert exc_info.value.context == {
        "subject_id": "user-1",
        "request_type": "challenge",
        "stage": "validation",
    }


def test_validate_payload_fills_defaults():
    payload = validate_payload("focus_area", {"focus_areas": [{"name": "Logic"}]})
    assert payload["focus_areas"][0] == {"name": "Logic", "description": "", "priority": None}


def test_validate_payload_rejects_schema_violations():
    with pytest.raises(PydanticValidationError):
        validate_payload("evaluation", {"score": 140, "feedback": "Great"})
    with pytest.raises(PydanticValidationError):
        validate_payload("focus_area", {"focus_areas": []})


def test_validate_payload_unknown_type():
    with pytest.raises(KeyError):
        validate_payload("poem", {})


def test_attitude_scores_within_range_are_accepted():
    request = parse_generation_request(
        {"subject_id": "user-1", "request_type": "focus_area", "attitudes": {"tech_savvy": 0, "skeptical": 100}}
    )
    assert request.attitudes == {"tech_savvy": 0.0, "skeptical": 100.0}
