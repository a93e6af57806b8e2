import pytest
from pydantic import ValidationError

from resume_assistant.app.core.config import Settings
from resume_assistant.app.llm.models import (
    ActionPlan,
    LLMConfig,
    LLMModificationIntent,
)


def test_llm_config_from_settings():
    """Test that the client configuration mirrors the settings."""
    settings = Settings(
        LLM_ENDPOINT="http://llm.local/v1",
        LLM_API_KEY="key",
        LLM_MODEL_NAME="model-x",
        LLM_TIMEOUT_SECONDS=3,
    )
    config = LLMConfig.from_settings(settings)
    assert config.llm_endpoint == "http://llm.local/v1"
    assert config.api_key == "key"
    assert config.llm_model_name == "model-x"
    assert config.timeout_seconds == 3


def test_llm_modification_intent_defaults():
    """Test defaults and the confidence bounds."""
    intent = LLMModificationIntent(is_modification=True)
    assert intent.operation == "replace"
    assert intent.field_path == ""
    assert intent.confidence == 0.5

    with pytest.raises(ValidationError):
        LLMModificationIntent(is_modification=True, confidence=1.5)


def test_action_plan_defaults():
    """Test an empty plan and a planned action's defaults."""
    assert ActionPlan().actions == []
    plan = ActionPlan.model_validate({"actions": [{"tool": "ATS.score"}]})
    assert plan.actions[0].args == {}
    assert plan.actions[0].rationale == ""
