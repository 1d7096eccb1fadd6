import json

import httpx

from config import Config
from conftest import FROZEN_NOW, days_ago, record
from gpt_service import FALLBACK_AFFIRMATION, generate_trend_reflection
from trends_service import compute_trend_statistics


def _stats():
    entries = [record("Calm", days_ago(2)), record("Happy", days_ago(0))]
    return compute_trend_statistics(entries, now=FROZEN_NOW, tz="UTC")


def _reply(content, status=200):
    def handler(request):
        return httpx.Response(status, json={"choices": [{"message": {"content": content}}]})
    return httpx.MockTransport(handler)


def test_no_api_key_skips_the_call() -> None:
    def handler(request):
        raise AssertionError("should not be called")

    result = generate_trend_reflection(_stats(), Config(), transport=httpx.MockTransport(handler))

    assert result is None


def test_parses_summary_and_affirmation() -> None:
    seen = {}

    def handler(request):
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        content = "Summary: Your week has been calm and bright.\nAffirmation: Keep noticing what helps."
        return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})

    config = Config(openrouter_api_key="test-key", openrouter_model="test/model")
    result = generate_trend_reflection(_stats(), config, transport=httpx.MockTransport(handler))

    assert result == ("Your week has been calm and bright.", "Keep noticing what helps.")
    assert seen["auth"] == "Bearer test-key"
    assert seen["body"]["model"] == "test/model"
    prompt = seen["body"]["messages"][1]["content"]
    assert "Most frequent mood: Calm" in prompt
    assert "Positive moods: 100%" in prompt


def test_unlabelled_reply_falls_back_to_first_line() -> None:
    config = Config(openrouter_api_key="test-key")

    result = generate_trend_reflection(_stats(), config, transport=_reply("You seem steady.\nMore text"))

    assert result == ("You seem steady.", FALLBACK_AFFIRMATION)


def test_http_error_returns_none() -> None:
    config = Config(openrouter_api_key="test-key")

    assert generate_trend_reflection(_stats(), config, transport=_reply("x", status=502)) is None


def test_malformed_payload_returns_none() -> None:
    config = Config(openrouter_api_key="test-key")
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"unexpected": True}))

    assert generate_trend_reflection(_stats(), config, transport=transport) is None
