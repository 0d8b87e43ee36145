"""Tests for the AI scorer, keyword fallback and the Gemini client."""

import json
from unittest.mock import MagicMock

import pytest
import requests

from llm.gemini import GeminiClient, GeminiError, extract_json
from pipeline.errors import ScoringError
from scoring.ai import AIScorer
from scoring.scorer import RelevanceScorer

ARTICLE = {
    "title": "OpenAI releases new LLM",
    "description": "The large language model is available for research",
    "content": "",
}


def _client(result=None, error: Exception | None = None) -> MagicMock:
    client = MagicMock(spec=GeminiClient)
    client.configured = True
    if error is not None:
        client.generate_json.side_effect = error
    else:
        client.generate_json.return_value = result
    return client


def test_ai_path_success():
    client = _client({"score": 8.5, "student_priority": True, "reasoning": "Big release",
                      "categories": ["LLM", "Research"]})
    scorer = RelevanceScorer(enable_ai=True, ai_scorer=AIScorer(client))
    result = scorer.score(ARTICLE)
    assert result["relevance_score"] == 8.5
    assert result["student_priority"] is True
    assert result["ai_reasoning"] == "Big release"
    assert result["ai_categories"] == ["llm", "research"]
    assert result["ai_scored"] is True
    assert result["scoring_error"] is False


@pytest.mark.parametrize("payload", [
    {"score": 11, "student_priority": False},
    {"score": -1},
    {"score": "high"},
    {"score": True},
    {"score": 2, "student_priority": "false"},
    {"score": 8, "student_priority": "yes"},
    ["not", "an", "object"],
])
def test_invalid_ai_payload_falls_back(payload):
    scorer = RelevanceScorer(enable_ai=True, ai_scorer=AIScorer(_client(payload)))
    result = scorer.score(ARTICLE)
    assert result["ai_scored"] is False
    assert result["scoring_error"] is True
    assert 0 <= result["relevance_score"] <= 10


def test_ai_error_falls_back_to_keywords():
    client = _client(error=GeminiError("Gemini API error 500", status_code=500))
    scorer = RelevanceScorer(enable_ai=True, ai_scorer=AIScorer(client))
    result = scorer.score(ARTICLE)
    assert result["ai_scored"] is False
    assert result["scoring_error"] is True
    assert result["relevance_score"] == 10.0
    assert result["keyword_score_details"]["raw_points"] > 0


def test_rate_limit_is_recoverable():
    client = _client(error=GeminiError("Gemini API error 429", status_code=429))
    scorer = RelevanceScorer(enable_ai=True, ai_scorer=AIScorer(client))
    result = scorer.score(ARTICLE)
    assert result["scoring_error"] is True


def test_disabled_ai_is_not_an_error():
    client = _client({"score": 9})
    scorer = RelevanceScorer(enable_ai=False, ai_scorer=AIScorer(client))
    result = scorer.score(ARTICLE)
    assert result["ai_scored"] is False
    assert result["scoring_error"] is False
    client.generate_json.assert_not_called()


def test_missing_api_key_disables_ai():
    scorer = RelevanceScorer(enable_ai=True)
    assert scorer.enable_ai is False
    assert scorer.score(ARTICLE)["scoring_error"] is False


def test_score_many_keeps_order_and_never_raises():
    client = _client(error=GeminiError("timeout"))
    scorer = RelevanceScorer(enable_ai=True, ai_scorer=AIScorer(client), max_workers=4)
    articles = [
        {"title": "Fußball am Wochenende", "description": "Sport"},
        ARTICLE,
        {"title": "", "description": ""},
    ]
    results = scorer.score_many(articles)
    assert [r["relevance_score"] for r in results] == [0.0, 10.0, 0.0]
    assert all(r["ai_scored"] is False and r["scoring_error"] is True for r in results)


def test_ai_scorer_raises_scoring_error():
    scorer = AIScorer(_client(error=GeminiError("boom")))
    with pytest.raises(ScoringError):
        scorer.score(ARTICLE)


def test_extract_json_variants():
    assert extract_json('{"score": 5}') == {"score": 5}
    assert extract_json('Here you go:\n```json\n{"score": 6}\n```') == {"score": 6}
    assert extract_json('Result: {"score": 7} hope this helps') == {"score": 7}
    with pytest.raises(json.JSONDecodeError):
        extract_json("no json here")


def _response(status: int, body) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.text = json.dumps(body)
    resp.json.return_value = body
    return resp


def test_gemini_client_generate_json():
    http = MagicMock()
    http.post.return_value = _response(200, {
        "candidates": [{"content": {"parts": [{"text": '```json\n{"score": 4}\n```'}]}}]
    })
    client = GeminiClient(api_key="k", model="m", base_url="https://g.test", timeout=5,
                          min_interval=0, http=http)
    assert client.generate_json("prompt") == {"score": 4}
    url = http.post.call_args.args[0]
    assert url == "https://g.test/v1beta/models/m:generateContent"
    assert http.post.call_args.kwargs["timeout"] == 5
    assert http.post.call_args.kwargs["headers"] == {"x-goog-api-key": "k"}


def test_gemini_client_http_error_carries_status():
    http = MagicMock()
    http.post.return_value = _response(429, {"error": "quota"})
    client = GeminiClient(api_key="k", min_interval=0, http=http)
    with pytest.raises(GeminiError) as exc:
        client.generate("prompt")
    assert exc.value.rate_limited


def test_gemini_client_timeout():
    http = MagicMock()
    http.post.side_effect = requests.Timeout("slow")
    client = GeminiClient(api_key="k", timeout=1, min_interval=0, http=http)
    with pytest.raises(GeminiError, match="timed out"):
        client.generate("prompt")


def test_gemini_client_without_key():
    client = GeminiClient(api_key="", http=MagicMock())
    assert client.configured is False
    with pytest.raises(GeminiError):
        client.generate("prompt")


def test_string_priority_is_not_trusted():
    client = _client({"score": 2, "student_priority": "false", "reasoning": "Minor"})
    result = RelevanceScorer(enable_ai=True, ai_scorer=AIScorer(client)).score(
        {"title": "Weather update", "description": "Rain tomorrow"}
    )
    assert result["student_priority"] is False
    assert result["ai_scored"] is False
    assert result["scoring_error"] is True
