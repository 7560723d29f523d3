"""Tests for the X (Grok) collector."""

import json
from unittest.mock import Mock

import pytest
import requests

from pinpoint_sentiment.core.errors import CollectionError
from pinpoint_sentiment.core.models import Source
from pinpoint_sentiment.services.grok_client import GrokService, build_text_block

GROK_REPLY = {
    "overall_sentiment_0_to_10": 7.46,
    "summary": "Developers mostly love it.",
    "top_positives": ["Fast", "Smart context"],
    "top_negatives": ["Price hikes"],
    "major_features": ["Agent mode"],
    "source_post_count": 150,
    "data_window_start": "2024-10-01T00:00:00Z",
    "data_window_end": "2025-04-01T00:00:00Z",
}


def ok_response(content):
    response = Mock(ok=True, status_code=200)
    response.json.return_value = {"choices": [{"message": {"content": content}}]}
    return response


def error_response(status, message):
    response = Mock(ok=False, status_code=status, text=json.dumps({"error": {"message": message}}))
    response.json.return_value = {"error": {"message": message}}
    return response


def make_service(*responses):
    session = Mock()
    session.post.side_effect = list(responses)
    return GrokService(api_key="xai-test", models=["grok-4", "grok-3"], session=session), session


class TestGrokService:

    def test_structured_reply(self, subject):
        service, session = make_service(ok_response(json.dumps(GROK_REPLY)))
        data = service.collect(subject)

        assert data.source is Source.X
        assert len(data.text_blocks) == 1
        block = data.text_blocks[0]
        assert "SUMMARY: Developers mostly love it." in block
        assert "SOURCE ORIGINAL SENTIMENT: 7.5/10" in block
        assert "TOP POSITIVES:\n1. Fast\n2. Smart context" in block
        assert "MAJOR FEATURES:\n1. Agent mode" in block
        assert data.metadata["source_score"] == 7.5
        assert data.metadata["source_post_count"] == 150
        assert data.metadata["data_window_start"] == "2024-10-01T00:00:00Z"
        assert data.metadata["source_model"] == "grok-4"
        assert data.window_start and data.window_end

        kwargs = session.post.call_args.kwargs
        assert session.post.call_args.args[0] == "https://api.x.ai/v1/chat/completions"
        assert kwargs["json"]["response_format"] == {"type": "json_object"}
        assert kwargs["headers"]["Authorization"] == "Bearer xai-test"
        assert '"Cursor"' in kwargs["json"]["messages"][1]["content"]

    def test_falls_back_to_next_model(self, subject):
        service, session = make_service(
            error_response(404, "The model grok-4 does not exist"),
            ok_response(json.dumps(GROK_REPLY)),
        )
        data = service.collect(subject)
        assert data.metadata["source_model"] == "grok-3"
        assert session.post.call_count == 2

    def test_network_error_falls_back(self, subject):
        service, _ = make_service(requests.ConnectionError("reset"), ok_response(json.dumps(GROK_REPLY)))
        assert service.collect(subject).metadata["source_model"] == "grok-3"

    def test_all_models_fail(self, subject):
        service, _ = make_service(error_response(500, "boom"), error_response(403, "forbidden"))
        with pytest.raises(CollectionError) as exc:
            service.collect(subject)
        assert "forbidden" in str(exc.value)

    def test_missing_api_key(self, subject):
        session = Mock()
        service = GrokService(api_key="", models=["grok-4"], session=session)
        with pytest.raises(CollectionError):
            service.collect(subject)
        session.post.assert_not_called()

    def test_embedded_json(self, subject):
        content = "Here is the analysis: " + json.dumps(GROK_REPLY) + " Hope it helps."
        service, _ = make_service(ok_response(content))
        data = service.collect(subject)
        assert data.metadata["source_score"] == 7.5

    def test_raw_text_fallback(self, subject):
        content = "People on X are generally enthusiastic but complain about pricing."
        service, _ = make_service(ok_response(content))
        data = service.collect(subject)
        assert data.text_blocks == [content]
        assert data.metadata["total_items"] == 1
        assert "source_score" not in data.metadata

    def test_empty_content(self, subject):
        service, _ = make_service(ok_response(""))
        with pytest.raises(CollectionError):
            service.collect(subject)


def test_text_block_skips_missing_sections():
    block = build_text_block({"summary": "Quiet month."})
    assert block == "SUMMARY: Quiet month."
