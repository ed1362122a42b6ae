import json

import httpx
import pytest

from kisan_agent.completion import GroqCompletionService, image_data_url, text_message, vision_message
from kisan_agent.errors import CompletionError, EmptyReplyError, ModelCapabilityError


def completion_body(content):
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "created": 1718000000,
        "model": "llama-3.3-70b-versatile",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
    }


def service_for(handler):
    http = httpx.Client(transport=httpx.MockTransport(handler))
    return GroqCompletionService("test-key", base_url="https://groq.test/openai/v1", http_client=http)


def test_image_data_url_wraps_bare_base64():
    assert image_data_url("abc123") == "data:image/jpeg;base64,abc123"
    assert image_data_url("data:image/png;base64,xyz") == "data:image/png;base64,xyz"


def test_vision_message_shape():
    msg = vision_message("describe", "data:image/png;base64,xyz")
    assert msg["role"] == "user"
    assert msg["content"][1]["image_url"]["url"] == "data:image/png;base64,xyz"
    assert text_message("system", "hi") == {"role": "system", "content": "hi"}


def test_complete_posts_chat_request():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["auth"] = request.headers["authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=completion_body("  Sow after first rains.  "))

    reply = service_for(handler).complete(
        "llama-3.3-70b-versatile", [text_message("user", "when to sow?")], 0.7, 256
    )

    assert reply == "Sow after first rains."
    assert seen["path"] == "/openai/v1/chat/completions"
    assert seen["auth"] == "Bearer test-key"
    assert seen["body"]["temperature"] == 0.7
    assert seen["body"]["max_tokens"] == 256


def test_empty_content_is_an_error():
    service = service_for(lambda request: httpx.Response(200, json=completion_body("")))
    with pytest.raises(EmptyReplyError):
        service.complete("m", [text_message("user", "x")], 0.3, 10)


def test_image_rejection_is_reported_as_capability_error():
    def handler(request):
        return httpx.Response(
            400,
            json={"error": {"message": "This model does not support image input", "type": "invalid_request_error"}},
        )

    with pytest.raises(ModelCapabilityError):
        service_for(handler).complete("m", [vision_message("x", "abc")], 0.3, 10)


def test_other_bad_request_is_plain_completion_error():
    def handler(request):
        return httpx.Response(400, json={"error": {"message": "max_tokens too large"}})

    with pytest.raises(CompletionError) as exc_info:
        service_for(handler).complete("m", [text_message("user", "x")], 0.3, 10)
    assert not isinstance(exc_info.value, ModelCapabilityError)


def test_missing_key_fails_without_request():
    with pytest.raises(CompletionError):
        GroqCompletionService(None).complete("m", [text_message("user", "x")], 0.3, 10)
