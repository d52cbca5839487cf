"""
Tests for the extraction gateway.

The OpenAI HTTP call is replaced with a mock; images are generated in memory
with Pillow.
"""

import io
import json
from unittest import mock

import pytest
import requests
from PIL import Image

from schedcal.errors import ExtractionFailure
from schedcal.image_llm_client import (
    OpenAIImageLLMClient,
    SAMPLE_COURSES,
    StubImageLLMClient,
    get_llm_client,
    parse_course_payload,
)
from schedcal.settings_manager import AppConfig


def png_bytes(size=(40, 20), mode="RGBA"):
    buffer = io.BytesIO()
    Image.new(mode, size, color=0).save(buffer, format="PNG")
    return buffer.getvalue()


def chat_response(content, status=200):
    response = mock.Mock()
    response.status_code = status
    response.text = content
    response.json.return_value = {"choices": [{"message": {"content": content}}]}
    return response


def test_stub_returns_sample_dataset(window):
    courses = StubImageLLMClient().extract_courses(b"", "image/png", window)
    assert [c.code for c in courses] == ["CS 101", "MATH 201", "PHYS 101"]
    assert [c.to_dict() for c in courses] == SAMPLE_COURSES


def test_stub_is_reproducible(window):
    client = StubImageLLMClient()
    assert client.extract_courses(b"a", "image/png", window) == client.extract_courses(b"b", "image/jpeg", window)


def test_factory_without_key_uses_stub():
    assert isinstance(get_llm_client(AppConfig()), StubImageLLMClient)


def test_factory_with_key_uses_openai():
    client = get_llm_client(AppConfig(api_key="sk-test", model="gpt-4o", request_timeout=12))
    assert isinstance(client, OpenAIImageLLMClient)
    assert client.model == "gpt-4o"
    assert client.timeout == 12


def test_use_stub_env_overrides_key(monkeypatch):
    monkeypatch.setenv("USE_STUB", "1")
    assert isinstance(get_llm_client(AppConfig(api_key="sk-test")), StubImageLLMClient)


@pytest.mark.parametrize("content", [
    '[{"id": "a"}]',
    '```json\n[{"id": "a"}]\n```',
    '{"courses": [{"id": "a"}]}',
    'Here you go: [{"id": "a"}] hope that helps',
])
def test_parse_course_payload_variants(content):
    assert parse_course_payload(content) == [{"id": "a"}]


def test_parse_course_payload_rejects_non_list():
    with pytest.raises(ValueError):
        parse_course_payload('{"title": "x"}')


@mock.patch("schedcal.image_llm_client.requests.post")
def test_openai_extracts_and_normalizes(post, window):
    records = [
        {"id": "x1", "code": "BIO 110", "name": "Biology", "startTime": "2:00 PM",
         "endTime": "3:15 PM", "days": ["Tuesday", "Thursday"], "location": "Lab 2"},
        {"id": "x2", "code": "BAD", "name": "No days", "startTime": "09:00", "endTime": "10:00", "days": []},
    ]
    post.return_value = chat_response("```json\n" + json.dumps(records) + "\n```")

    client = OpenAIImageLLMClient("sk-test", timeout=7)
    courses = client.extract_courses(png_bytes(), "image/png", window)

    assert len(courses) == 1
    assert courses[0].start_time == "14:00"
    assert courses[0].end_time == "15:15"
    assert courses[0].days == ["Tue", "Thu"]

    kwargs = post.call_args[1]
    assert kwargs["timeout"] == 7
    assert kwargs["headers"]["Authorization"] == "Bearer sk-test"
    content = kwargs["json"]["messages"][0]["content"]
    assert "2024-01-03" in content[0]["text"] and "2024-05-01" in content[0]["text"]
    assert content[1]["image_url"]["url"].startswith("data:image/jpeg;base64,")


def test_openai_rejects_unsupported_media_type(window):
    with pytest.raises(ExtractionFailure) as excinfo:
        OpenAIImageLLMClient("sk-test").extract_courses(b"%PDF-1.4", "application/pdf", window)
    assert excinfo.value.reason == "unsupported_image"


def test_openai_rejects_undecodable_image(window):
    with pytest.raises(ExtractionFailure) as excinfo:
        OpenAIImageLLMClient("sk-test").extract_courses(b"not really a png", "image/png", window)
    assert excinfo.value.reason == "unsupported_image"


@mock.patch("schedcal.image_llm_client.requests.post")
def test_openai_http_error_is_extraction_failure(post, window):
    post.return_value = chat_response("rate limited", status=429)
    with pytest.raises(ExtractionFailure) as excinfo:
        OpenAIImageLLMClient("sk-test").extract_courses(png_bytes(), "image/png", window)
    assert excinfo.value.reason == "api_error"


@mock.patch("schedcal.image_llm_client.requests.post")
def test_openai_timeout_is_extraction_failure(post, window):
    post.side_effect = requests.exceptions.Timeout("slow")
    with pytest.raises(ExtractionFailure) as excinfo:
        OpenAIImageLLMClient("sk-test").extract_courses(png_bytes(), "image/png", window)
    assert excinfo.value.reason == "timeout"


@mock.patch("schedcal.image_llm_client.requests.post")
def test_openai_garbage_response_is_extraction_failure(post, window):
    post.return_value = chat_response("I could not find a schedule in this image.")
    with pytest.raises(ExtractionFailure) as excinfo:
        OpenAIImageLLMClient("sk-test").extract_courses(png_bytes(), "image/png", window)
    assert excinfo.value.reason == "json_parse_error"
