"""
Image LLM Client interface for extracting course schedules from images.
Supports StubImageLLMClient (sample data, used when no API key is configured)
and OpenAIImageLLMClient (real provider).
"""

import base64
import io
import json
import os
import re
import time
from abc import ABC, abstractmethod
from typing import List

import requests
from PIL import Image, UnidentifiedImageError

from schedcal.course_normalizer import normalize_records
from schedcal.errors import ExtractionFailure
from schedcal.event_models import Course, SemesterWindow
from schedcal.logging_helper import Log
from schedcal.settings_manager import AppConfig

# Maximum image size in bytes (20MB - OpenAI's limit)
MAX_IMAGE_SIZE = 20 * 1024 * 1024
# Maximum image dimensions (prevent extremely large images)
MAX_IMAGE_DIMENSION = 10000

SUPPORTED_MEDIA_TYPES = ("image/jpeg", "image/png", "image/webp", "image/gif")

# Fixed dataset returned in sample mode
SAMPLE_COURSES = [
    {
        "id": "1",
        "code": "CS 101",
        "name": "Intro to Computer Science",
        "startTime": "10:00",
        "endTime": "11:30",
        "days": ["Mon", "Wed"],
        "location": "Science Hall 101",
    },
    {
        "id": "2",
        "code": "MATH 201",
        "name": "Calculus II",
        "startTime": "13:00",
        "endTime": "14:30",
        "days": ["Tue", "Thu"],
        "location": "Math Building 204",
    },
    {
        "id": "3",
        "code": "PHYS 101",
        "name": "General Physics I",
        "startTime": "09:00",
        "endTime": "10:30",
        "days": ["Fri"],
        "location": "Physics Lab 3B",
    },
]


def _fail(provider: str, reason: str, message: str, **extra) -> ExtractionFailure:
    Log.error(message)
    kv = {"stage": "llm", "provider": provider, "result": "failed", "reason": reason}
    kv.update(extra)
    Log.kv(kv)
    return ExtractionFailure(message, reason=reason)


def build_prompt(window: SemesterWindow) -> str:
    return (
        "Analyze this course schedule image.\n"
        f"The semester starts on {window.start.isoformat()} and ends on {window.end.isoformat()}.\n"
        "Extract the following details for each course:\n"
        "- Course Code (e.g. CS 101)\n"
        "- Course Name\n"
        "- Start Time (24h format, e.g. 14:30)\n"
        "- End Time (24h format)\n"
        "- Days of the week (e.g. [\"Mon\", \"Wed\"])\n"
        "- Location\n\n"
        "Return ONLY a valid JSON array of objects with these keys: "
        "id (random string), code, name, startTime, endTime, days, location.\n"
        "Do not include markdown formatting or code blocks."
    )


def parse_course_payload(content: str) -> list:
    """
    Parse the model's text into a list of raw course records.

    Accepts a bare JSON array, an object with a "courses" array, and either
    wrapped in markdown code fences.

    Raises:
        ValueError: if no course list can be recovered
    """
    text = content.strip()
    text = re.sub(r"^```(?:json)?\s*", "", text)
    text = re.sub(r"\s*```$", "", text).strip()

    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        # Fall back to the outermost array embedded in prose
        match = re.search(r"\[.*\]", text, re.DOTALL)
        if not match:
            raise ValueError(f"No JSON found in response: {text[:100]}")
        data = json.loads(match.group())

    if isinstance(data, dict) and isinstance(data.get("courses"), list):
        data = data["courses"]
    if not isinstance(data, list):
        raise ValueError(f"Expected a JSON array of courses, got {type(data).__name__}")
    return data


class ImageLLMClient(ABC):
    """Abstract base class for image LLM clients."""

    provider = "base"

    @abstractmethod
    def extract_courses(self, image_bytes: bytes, media_type: str, window: SemesterWindow) -> List[Course]:
        """
        Extract course meeting patterns from a schedule image.

        Args:
            image_bytes: Raw uploaded image
            media_type: MIME type reported by the uploader
            window: Semester window, included in the prompt for context

        Returns:
            Courses in the order the model listed them

        Raises:
            ExtractionFailure: if the image or the model response is unusable
        """


class StubImageLLMClient(ImageLLMClient):
    """
    Sample-mode client for when no API key is configured.
    Always returns the same three courses regardless of the image.
    """

    provider = "stub"

    def __init__(self, delay_seconds: float = 0.0):
        self.delay_seconds = delay_seconds

    def extract_courses(self, image_bytes: bytes, media_type: str, window: SemesterWindow) -> List[Course]:
        Log.section("Stub LLM Client")
        Log.info("No API key configured - returning sample schedule")

        if self.delay_seconds > 0:
            Log.info(f"Simulating API response time: {self.delay_seconds:.1f} seconds")
            time.sleep(self.delay_seconds)

        # Same path as the real client: serialized text -> parse -> normalize
        content = json.dumps(SAMPLE_COURSES)
        courses = normalize_records(parse_course_payload(content))

        Log.kv({
            "stage": "llm",
            "provider": self.provider,
            "result": "sample",
            "courses": len(courses),
        })
        return courses


class OpenAIImageLLMClient(ImageLLMClient):
    """
    OpenAI Vision API client for real schedule extraction.
    """

    provider = "openai"

    def __init__(self, api_key: str, model: str = "gpt-4o-mini", timeout: float = 30.0):
        """
        Initialize OpenAI client.

        Args:
            api_key: OpenAI API key
            model: Vision-capable chat model
            timeout: Seconds before the request counts as failed
        """
        self.api_key = api_key
        self.api_url = "https://api.openai.com/v1/chat/completions"
        self.model = model
        self.timeout = timeout

    def _load_image(self, image_bytes: bytes, media_type: str) -> Image.Image:
        if media_type not in SUPPORTED_MEDIA_TYPES:
            raise _fail(self.provider, "unsupported_image", f"Unsupported image type: {media_type}")
        if not image_bytes:
            raise _fail(self.provider, "unsupported_image", "Image is empty")
        if len(image_bytes) > MAX_IMAGE_SIZE:
            raise _fail(
                self.provider, "unsupported_image",
                f"Image too large: {len(image_bytes)} bytes (limit {MAX_IMAGE_SIZE})",
            )

        try:
            image = Image.open(io.BytesIO(image_bytes))
            image.load()
        except (UnidentifiedImageError, OSError) as e:
            raise _fail(self.provider, "unsupported_image", f"Image could not be decoded: {e}")

        width, height = image.size
        if width == 0 or height == 0:
            raise _fail(self.provider, "unsupported_image", f"Invalid image dimensions: {width}x{height}")
        if width > MAX_IMAGE_DIMENSION or height > MAX_IMAGE_DIMENSION:
            Log.warn(f"Image too large: {width}x{height}, downscaling")
            image.thumbnail((MAX_IMAGE_DIMENSION, MAX_IMAGE_DIMENSION))
        return image

    def _image_to_base64(self, image: Image.Image) -> str:
        """
        Re-encode the image as JPEG and return it base64 encoded.
        """
        # Convert to RGB if necessary (removes transparency)
        if image.mode != 'RGB':
            image = image.convert('RGB')

        buffer = io.BytesIO()
        image.save(buffer, format='JPEG', quality=85, optimize=True)
        image_bytes = buffer.getvalue()
        if len(image_bytes) > MAX_IMAGE_SIZE:
            Log.warn(f"Image size {len(image_bytes)} bytes exceeds limit, compressing...")
            buffer = io.BytesIO()
            image.save(buffer, format='JPEG', quality=60, optimize=True)
            image_bytes = buffer.getvalue()
            if len(image_bytes) > MAX_IMAGE_SIZE:
                raise _fail(
                    self.provider, "unsupported_image",
                    f"Image too large even after compression: {len(image_bytes)} bytes",
                )

        base64_string = base64.b64encode(image_bytes).decode('utf-8')
        Log.info(f"Image converted to base64: {len(base64_string)} chars")
        return base64_string

    def extract_courses(self, image_bytes: bytes, media_type: str, window: SemesterWindow) -> List[Course]:
        Log.section("OpenAI LLM Client")
        Log.info(f"Using OpenAI Vision API ({self.model})")

        image = self._load_image(image_bytes, media_type)
        base64_image = self._image_to_base64(image)
        Log.kv({
            "stage": "llm",
            "image_base64_length": len(base64_image),
            "image_size": f"{image.size[0]}x{image.size[1]}",
        })

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = {
            "model": self.model,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": build_prompt(window)},
                        {
                            "type": "image_url",
                            "image_url": {"url": f"data:image/jpeg;base64,{base64_image}"},
                        },
                    ],
                }
            ],
            "max_tokens": 2000,
            "temperature": 0.1,
        }

        Log.info("Calling OpenAI Vision API...")
        Log.kv({"stage": "llm", "provider": self.provider, "model": self.model, "status": "requesting"})
        try:
            response = requests.post(self.api_url, headers=headers, json=payload, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            raise _fail(self.provider, "timeout", f"OpenAI API timed out after {self.timeout}s: {e}")
        except requests.exceptions.RequestException as e:
            raise _fail(self.provider, "api_error", f"OpenAI API request failed: {e}")

        Log.info(f"API response status: {response.status_code}")
        if response.status_code != 200:
            raise _fail(
                self.provider, "api_error",
                f"OpenAI API error {response.status_code}: {response.text[:500]}",
                status=response.status_code,
            )

        try:
            result = response.json()
            content = result["choices"][0]["message"]["content"] or ""
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise _fail(self.provider, "malformed_response", f"Unexpected OpenAI response shape: {e}")

        if not content.strip():
            raise _fail(self.provider, "empty_response", "Empty response from OpenAI")

        try:
            records = parse_course_payload(content)
        except ValueError as e:
            raise _fail(self.provider, "json_parse_error", f"Could not parse courses from response: {e}")

        courses = normalize_records(records)
        Log.info(f"Extracted {len(courses)} course(s): {', '.join(c.code for c in courses)}")
        Log.kv({"stage": "llm", "provider": self.provider, "result": "success", "courses": len(courses)})
        return courses


def get_llm_client(config: AppConfig) -> ImageLLMClient:
    """
    Factory function to get the appropriate LLM client.
    Uses OpenAIImageLLMClient when an API key is configured, otherwise the
    sample-data stub. Setting the USE_STUB environment variable forces the stub.
    """
    if os.getenv("USE_STUB"):
        Log.info("USE_STUB flag set - using stub client")
        return StubImageLLMClient()

    if config.api_key:
        Log.info("API key found - using OpenAI client")
        return OpenAIImageLLMClient(config.api_key, model=config.model, timeout=config.request_timeout)

    Log.info("No API key - using stub client (sample data)")
    return StubImageLLMClient()
