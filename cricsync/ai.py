#!/usr/bin/env python3
"""
AI integration module using the Gemini generateContent API.
Handles API calls, response mapping, JSON extraction, and error classification.
"""

import json
import logging
import os
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from .models import Source

logger = logging.getLogger("cricsync")

# Gemini API configuration
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
GEMINI_API_URL = os.getenv("GEMINI_API_URL", "https://generativelanguage.googleapis.com/v1beta")
GEMINI_TIMEOUT = float(os.getenv("GEMINI_TIMEOUT", "120"))

# Web-search grounded queries use the capable model; extraction and copy use the fast one
GEMINI_SEARCH_MODEL = os.getenv("GEMINI_SEARCH_MODEL", "gemini-3-pro-preview")
GEMINI_FAST_MODEL = os.getenv("GEMINI_FAST_MODEL", "gemini-2.5-flash")
GEMINI_IMAGE_MODEL = os.getenv("GEMINI_IMAGE_MODEL", "gemini-2.5-flash-image")

GOOGLE_SEARCH_TOOL = {"google_search": {}}

if not GEMINI_API_KEY:
    logger.warning("GEMINI_API_KEY not set. AI functionality will fail unless you set the env var.")

QUOTA_MESSAGE = "⚠️ AI Quota Exceeded. Please wait 1-2 minutes before trying again."
OVERLOADED_MESSAGE = "⚠️ AI Service Overloaded. Please try again in a moment."
GENERIC_ERROR_MESSAGE = "An error occurred while processing. Please try again."

QUOTA_MARKERS = ("429", "RESOURCE_EXHAUSTED", "quota")
OVERLOAD_MARKERS = ("503", "overloaded")


class GeminiAPIError(RuntimeError):
    """Non-2xx response from the Gemini API."""

    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Gemini API returned HTTP {status_code}: {body}")


class AIServiceError(Exception):
    """AI call failure, already converted into a user-facing message."""

    def __init__(self, message: str, category: str = "unknown"):
        super().__init__(message)
        self.category = category


@dataclass
class AIResponse:
    text: str = ""
    sources: List[Source] = field(default_factory=list)
    search_queries: List[str] = field(default_factory=list)
    image_mime_type: Optional[str] = None
    image_data: Optional[str] = None
    grounded: bool = False

    @property
    def image_data_uri(self) -> str:
        if not self.image_data:
            return ""
        return f"data:{self.image_mime_type or 'image/png'};base64,{self.image_data}"


def text_part(text: str) -> Dict[str, Any]:
    return {"text": text}


def image_part(data: str, mime_type: str = "image/png") -> Dict[str, Any]:
    return {"inlineData": {"mimeType": mime_type, "data": data}}


def parse_gemini_response(data: Dict[str, Any]) -> AIResponse:
    """
    Map a raw generateContent JSON payload to an AIResponse.

    Only the first candidate is read. Grounding chunks without a URI are dropped.
    """
    result = AIResponse()
    candidates = data.get("candidates") if isinstance(data, dict) else None
    if not candidates or not isinstance(candidates, list):
        return result
    first = candidates[0] if isinstance(candidates[0], dict) else {}

    texts = []
    for part in (first.get("content") or {}).get("parts") or []:
        if not isinstance(part, dict):
            continue
        if part.get("text"):
            texts.append(part["text"])
        inline = part.get("inlineData") or part.get("inline_data")
        if inline and inline.get("data") and result.image_data is None:
            result.image_data = inline["data"]
            result.image_mime_type = inline.get("mimeType") or inline.get("mime_type")
    result.text = "".join(texts)

    metadata = first.get("groundingMetadata")
    if isinstance(metadata, dict):
        result.grounded = True
        result.search_queries = list(metadata.get("webSearchQueries") or [])
        for chunk in metadata.get("groundingChunks") or []:
            web = chunk.get("web") if isinstance(chunk, dict) else None
            if not web or not web.get("uri"):
                continue
            result.sources.append(Source(title=web.get("title") or "Source", uri=web["uri"]))
    return result


async def call_gemini_api(
    model: str,
    parts: List[Dict[str, Any]],
    tools: Optional[List[Dict[str, Any]]] = None,
    image_config: Optional[Dict[str, Any]] = None,
    timeout: float = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> AIResponse:
    """
    Call the Gemini generateContent endpoint once.

    Args:
        model: Model name, e.g. GEMINI_FAST_MODEL
        parts: Content parts (see text_part / image_part)
        tools: Optional tool list, e.g. [GOOGLE_SEARCH_TOOL]
        image_config: Optional image generation config, e.g. {"aspectRatio": "9:16"}
        timeout: Request timeout in seconds
        transport: Optional httpx transport override

    Returns:
        Parsed AIResponse

    Raises:
        GeminiAPIError on non-2xx responses; httpx errors on transport failures.
    """
    if timeout is None:
        timeout = GEMINI_TIMEOUT

    headers = {
        "Content-Type": "application/json",
        "x-goog-api-key": GEMINI_API_KEY or "",
    }
    payload: Dict[str, Any] = {"contents": [{"role": "user", "parts": parts}]}
    if tools:
        payload["tools"] = tools
    if image_config:
        payload["generationConfig"] = {"imageConfig": image_config}

    url = f"{GEMINI_API_URL.rstrip('/')}/models/{model}:generateContent"
    async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
        resp = await client.post(url, headers=headers, json=payload)
        if resp.status_code >= 400:
            logger.error("Gemini HTTP error %d for model %s", resp.status_code, model)
            raise GeminiAPIError(resp.status_code, resp.text)
        return parse_gemini_response(resp.json())


def classify_ai_error(error: Any) -> AIServiceError:
    """Convert any AI-side failure into an AIServiceError with a user-facing message."""
    err_string = str(error) if error is not None else ""
    if not err_string:
        try:
            err_string = json.dumps(error)
        except (TypeError, ValueError):
            err_string = repr(error)

    if any(marker in err_string for marker in QUOTA_MARKERS):
        return AIServiceError(QUOTA_MESSAGE, category="quota")
    if any(marker in err_string for marker in OVERLOAD_MARKERS):
        return AIServiceError(OVERLOADED_MESSAGE, category="overloaded")
    return AIServiceError(GENERIC_ERROR_MESSAGE, category="unknown")


class JSONArrayParseError(ValueError):
    """The AI text contained no recognizable JSON array."""


def parse_ai_json_array(text: str) -> List[Any]:
    """
    Extract the first JSON array from AI response text.

    Prefers a ```json fenced block, falls back to the outermost bracketed span.

    Raises:
        JSONArrayParseError when nothing parses to a list.
    """
    if not text:
        raise JSONArrayParseError("Empty response text")
    m = re.search(r'```json\s*\n(.*?)\n\s*```', text, re.DOTALL)
    candidate = m.group(1) if m else None
    if candidate is None:
        m = re.search(r'\[.*\]', text, re.DOTALL)
        if not m:
            raise JSONArrayParseError("No valid JSON block found in the response")
        candidate = m.group(0)
    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise JSONArrayParseError(str(e)) from e
    if not isinstance(parsed, list):
        raise JSONArrayParseError(f"Expected a JSON array, got {type(parsed).__name__}")
    return parsed
