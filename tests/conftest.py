import pytest

from cricsync.ai import AIResponse


class FakeAI:
    """Stands in for call_gemini_api: replays queued responses/exceptions and records calls."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls = []

    async def __call__(self, model, parts, tools=None, image_config=None):
        self.calls.append({"model": model, "parts": parts, "tools": tools, "image_config": image_config})
        if not self.replies:
            return AIResponse(text="")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, str):
            return AIResponse(text=reply)
        return reply

    def prompt(self, index=-1):
        return "\n".join(p["text"] for p in self.calls[index]["parts"] if "text" in p)


@pytest.fixture
def fake_ai():
    def factory(*replies):
        return FakeAI(*replies)
    return factory
