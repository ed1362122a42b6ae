from typing import Any, Dict, List, Optional, Protocol

from loguru import logger

from kisan_agent.config import DEFAULT_BASE_URL
from kisan_agent.errors import CompletionError, EmptyReplyError, ModelCapabilityError

ChatMessage = Dict[str, Any]


class CompletionService(Protocol):
    def complete(
        self,
        model: str,
        messages: List[ChatMessage],
        temperature: float,
        max_tokens: int,
    ) -> str:
        ...


def text_message(role: str, text: str) -> ChatMessage:
    return {"role": role, "content": text}


def image_data_url(image_base64: str) -> str:
    """Accept either a data URL or bare base64 and return a data URL."""
    image_base64 = image_base64.strip()
    if image_base64.startswith("data:") or image_base64.startswith("http"):
        return image_base64
    return f"data:image/jpeg;base64,{image_base64}"


def vision_message(prompt: str, image_base64: str) -> ChatMessage:
    return {
        "role": "user",
        "content": [
            {"type": "text", "text": prompt},
            {"type": "image_url", "image_url": {"url": image_data_url(image_base64)}},
        ],
    }


def _mentions_image_input(message: str) -> bool:
    # Providers only report missing vision support in the error text.
    low = (message or "").lower()
    return "image" in low or "vision" in low


class GroqCompletionService:
    """Chat completions against Groq's OpenAI-compatible API."""

    def __init__(self, api_key: Optional[str], base_url: str = DEFAULT_BASE_URL, http_client=None):
        self._api_key = api_key
        self._base_url = base_url
        self._http_client = http_client
        self._client = None

    @property
    def client(self):
        # lazy so the app starts without a key in dev
        if self._client is None:
            if not self._api_key:
                raise CompletionError("Groq API key not configured")
            from openai import OpenAI

            self._client = OpenAI(
                api_key=self._api_key, base_url=self._base_url, http_client=self._http_client
            )
        return self._client

    def complete(
        self,
        model: str,
        messages: List[ChatMessage],
        temperature: float,
        max_tokens: int,
    ) -> str:
        import openai

        try:
            resp = self.client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except openai.BadRequestError as e:
            logger.warning("Groq rejected request for {}: {}", model, e.message)
            if _mentions_image_input(e.message):
                raise ModelCapabilityError(e.message) from e
            raise CompletionError(f"Groq API error: {e.status_code}") from e
        except openai.APIStatusError as e:
            logger.warning("Groq API error {} for {}", e.status_code, model)
            raise CompletionError(f"Groq API error: {e.status_code}") from e
        except openai.OpenAIError as e:
            logger.warning("Groq call failed for {}: {}", model, e)
            raise CompletionError(str(e)) from e

        content = resp.choices[0].message.content if resp.choices else None
        if not content or not content.strip():
            raise EmptyReplyError("No content in response")
        return content.strip()
