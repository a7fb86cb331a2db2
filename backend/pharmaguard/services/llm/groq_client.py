import logging
from typing import Optional

import backoff
import httpx

from pharmaguard.core.config import get_settings

logger = logging.getLogger(__name__)


def _max_tries() -> int:
    return get_settings().llm_max_tries


def _is_client_error(e: Exception) -> bool:
    return isinstance(e, httpx.HTTPStatusError) and e.response.status_code < 500


class GroqClient:
    """
    Client for Groq's hosted Llama API (OpenAI-compatible chat completions).

    Transport errors and 5xx responses are retried a bounded number of times;
    4xx responses give up immediately. Errors propagate to the caller.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.api_key = api_key if api_key is not None else settings.groq_api_key
        self.model = model or settings.groq_model
        self.api_url = api_url or settings.groq_api_url
        self.timeout = timeout or settings.llm_timeout_seconds
        self.transport = transport

    @property
    def model_name(self) -> str:
        return f"groq/{self.model}"

    @backoff.on_exception(
        backoff.expo,
        (httpx.RequestError, httpx.HTTPStatusError),
        max_tries=_max_tries,
        giveup=_is_client_error,
    )
    async def generate_text(self, prompt: str, system_prompt: Optional[str] = None) -> Optional[str]:
        """
        Generates a clinical explanation via Groq.
        Low temperature for consistent, factual responses.
        Returns None when the completion is empty.
        """
        logger.info("Sending request to Groq", extra={"model": self.model})

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        payload = {
            "model": self.model,
            "messages": messages,
            "temperature": 0.3,
            "max_tokens": 1024,
            "top_p": 0.9,
        }

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.post(self.api_url, json=payload, headers=headers)
            response.raise_for_status()

        data = response.json()
        choices = data.get("choices") or [{}]
        generated_text = ((choices[0].get("message") or {}).get("content") or "").strip()

        if not generated_text:
            logger.warning("Groq returned an empty completion")
            return None

        logger.info("Groq request successful", extra={"response_length": len(generated_text)})
        return generated_text
