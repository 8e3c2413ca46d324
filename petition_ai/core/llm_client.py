"""Provider clients for LLM text generation.

Both provider clients expose the same coroutine,
``generate_content(contents, system_instruction, generation_config)``,
and return the raw response text.
"""

import asyncio
from typing import Any, Dict, List, Optional, Union

import httpx
from google import genai
from google.genai import types
from httpx import HTTPStatusError, TimeoutException

from petition_ai.core.exceptions import APIClientError, APITimeoutError
from petition_ai.utils.logging import get_logger

LOGGER = get_logger(__name__)

Contents = Union[str, List[Union[str, Dict[str, Any]]]]

JSON_ONLY_SUFFIX = "Respond with valid JSON only."


def flatten_contents(contents: Contents) -> str:
    """Join string and ``{"text": ...}`` parts into a single prompt string."""
    if isinstance(contents, str):
        return contents
    parts = []
    for part in contents:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and "text" in part:
            parts.append(part["text"])
    return "".join(parts)


class BaseLLMClient:
    """HTTP transport with retries and exponential backoff.

    Client errors (4xx other than 429) fail immediately; server errors,
    rate limits and timeouts are retried up to ``max_retries`` times.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout: int = 60,
        max_retries: int = 3,
        retry_delay: int = 2,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    async def call_api(
        self,
        payload: Dict[str, Any],
        endpoint: str = "",
        headers: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """POST ``payload`` as JSON and return the decoded response body.

        Raises:
            APIClientError: If the call fails after retries
            APITimeoutError: If every attempt timed out
        """
        url = f"{self.base_url}{endpoint}"
        request_headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        request_headers.update(headers or {})

        LOGGER.debug(f"Calling LLM API: {url}", extra={"timeout": self.timeout})

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            for attempt in range(self.max_retries):
                try:
                    response = await client.post(url, headers=request_headers, json=payload)
                    response.raise_for_status()
                    return response.json()
                except HTTPStatusError as e:
                    await self._handle_http_error(e, attempt, url)
                except TimeoutException as e:
                    await self._handle_timeout_error(e, attempt, url)
                except httpx.HTTPError as e:
                    await self._handle_generic_error(e, attempt, url)

        raise APIClientError(f"Failed to call API {url} after {self.max_retries} attempts")

    async def _handle_http_error(self, error: HTTPStatusError, attempt: int, url: str):
        status_code = error.response.status_code
        error_body = error.response.text or ""

        LOGGER.warning(
            f"API HTTP error (Attempt {attempt + 1}/{self.max_retries})",
            extra={"url": url, "status_code": status_code, "error_body": error_body[:500]},
        )

        if 400 <= status_code < 500 and status_code != 429:
            raise APIClientError(f"API Client Error {status_code}: {error_body[:500]}", error) from error
        if attempt >= self.max_retries - 1:
            raise APIClientError(f"API HTTP Error {status_code} after retries", error) from error
        await self._wait_before_retry(attempt)

    async def _handle_timeout_error(self, error: TimeoutException, attempt: int, url: str):
        LOGGER.warning(
            f"API Timeout (Attempt {attempt + 1}/{self.max_retries})", extra={"url": url}
        )
        if attempt >= self.max_retries - 1:
            raise APITimeoutError(f"API Timeout after {self.max_retries} attempts", error) from error
        await self._wait_before_retry(attempt)

    async def _handle_generic_error(self, error: Exception, attempt: int, url: str):
        LOGGER.warning(
            f"API Generic Error (Attempt {attempt + 1}/{self.max_retries})",
            extra={"url": url, "error": str(error)},
        )
        if attempt >= self.max_retries - 1:
            raise APIClientError(f"API Error: {error}", error) from error
        await self._wait_before_retry(attempt)

    async def _wait_before_retry(self, attempt: int):
        await asyncio.sleep(self.retry_delay * (2 ** attempt))


class GeminiClient:
    """Google Gemini through the ``google-genai`` async SDK."""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.0-flash",
        timeout: int = 60,
        max_retries: int = 3,
    ):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.max_retries = max_retries

        try:
            self.client = genai.Client(api_key=self.api_key)
        except Exception as e:
            LOGGER.error(f"Failed to initialize Gemini client: {e}")
            raise APIClientError(f"Failed to initialize Gemini client: {e}", e)
        LOGGER.info(f"Initialized Gemini client with model {self.model}")

    def _build_config(
        self,
        system_instruction: Optional[str],
        generation_config: Optional[Dict[str, Any]],
    ) -> types.GenerateContentConfig:
        generation_config = generation_config or {}
        config = types.GenerateContentConfig(
            temperature=generation_config.get("temperature", 0.0),
        )
        if "max_output_tokens" in generation_config:
            config.max_output_tokens = generation_config["max_output_tokens"]
        if "response_mime_type" in generation_config:
            config.response_mime_type = generation_config["response_mime_type"]
        if system_instruction:
            config.system_instruction = system_instruction
        return config

    async def generate_content(
        self,
        contents: Contents,
        system_instruction: Optional[str] = None,
        generation_config: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Generate text with the configured Gemini model.

        Raises:
            APIClientError: If generation fails after retries
        """
        config = self._build_config(system_instruction, generation_config)
        model = (generation_config or {}).get("model") or self.model

        for attempt in range(self.max_retries):
            try:
                response = await self.client.aio.models.generate_content(
                    model=model,
                    contents=contents,
                    config=config,
                )
                if not response.text:
                    LOGGER.warning("Empty response from Gemini")
                    return ""
                return response.text
            except Exception as e:
                LOGGER.warning(
                    f"Gemini API error (Attempt {attempt + 1}/{self.max_retries}): {e}"
                )
                if attempt >= self.max_retries - 1:
                    LOGGER.error(f"Gemini generation failed after retries: {e}", exc_info=True)
                    raise APIClientError(f"Gemini generation failed: {e}", e)
                await asyncio.sleep(2 ** attempt)

        raise APIClientError("Gemini generation failed")


class OpenRouterClient:
    """OpenRouter chat-completions API with the same interface as GeminiClient."""

    def __init__(
        self,
        api_key: str,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: int = 60,
        max_retries: int = 5,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.transport = BaseLLMClient(
            api_key=api_key,
            base_url=base_url or "",
            timeout=timeout,
            max_retries=max_retries,
        )
        LOGGER.info(f"Initialized OpenRouter client with model {self.model}")

    def _build_payload(
        self,
        contents: Contents,
        system_instruction: Optional[str],
        generation_config: Optional[Dict[str, Any]],
    ) -> Dict[str, Any]:
        generation_config = generation_config or {}

        system_text = system_instruction or ""
        if generation_config.get("response_mime_type") == "application/json":
            # No native JSON mode; ask for it in the system message
            system_text = f"{system_text}\n\n{JSON_ONLY_SUFFIX}".strip()

        messages = []
        if system_text:
            messages.append({"role": "system", "content": system_text})
        messages.append({"role": "user", "content": flatten_contents(contents)})

        payload = {
            "model": generation_config.get("model") or self.model,
            "messages": messages,
            "temperature": generation_config.get("temperature", 0.0),
        }
        if "max_output_tokens" in generation_config:
            payload["max_tokens"] = generation_config["max_output_tokens"]
        return payload

    async def generate_content(
        self,
        contents: Contents,
        system_instruction: Optional[str] = None,
        generation_config: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Generate text through OpenRouter.

        Raises:
            APIClientError: If the request fails or the response is malformed
        """
        payload = self._build_payload(contents, system_instruction, generation_config)
        response = await self.transport.call_api(payload)

        choices = response.get("choices") or []
        if not choices:
            LOGGER.error(f"Unexpected OpenRouter response format: {response}")
            raise APIClientError("Invalid response format from OpenRouter")

        content = choices[0].get("message", {}).get("content", "")
        if not content:
            LOGGER.warning("Empty response from OpenRouter")
            return ""
        return content
