"""
LLM Gateway — Wraps the Groq client with retry, timeout, and token tracking.

This is the code-fix oracle transport. It knows nothing about fixes; it sends
a prompt and returns the raw text plus parsed JSON (if any).
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Any

from groq import Groq

from codepolice.config import settings

logger = logging.getLogger("codepolice.llm")


class OracleError(Exception):
    """Raised when the oracle cannot be reached or is not configured."""


class LLMGateway:
    """
    Groq LLM client wrapper with:
    - Per-call timeout
    - Retry with exponential backoff on transport errors
    - Token usage tracking
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_base: float | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.groq_api_key
        self.model = model or settings.codepolice_model
        self.timeout = timeout or settings.llm_timeout
        self.max_retries = max_retries if max_retries is not None else settings.llm_max_retries
        self.backoff_base = (
            backoff_base if backoff_base is not None else settings.llm_backoff_base
        )
        self.max_tokens = settings.llm_max_tokens
        self.total_tokens_used = 0
        self._client: Groq | None = None

    @property
    def client(self) -> Groq:
        if self._client is None:
            if not self.api_key:
                raise OracleError("GROQ_API_KEY is not configured")
            self._client = Groq(api_key=self.api_key, timeout=self.timeout)
        return self._client

    async def complete(self, prompt: str, temperature: float = 0.1) -> dict[str, Any]:
        """
        Send a prompt and return the parsed JSON response.

        Runs the synchronous Groq SDK in a thread pool, bounded by the
        configured timeout.

        Returns:
            dict with 'content' (raw text), 'parsed' (JSON or None),
            'tokens_used' (int), 'success' (bool).

        Raises:
            OracleError: not configured, or every attempt failed.
        """
        client = self.client
        last_error: Exception | None = None
        attempts = self.max_retries + 1

        for attempt in range(attempts):
            try:
                response = await asyncio.wait_for(
                    asyncio.to_thread(self._sync_complete, client, prompt, temperature),
                    timeout=self.timeout,
                )

                content = response.choices[0].message.content or ""
                tokens = getattr(response.usage, "total_tokens", 0) if response.usage else 0
                self.total_tokens_used += tokens

                parsed = None
                try:
                    parsed = json.loads(content)
                except json.JSONDecodeError:
                    parsed = extract_json(content)

                return {
                    "content": content,
                    "parsed": parsed,
                    "tokens_used": tokens,
                    "success": parsed is not None,
                }

            except Exception as e:
                last_error = e
                logger.warning(f"Oracle attempt {attempt + 1}/{attempts} failed: {e}")
                if attempt < attempts - 1:
                    # Exponential backoff: 1s, 2s, 4s
                    await asyncio.sleep(self.backoff_base * (2**attempt))

        logger.error(f"Oracle gateway exhausted retries. Last error: {last_error}")
        raise OracleError(f"Oracle call failed after {attempts} attempts: {last_error}")

    def _sync_complete(self, client: Groq, prompt: str, temperature: float):
        """Synchronous Groq completion call in JSON mode."""
        return client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=temperature,
            max_tokens=self.max_tokens,
            response_format={"type": "json_object"},
        )

    def get_tokens_used(self) -> int:
        return self.total_tokens_used


def extract_json(text: str) -> dict | None:
    """Try to extract a JSON object from markdown-fenced or chatty text."""
    match = re.search(r"```(?:json)?\s*\n(.*?)\n```", text, re.DOTALL)
    if match:
        try:
            return json.loads(match.group(1))
        except json.JSONDecodeError:
            pass

    start = text.find("{")
    if start != -1:
        depth = 0
        for i in range(start, len(text)):
            if text[i] == "{":
                depth += 1
            elif text[i] == "}":
                depth -= 1
                if depth == 0:
                    try:
                        return json.loads(text[start : i + 1])
                    except json.JSONDecodeError:
                        break

    return None
