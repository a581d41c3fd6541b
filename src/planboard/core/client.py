"""text generation client using claude-agent-sdk.

the assistant endpoint only needs ``complete(prompt) -> str``; tests use
MockClient so no request ever leaves the machine.
"""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

from claude_agent_sdk import (
    ClaudeAgentOptions,
    ClaudeSDKClient,
)

logger = logging.getLogger(__name__)


# --- configuration ---

MAX_ATTEMPTS = 3
RETRY_BASE_SECONDS = 1.0  # wait before retry n is RETRY_BASE_SECONDS * n
MIN_RESPONSE_CHARS = 50
DEFAULT_MODEL = "sonnet"


@runtime_checkable
class ClientProtocol(Protocol):
    """protocol for text generation clients (real or mock)."""

    async def complete(self, prompt: str) -> str:
        """send prompt and return response."""
        ...


class MockClient:
    """mock client for testing without api calls."""

    def __init__(self, responses: Optional[dict[str, str]] = None, delay: float = 0.0):
        """init with optional response mapping.

        responses: dict mapping prompt substrings to responses.
        if prompt contains key (case-insensitive), return value.
        delay: simulated api delay in seconds.
        """
        self.responses = responses or {}
        self.calls: list[str] = []
        self.delay = delay
        self.default_response = (
            "## mock guidance\n\nthis is a simulated response from mock mode.\n\n"
            "- review the connections\n- refine the goals\n- fill in empty sections"
        )

    async def __aenter__(self) -> MockClient:
        return self

    async def __aexit__(self, *args) -> None:
        pass

    async def complete(self, prompt: str) -> str:
        """return mock response based on prompt."""
        self.calls.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)

        prompt_lower = prompt.lower()
        for key, response in self.responses.items():
            if key.lower() in prompt_lower:
                return response
        return self.default_response


class ClaudeClient:
    """async client for claude using claude-agent-sdk.

    creates a fresh connection per query and retries failed or too-short
    responses with a linear backoff.
    """

    def __init__(
        self,
        cwd: Optional[Path] = None,
        model: str = DEFAULT_MODEL,
        max_attempts: int = MAX_ATTEMPTS,
        retry_base: float = RETRY_BASE_SECONDS,
    ):
        self.cwd = cwd or Path.cwd()
        self.model = model
        self.max_attempts = max_attempts
        self.retry_base = retry_base

    async def __aenter__(self) -> ClaudeClient:
        return self

    async def __aexit__(self, *args) -> None:
        pass

    async def complete(self, prompt: str) -> str:
        """send a prompt, retrying up to ``max_attempts`` times.

        raises RuntimeError with the last failure once attempts run out.
        """
        last_error: Optional[Exception] = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                text = await self._query(prompt)
                if len(text.strip()) < MIN_RESPONSE_CHARS:
                    raise ValueError("generated response is too short or empty")
                return text
            except Exception as e:
                last_error = e
                logger.warning(f"claude request failed (attempt {attempt}/{self.max_attempts}): {e}")
                if attempt < self.max_attempts:
                    await asyncio.sleep(self.retry_base * attempt)

        raise RuntimeError(f"claude api error after {self.max_attempts} attempts: {last_error}") from last_error

    async def _query(self, prompt: str) -> str:
        # clear API key so the SDK uses subscription auth
        os.environ.pop("ANTHROPIC_API_KEY", None)

        options = ClaudeAgentOptions(
            cwd=str(self.cwd),
            model=self.model,
            tools=[],
            allowed_tools=[],
        )
        client: Optional[ClaudeSDKClient] = None
        try:
            client = ClaudeSDKClient(options)
            await client.connect()
            await client.query(prompt)

            text_parts: list[str] = []
            async for event in client.receive_response():
                if hasattr(event, "message") and hasattr(event.message, "content"):
                    for block in event.message.content:
                        if hasattr(block, "text"):
                            text_parts.append(block.text)
                elif hasattr(event, "content") and isinstance(event.content, list):
                    for block in event.content:
                        if hasattr(block, "text"):
                            text_parts.append(block.text)
                        elif isinstance(block, dict) and "text" in block:
                            text_parts.append(block["text"])

            logger.debug(f"collected {len(text_parts)} text parts")
            return "\n".join(text_parts)
        finally:
            if client:
                try:
                    await client.disconnect()
                except Exception as e:
                    logger.debug(f"ignoring disconnect error: {e}")
