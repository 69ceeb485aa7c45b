"""
Aizen Model Caller - timeout-bounded LLM round trips

Every model call in a turn (assessment, composition, tool answers, haiku,
error formatting) goes through one ModelCaller so that:
- the credential is checked before any network call,
- the blocking SDK call runs in an executor under a timeout,
- provider exceptions surface as LLMError with the provider text kept.

No retries: one underlying call per request.
"""

import asyncio
import logging
import time
from typing import Any, Callable, Dict, List, Optional

from errors import ConfigurationError, LLMError
from logging_config import log_llm
from services.json_repair import parse_json_response
from services.llm_client import LLMClient

logger = logging.getLogger(__name__)


class ModelCaller:
    """Runs LLM requests for the chat pipeline.

    The client is created lazily so a missing credential never reaches the
    SDK; tests inject a fake client directly.
    """

    def __init__(self, config, client: Optional[Any] = None, client_factory: Optional[Callable[[], Any]] = None):
        self.config = config
        self._client = client
        self._client_factory = client_factory

    def _get_client(self):
        if self._client is not None:
            return self._client
        if self.config.is_api_key_invalid():
            raise ConfigurationError("GOOGLE_API_KEY is missing or still the placeholder value")
        if self._client_factory:
            self._client = self._client_factory()
        else:
            self._client = LLMClient(
                api_key=self.config.api_key,
                base_url=self.config.llm_base_url,
                timeout=self.config.llm_timeout,
            )
        return self._client

    def get_llm_options(self, temperature: Optional[float] = None) -> Dict[str, Any]:
        options = self.config.get_llm_params()
        if temperature is not None:
            options["temperature"] = temperature
        return options

    async def chat(
        self,
        messages: List[Dict],
        model: Optional[str] = None,
        tools: Optional[List[Dict]] = None,
        format: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> Dict[str, Any]:
        """One chat completion under the configured timeout.

        Raises:
            ConfigurationError: credential missing or placeholder
            LLMError: timeout or provider failure
        """
        client = self._get_client()
        model = model or self.config.model_chat
        timeout_seconds = self.config.llm_timeout
        kwargs = {
            "model": model,
            "messages": messages,
            "tools": tools,
            "options": self.get_llm_options(temperature),
            "format": format,
        }

        loop = asyncio.get_running_loop()
        start_time = time.time()
        log_llm(logger, "start", model=model)
        try:
            response = await asyncio.wait_for(
                loop.run_in_executor(None, lambda: client.chat(**kwargs)), timeout=timeout_seconds
            )
        except asyncio.TimeoutError:
            duration = time.time() - start_time
            logger.warning(f"LLM call timed out after {duration:.2f}s (limit={timeout_seconds}s, model={model})")
            raise LLMError(
                message=f"Model response timed out after {timeout_seconds}s",
                error_type="timeout",
                model=model,
            ) from None
        except (ConfigurationError, LLMError):
            raise
        except Exception as e:
            raise LLMError(message=str(e) or type(e).__name__, model=model) from e

        log_llm(logger, "end", model=model, duration=time.time() - start_time)
        return response

    async def complete_text(
        self,
        system: str,
        prompt: str,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> str:
        """System + user prompt in, stripped assistant text out ("" if none)."""
        response = await self.chat(
            [{"role": "system", "content": system}, {"role": "user", "content": prompt}],
            model=model,
            temperature=temperature,
        )
        return (response.get("message", {}).get("content") or "").strip()

    async def complete_json(
        self,
        system: str,
        prompt: str,
        model: Optional[str] = None,
    ) -> Optional[Any]:
        """Ask for a JSON object; returns the parsed value or None if unparseable."""
        response = await self.chat(
            [{"role": "system", "content": system}, {"role": "user", "content": prompt}],
            model=model,
            format="json",
            temperature=0.0,
        )
        content = response.get("message", {}).get("content") or ""
        return parse_json_response(content)
