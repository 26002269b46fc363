"""Unified LLM router using LiteLLM with task-based routing and cost tracking."""

from __future__ import annotations

import logging
import os
import time
from typing import Any, Optional

from litellm import acompletion

from paperforge.config import Settings
from paperforge.errors import LLMConfigurationError, UpstreamError
from paperforge.knowledge_base.db import Database
from paperforge.knowledge_base.models import LLMUsageRecord

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini/gemini-2.5-pro"
DEFAULT_PROVIDER = "gemini"
DEFAULT_API_KEY_ENV = "GEMINI_API_KEY"


class LLMRouter:
    """Routes LLM requests to the model configured for each task type.

    One attempt per request: there is no fallback model and no retry, so a
    failure surfaces to the caller immediately.
    """

    def __init__(self, settings: Optional[Settings] = None, db: Optional[Database] = None):
        self.settings = settings or Settings()
        self.db = db

    def _get_provider_config(self, provider_name: str) -> dict:
        """Get provider-level config (api_base, api_key) by provider name."""
        providers = self.settings.section("providers")
        provider = providers.get(provider_name, {})
        result = {}
        if "api_base" in provider:
            result["api_base"] = provider["api_base"]
        api_key_env = provider.get("api_key_env", DEFAULT_API_KEY_ENV)
        key = os.environ.get(api_key_env)
        if key:
            result["api_key"] = key
        if "api_key" in provider:
            result["api_key"] = provider["api_key"]
        return result

    def get_route(self, task_type: str) -> dict:
        """Get the routing config for a task type."""
        routes = self.settings.section("routing")
        if task_type in routes:
            return routes[task_type]
        return self.settings.section("defaults")

    def ensure_configured(self, task_type: str) -> None:
        """Raise :class:`LLMConfigurationError` when no API key is available."""
        route = self.get_route(task_type)
        provider_name = route.get("provider") or DEFAULT_PROVIDER
        if "api_key" not in self._get_provider_config(provider_name):
            raise LLMConfigurationError(f"API key not configured for provider '{provider_name}'")

    async def complete(
        self,
        task_type: str,
        messages: list[dict[str, str]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        **kwargs: Any,
    ) -> Any:
        """Send a completion request to the model routed for ``task_type``."""
        route = self.get_route(task_type)
        model = route.get("primary", DEFAULT_MODEL)
        temp = temperature if temperature is not None else route.get("temperature", 0.7)
        max_tok = max_tokens if max_tokens is not None else route.get("max_tokens", 8192)

        self.ensure_configured(task_type)
        provider_kwargs = self._get_provider_config(route.get("provider") or DEFAULT_PROVIDER)

        # Caller kwargs take precedence
        merged_kwargs = {**provider_kwargs, **kwargs}
        return await self._call_model(
            model=model,
            task_type=task_type,
            messages=messages,
            temperature=temp,
            max_tokens=max_tok,
            **merged_kwargs,
        )

    async def _call_model(
        self,
        model: str,
        task_type: str,
        messages: list[dict[str, str]],
        temperature: float,
        max_tokens: int,
        **kwargs: Any,
    ) -> Any:
        """Make a single LLM call with usage tracking."""
        start_time = time.time()
        success = False
        response = None
        try:
            response = await acompletion(
                model=model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
                **kwargs,
            )
            success = True
            return response
        except Exception as e:
            logger.error("LLM call to %s failed: %s", model, e)
            raise UpstreamError(str(e) or "LLM provider error") from e
        finally:
            latency_ms = int((time.time() - start_time) * 1000)
            self._track_usage(
                model=model,
                task_type=task_type,
                response=response,
                latency_ms=latency_ms,
                success=success,
            )

    def _track_usage(
        self,
        model: str,
        task_type: str,
        response: Any,
        latency_ms: int,
        success: bool,
    ) -> None:
        """Record LLM usage to the database for cost tracking."""
        if self.db is None:
            return

        prompt_tokens = 0
        completion_tokens = 0
        cost_usd = 0.0

        if response and hasattr(response, "usage") and response.usage:
            prompt_tokens = getattr(response.usage, "prompt_tokens", 0) or 0
            completion_tokens = getattr(response.usage, "completion_tokens", 0) or 0

        if response and hasattr(response, "_hidden_params"):
            hidden = response._hidden_params or {}
            if hidden.get("response_cost") is not None:
                cost_usd = hidden["response_cost"]

        record = LLMUsageRecord(
            model=model,
            task_type=task_type,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
            cost_usd=cost_usd,
            latency_ms=latency_ms,
            success=success,
        )

        try:
            self.db.insert_llm_usage(record)
        except Exception:
            logger.exception("Failed to record LLM usage for %s", model)

    def get_response_text(self, response: Any) -> str:
        """Extract text content from an LLM response."""
        if response and response.choices:
            return response.choices[0].message.content or ""
        return ""

    def get_usage_summary(self) -> dict:
        """Get accumulated usage/cost summary."""
        if self.db is None:
            return {}
        return self.db.get_llm_usage_summary()
