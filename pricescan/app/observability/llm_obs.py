from __future__ import annotations

import functools
import os
from typing import Any, Awaitable, Callable, Dict, Optional

from langsmith import Client, traceable

from ..core.config import LLMObservabilitySettings, get_settings

_llm_obs_config: Optional[LLMObservabilitySettings] = None
_langsmith_client: Optional[Client] = None


def configure_llm_obs(cfg: LLMObservabilitySettings) -> None:
    """
    Install the LangSmith settings for this process.

    Called by the app factory; drops any client built from earlier settings.
    """
    global _llm_obs_config, _langsmith_client
    _llm_obs_config = cfg
    _langsmith_client = None


def _current_config() -> LLMObservabilitySettings:
    if _llm_obs_config is None:
        return get_settings().llm_obs
    return _llm_obs_config


def get_langsmith_client() -> Optional[Client]:
    """
    Lazily initialize and return a LangSmith client if tracing is enabled
    and an API key is configured.
    """
    global _langsmith_client

    cfg = _current_config()
    if not cfg.tracing_v2 or not cfg.langsmith_api_key:
        return None

    if _langsmith_client is not None:
        return _langsmith_client

    # Ensure LangSmith runtime env aligns with app settings.
    os.environ["LANGSMITH_TRACING"] = "true"
    os.environ["LANGSMITH_PROJECT"] = cfg.langsmith_project or "price-scanner"
    os.environ["LANGSMITH_API_KEY"] = cfg.langsmith_api_key

    _langsmith_client = Client(api_key=cfg.langsmith_api_key)
    return _langsmith_client


def traceable_node(
    name: str,
) -> Callable[[Callable[..., Awaitable[Any]]], Callable[..., Awaitable[Any]]]:
    """
    Decorator factory for async LLM-invoking functions.

    The LangSmith client is looked up on every call, so tracing follows
    whatever `configure_llm_obs` installed last.

    Usage:
        @traceable_node("vision.chat_completion")
        async def complete(...): ...
    """

    def decorator(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        traced_by_client: Dict[int, Callable[..., Awaitable[Any]]] = {}

        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            client = get_langsmith_client()
            if client is None:
                return await func(*args, **kwargs)

            traced = traced_by_client.get(id(client))
            if traced is None:
                traced = traceable(
                    name=name,
                    client=client,
                    project_name=_current_config().langsmith_project or "price-scanner",
                )(func)
                traced_by_client[id(client)] = traced
            return await traced(*args, **kwargs)

        return wrapper

    return decorator
