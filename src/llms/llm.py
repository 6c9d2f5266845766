# Copyright (c) 2025 Bytedance Ltd. and/or its affiliates
# SPDX-License-Identifier: MIT

import logging
from typing import Dict, Literal

from langchain_core.language_models import BaseChatModel
from langchain_openai import ChatOpenAI

from src.config.loader import get_optional_str_env

logger = logging.getLogger(__name__)

LLMType = Literal["basic"]

_llm_cache: Dict[LLMType, BaseChatModel] = {}


def _create_llm_use_env(llm_type: LLMType) -> BaseChatModel:
    prefix = f"{llm_type.upper()}_MODEL__"
    model = get_optional_str_env(f"{prefix}MODEL")
    if not model:
        raise ValueError(f"LLM type '{llm_type}' is not configured: set {prefix}MODEL")

    kwargs = {"model": model}
    base_url = get_optional_str_env(f"{prefix}BASE_URL")
    if base_url:
        kwargs["base_url"] = base_url
    api_key = get_optional_str_env(f"{prefix}API_KEY")
    if api_key:
        kwargs["api_key"] = api_key

    logger.info("Creating %s LLM with model %s", llm_type, model)
    return ChatOpenAI(**kwargs)


def get_llm_by_type(llm_type: LLMType) -> BaseChatModel:
    """Get LLM instance by type. Returns cached instance if available."""
    if llm_type in _llm_cache:
        return _llm_cache[llm_type]

    llm = _create_llm_use_env(llm_type)
    _llm_cache[llm_type] = llm
    return llm


def clear_llm_cache() -> None:
    _llm_cache.clear()
