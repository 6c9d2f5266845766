# Copyright (c) 2025 Bytedance Ltd. and/or its affiliates
# SPDX-License-Identifier: MIT

from .configuration import AgentConfiguration, WakeWordConfiguration
from .loader import get_bool_env, get_int_env, get_str_env

__all__ = [
    "AgentConfiguration",
    "WakeWordConfiguration",
    "get_bool_env",
    "get_int_env",
    "get_str_env",
]
