# Copyright (c) 2025 Bytedance Ltd. and/or its affiliates
# SPDX-License-Identifier: MIT

"""HTTP surface of the voice assistant: conversation, wake word and agent endpoints.

The FastAPI application lives in :mod:`src.server.app` and is not imported
here so the conversation store can be used without the web stack.
"""
