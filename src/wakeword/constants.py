# Copyright (c) 2025 Bytedance Ltd. and/or its affiliates
# SPDX-License-Identifier: MIT

CHANNEL_ID = "EnhancedWakeWordServiceChannel"
ACTION_WAKE_WORD_FAILED = "com.blurr.voice.WAKE_WORD_FAILED"

EXTRA_PROJECT_NAME = "projectName"
EXTRA_START_WITH_AI = "startWithAi"

PERMISSION_DENIED_NOTICE = "Microphone permission required for wake word"
