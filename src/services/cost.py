"""토큰/비용 추정

모든 함수는 I/O 없는 순수 함수. 동일 입력에 항상 동일 결과.
"""

import math

from src.schemas.translation import TranslationModel

CHARS_PER_TOKEN = 4

# USD / 1K tokens
COST_PER_1K_TOKENS: dict[TranslationModel, float] = {
    TranslationModel.FAST: 0.000075,
    TranslationModel.QUALITY: 0.0025,
}


def estimate_tokens(text: str) -> int:
    """글자 수 기반 토큰 추정 (약 4글자당 1토큰, 올림)"""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def estimate_cost(model: TranslationModel, tokens: int) -> float:
    return (tokens / 1000) * COST_PER_1K_TOKENS.get(model, 0.0)


def estimate_request_cost(text: str, model: TranslationModel = TranslationModel.FAST) -> float:
    return estimate_cost(model, estimate_tokens(text))
