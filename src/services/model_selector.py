"""모델 선택 휴리스틱 + 폴백 정책

입력 텍스트만으로 결정하는 정적 규칙. 상태 없음.
"""

import re

from src.constants import Limits
from src.schemas.translation import TranslationModel

# 한자, 히라가나, 가타카나, 한글
_DENSE_SCRIPT = re.compile(r"[\u4e00-\u9fff\u3040-\u309f\u30a0-\u30ff\uac00-\ud7af]")


def has_dense_script(text: str) -> bool:
    """토큰화 밀도가 높은 CJK 문자 포함 여부"""
    return _DENSE_SCRIPT.search(text) is not None


def select_model(text: str) -> TranslationModel:
    """100단어 초과 또는 CJK 포함 시 고품질 모델, 그 외 빠른 모델"""
    word_count = len(text.split())
    if word_count > Limits.FAST_MODEL_MAX_WORDS or has_dense_script(text):
        return TranslationModel.QUALITY
    return TranslationModel.FAST


def fallback_for(model: TranslationModel) -> TranslationModel | None:
    """실패 시 재시도할 모델. 고품질 모델은 폴백 없음 (1회 한정)"""
    if model == TranslationModel.FAST:
        return TranslationModel.QUALITY
    return None
