"""파이프라인 데이터 모델

Preprocessing → TextRecognition → Translation → Rendering 전체에서 사용하는 공통 스키마
"""

import math
from enum import StrEnum
from typing import Self

from pydantic import BaseModel, Field, computed_field, model_validator

from src.schemas.base import BaseSchema
from src.schemas.translation import TranslationModel


class BBox(BaseModel):
    """바운딩 박스 [x1, y1, x2, y2]

    유효성:
    - x1 <= x2, y1 <= y2 보장 (자동 정렬)
    - 모든 좌표는 0 이상
    """

    x1: float
    y1: float
    x2: float
    y2: float

    @model_validator(mode="after")
    def validate_and_normalize(self) -> Self:
        if self.x1 > self.x2:
            self.x1, self.x2 = self.x2, self.x1
        if self.y1 > self.y2:
            self.y1, self.y2 = self.y2, self.y1

        self.x1 = max(0.0, self.x1)
        self.y1 = max(0.0, self.y1)
        self.x2 = max(0.0, self.x2)
        self.y2 = max(0.0, self.y2)

        return self

    @classmethod
    def from_list(cls, coords: list[float]) -> "BBox":
        """[x1, y1, x2, y2] 리스트에서 BBox 생성

        Raises:
            ValueError: 좌표 개수가 4개가 아니거나 NaN/Inf가 포함된 경우
        """
        if len(coords) != 4:
            raise ValueError(f"BBox requires 4 coordinates, got {len(coords)}")

        for i, c in enumerate(coords):
            if math.isnan(c) or math.isinf(c):
                raise ValueError(f"Coordinate {i} is NaN or Inf")

        return cls(x1=coords[0], y1=coords[1], x2=coords[2], y2=coords[3])

    def to_list(self) -> list[float]:
        return [self.x1, self.y1, self.x2, self.y2]


class OcrRegion(BaseSchema):
    """OCR로 인식된 텍스트 영역 (원본 이미지 기준 px)"""

    text: str
    bounding_box: BBox


class OcrResult(BaseSchema):
    full_text: str
    regions: list[OcrRegion] = Field(default_factory=list)


class PipelineStage(StrEnum):
    """진행률 보고 단계. 각 단계는 전체 진행률의 1/4을 차지한다."""

    PREPROCESSING = "preprocessing"
    TEXT_RECOGNITION = "text_recognition"
    TRANSLATION = "translation"
    RENDERING = "rendering"


STAGE_ORDER: tuple[PipelineStage, ...] = tuple(PipelineStage)


class PipelineState(StrEnum):
    """파이프라인 상태 머신 상태"""

    PREPROCESSING = "preprocessing"
    TEXT_RECOGNITION = "text_recognition"
    TRANSLATION = "translation"
    RENDERING = "rendering"
    DONE = "done"
    ERROR = "error"


class PipelineProgress(BaseSchema):
    stage: PipelineStage
    fraction: float = Field(ge=0.0, le=1.0)
    message: str | None = None
    current: int | None = None  # 배치 실행 시 현재 페이지 (1부터)
    total: int | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def overall(self) -> float:
        """전체 진행률 [0, 1]

        단계별 실제 비용과 무관하게 모든 단계를 0.25씩 균등 배분한다.
        """
        return STAGE_ORDER.index(self.stage) * 0.25 + self.fraction * 0.25


class PipelineResult(BaseSchema):
    """파이프라인 최종 결과"""

    job_id: str
    content_id: str
    original_text: str
    translated_text: str
    regions: list[OcrRegion] = Field(default_factory=list)
    model_used: TranslationModel
    tokens_used: int = 0
    confidence: float = 0.9
    from_cache: bool = False
