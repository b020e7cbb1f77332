from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BaseSchema(BaseModel):
    """API 입출력 스키마 공통 베이스 (camelCase 직렬화)"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
