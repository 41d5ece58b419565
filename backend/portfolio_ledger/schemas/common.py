from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel

# 账本内部全程使用 Decimal，输出 JSON 时转成数字而不是字符串
JsonDecimal = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class CamelModel(BaseModel):
    """Response models serialised with camelCase keys (``averagePrice``, ``totalCost``...)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
