# portfolio/schemas/common.py
from typing import Generic, Optional, TypeVar
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

DataT = TypeVar("DataT")

class CamelModel(BaseModel):
    """JSON bodies use camelCase keys; Python code uses snake_case."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        coerce_numbers_to_str=True,
    )

class ApiResponse(CamelModel, Generic[DataT]):
    success: bool = True
    data: Optional[DataT] = None
    message: Optional[str] = None

class MessageResponse(CamelModel):
    success: bool = True
    message: str
