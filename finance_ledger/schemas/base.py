"""Base schema classes."""

from pydantic import BaseModel, ConfigDict


class BaseResponse(BaseModel):
    """Base for all response schemas with from_attributes config."""

    model_config = ConfigDict(from_attributes=True)
