"""Query cache admin schemas."""

from pydantic import BaseModel, model_validator


class CacheInvalidateRequest(BaseModel):
    """Exactly one of key / prefix, or neither to clear everything."""

    key: str | None = None
    prefix: str | None = None

    @model_validator(mode="after")
    def _one_target(self) -> "CacheInvalidateRequest":
        if self.key is not None and self.prefix is not None:
            raise ValueError("give either key or prefix, not both")
        return self


class CacheInvalidateResponse(BaseModel):
    removed: int
    remaining: int
