"""Error response models."""

from pydantic import BaseModel


class ErrorDetail(BaseModel):
    """Human-readable message plus a stable machine-readable code."""

    message: str
    code: str


class ErrorResponse(BaseModel):
    """Failure envelope shared by every endpoint."""

    success: bool = False
    data: ErrorDetail

    @classmethod
    def build(cls, message: str, code: str) -> "ErrorResponse":
        return cls(data=ErrorDetail(message=message, code=code))
