from typing import Any, List, Optional
from pydantic import BaseModel

# 에러 응답 형태 (OpenAPI 문서용)

class ErrorResponse(BaseModel):
    error: str
    message: str

class FieldError(BaseModel):
    field: str
    message: str
    value: Optional[Any] = None

class ValidationErrorResponse(BaseModel):
    errors: List[FieldError]
    message: str
