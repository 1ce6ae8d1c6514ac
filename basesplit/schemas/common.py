from pydantic import BaseModel
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class QueryResult(BaseModel, Generic[T]):
    """Uniform result of a query-layer call: data on success, error text and code otherwise."""
    data: Optional[T] = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None
