from typing import Generic, List, TypeVar
from pydantic import BaseModel, Field

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    items: List[T] = Field(default_factory=list)
    total: int = Field(0, description="Number of matching items across all pages")
    page: int = Field(1, description="1-based page number")
    page_size: int
    total_pages: int = Field(0, description="ceil(total / page_size)")
