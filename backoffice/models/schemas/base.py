"""
Base schemas used across the application.
"""
from typing import Generic, List, TypeVar
from pydantic import BaseModel

T = TypeVar("T")

class PaginatedResponse(BaseModel, Generic[T]):
    total_rows: int
    total_pages: int
    page: int
    limit: int
    data: List[T]

class DownloadResponse(BaseModel):
    """Accepted report request: the file is produced later by the report worker."""
    message: str
    download_url: str
