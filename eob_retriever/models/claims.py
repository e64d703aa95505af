# eob_retriever/models/claims.py
import enum
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

from eob_retriever.core.config import PORTAL_DATE_PATTERN


class Credentials(BaseModel):
    login_url: str
    user_id: str
    password: str = Field(repr=False)

    class Config:
        frozen = True


class DateRange(BaseModel):
    start_date: str  # MM/DD/YYYY
    end_date: str  # MM/DD/YYYY

    @field_validator("start_date", "end_date")
    @classmethod
    def _check_format(cls, value: str) -> str:
        if not PORTAL_DATE_PATTERN.match(value):
            raise ValueError(f"expected MM/DD/YYYY, got '{value}'")
        return value

    class Config:
        frozen = True


class ClaimRow(BaseModel):
    """Raw cell text for one results row. A None field means the cell was not found."""
    claim_number: Optional[str] = None
    service_date: Optional[str] = None
    link_href: Optional[str] = None


class ClaimLink(BaseModel):
    filename: str
    url: str

    class Config:
        frozen = True


class SessionCookie(BaseModel):
    name: str
    value: str

    class Config:
        frozen = True


class DownloadStatusEnum(str, enum.Enum):
    SUCCESS = "Success"
    NETWORK_ERROR = "Network_Error"
    HTTP_ERROR = "HTTP_Error"
    WRITE_ERROR = "Write_Error"
    INVALID_URL = "Invalid_URL"


class DownloadResult(BaseModel):
    link: ClaimLink
    status: DownloadStatusEnum
    file_path: Optional[str] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == DownloadStatusEnum.SUCCESS


class RetrievalSummary(BaseModel):
    total_records: int = 0
    results: List[DownloadResult] = Field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.succeeded)

    @property
    def failed(self) -> int:
        return len(self.results) - self.succeeded

    @property
    def written_paths(self) -> List[str]:
        return [r.file_path for r in self.results if r.succeeded and r.file_path]

    def describe(self) -> str:
        return f"{self.succeeded} succeeded, {self.failed} failed (of {len(self.results)} links, {self.total_records} records reported)"
