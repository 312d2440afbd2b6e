from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class UploadStatus(str, Enum):
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class DocumentUploadResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    document_id: str | None = None
    filename: str | None = None
    chunks_created: int = 0
    status: UploadStatus
    message: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def success(cls, document_id: str, filename: str, chunks: int) -> "DocumentUploadResponse":
        return cls(
            document_id=document_id,
            filename=filename,
            chunks_created=chunks,
            status=UploadStatus.SUCCESS,
            message="Document successfully processed and indexed",
        )

    @classmethod
    def failure(cls, filename: str | None, error: str) -> "DocumentUploadResponse":
        return cls(
            document_id=None,
            filename=filename,
            chunks_created=0,
            status=UploadStatus.FAILED,
            message=error,
        )
