from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AuthorizedKey(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    public_key: str = Field(alias="publicKey", min_length=1)
    comment: str = ""


class AuthorizedKeysUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    public_keys: List[AuthorizedKey] = Field(default_factory=list, alias="publicKeys")


class RestoreRequest(BaseModel):
    backup_location_id: int
    path: str = Field(min_length=1)
    target_client_id: int
    remote_path: str = Field(min_length=1)

    @field_validator("path")
    @classmethod
    def validate_relative_path(cls, v: str) -> str:
        """Restore paths stay inside the job's snapshot directory"""
        if v.startswith(("/", "\\")):
            raise ValueError("path must be relative to the job backup directory")
        if ".." in v.replace("\\", "/").split("/"):
            raise ValueError("path must not contain '..' segments")
        return v


class DeleteBackupsRequest(BaseModel):
    job_id: Optional[int] = None


class QueueEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    job_id: int
    priority: int
    aborted: bool
    created_at: datetime

