"""
Pydantic schemas for request and response validation.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class RepositoryImportRequest(BaseModel):
    """
    Import by GitHub repository id (fetched with the caller's token) or by
    pre-fetched snapshots. Exactly one of the two must be given.
    """

    repository_ids: list[int] | None = Field(default=None, max_length=100)
    repositories: list[dict[str, Any]] | None = Field(default=None, max_length=100)

    @model_validator(mode="after")
    def check_one_source(self) -> "RepositoryImportRequest":
        if (self.repository_ids is None) == (self.repositories is None):
            raise ValueError("Provide exactly one of repository_ids or repositories")
        return self


class ImportedRepository(BaseModel):
    id: int
    name: str
    full_name: str
    role: str
    badge_count: int | None = None


class RepositoryImportResponse(BaseModel):
    success: bool
    imported: list[ImportedRepository] = Field(default_factory=list)
    updated: list[ImportedRepository] = Field(default_factory=list)
    errors: list[dict[str, Any]] = Field(default_factory=list)
    badges_created: int = 0
    error: str | None = None


class RepositoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    github_id: int
    name: str
    full_name: str
    description: str | None = None
    language: str | None = None
    private: bool = False
    url: str | None = None
    default_branch: str | None = None
    stargazers_count: int = 0
    forks_count: int = 0
    topics: list[str] = Field(default_factory=list)
    active: bool = True
    last_sync_at: datetime | None = None


class QueuedTaskResponse(BaseModel):
    status: Literal["queued"] = "queued"
    task_id: str
    repository_id: int


class BadgeSummary(BaseModel):
    id: int
    name: str
    description: str | None = None
    criteria_type: str
    criteria_value: int
    icon: str | None = None
    color: str | None = None
    difficulty: str | None = None


class AwardResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    badge_id: int
    repository_id: int
    awarded_at: datetime
    awarded_by: str
    actual_value: int | None = None
    acknowledged: bool
    acknowledged_at: datetime | None = None


class WebhookResponse(BaseModel):
    status: Literal["ok", "duplicate"]
    delivery_id: str
    event_type: str
    event_id: int | None = None
    awards_given: int = 0
