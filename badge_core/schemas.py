"""
Pydantic models for upstream GitHub repository snapshots.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from badge_core.constants import MAX_REPOSITORY_TOPICS, ROLES


class AccountRef(BaseModel):
    """A GitHub user or organization reference."""

    model_config = ConfigDict(extra="ignore")

    login: str
    id: Optional[int] = None


class RepositorySnapshot(BaseModel):
    """
    Upstream repository detail as returned by GET /repositories/{id}.

    `user_role` is not part of the GitHub payload; callers that already know
    the importing user's role may set it.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: int
    name: str
    full_name: str
    owner: AccountRef
    description: Optional[str] = None
    language: Optional[str] = None
    private: bool = False
    html_url: Optional[str] = None
    clone_url: Optional[str] = None
    default_branch: Optional[str] = "main"
    stargazers_count: int = 0
    forks_count: int = 0
    topics: List[str] = Field(default_factory=list)
    user_role: Optional[str] = Field(default=None, alias="userRole")

    @field_validator("topics")
    @classmethod
    def cap_topics(cls, v: List[str]) -> List[str]:
        return v[:MAX_REPOSITORY_TOPICS]

    @field_validator("user_role")
    @classmethod
    def validate_role(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in ROLES:
            raise ValueError(f"user_role must be one of {ROLES}")
        return v


__all__ = ["AccountRef", "RepositorySnapshot"]
