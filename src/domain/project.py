"""Project membership models and role enums."""

from enum import StrEnum

from pydantic import BaseModel, Field


class ProjectRole(StrEnum):
    """Role a member holds within a project."""

    OWNER = "owner"
    MANAGER = "manager"
    CONTRIBUTOR = "contributor"
    VIEWER = "viewer"


class Capability(StrEnum):
    """Resolved capability of a user for a project."""

    OWNER = "owner"
    MANAGER = "manager"
    CONTRIBUTOR = "contributor"
    VIEWER = "viewer"
    NONE = "none"

    @property
    def is_privileged(self) -> bool:
        """Owners and managers may change task status without verification."""
        return self in (Capability.OWNER, Capability.MANAGER)


class ProjectMember(BaseModel):
    """Membership row linking a user to a project."""

    user_id: str
    role: ProjectRole


class Project(BaseModel):
    """Project data transfer object with its membership."""

    id: str = Field(..., description="Unique project ID from database")
    workspace_id: str = Field(..., description="Owning workspace ID")
    title: str = Field(..., description="Project title")
    created_by: str = Field(..., description="Creator user ID")
    members: list[ProjectMember] = Field(default_factory=list, description="Members in membership order")
