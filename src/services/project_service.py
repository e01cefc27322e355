"""Project membership lookups and capability resolution.

Every authorization decision of the status gate and the verification ledger
goes through resolve_capability, so role rules live in one place.
"""

import logging

from src.core import db_client
from src.core.db_client import sanitize_param
from src.core.logging import span
from src.domain.project import Capability, Project, ProjectMember, ProjectRole


logger = logging.getLogger(__name__)

_APPROVER_ROLES = (ProjectRole.OWNER, ProjectRole.MANAGER)


async def get_project(*, project_id: str) -> Project:
    """Load a project together with its members in membership order.

    Raises:
        RecordNotFoundError: If the project does not exist
    """
    with span("project_service.get_project"):
        record = await db_client.get_record(collection="projects", record_id=project_id)
        member_rows = await db_client.list_all_records(
            collection="project_members",
            filter_query=f'project_id = "{sanitize_param(project_id)}"',
            sort="id ASC",
        )
        members = [ProjectMember(user_id=row["user_id"], role=row["role"]) for row in member_rows]
        return Project(
            id=record["id"],
            workspace_id=record["workspace_id"],
            title=record["title"],
            created_by=record["created_by"],
            members=members,
        )


def resolve_capability(*, user_id: str, project: Project) -> Capability:
    """Resolve what a user may do in a project.

    Membership rows are authoritative; a user without one has no capability.
    """
    for member in project.members:
        if member.user_id == user_id:
            return Capability(member.role.value)
    return Capability.NONE


def find_approver(*, project: Project, exclude_user_id: str | None = None) -> str | None:
    """Pick the approver for a verification request.

    Returns the first member in membership order holding the owner or manager
    role, skipping ``exclude_user_id``; None if the project has no such member.
    """
    for member in project.members:
        if member.role in _APPROVER_ROLES and member.user_id != exclude_user_id:
            return member.user_id
    return None

