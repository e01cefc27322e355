"""SQLite schema management (code-first approach)."""

import logging

from src.core import db_client


logger = logging.getLogger(__name__)

_NOW = "(strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))"

# Central list of all collections in the schema, in dependency order
COLLECTIONS = [
    "workspaces",
    "projects",
    "project_members",
    "tasks",
    "task_assignees",
    "verifications",
    "notifications",
    "activity_logs",
]

# User ids come from the identity layer and are stored as opaque text
_TABLES: dict[str, str] = {
    "workspaces": f"""
        CREATE TABLE IF NOT EXISTS workspaces (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            created_by TEXT,
            created TEXT NOT NULL DEFAULT {_NOW}
        )
    """,
    "projects": f"""
        CREATE TABLE IF NOT EXISTS projects (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            workspace_id INTEGER NOT NULL REFERENCES workspaces (id),
            title TEXT NOT NULL,
            created_by TEXT NOT NULL,
            created TEXT NOT NULL DEFAULT {_NOW}
        )
    """,
    "project_members": f"""
        CREATE TABLE IF NOT EXISTS project_members (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            project_id INTEGER NOT NULL REFERENCES projects (id),
            user_id TEXT NOT NULL,
            role TEXT NOT NULL CHECK (role IN ('owner', 'manager', 'contributor', 'viewer')),
            created TEXT NOT NULL DEFAULT {_NOW},
            UNIQUE (project_id, user_id)
        )
    """,
    "tasks": f"""
        CREATE TABLE IF NOT EXISTS tasks (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            project_id INTEGER NOT NULL REFERENCES projects (id),
            title TEXT NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            status TEXT NOT NULL DEFAULT 'To Do'
                CHECK (status IN ('To Do', 'In Progress', 'Testing', 'Done')),
            is_archived INTEGER NOT NULL DEFAULT 0,
            requires_verification INTEGER NOT NULL DEFAULT 0,
            pending_verification INTEGER REFERENCES verifications (id),
            created_by TEXT,
            created TEXT NOT NULL DEFAULT {_NOW},
            updated TEXT NOT NULL DEFAULT {_NOW}
        )
    """,
    "task_assignees": f"""
        CREATE TABLE IF NOT EXISTS task_assignees (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            task_id INTEGER NOT NULL REFERENCES tasks (id),
            user_id TEXT NOT NULL,
            created TEXT NOT NULL DEFAULT {_NOW},
            UNIQUE (task_id, user_id)
        )
    """,
    "verifications": f"""
        CREATE TABLE IF NOT EXISTS verifications (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            task_id INTEGER NOT NULL REFERENCES tasks (id),
            project_id INTEGER NOT NULL REFERENCES projects (id),
            workspace_id INTEGER NOT NULL REFERENCES workspaces (id),
            requested_by TEXT NOT NULL,
            requested_for TEXT NOT NULL,
            current_status TEXT NOT NULL,
            requested_status TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'pending' CHECK (status IN ('pending', 'approved', 'rejected')),
            reason TEXT,
            verified_at TEXT,
            verified_by TEXT,
            verification_notes TEXT,
            created TEXT NOT NULL DEFAULT {_NOW}
        )
    """,
    "notifications": f"""
        CREATE TABLE IF NOT EXISTS notifications (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            recipient_id TEXT NOT NULL,
            sender_id TEXT NOT NULL,
            type TEXT NOT NULL,
            title TEXT NOT NULL,
            message TEXT NOT NULL,
            data TEXT NOT NULL DEFAULT '{{}}',
            is_read INTEGER NOT NULL DEFAULT 0,
            read_at TEXT,
            workspace_id TEXT NOT NULL,
            created TEXT NOT NULL DEFAULT {_NOW}
        )
    """,
    "activity_logs": f"""
        CREATE TABLE IF NOT EXISTS activity_logs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id TEXT NOT NULL,
            action TEXT NOT NULL,
            resource_type TEXT NOT NULL,
            resource_id TEXT NOT NULL,
            description TEXT NOT NULL,
            metadata TEXT NOT NULL DEFAULT '{{}}',
            created TEXT NOT NULL DEFAULT {_NOW}
        )
    """,
}

_INDEXES = [
    # Storage-level guarantee of a single pending verification per task
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_verifications_pending_task ON verifications (task_id) "
    "WHERE status = 'pending'",
    "CREATE INDEX IF NOT EXISTS idx_verifications_requested_for ON verifications (requested_for, status)",
    "CREATE INDEX IF NOT EXISTS idx_verifications_requested_by ON verifications (requested_by, status)",
    "CREATE INDEX IF NOT EXISTS idx_notifications_recipient ON notifications (recipient_id, is_read, created)",
    "CREATE INDEX IF NOT EXISTS idx_notifications_workspace ON notifications (workspace_id, created)",
    "CREATE INDEX IF NOT EXISTS idx_activity_resource ON activity_logs (resource_id, created)",
]


async def init_db(*, db_path: str | None = None) -> None:
    """Create all tables and indexes if they do not exist yet (idempotent)."""
    conn = await db_client.get_connection(db_path=db_path)

    for collection in COLLECTIONS:
        await conn.execute(_TABLES[collection])
    for index in _INDEXES:
        await conn.execute(index)
    await conn.commit()

    logger.info("SQLite schema initialized", extra={"collections": len(COLLECTIONS)})
