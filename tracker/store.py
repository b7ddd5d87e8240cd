"""
tracker/store.py -- SQLAlchemy-backed persistence layer for projects, tasks and comments.

Uses SQLAlchemy Core (not ORM) so the domain dataclasses in tracker/models.py
remain the authoritative domain representation. Swapping SQLite for
PostgreSQL is a connection string change, not a rewrite.

Pattern: Repository + Data Mapper. TrackerStore is the repository (one clean
interface per entity). The _row_to_* functions are the mappers.

The store does not check that referenced users, projects or tasks exist --
that is TaskService's job, done before any insert. Every mutation is a single
statement committed on its own connection, except delete_task() which removes
a task and its comments in one transaction.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = TrackerStore("sqlite:///taskboard.db")
    project_id = store.create_project(Project(title="Launch", description="Q3", created_by=1))
    task_id = store.create_task(Task(title="Draft roadmap", description="...", assigned_to=2, project_id=project_id))
    store.list_project_tasks(project_id, status=TaskStatus.done)
    store.close()
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, func, select
from sqlalchemy.engine import Engine

from tracker.models import Comment, Project, Task, TaskPriority, TaskStatus

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_projects = Table(
    "projects",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(255), nullable=False),
    Column("description", Text, nullable=False),
    Column("created_by", Integer, nullable=False),
    Column("created_at", String(32), nullable=False),
)

_tasks = Table(
    "tasks",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(255), nullable=False),
    Column("description", Text, nullable=False),
    Column("assigned_to", Integer, nullable=False),
    Column("project_id", Integer, nullable=False, index=True),
    Column("status", String(20), nullable=False, server_default=TaskStatus.pending.value),
    Column("priority", String(10), nullable=False, server_default=TaskPriority.medium.value),
    Column("created_at", String(32), nullable=False),
)

_comments = Table(
    "comments",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("task_id", Integer, nullable=False, index=True),
    Column("author_id", Integer, nullable=False),
    Column("body", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
)

# Columns update_task() may write. id, project_id and created_at are fixed at insert.
_TASK_MUTABLE_COLUMNS = frozenset({"title", "description", "assigned_to", "status", "priority"})


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _enum_value(value):
    return value.value if hasattr(value, "value") else value


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class TrackerStore:
    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            # SQLite requires check_same_thread=False when used from FastAPI's
            # threadpool, where one connection may be touched from several threads.
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def create_project(self, project: Project) -> int:
        """Insert a new project and return its assigned database ID."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _projects.insert().values(
                    title=project.title,
                    description=project.description,
                    created_by=project.created_by,
                    created_at=_now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_project(self, project_id: int) -> Optional[Project]:
        """Fetch a single project by ID. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_projects.select().where(_projects.c.id == project_id)).fetchone()
        return _row_to_project(row) if row is not None else None

    def list_projects(self) -> list[Project]:
        """Return every project in creation order."""
        with self.engine.connect() as conn:
            rows = conn.execute(_projects.select().order_by(_projects.c.id)).fetchall()
        return [_row_to_project(r) for r in rows]

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def create_task(self, task: Task) -> int:
        """Insert a new task and return its assigned database ID."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _tasks.insert().values(
                    title=task.title,
                    description=task.description,
                    assigned_to=task.assigned_to,
                    project_id=task.project_id,
                    status=_enum_value(task.status),
                    priority=_enum_value(task.priority),
                    created_at=_now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_task(self, task_id: int) -> Optional[Task]:
        with self.engine.connect() as conn:
            row = conn.execute(_tasks.select().where(_tasks.c.id == task_id)).fetchone()
        return _row_to_task(row) if row is not None else None

    def list_tasks(self) -> list[Task]:
        """Return every task, newest first."""
        with self.engine.connect() as conn:
            rows = conn.execute(_tasks.select().order_by(_tasks.c.created_at.desc(), _tasks.c.id.desc())).fetchall()
        return [_row_to_task(r) for r in rows]

    def list_project_tasks(
        self,
        project_id: int,
        assigned_to: Optional[int] = None,
        priority: Optional[TaskPriority] = None,
        status: Optional[TaskStatus] = None,
    ) -> list[Task]:
        """Return a project's tasks matching every given filter, newest first.

        A filter left as None does not constrain the result. Ties on
        created_at are broken by id so the order is stable.
        """
        stmt = _tasks.select().where(_tasks.c.project_id == project_id)
        if assigned_to is not None:
            stmt = stmt.where(_tasks.c.assigned_to == assigned_to)
        if priority is not None:
            stmt = stmt.where(_tasks.c.priority == _enum_value(priority))
        if status is not None:
            stmt = stmt.where(_tasks.c.status == _enum_value(status))
        stmt = stmt.order_by(_tasks.c.created_at.desc(), _tasks.c.id.desc())
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [_row_to_task(r) for r in rows]

    def update_task(self, task_id: int, **fields) -> bool:
        """Update mutable fields on an existing task.

        Accepts any subset of: title, description, assigned_to, status,
        priority. Enum values are stored by value. Unknown keys raise
        ValueError rather than being silently dropped.

        Returns True if a row was updated, False if task_id was not found.
        """
        unknown = set(fields) - _TASK_MUTABLE_COLUMNS
        if unknown:
            raise ValueError(f"Unknown task fields: {sorted(unknown)!r}")
        values = {k: _enum_value(v) for k, v in fields.items()}
        with self.engine.connect() as conn:
            result = conn.execute(_tasks.update().where(_tasks.c.id == task_id).values(**values))
            conn.commit()
        return result.rowcount > 0

    def delete_task(self, task_id: int) -> bool:
        """Delete a task and its comments. Returns False if the task did not exist."""
        with self.engine.begin() as conn:
            result = conn.execute(_tasks.delete().where(_tasks.c.id == task_id))
            if result.rowcount == 0:
                return False
            conn.execute(_comments.delete().where(_comments.c.task_id == task_id))
        return True

    def count_tasks(self) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_tasks)).scalar()
        return result or 0

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------

    def create_comment(self, comment: Comment) -> int:
        """Append a comment and return its ID."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _comments.insert().values(
                    task_id=comment.task_id,
                    author_id=comment.author_id,
                    body=comment.body,
                    created_at=_now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_comment(self, comment_id: int) -> Optional[Comment]:
        with self.engine.connect() as conn:
            row = conn.execute(_comments.select().where(_comments.c.id == comment_id)).fetchone()
        return _row_to_comment(row) if row is not None else None

    def list_comments(self, task_id: int) -> list[Comment]:
        """Return all comments on a task, oldest first."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _comments.select()
                .where(_comments.c.task_id == task_id)
                .order_by(_comments.c.created_at, _comments.c.id)
            ).fetchall()
        return [_row_to_comment(r) for r in rows]

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            return conn.execute(select(1)).scalar() == 1

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern -- DB row -> domain dataclass)
# ---------------------------------------------------------------------------


def _row_to_project(row) -> Project:
    return Project(
        id=row.id,
        title=row.title,
        description=row.description,
        created_by=row.created_by,
        created_at=row.created_at,
    )


def _row_to_task(row) -> Task:
    return Task(
        id=row.id,
        title=row.title,
        description=row.description,
        assigned_to=row.assigned_to,
        project_id=row.project_id,
        status=TaskStatus(row.status),
        priority=TaskPriority(row.priority),
        created_at=row.created_at,
    )


def _row_to_comment(row) -> Comment:
    return Comment(
        id=row.id,
        task_id=row.task_id,
        author_id=row.author_id,
        body=row.body,
        created_at=row.created_at,
    )
