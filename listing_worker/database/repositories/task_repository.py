from collections.abc import Iterable
from typing import Any

from psycopg import sql
from psycopg.rows import dict_row

from listing_worker.database.connection import get_connection
from listing_worker.database.models import TaskRecord
from listing_worker.tasks.models import TaskStatus

_COLUMNS = (
    "id, subject_id, status, progress, stage_label, error_message, "
    "created_at, updated_at, completed_at"
)

_UPDATABLE_FIELDS = frozenset({
    "status",
    "progress",
    "stage_label",
    "error_message",
    "updated_at",
    "completed_at",
})


class TaskRepository:
    """Database operations for the analysis_tasks table.

    Every update is an independent upsert keyed by task id; no multi-task
    transactions are used.
    """

    def create(self, record: TaskRecord) -> int:
        """Insert a new task and return its generated id."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO analysis_tasks
                        (subject_id, status, progress, stage_label, error_message,
                         created_at, updated_at)
                    VALUES (%s, %s, %s, %s, %s, NOW(), NOW())
                    RETURNING id
                    """,
                    (
                        record.subject_id,
                        record.status.value,
                        record.progress,
                        record.stage_label,
                        record.error_message,
                    ),
                )
                row = cur.fetchone()
            conn.commit()

        if row is None:
            raise RuntimeError("INSERT INTO analysis_tasks returned no id")
        return int(row[0])

    def get(self, task_id: int) -> TaskRecord | None:
        """Find a task by ID."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM analysis_tasks WHERE id = %s",
                    (task_id,),
                )
                row = cur.fetchone()

        if row is None:
            return None
        return _to_record(row)

    def update(self, task_id: int, **fields: Any) -> None:
        """Write the given columns of one task.

        updated_at defaults to NOW() when the caller does not pass it.

        Raises:
            ValueError: if a field is not an updatable column.
        """
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update analysis_tasks columns: {sorted(unknown)}")
        if not fields:
            return

        values = {
            key: value.value if isinstance(value, TaskStatus) else value
            for key, value in fields.items()
        }
        assignments = [
            sql.SQL("{} = {}").format(sql.Identifier(key), sql.Placeholder(key))
            for key in values
        ]
        if "updated_at" not in values:
            assignments.append(sql.SQL("updated_at = NOW()"))
        query = sql.SQL("UPDATE analysis_tasks SET {} WHERE id = {}").format(
            sql.SQL(", ").join(assignments),
            sql.Placeholder("task_id"),
        )

        with get_connection() as conn:
            conn.execute(query, {**values, "task_id": task_id})
            conn.commit()

    def find_by_status_in(self, statuses: Iterable[TaskStatus]) -> list[TaskRecord]:
        """Return all tasks whose status is one of the given values, oldest first."""
        status_values = [status.value for status in statuses]
        if not status_values:
            return []
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_COLUMNS}
                    FROM analysis_tasks
                    WHERE status = ANY(%s)
                    ORDER BY created_at
                    """,
                    (status_values,),
                )
                rows = cur.fetchall()
        return [_to_record(row) for row in rows]


def _to_record(row: dict[str, Any]) -> TaskRecord:
    return TaskRecord(
        id=row["id"],
        subject_id=row["subject_id"],
        status=TaskStatus(row["status"]),
        progress=row["progress"],
        stage_label=row["stage_label"] or "",
        error_message=row["error_message"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        completed_at=row["completed_at"],
    )
