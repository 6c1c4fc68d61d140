from typing import Any

from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from listing_worker.database.connection import get_connection
from listing_worker.database.models import Subject
from listing_worker.tasks.exceptions import SubjectNotFoundError


class SubjectRepository:
    """Database operations for the listing_subjects table."""

    def find_by_id(self, subject_id: int) -> Subject | None:
        """Find a subject by ID. Returns None when the row is gone."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT id, name, category_id, description, reference_url,
                           package_contents, price, image_urls, analysis_result, status
                    FROM listing_subjects
                    WHERE id = %s
                    """,
                    (subject_id,),
                )
                row = cur.fetchone()

        if row is None:
            return None

        return Subject(
            id=row["id"],
            name=row["name"],
            category_id=row["category_id"],
            description=row["description"] or "",
            reference_url=row["reference_url"] or "",
            package_contents=row["package_contents"] or "",
            price=float(row["price"]) if row["price"] is not None else None,
            image_urls=list(row["image_urls"] or []),
            analysis_result=row["analysis_result"],
            status=row["status"],
        )

    def save_analysis_result(self, subject_id: int, analysis_result: dict[str, Any]) -> None:
        """Persist the analysis payload (attributes, texts, quality) of a subject.

        Raises:
            SubjectNotFoundError: if no subject with this ID exists.
        """
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE listing_subjects
                    SET analysis_result = %s, updated_at = NOW()
                    WHERE id = %s
                    """,
                    (Jsonb(analysis_result), subject_id),
                )
                if cur.rowcount == 0:
                    raise SubjectNotFoundError(f"Subject {subject_id} not found")
            conn.commit()

    def update_status(self, subject_id: int, status: str) -> None:
        """Set the listing status of a subject.

        Raises:
            SubjectNotFoundError: if no subject with this ID exists.
        """
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE listing_subjects
                    SET status = %s, updated_at = NOW()
                    WHERE id = %s
                    """,
                    (status, subject_id),
                )
                if cur.rowcount == 0:
                    raise SubjectNotFoundError(f"Subject {subject_id} not found")
            conn.commit()
