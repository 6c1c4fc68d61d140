from typing import Any

from psycopg.rows import dict_row

from listing_worker.database.connection import get_connection
from listing_worker.reconciliation.models import NUMBER_TYPE, STRING_TYPE, AttributeDefinition


class CatalogRepository:
    """Read-only lookup of attribute definitions from the category_attributes table."""

    def lookup(self, category_id: int) -> list[AttributeDefinition]:
        """Return every attribute definition of a category.

        Required attributes come first, then catalog sort order. An unknown
        category yields an empty list.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT id, name, type, is_required, allowed_values
                    FROM category_attributes
                    WHERE category_id = %s
                    ORDER BY is_required DESC, sort_order, id
                    """,
                    (category_id,),
                )
                rows = cur.fetchall()
        return [_to_definition(row) for row in rows]


def _to_definition(row: dict[str, Any]) -> AttributeDefinition:
    return AttributeDefinition(
        id=row["id"],
        name=row["name"],
        type=NUMBER_TYPE if row["type"] == NUMBER_TYPE else STRING_TYPE,
        required=bool(row["is_required"]),
        allowed_values=[str(value) for value in row["allowed_values"] or []],
    )
