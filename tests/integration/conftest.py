import os
from collections.abc import Generator
from pathlib import Path
from typing import Any

import psycopg
import pytest
from psycopg.types.json import Jsonb

from listing_worker.config.settings import Settings
from listing_worker.database.connection import close_pool, get_connection, init_pool

SCHEMA_PATH = Path(__file__).parent / "schema.sql"
TEST_CATEGORY_ID = 990001


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "listings_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
        with get_connection() as conn:
            conn.execute(SCHEMA_PATH.read_text(encoding="utf-8"))
            conn.commit()
    except Exception as e:
        close_pool()
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to run.")
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def integration_cleanup(
    integration_pool: None,
) -> Generator[list[tuple[str, int]], None, None]:
    cleanup: list[tuple[str, int]] = []
    yield cleanup
    with get_connection() as conn:
        with conn.cursor() as cur:
            for table, row_id in cleanup:
                if table == "analysis_tasks":
                    cur.execute("DELETE FROM analysis_tasks WHERE id = %s", (row_id,))
            for table, row_id in cleanup:
                if table == "listing_subjects":
                    cur.execute("DELETE FROM analysis_tasks WHERE subject_id = %s", (row_id,))
                    cur.execute("DELETE FROM listing_subjects WHERE id = %s", (row_id,))
            cur.execute(
                "DELETE FROM category_attributes WHERE category_id = %s", (TEST_CATEGORY_ID,)
            )
        conn.commit()


@pytest.fixture
def seed_catalog(
    db_conn: psycopg.Connection[Any],
    integration_cleanup: list[tuple[str, int]],
) -> int:
    rows = [
        (1, "Цвет товара", "string", True, Jsonb(["черный", "белый"]), 1),
        (2, "Материал корпуса", "string", False, None, 2),
        (3, "Вес", "number", False, None, 3),
    ]
    with db_conn.cursor() as cur:
        cur.executemany(
            """
            INSERT INTO category_attributes
            (id, category_id, name, type, is_required, allowed_values, sort_order)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (category_id, id) DO NOTHING
            """,
            [(r[0], TEST_CATEGORY_ID, *r[1:]) for r in rows],
        )
    db_conn.commit()
    return TEST_CATEGORY_ID


@pytest.fixture
def seed_subject(
    db_conn: psycopg.Connection[Any],
    integration_cleanup: list[tuple[str, int]],
    seed_catalog: int,
) -> int:
    with db_conn.cursor() as cur:
        cur.execute(
            """
            INSERT INTO listing_subjects (name, category_id, description, price, image_urls)
            VALUES (%s, %s, %s, %s, %s)
            RETURNING id
            """,
            ("Smart Watch X5", seed_catalog, "Waterproof smart watch", 129.9, []),
        )
        row = cur.fetchone()
        assert row is not None
        subject_id = row[0]
    db_conn.commit()
    integration_cleanup.append(("listing_subjects", subject_id))
    return subject_id
