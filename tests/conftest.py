from collections.abc import Callable
from datetime import datetime

import pytest

from listing_worker.database.models import Subject
from listing_worker.reconciliation.models import AttributeDefinition
from tests.fakes import FIXED_NOW, FakeTimer, InMemoryTaskStore


@pytest.fixture
def task_store() -> InMemoryTaskStore:
    return InMemoryTaskStore()


@pytest.fixture
def timers() -> list[FakeTimer]:
    return []


@pytest.fixture
def timer_factory(timers: list[FakeTimer]) -> Callable[[float, Callable[[], None]], FakeTimer]:
    def factory(interval: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(interval, callback)
        timers.append(timer)
        return timer

    return factory


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW


@pytest.fixture
def subject() -> Subject:
    return Subject(
        id=10,
        name="Smart Watch X5",
        category_id=7,
        description="Waterproof smart watch with heart rate monitor",
        image_urls=["https://cdn.example.com/x5-front.jpg"],
        price=129.0,
    )


@pytest.fixture
def catalog() -> list[AttributeDefinition]:
    return [
        AttributeDefinition(id=1, name="Цвет товара", required=True),
        AttributeDefinition(id=2, name="Материал корпуса"),
        AttributeDefinition(id=3, name="Диагональ экрана", type="number"),
        AttributeDefinition(id=4, name="Вес", type="number"),
        AttributeDefinition(id=5, name="Бренд", required=True),
    ]
