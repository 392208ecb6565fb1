from __future__ import annotations

from datetime import date, timedelta

import pytest

from class_attendance.container import build_memory_container
from class_attendance.events.publisher import RecordingEventPublisher


@pytest.fixture
def yesterday() -> date:
    return date.today() - timedelta(days=1)


@pytest.fixture
def publisher() -> RecordingEventPublisher:
    return RecordingEventPublisher()


@pytest.fixture
def container(publisher):
    return build_memory_container(publisher=publisher)


@pytest.fixture
def service(container):
    return container.attendance_service
