from __future__ import annotations

from datetime import datetime

import pytest

from classroom_fakes import build_test_container

from src.virtual_classroom.virtual_classroom.core.enums import Role


@pytest.fixture(autouse=True)
def _testing_env(monkeypatch):
    monkeypatch.setenv("APP_ENV", "testing")


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2026, 3, 2, 9, 0, 0)


@pytest.fixture
def container(tmp_path):
    return build_test_container(tmp_path / "uploads")


@pytest.fixture
def teacher(container):
    return container.users_repo.add("Tess Teacher", "tess@example.com", Role.TEACHER)


@pytest.fixture
def other_teacher(container):
    return container.users_repo.add("Otto Teacher", "otto@example.com", Role.TEACHER)


@pytest.fixture
def student(container):
    return container.users_repo.add("Sam Student", "sam@example.com", Role.STUDENT)


@pytest.fixture
def outsider(container):
    """A student who never enrolls in `course`."""
    return container.users_repo.add("Olga Outsider", "olga@example.com", Role.STUDENT)


@pytest.fixture
def course(container, teacher, student):
    course = container.courses_repo.add(teacher, "Algebra I")
    container.enrollments_repo.add(student, course)
    return course


@pytest.fixture
def session(container, course):
    return container.sessions_repo.add(course, "Week 1")
