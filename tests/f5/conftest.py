"""Fixtures for F5 tests - Web API, CLI and configuration."""

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from progression.config.app_config import clear_config_cache
from progression.web.api import create_app

CATALOG_YAML = """
course:
  id: course-py
  title: Python 101
lessons:
  - id: lesson-1
    title: Variables
    assessment:
      id: quiz-1
      minimum_passing_score: 70
      max_attempts: 2
  - id: lesson-2
    title: Loops
enrollments:
  - student-1
"""


@pytest.fixture(autouse=True)
def fresh_config(monkeypatch):
    """Each test loads configuration from scratch."""
    monkeypatch.delenv("PROGRESSION_DB_PATH", raising=False)
    clear_config_cache()
    yield
    clear_config_cache()


@pytest.fixture
def client(engine, sample_course):
    """Test client over an isolated engine."""
    with TestClient(create_app(engine)) as test_client:
        yield test_client


@pytest.fixture
def catalog_file(tmp_path) -> Path:
    path = tmp_path / "course.yaml"
    path.write_text(CATALOG_YAML, encoding="utf-8")
    return path


@pytest.fixture
def cli_db(tmp_path) -> Path:
    return tmp_path / "cli" / "progression.db"
