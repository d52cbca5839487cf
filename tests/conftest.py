import os
import tempfile
from datetime import date

import pytest

# Keep log files and settings out of the project and the user's home
_tmp_root = tempfile.mkdtemp(prefix="schedcal-tests-")
os.environ["SCHEDCAL_LOG_DIR"] = os.path.join(_tmp_root, "logs")
os.environ["SCHEDCAL_SETTINGS_FILE"] = os.path.join(_tmp_root, "settings.json")

from schedcal.event_models import Course, SemesterWindow  # noqa: E402
from schedcal.settings_manager import AppConfig  # noqa: E402


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in ("OPENAI_API_KEY", "apiKey", "USE_STUB", "SCHEDCAL_TIME_ZONE", "GOOGLE_ACCESS_TOKEN"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("SCHEDCAL_SETTINGS_FILE", str(tmp_path / "settings.json"))


@pytest.fixture
def config():
    return AppConfig(sync_workers=1)


@pytest.fixture
def window():
    # 2024-01-03 is a Wednesday
    return SemesterWindow(date(2024, 1, 3), date(2024, 5, 1))


def make_course(course_id="1", days=("Mon", "Wed"), start="10:00", end="11:30", **kwargs):
    return Course(
        id=course_id,
        code=kwargs.get("code", "CS 101"),
        name=kwargs.get("name", "Intro to Computer Science"),
        start_time=start,
        end_time=end,
        days=list(days),
        location=kwargs.get("location", "Science Hall 101"),
    )


class FakeCalendar:
    """Records inserts; raises the error queued for a given summary."""

    def __init__(self, token="token", failures=None):
        self.token = token
        self.failures = failures or {}
        self.inserted = []

    def ensure_authorized(self):
        from schedcal.errors import AuthFailure

        if not self.token:
            raise AuthFailure("No token", reason="missing_token")

    def insert_event(self, payload, calendar_id="primary"):
        error = self.failures.get(payload["summary"])
        if error is not None:
            raise error
        self.inserted.append((calendar_id, payload))
        return f"evt{len(self.inserted)}"
