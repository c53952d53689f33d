from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Make the trajet_api package importable when running tests from a checkout
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from trajet_api.core import config as core_config  # noqa: E402
from trajet_api.db import models  # noqa: E402
from trajet_api.db import session as db_session  # noqa: E402
import trajet_api.services.account_service as account_service  # noqa: E402


def _reset_caches() -> None:
    core_config.get_settings.cache_clear()
    db_session.get_engine.cache_clear()
    db_session._get_sessionmaker.cache_clear()  # type: ignore[attr-defined]


@pytest.fixture()
def db_env(tmp_path, monkeypatch):
    """Point DATABASE_URL at a temporary SQLite file and reset settings/engine caches."""
    db_file = tmp_path / "test.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_file}")
    monkeypatch.setenv("JWT_SECRET", "test-secret")
    monkeypatch.setenv("PUBLIC_BASE_URL", "https://trajet.test")
    _reset_caches()

    engine = db_session.get_engine()
    models.Base.metadata.drop_all(bind=engine)
    models.Base.metadata.create_all(bind=engine)

    yield db_file

    models.Base.metadata.drop_all(bind=engine)
    engine.dispose()
    _reset_caches()


class Outbox:
    """Records emails instead of sending them; ``fail`` simulates an SMTP outage."""

    def __init__(self) -> None:
        self.sent: list[dict] = []
        self.fail = False

    def __call__(self, subject, to_email, html_body, text_body=None) -> bool:
        if self.fail:
            return False
        self.sent.append({"subject": subject, "to": to_email, "html": html_body, "text": text_body})
        return True

    @property
    def last(self) -> dict:
        return self.sent[-1]


@pytest.fixture()
def outbox(monkeypatch) -> Outbox:
    box = Outbox()
    monkeypatch.setattr(account_service, "send_email", box)
    return box
