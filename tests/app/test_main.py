import pytest

from cronus import main as entrypoint
from cronus.config.loader import DEFAULT_CONFIG_DIR


@pytest.fixture(autouse=True)
def _no_dotenv(monkeypatch):
    monkeypatch.setattr("cronus.config.loader.load_dotenv", lambda: None)
    for name in ("TELEGRAM_BOT_TOKEN", "TELEGRAM_CHAT_ID", "CALENDAR_IDS", "CALENDAR_ID", "APP_ENV"):
        monkeypatch.delenv(name, raising=False)


def test_missing_transport_credentials_exit_non_zero():
    assert entrypoint.main(["--config", str(DEFAULT_CONFIG_DIR / "dev.yaml"), "--once"]) == 1


def test_dry_run_once_runs_both_pipelines(monkeypatch):
    calls = []

    async def fake_digest(ctx):
        calls.append("digest")

    async def fake_threshold(ctx):
        calls.append("threshold")

    monkeypatch.setattr(entrypoint, "build_context", lambda config, dry_run: object())
    monkeypatch.setattr(entrypoint, "run_digest_job", fake_digest)
    monkeypatch.setattr(entrypoint, "run_threshold_job", fake_threshold)

    assert entrypoint.main(["--dry-run", "--once"]) == 0
    assert sorted(calls) == ["digest", "threshold"]
