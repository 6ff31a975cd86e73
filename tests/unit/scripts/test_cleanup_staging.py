from datetime import datetime, timezone
import importlib.util
import io
import os
import sys
from pathlib import Path

from src.campaign_media.media.staging_store import TempStagingStore

PROJECT_ROOT = Path(__file__).resolve().parents[3]
MODULE_PATH = PROJECT_ROOT / "scripts" / "cleanup_staging.py"
SPEC = importlib.util.spec_from_file_location("cleanup_staging_module", MODULE_PATH)
cleanup_staging = importlib.util.module_from_spec(SPEC)
assert SPEC and SPEC.loader
sys.modules["cleanup_staging_module"] = cleanup_staging
SPEC.loader.exec_module(cleanup_staging)

NOW = 1_800_000_000


def _stage_aged(root: Path, request_id: str, age_seconds: int) -> Path:
    store = TempStagingStore(root=root)
    staged = store.stage(io.BytesIO(b"data"), "a.jpg", content_type="image/jpeg", request_id=request_id)
    os.utime(staged.path, (NOW - age_seconds, NOW - age_seconds))
    return staged.path


def test_perform_sweep_dry_run_keeps_files(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("STAGING_DIR", str(tmp_path))
    monkeypatch.setenv("STAGING_TTL_SECONDS", "3600")
    old = _stage_aged(tmp_path, "crashed", 7200)

    summary = cleanup_staging.perform_sweep(
        dry_run=True, reference_time=datetime.fromtimestamp(NOW, tz=timezone.utc)
    )

    assert summary.dry_run is True
    assert summary.files_removed == 1
    assert old.exists()


def test_perform_sweep_removes_expired_files(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("STAGING_DIR", str(tmp_path))
    old = _stage_aged(tmp_path, "crashed", 7200)
    fresh = _stage_aged(tmp_path, "live", 10)

    summary = cleanup_staging.perform_sweep(
        dry_run=False,
        max_age_seconds=600,
        reference_time=datetime.fromtimestamp(NOW, tz=timezone.utc),
    )

    assert summary.files_removed == 1
    assert not old.exists()
    assert fresh.exists()


def test_main_reports_counts(monkeypatch, capsys) -> None:
    monkeypatch.setattr(
        cleanup_staging,
        "perform_sweep",
        lambda **kwargs: cleanup_staging.SweepSummary(files_removed=3, dry_run=kwargs["dry_run"]),
    )

    assert cleanup_staging.main(["--dry-run"]) == 0
    assert "files_expired=3" in capsys.readouterr().out


def test_main_returns_error_code_on_failure(monkeypatch, capsys) -> None:
    def boom(**kwargs):
        raise OSError("staging volume missing")

    monkeypatch.setattr(cleanup_staging, "perform_sweep", boom)

    assert cleanup_staging.main([]) == 2
    assert "staging volume missing" in capsys.readouterr().err
