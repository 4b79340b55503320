import pytest
from pydantic import ValidationError

from catalog_sync.utils.config_loader import GuardThresholds, SyncConfig, load_sync_config


def test_repo_config_loads_with_defaults():
    cfg = load_sync_config()
    assert cfg.scheduler.min_interval_seconds == 120
    assert cfg.guard.poll_interval_seconds == 60
    assert cfg.guard.thresholds.critical_percent == 85
    assert cfg.transform.default_stock == 100
    assert cfg.transform.fallback_category == "Uncategorized"


def test_partial_yaml_overrides(tmp_path):
    path = tmp_path / "sync.yml"
    path.write_text("scheduler:\n  min_interval_seconds: 30\nreconcile:\n  max_concurrent_writes: 2\n")
    cfg = load_sync_config(path)
    assert cfg.scheduler.min_interval_seconds == 30
    assert cfg.reconcile.max_concurrent_writes == 2
    assert cfg.catalog.environment == "sandbox"


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_sync_config(tmp_path / "nope.yml")


def test_thresholds_must_be_ordered():
    with pytest.raises(ValidationError):
        GuardThresholds(safe_percent=90, critical_percent=80, emergency_percent=95)


def test_invalid_values_rejected():
    with pytest.raises(ValidationError):
        SyncConfig(reconcile={"max_concurrent_writes": 0})
