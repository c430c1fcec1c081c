from __future__ import annotations

from pathlib import Path  # noqa: TC003

import pytest

from sawitsync.config import (
    ConfigurationError,
    MissingConfigurationError,
    get_database_config,
    get_import_config,
    get_sawitrack_config,
    get_storage_config,
    require_env_vars,
)
from sawitsync.config.importing import DEFAULT_CHUNK_SIZE, DEFAULT_SIMILARITY_THRESHOLD
from sawitsync.domain.model import UnresolvedPolicy
from sawitsync.domain.similarity import SimilarityMetric

_IMPORT_VARS = (
    "SAWITSYNC_CHUNK_SIZE",
    "SAWITSYNC_CONCURRENCY",
    "SAWITSYNC_SIMILARITY_THRESHOLD",
    "SAWITSYNC_SIMILARITY_METRIC",
    "SAWITSYNC_UNRESOLVED_POLICY",
    "SAWITSYNC_WRITE_ATTEMPTS",
    "SAWITSYNC_RETRY_DELAY_SECONDS",
    "SAWITSYNC_WRITE_TIMEOUT_SECONDS",
)


@pytest.fixture
def clean_import_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in _IMPORT_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_require_env_vars_raises_when_blank(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "   ")
    monkeypatch.delenv("OTHER_VAR", raising=False)

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["OTHER_VAR", "EXAMPLE_VAR"])

    assert "EXAMPLE_VAR, OTHER_VAR" in str(exc.value)


def test_import_config_defaults(clean_import_env: pytest.MonkeyPatch) -> None:
    config = get_import_config()

    assert config.chunk_size == DEFAULT_CHUNK_SIZE
    assert config.concurrency == 5
    assert config.similarity_threshold == DEFAULT_SIMILARITY_THRESHOLD
    assert config.similarity_metric is SimilarityMetric.LEVENSHTEIN
    assert config.unresolved_policy is UnresolvedPolicy.FAIL
    assert config.write_timeout_seconds is None


def test_import_config_reads_overrides(clean_import_env: pytest.MonkeyPatch) -> None:
    clean_import_env.setenv("SAWITSYNC_CHUNK_SIZE", "20")
    clean_import_env.setenv("SAWITSYNC_SIMILARITY_THRESHOLD", "0.85")
    clean_import_env.setenv("SAWITSYNC_SIMILARITY_METRIC", "Token_Sort")
    clean_import_env.setenv("SAWITSYNC_UNRESOLVED_POLICY", "auto_create")
    clean_import_env.setenv("SAWITSYNC_WRITE_TIMEOUT_SECONDS", "2.5")

    config = get_import_config()

    assert config.chunk_size == 20
    assert config.similarity_threshold == 0.85
    assert config.similarity_metric is SimilarityMetric.TOKEN_SORT
    assert config.unresolved_policy is UnresolvedPolicy.AUTO_CREATE
    assert config.write_timeout_seconds == 2.5


@pytest.mark.parametrize(
    ("name", "value", "message"),
    [
        ("SAWITSYNC_CHUNK_SIZE", "lots", "must be an integer"),
        ("SAWITSYNC_CONCURRENCY", "0", "must be >= 1"),
        ("SAWITSYNC_SIMILARITY_THRESHOLD", "1.5", "within"),
        ("SAWITSYNC_SIMILARITY_METRIC", "soundex", "must be one of"),
    ],
)
def test_import_config_rejects_bad_values(
    clean_import_env: pytest.MonkeyPatch,
    name: str,
    value: str,
    message: str,
) -> None:
    clean_import_env.setenv(name, value)

    with pytest.raises(ConfigurationError, match=message):
        get_import_config()


def test_sawitrack_config_requires_url(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("SAWITRACK_API_URL", raising=False)

    with pytest.raises(MissingConfigurationError, match="SAWITRACK_API_URL"):
        get_sawitrack_config()


def test_sawitrack_config_adds_bearer_token(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SAWITRACK_API_URL", "https://dashboard.example/api/")
    monkeypatch.setenv("SAWITRACK_API_TOKEN", "secret")

    config = get_sawitrack_config()

    assert config.base_url == "https://dashboard.example/api"
    assert config.resilience.base_url == config.base_url
    assert config.resilience.default_headers == {"Authorization": "Bearer secret"}
    assert config.resilience.ratelimit is not None


def test_database_uri_uses_env_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URI", "sqlite:///override.db")

    assert get_database_config().uri == "sqlite:///override.db"


def test_database_uri_falls_back_to_data_dir(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    monkeypatch.delenv("DATABASE_URI", raising=False)
    monkeypatch.setenv("SAWITSYNC_DATA_DIR", str(tmp_path / "data-dir"))

    uri = get_database_config().uri

    expected_path = (tmp_path / "data-dir" / "sawitsync.db").resolve()
    assert uri == f"sqlite+pysqlite:///{expected_path}"
    assert expected_path.parent.exists()
    assert get_storage_config().resolve_data_dir() == expected_path.parent
