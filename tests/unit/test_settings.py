import pytest
from pydantic import ValidationError

from app.config import Settings


class TestSettingsDefaults:
    def test_default_store_backend(self) -> None:
        s = Settings(_env_file=None)
        assert s.store_backend == "memory"

    def test_default_max_upload(self) -> None:
        s = Settings(_env_file=None)
        assert s.max_upload_size_mb == 10
        assert s.max_upload_bytes == 10 * 1024 * 1024

    def test_default_allowed_types(self) -> None:
        s = Settings(_env_file=None)
        assert set(s.allowed_mime_types) == {"image/jpeg", "image/png", "image/webp", "application/pdf"}

    def test_default_extraction_timeout(self) -> None:
        s = Settings(_env_file=None)
        assert s.extraction_timeout_seconds == 30


class TestSettingsFromEnv:
    def test_loads_max_upload(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MAX_UPLOAD_SIZE_MB", "25")
        s = Settings(_env_file=None)
        assert s.max_upload_bytes == 25 * 1024 * 1024

    def test_loads_allowed_types_json(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ALLOWED_MIME_TYPES", '["application/pdf"]')
        s = Settings(_env_file=None)
        assert s.allowed_mime_types == ["application/pdf"]

    def test_loads_extraction_timeout(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("EXTRACTION_TIMEOUT_SECONDS", "2.5")
        s = Settings(_env_file=None)
        assert s.extraction_timeout_seconds == 2.5

    def test_blank_jwt_secret_is_none(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("JWT_SECRET", "   ")
        s = Settings(_env_file=None)
        assert s.jwt_secret is None

    def test_store_backend_normalized(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STORE_BACKEND", " Mongo ")
        s = Settings(_env_file=None)
        assert s.store_backend == "mongo"

    def test_rejects_unknown_store_backend(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STORE_BACKEND", "redis")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)
