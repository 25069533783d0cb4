"""
Unit tests for settings.
"""
import pytest
from pydantic import ValidationError

from charge_system.config import Settings


class TestSettings:
    """Test suite for Settings."""

    @pytest.mark.unit
    def test_defaults(self) -> None:
        settings = Settings(_env_file=None)

        assert settings.default_currency == "BRL"
        assert settings.pix_default_expiry_minutes == 30
        assert settings.boleto_bank_code == "237"
        assert not settings.is_production

    @pytest.mark.unit
    def test_environment_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PIX_DEFAULT_EXPIRY_MINUTES", "60")
        monkeypatch.setenv("APP_ENV", "production")

        settings = Settings(_env_file=None)

        assert settings.pix_default_expiry_minutes == 60
        assert settings.is_production

    @pytest.mark.unit
    def test_log_level_normalized(self) -> None:
        assert Settings(_env_file=None, log_level="debug").log_level == "DEBUG"

    @pytest.mark.unit
    def test_invalid_log_level(self) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, log_level="LOUD")

    @pytest.mark.unit
    @pytest.mark.parametrize("currency", ["US", "R$1", "1234"])
    def test_invalid_default_currency(self, currency: str) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, default_currency=currency)

    @pytest.mark.unit
    def test_allowed_origins_list(self) -> None:
        settings = Settings(_env_file=None, allowed_origins="http://a.test, http://b.test")

        assert settings.get_allowed_origins_list() == ["http://a.test", "http://b.test"]
