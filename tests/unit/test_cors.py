"""Tests for CORS origin validation."""

import pytest

from web.cors import validate_cors_origins


class TestValidateCorsOrigins:
    """Test origin parsing per environment."""

    def test_development_keeps_localhost(self):
        """Local origins are allowed outside production."""
        origins = validate_cors_origins("http://localhost:5173, http://127.0.0.1:3000", "development")

        assert origins == ["http://localhost:5173", "http://127.0.0.1:3000"]

    def test_production_drops_localhost(self):
        """Local origins are removed in production."""
        origins = validate_cors_origins(
            "https://agenda.example.cl,http://localhost:5173", "production"
        )

        assert origins == ["https://agenda.example.cl"]

    def test_production_wildcard(self):
        """A wildcard is refused in production."""
        with pytest.raises(ValueError):
            validate_cors_origins("*", "production")

    def test_staging_drops_wildcard(self):
        """Non-relaxed environments drop the wildcard."""
        assert validate_cors_origins("*,https://a.cl", "staging") == ["https://a.cl"]

    def test_empty(self):
        """Blank entries are ignored."""
        assert validate_cors_origins(" , ", "testing") == []
