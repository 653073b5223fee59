"""Tests for accent- and case-insensitive label matching."""

import pytest

from src.services.booking.text_matcher import contains_any, match_score, matches, normalize


class TestNormalize:
    """Test label normalization."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("Cardiología", "cardiologia"),
            ("  MEDICINA   General \n", "medicina general"),
            ("Exámenes", "examenes"),
            ("Maipú", "maipu"),
            ("", ""),
            (None, ""),
        ],
    )
    def test_normalize(self, raw, expected):
        """Accents, case and whitespace runs are folded away."""
        assert normalize(raw) == expected

    @pytest.mark.parametrize("raw", ["Dra. Ana  Soto", "Ñuñoa", "  Reservar 09:15 ", "ÁÉÍÓÚ"])
    def test_normalize_is_idempotent(self, raw):
        """Normalizing twice gives the same result as once."""
        assert normalize(normalize(raw)) == normalize(raw)


class TestMatches:
    """Test label matching."""

    def test_accent_and_case_insensitive(self):
        """Accented labels match unaccented requests."""
        assert matches("Cardiología", "cardiologia")

    def test_containment_either_direction(self):
        """A label matches when either side contains the other."""
        assert matches("Lunes 18 de noviembre", "18 de noviembre")
        assert matches("Consultas", "Consultas médicas")

    def test_different_labels_do_not_match(self):
        """Unrelated labels do not match."""
        assert not matches("Dermatología", "Cardiología")

    @pytest.mark.parametrize("candidate, target", [("", "Consultas"), ("Consultas", ""), (None, None)])
    def test_empty_never_matches(self, candidate, target):
        """An empty label never matches, not even another empty one."""
        assert not matches(candidate, target)

    def test_whitespace_only_never_matches(self):
        """Whitespace normalizes to empty and never matches."""
        assert not matches("   ", "Consultas")


class TestMatchScore:
    """Test match ranking."""

    def test_exact_beats_containment(self):
        """An exact label scores above a containing one."""
        assert match_score("Acepto", "acepto") == 2
        assert match_score("No acepto", "Acepto") == 1

    def test_no_match_scores_zero(self):
        """Unrelated labels score zero."""
        assert match_score("Cancelar", "Acepto") == 0
        assert match_score("", "Acepto") == 0


class TestContainsAny:
    """Test marker detection."""

    def test_marker_found_after_normalization(self):
        """Markers are compared against the normalized text."""
        assert contains_any("Martes 19 de noviembre — SIN HORAS", ["sin horas"])

    def test_no_marker(self):
        """Text without markers is not flagged."""
        assert not contains_any("Lunes 18 de noviembre", ["sin horas"])
