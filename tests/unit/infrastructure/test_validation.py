"""Tests for request validation."""

from __future__ import annotations

import pytest

from cehennemarr.domain.errors import ValidationError
from cehennemarr.infrastructure.site.validation import (
    is_valid_episode_number,
    is_valid_imdb_id,
    validate_request,
)


class TestIsValidImdbId:
    @pytest.mark.parametrize("value", ["tt0499549", "tt12345678", "tt0000001"])
    def test_valid(self, value: str) -> None:
        assert is_valid_imdb_id(value) is True

    @pytest.mark.parametrize(
        "value",
        ["invalid", "tt123", "tt123456789", "TT0499549", " tt0499549", "", None, 499549],
    )
    def test_invalid(self, value: object) -> None:
        assert is_valid_imdb_id(value) is False


class TestIsValidEpisodeNumber:
    @pytest.mark.parametrize("value", [1, 999, "1", " 12 "])
    def test_valid(self, value: object) -> None:
        assert is_valid_episode_number(value) is True

    @pytest.mark.parametrize("value", [0, -1, 1000, "0", "abc", "1.5", "²", "١", 2.0, True, None])
    def test_invalid(self, value: object) -> None:
        assert is_valid_episode_number(value) is False


class TestValidateRequest:
    def test_movie_ok(self) -> None:
        validate_request("movie", "tt0499549")

    def test_episode_ok(self) -> None:
        validate_request("series", "tt5753856", 1, "2")

    def test_missing_id(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_request("movie", "")
        assert exc_info.value.field == "imdb_id"
        assert exc_info.value.message == "IMDb ID gerekli"

    def test_malformed_id(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_request("movie", "tt123")
        assert exc_info.value.field == "imdb_id"
        assert exc_info.value.value == "tt123"

    def test_bad_type(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_request("anime", "tt0499549")
        assert exc_info.value.field == "type"

    @pytest.mark.parametrize(("season", "episode", "field"), [(0, 1, "season"), (1, 1000, "episode")])
    def test_out_of_range(self, season: int, episode: int, field: str) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_request("series", "tt5753856", season, episode)
        assert exc_info.value.field == field

    def test_id_checked_before_type(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_request("anime", "bad")
        assert exc_info.value.field == "imdb_id"

    @pytest.mark.parametrize(("season", "episode", "field"), [("²", "1", "season"), ("1", "²", "episode")])
    def test_non_ascii_digits_are_validation_errors(
        self, season: str, episode: str, field: str
    ) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_request("series", "tt0499549", season, episode)
        assert exc_info.value.field == field
