"""Tests for configuration loading and validation logic in main.py."""

from __future__ import annotations

import pytest

from songscout.main import build_parser, load_config, validate_config
from songscout.models.config import AppConfig
from songscout.utils.constants import (
    CATALOG_TIMEOUT_SECONDS,
    DEFAULT_BULK_CONFIDENT_SCORE,
    FUZZY_MATCH_THRESHOLD,
    MAX_SEARCH_RESULTS,
)


class TestValidateConfig:
    def test_valid_config_produces_no_warnings(self):
        config = {
            "catalog_timeout": 5,
            "lookup_timeout": 8.0,
            "max_results": 10,
            "fuzzy_threshold": 85,
            "bulk_min_match_score": 100,
            "bulk_confident_score": 400,
        }
        assert validate_config(config) == []

    def test_empty_config(self):
        """Empty config should produce no warnings (uses defaults)."""
        assert validate_config({}) == []

    def test_non_positive_timeout_reset(self):
        config = {"catalog_timeout": 0}
        warnings = validate_config(config)
        assert any("catalog_timeout" in w for w in warnings)
        assert config["catalog_timeout"] == CATALOG_TIMEOUT_SECONDS

    def test_non_numeric_timeout_reset(self):
        config = {"catalog_timeout": "fast"}
        validate_config(config)
        assert config["catalog_timeout"] == CATALOG_TIMEOUT_SECONDS

    def test_max_results_must_be_positive_int(self):
        config = {"max_results": -1}
        warnings = validate_config(config)
        assert any("max_results" in w for w in warnings)
        assert config["max_results"] == MAX_SEARCH_RESULTS

    def test_fuzzy_threshold_out_of_range(self):
        config = {"fuzzy_threshold": 150}
        warnings = validate_config(config)
        assert any("fuzzy_threshold" in w for w in warnings)
        assert config["fuzzy_threshold"] == FUZZY_MATCH_THRESHOLD

    def test_negative_bulk_score_reset(self):
        config = {"bulk_confident_score": -5}
        validate_config(config)
        assert config["bulk_confident_score"] == DEFAULT_BULK_CONFIDENT_SCORE

    def test_confident_below_minimum_swaps(self):
        config = {"bulk_min_match_score": 500, "bulk_confident_score": 200}
        warnings = validate_config(config)
        assert any("Swapping" in w for w in warnings)
        assert config["bulk_min_match_score"] == 200
        assert config["bulk_confident_score"] == 500

    def test_bool_is_not_a_number(self):
        config = {"spotify_timeout": True}
        assert validate_config(config)


class TestLoadConfig:
    def test_reads_yaml(self, tmp_path, monkeypatch):
        monkeypatch.delenv("SPOTIFY_CLIENT_ID", raising=False)
        monkeypatch.delenv("SPOTIFY_CLIENT_SECRET", raising=False)
        path = tmp_path / "config.yaml"
        path.write_text("max_results: 7\nlog_level: DEBUG\n", encoding="utf-8")
        assert load_config(path) == {"max_results": 7, "log_level": "DEBUG"}

    def test_missing_file_is_empty(self, tmp_path, monkeypatch):
        monkeypatch.delenv("SPOTIFY_CLIENT_ID", raising=False)
        monkeypatch.delenv("SPOTIFY_CLIENT_SECRET", raising=False)
        assert load_config(tmp_path / "nope.yaml") == {}

    def test_environment_overrides_credentials(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text('spotify_client_id: "from-file"\n', encoding="utf-8")
        monkeypatch.setenv("SPOTIFY_CLIENT_ID", "from-env")
        monkeypatch.setenv("SPOTIFY_CLIENT_SECRET", "secret")

        config = AppConfig.from_dict(load_config(path))
        assert config.spotify_client_id == "from-env"
        assert config.spotify_configured


class TestAppConfig:
    def test_unknown_keys_ignored(self):
        config = AppConfig.from_dict({"max_results": 3, "future_option": True})
        assert config.max_results == 3

    def test_none_values_keep_defaults(self):
        assert AppConfig.from_dict({"log_file": None}).log_file is None
        assert AppConfig.from_dict({"max_results": None}).max_results == MAX_SEARCH_RESULTS

    def test_to_dict_round_trip(self):
        config = AppConfig(max_results=4, bulk_confident_score=450)
        assert AppConfig.from_dict(config.to_dict()) == config

    def test_log_file_defaults_beside_database(self, tmp_path):
        config = AppConfig(db_path=str(tmp_path / "data" / "catalog.db"))
        assert config.log_path_resolved == (tmp_path / "data" / "songscout.log").resolve()

    def test_log_file_override_and_disable(self, tmp_path):
        assert AppConfig(log_file=str(tmp_path / "x.log")).log_path_resolved == (tmp_path / "x.log").resolve()
        assert AppConfig(log_to_file=False).log_path_resolved is None

    def test_spotify_needs_both_credentials(self):
        assert not AppConfig(spotify_client_id="id").spotify_configured


class TestParser:
    def test_subcommands(self):
        parser = build_parser()
        args = parser.parse_args(["search", "hotel california", "--json"])
        assert (args.command, args.query, args.json) == ("search", "hotel california", True)

        args = parser.parse_args(["add", "--title", "Everlong", "--artist", "Foo Fighters", "--bpm", "158"])
        assert args.bpm == 158

        args = parser.parse_args(["backfill-durations", "--batch-size", "3"])
        assert args.batch_size == 3

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])
