"""Tests for loading the versioned YAML data assets."""

from __future__ import annotations

import shutil

import pytest

from songscout.core.reference_data import DATA_DIR, load_reference_data


class TestBundledData:
    def test_every_table_has_a_version(self, reference):
        assert set(reference.versions) == {
            "chart_hits", "bpm_fallbacks", "tuning_fallbacks", "artists", "songsterr_tunings",
        }
        assert all(reference.versions.values())

    def test_chart_keys_are_normalized(self, reference):
        assert reference.chart_entries("help")
        assert "help!" not in reference.chart_hits

    def test_blackout_has_two_chart_runs(self, reference):
        artists = {entry.artist for entry in reference.chart_entries("blackout")}
        assert artists == {"Linkin Park", "Britney Spears"}

    def test_fallback_lookups_normalize_title(self, reference):
        assert reference.fallback_bpm("Bohemian Rhapsody") == 72
        assert reference.fallback_tuning("EVERLONG") == "drop_d"
        assert reference.fallback_tuning("Hotel California") is None

    def test_artist_sets_normalized(self, reference):
        assert "acdc" in reference.popular_artists
        assert "guns n roses" in reference.legendary_artists

    def test_songsterr_map_loaded(self, reference):
        assert reference.songsterr_exact["D A D G B E"] == "drop_d"
        assert ("Drop D", "drop_d") in reference.songsterr_patterns


class TestValidation:
    @pytest.fixture
    def data_copy(self, tmp_path):
        target = tmp_path / "data"
        shutil.copytree(DATA_DIR, target)
        return target

    def test_loads_from_custom_directory(self, data_copy):
        data = load_reference_data(data_copy)
        assert data.fallback_bpm("bohemian rhapsody") == 72

    def test_unknown_tuning_label_rejected(self, data_copy):
        (data_copy / "tuning_fallbacks.yaml").write_text(
            'version: "test"\ntunings:\n  "some song": banjo_tuning\n', encoding="utf-8"
        )
        with pytest.raises(ValueError, match="banjo_tuning"):
            load_reference_data(data_copy)

    def test_non_mapping_rejected(self, data_copy):
        (data_copy / "artists.yaml").write_text("- just\n- a list\n", encoding="utf-8")
        with pytest.raises(ValueError):
            load_reference_data(data_copy)

    def test_missing_file(self, data_copy):
        (data_copy / "bpm_fallbacks.yaml").unlink()
        with pytest.raises(FileNotFoundError):
            load_reference_data(data_copy)
