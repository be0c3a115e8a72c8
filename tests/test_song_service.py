"""End-to-end tests for the song service with a fake catalog and an in-memory DB."""

from __future__ import annotations

import pytest

from songscout.core.song_service import build_service
from songscout.models.bulk_match import BulkMatchStatus
from songscout.models.config import AppConfig
from songscout.utils.constants import ITUNES_SEARCH_URL
from songscout.utils.errors import InvalidInput

from conftest import itunes_track, make_response


@pytest.fixture
def catalog_results() -> list:
    """Mutable list of raw iTunes results the fake catalog returns."""
    return []


@pytest.fixture
def service(db, session, catalog_results, reference):
    def fake_get(url, params=None, timeout=None, **kwargs):
        assert url == ITUNES_SEARCH_URL
        return make_response({"resultCount": len(catalog_results), "results": list(catalog_results)})

    session.get.side_effect = fake_get
    config = AppConfig(
        songsterr_enabled=False,
        musicbrainz_enabled=False,
        catalog_rate_limit=0,
        enrichment_workers=2,
    )
    return build_service(config, db, reference=reference, session=session)


class TestSearch:
    def test_ranked_and_enriched(self, service, catalog_results):
        catalog_results.extend([
            itunes_track("Everlong", "Everlong Piano Tribute", 2, artworkUrl100="https://example.test/2.jpg"),
            itunes_track("Everlong", "Foo Fighters", 1, artworkUrl100="https://example.test/1.jpg"),
        ])
        results = service.search("everlong")

        assert len(results) == 2
        top = results[0]
        assert top.artist == "Foo Fighters"
        assert (top.bpm, top.tuning, top.tuning_source) == (158, "drop_d", "fallback")
        assert top.album_artwork == "https://example.test/1.jpg"
        assert top.id is None

    def test_stored_songs_come_first_without_duplicates(self, service, catalog_results):
        stored = service.create_song({"title": "Everlong", "artist": "Foo Fighters"})
        catalog_results.extend([
            itunes_track("Everlong", "Foo Fighters", 1),
            itunes_track("Everlong (Live)", "Foo Fighters", 2),
        ])

        results = service.search("everlong")

        assert [(s.title, s.id) for s in results] == [("Everlong", stored.id), ("Everlong (Live)", None)]
        # The stored row was backfilled on the way through
        assert results[0].tuning == "drop_d"

    def test_empty_catalog_is_empty_result(self, service):
        assert service.search("no such song anywhere") == []

    @pytest.mark.parametrize("query", [None, "", "   "])
    def test_blank_query_rejected(self, service, query):
        with pytest.raises(InvalidInput):
            service.search(query)


class TestCreateSong:
    def test_defaults(self, service):
        song = service.create_song({"title": "Some Riff", "artist": "Garage Band"})
        assert song.id is not None
        assert (song.is_live, song.tuning, song.tuning_source, song.bpm) == (False, "standard", "default", None)

    def test_echoes_artwork(self, service):
        song = service.create_song({
            "title": "Everlong", "artist": "Foo Fighters",
            "album_artwork": "https://example.test/art.jpg",
        })
        assert song.album_artwork == "https://example.test/art.jpg"

    def test_upsert_not_duplicate(self, service, db):
        first = service.create_song({"title": "Everlong", "artist": "Foo Fighters", "bpm": 158})
        second = service.create_song({"title": "everlong", "artist": "FOO FIGHTERS"})
        assert first.id == second.id
        assert second.bpm == 158
        assert db.connection.execute("SELECT COUNT(*) FROM songs").fetchone()[0] == 1

    @pytest.mark.parametrize("payload", [{"title": "Everlong"}, {"artist": "Foo Fighters"}, {"title": " ", "artist": "x"}])
    def test_title_and_artist_required(self, service, payload):
        with pytest.raises(InvalidInput):
            service.create_song(payload)

    def test_unknown_tuning_rejected(self, service):
        with pytest.raises(InvalidInput):
            service.create_song({"title": "Everlong", "artist": "Foo Fighters", "tuning": "banjo"})

    def test_bad_bpm_rejected(self, service):
        with pytest.raises(InvalidInput):
            service.create_song({"title": "Everlong", "artist": "Foo Fighters", "bpm": "fast"})


class TestConfirmTuning:
    def test_confirmation_applied_and_kept(self, service):
        song = service.create_song({"title": "Everlong", "artist": "Foo Fighters"})
        confirmed = service.confirm_tuning(song.id, "open_d", user_id="u1", band_id="b1")
        assert (confirmed.tuning, confirmed.tuning_source) == ("open_d", "user")

        # Neither cleanup nor the search backfill undoes a user's choice
        assert service.cleanup_tunings() == (1, 0)

    def test_unknown_tuning(self, service):
        song = service.create_song({"title": "Everlong", "artist": "Foo Fighters"})
        with pytest.raises(InvalidInput):
            service.confirm_tuning(song.id, "banjo")

    def test_unknown_song(self, service):
        with pytest.raises(InvalidInput):
            service.confirm_tuning(12345, "drop_d")


class TestMaintenance:
    def test_cleanup_tunings(self, service):
        service.create_song({"title": "Everlong", "artist": "Foo Fighters"})
        service.create_song({"title": "Hotel California", "artist": "Eagles"})
        assert service.cleanup_tunings() == (2, 1)
        assert service.cleanup_tunings() == (2, 0)

    def test_backfill_durations(self, service, catalog_results):
        song = service.create_song({"title": "Everlong", "artist": "Foo Fighters"})
        catalog_results.append(itunes_track("Everlong", "Foo Fighters", 1, millis=250_000))

        outcome = service.backfill_durations(song_id=song.id)
        assert outcome.duration_seconds == 250

        report = service.backfill_durations()
        assert report.processed == 0

    def test_bulk_durations(self, service, catalog_results):
        catalog_results.append(itunes_track("Everlong", "Foo Fighters", 1, millis=250_000))
        progress = []
        results = service.bulk_durations(
            [{"artist": "Foo Fighters", "title": "Everlong"}],
            progress_callback=lambda done, total, result: progress.append(done),
        )
        assert results[0].status is BulkMatchStatus.FOUND
        assert results[0].duration_seconds == 250
        assert progress == [1]
        assert service.bulk.summary.found == 1
