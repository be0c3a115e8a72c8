"""Named constants for Song Scout. No magic numbers."""

# --- Application ---
APP_NAME = "Song Scout"
APP_VERSION = "0.1.0"
USER_AGENT = f"SongScout/{APP_VERSION} (Guitar Tuning Helper)"

# --- iTunes Search API (primary catalog) ---
ITUNES_SEARCH_URL = "https://itunes.apple.com/search"
CATALOG_TERM_LIMIT = 50  # Strategy 1: plain term search
CATALOG_PHRASE_LIMIT = 25  # Strategy 2: quoted exact-phrase search
CATALOG_LOOKUP_LIMIT = 10  # Bulk (artist, title) lookups
CATALOG_TIMEOUT_SECONDS = 5.0
CATALOG_LOOKUP_TIMEOUT_SECONDS = 8.0
CATALOG_RATE_LIMIT = 0.2  # Seconds between catalog requests

# --- Spotify (audio features / BPM) ---
SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"
SPOTIFY_SEARCH_URL = "https://api.spotify.com/v1/search"
SPOTIFY_AUDIO_FEATURES_URL = "https://api.spotify.com/v1/audio-features/{track_id}"
SPOTIFY_TIMEOUT_SECONDS = 5.0
SPOTIFY_TOKEN_REFRESH_MARGIN_SECONDS = 60.0  # Refresh this long before expiry
SPOTIFY_MAX_RETRY_AFTER_SECONDS = 5.0  # Cap on honoured Retry-After

# --- Songsterr (tunings) ---
SONGSTERR_SEARCH_URL = "https://www.songsterr.com/a/ra/songs.json"
SONGSTERR_SONG_URL = "https://www.songsterr.com/a/ra/songs/{song_id}.json"
SONGSTERR_TIMEOUT_SECONDS = 3.0
SONGSTERR_GUITAR_INSTRUMENT_HINTS = ("guitar", "electric", "acoustic")

# --- MusicBrainz (duration backfill fallback) ---
MUSICBRAINZ_APP_NAME = "SongScout"
MUSICBRAINZ_APP_VERSION = APP_VERSION
MUSICBRAINZ_CONTACT = "support@songscout.invalid"  # Required by MB API TOS
MUSICBRAINZ_RATE_LIMIT = 1.0

# --- Search / result limits ---
MAX_RANKED_RESULTS = 10
MAX_SEARCH_RESULTS = 10
EXISTING_SONGS_LIMIT = 5
DEFAULT_ENRICHMENT_WORKERS = 5

# --- Bulk duration resolution ---
MAX_BULK_ITEMS = 100
MAX_DISAMBIGUATION_OPTIONS = 5
DEFAULT_BULK_MIN_MATCH_SCORE = 100  # Candidates at or below this are dropped
DEFAULT_BULK_CONFIDENT_SCORE = 400  # Best score must exceed this to auto-pick
DEFAULT_BULK_AMBIGUITY_MARGIN = 100  # Best must beat runner-up by more than this

# --- Duration backfill ---
DEFAULT_BACKFILL_BATCH_SIZE = 10
DURATION_LOOKUP_LIMIT = 5

# --- Fuzzy Matching ---
FUZZY_MATCH_THRESHOLD = 85  # Minimum score (0-100) for a fuzzy artist match

# --- Tuning ---
DEFAULT_TUNING = "standard"

# --- Paths ---
DEFAULT_CONFIG_FILENAME = "config.yaml"
DEFAULT_LOG_FILENAME = "songscout.log"  # Written beside the catalog database
LOG_FILE_MAX_BYTES = 1_000_000
LOG_FILE_BACKUP_COUNT = 3
DEFAULT_DB_FILENAME = "songscout.db"

SECONDS_PER_MINUTE = 60
MILLISECONDS_PER_SECOND = 1000

# --- Relevance Scoring (search ranking) ---
# Only the relative order of these signals matters:
# chart > legendary > exact title > popular artist > discovery > commercial
CHART_BONUS_MAX = 5000  # Peak position 1
CHART_BONUS_MIN = 3000  # Peak position 100, or never charted (0)
CHART_POSITION_FLOOR = 100
LEGENDARY_ARTIST_BONUS = 2500
LEGENDARY_TITLE_STACK_BONUS = 2500  # Extra when the title match is also strong
LEGENDARY_STACK_MIN_TITLE_SCORE = 1000
POPULAR_ARTIST_BONUS = 800

TITLE_EXACT_BONUS = 2000
TITLE_ALL_WORDS_BONUS = 1800
TITLE_SUBSTRING_TIERS = ((0.5, 1600), (0.3, 1000), (0.0, 400))  # (min query/title ratio, points)
TITLE_SUBSTRING_MIN_QUERY_LENGTH = 4
TITLE_PREFIX_TIERS = ((0.7, 1500), (0.4, 1000), (0.2, 600), (0.0, 200))
TITLE_PREFIX_MIN_QUERY_LENGTH = 3
TITLE_EXACT_WORD_WEIGHT = 1400
TITLE_PARTIAL_WORD_WEIGHT = 300

DISCOVERY_TIERS = ((5, 400), (15, 300), (30, 200), (50, 100))  # (index below, points)

PURCHASABLE_BONUS = 150
COLLECTION_BONUS = 100
DEEP_CUT_TRACK_NUMBER = 10
DEEP_CUT_PENALTY = 50

ARTIST_ONLY_EXACT_BONUS = 200
ARTIST_ONLY_CONTAINS_BONUS = 100

STUDIO_VERSION_BONUS = 50
LIKELY_ORIGINAL_BONUS = 30
FULL_LENGTH_BONUS = 20
FULL_LENGTH_MIN_MS = 180_000
CLASSIC_ERA_BONUS = 30
CLASSIC_ERA_YEARS = (1980, 2000)
RECENT_RELEASE_BASE_YEAR = 2000
RECENT_RELEASE_MAX_BONUS = 10

# Artist / title markers for tributes, covers and karaoke versions
NON_ORIGINAL_ARTIST_MARKERS = ("tribute", "cover", "karaoke")
NON_ORIGINAL_TITLE_MARKERS = ("style of", "originally performed")
CLASSIC_ERA_TITLE_MARKERS = ("rock", "metal", "grunge")

# --- Bulk Match Scoring ---
BULK_ARTIST_EXACT_SCORE = 400
BULK_ARTIST_CONTAINS_SCORE = 200
BULK_TITLE_EXACT_SCORE = 600
BULK_TITLE_CONTAINS_SCORE = 300
BULK_TITLE_WORD_WEIGHT = 200
BULK_STUDIO_VERSION_BONUS = 50
