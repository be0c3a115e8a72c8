"""Song Scout -- song discovery and metadata enrichment engine."""

from songscout.utils.constants import APP_VERSION

__version__ = APP_VERSION
