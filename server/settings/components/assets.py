"""Asset library settings."""

from server.settings.components import config

# Default number of tags returned by popular_tags()
ASSETS_POPULAR_TAGS_LIMIT = config('ASSETS_POPULAR_TAGS_LIMIT', cast=int, default=10)

# Listing and search limits
ASSETS_PAGE_SIZE = config('ASSETS_PAGE_SIZE', cast=int, default=20)
ASSETS_SEARCH_LIMIT = config('ASSETS_SEARCH_LIMIT', cast=int, default=50)
