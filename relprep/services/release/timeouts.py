from __future__ import annotations

# GH / API operations
GH_TIMEOUT_SECONDS = 60.0

# Idempotent GH read retry policy
GH_READ_RETRY_ATTEMPTS = 3
GH_READ_RETRY_DELAY_SECONDS = 1.0

# Search and release listing page size (GitHub maximum)
GH_PAGE_SIZE = 100

# search/issues never serves results past this many, whatever total_count says
GH_SEARCH_RESULT_LIMIT = 1000

# cargo metadata / cargo depgraph / dot / svgcleaner
TOOL_TIMEOUT_SECONDS = 5 * 60.0
