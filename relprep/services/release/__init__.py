"""Release preparation: versions, notes, changelog, rewrites, orchestration."""
