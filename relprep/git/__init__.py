"""Git operations for the release branch."""
