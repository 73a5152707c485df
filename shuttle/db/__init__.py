"""SQLite storage for the player roster and audit log."""
