"""Badminton roster management and bracket engine."""
