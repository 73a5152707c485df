"""Roster, export and tournament workflow services."""
