"""Happenings: venue and open mic listings with recurring occurrences."""

__version__ = "1.0.0"
