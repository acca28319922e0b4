"""Ramadhan tracker: daily prayers, Quran progress and infaq for the fasting month."""

__version__ = "1.0.0"
