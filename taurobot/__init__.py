"""Taurobot - scrapers for bullfighting broadcasts, calendar, ranking and chronicles."""

__version__ = "1.0.0"
