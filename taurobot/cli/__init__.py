"""Taurobot CLI.

Usage:
    python -m taurobot.cli [command] [options]

Commands:
    sources       List configured sources
    show          Print a source's records
    refresh       Scrape now and rewrite snapshots
    scheduled     Run a gated scheduled refresh
    clear-cache   Clear in-memory caches
    regional      Show regional (América / Sevilla) events
    scheduler     Run the cron scheduler
"""

from taurobot.cli.main import app

__all__ = ["app"]
