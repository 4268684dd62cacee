"""Entry point for running CLI as module.

Usage:
    python -m taurobot.cli refresh --source servitoro
    python -m taurobot.cli sources
"""

from taurobot.cli.main import main

if __name__ == "__main__":
    main()
