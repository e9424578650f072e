"""spectr - task tracking automation for spec-driven development.

Usage:
    spectr track <change-id>
    spectr tasks set-status <change-id> <task-id> <status>
    spectr tasks progress <change-id>
"""

from spectr_cli.cli import __version__, app, main

__all__ = ["__version__", "app", "main"]

if __name__ == "__main__":
    main()
