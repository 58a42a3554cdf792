"""looker-cli: list, export and clone Looker Studio reports stored in Google Drive."""

__version__ = "1.0.0"
