"""Customer management: models, SQLite repository with outbox, service layer, events and event reader."""

__version__ = "0.1.0"