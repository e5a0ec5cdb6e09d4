"""Dating Room: a chat bot with a wallet economy, casino games and player challenges."""

__version__ = "1.0.0"
