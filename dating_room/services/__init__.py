"""Business logic: sessions, challenge games, casino and the wallet ledger."""
