"""Domain layer: ledger models and errors. No I/O lives here."""
