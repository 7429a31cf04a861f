"""Process bootstrap: logging, database and service wiring."""
