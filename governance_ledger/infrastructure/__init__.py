"""Infrastructure layer: persistence, external gateway, observability."""
