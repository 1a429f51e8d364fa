"""Infrastructure layer: configuration, logging and encryption."""
