"""dupfinder configuration: exceptions, logging, settings."""
