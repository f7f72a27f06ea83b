"""Command-line entry points for single runs and replication studies."""
