"""Configuration for jobfit."""
