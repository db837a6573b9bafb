"""Data models for papers-please."""
