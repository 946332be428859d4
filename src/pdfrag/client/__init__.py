"""Ingestion pipeline and command-line tools."""
