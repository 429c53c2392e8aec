"""Batch stages, ingestion and result persistence."""
