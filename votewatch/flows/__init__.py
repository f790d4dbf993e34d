"""Prefect flows for scheduled ingestion runs."""
