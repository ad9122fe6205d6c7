# hop_pipeline/__init__.py
"""Scrapes the hop variety catalog, normalizes it and loads it into PostgreSQL."""
