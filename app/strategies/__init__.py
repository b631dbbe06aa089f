"""Concrete strategy implementations.

- steps: custom placeholder step transformers
- fetchers: page fetching for external properties
- extractors: CSS selector extraction and its cache
- placeholder_engine: projection of articles through definitions
"""
