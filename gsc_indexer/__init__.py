"""Sitemap sync, Indexing API submission and URL inspection pipelines."""

__version__ = "0.1.0"
