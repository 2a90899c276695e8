"""Parsing helpers for URLs and raw page content."""
