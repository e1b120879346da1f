"""Shared utilities: text matching, text processing, validation."""
