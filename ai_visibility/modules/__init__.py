"""Scoring modules: page audit, citation probing, correction checks, health score."""
