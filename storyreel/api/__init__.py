"""Storyreel HTTP API."""
