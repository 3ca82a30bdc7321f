"""Catalog exports."""
