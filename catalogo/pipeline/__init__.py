"""Bulk CSV import pipeline for the catalog.

Row-level failures are collected into ImportResult; imports are not
transactional.
"""
