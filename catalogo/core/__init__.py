"""Cross-cutting infrastructure: logging and the audit trail view."""
