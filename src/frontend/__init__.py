"""Textual presentation layer for owlsync."""
