"""Textual user interface for tuidb."""
