"""
AccessiList runtime entrypoints.

Usage:
    python -m accessilist.cli serve --port 8000
"""
