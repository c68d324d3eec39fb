"""
Interface layer package.

Typer CLI and rich console rendering.
"""
