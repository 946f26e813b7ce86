"""Bundled Jinja2 templates for report rendering."""
