"""Helpers shared by the store and the CLI: input validation and output rendering."""
