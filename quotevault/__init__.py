"""QuoteVault - personal library and quote journal

This package contains:
- Data models (book.py, quote.py)
- Library store with cascade delete and change notification (library.py)
- Key-value persistence adapter (database.py)
- Identifier generators (ids.py)
- Settings (config.py)
- CLI interface (main.py)
"""

__version__ = "1.0.0"
