"""Transaction Converter: convert bank CSV exports between configurable formats."""

__version__ = "0.1.0"
