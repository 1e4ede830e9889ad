"""Photo download from the Casio WQV-1 wrist camera over its IR link."""

__version__ = "0.1.0"
