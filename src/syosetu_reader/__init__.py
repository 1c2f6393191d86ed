"""Read Japanese web novels in Chinese with a running proper-noun glossary."""

__version__ = "0.1.0"
