"""Keep the Available Variants bullet of product descriptions in sync with variants."""

__version__ = "1.0.0"
