"""Client-side data stores for the ProConnect professional network app."""

__version__ = "1.0.0"
