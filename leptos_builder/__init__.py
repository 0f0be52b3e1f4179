"""Configuration resolution, cargo commands and asset, style and hashing steps for Leptos sites."""

__version__ = "0.1.0"