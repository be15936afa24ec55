"""Keep localized .strings files in sync with a base language file."""

__version__ = "0.1.0"
