"""IndexNow Notifier: push content changes to search engines and retry failures."""

__version__ = "0.1.0"

__all__ = ["__version__"]
