"""Request tags, StatsD metrics, settings, collection models and browser-compat data parsing."""

__version__ = "0.1.0"