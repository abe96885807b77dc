"""LeadDesk console: cached API access and navigation preloading."""

__version__ = "0.4.0"
