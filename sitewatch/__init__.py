"""sitewatch — continuous, rate-limited site status monitoring."""

__version__ = "0.1.0"
