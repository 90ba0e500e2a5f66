"""SiteForge: build arbitrary web repositories into static sites and serve them."""

__version__ = "0.1.0"
