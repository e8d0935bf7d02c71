"""SiteBooks - bookkeeping core for UK tradespeople."""

__version__ = "1.0.0"
