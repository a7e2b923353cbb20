"""Exchange price-spread monitor and signed market order execution."""

__version__ = "0.1.0"
