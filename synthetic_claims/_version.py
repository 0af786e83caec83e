"""Version information for synthetic_claims."""

__version__ = "0.3.0"
