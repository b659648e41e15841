"""permit-to: role and membership access rules for request pipelines."""

__version__ = "1.0.0"
