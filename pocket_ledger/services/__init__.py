"""Services package (persistence backends)."""
