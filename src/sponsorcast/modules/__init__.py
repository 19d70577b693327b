"""Optional modules (analytics)."""
