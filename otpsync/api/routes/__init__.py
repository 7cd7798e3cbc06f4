"""Route modules for the bridge API."""
