"""API Middleware."""
