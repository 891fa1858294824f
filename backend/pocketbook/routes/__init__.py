"""HTTP route handlers, one router per resource, all under /api/1 except /health."""
