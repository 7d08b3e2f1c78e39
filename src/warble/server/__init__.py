"""Server side of warble: error pages and the ASGI adapter."""
