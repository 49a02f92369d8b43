"""HTTP layer: aiohttp application, middleware and routes."""
