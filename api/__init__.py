"""HTTP layer: FastAPI routers and the application factory."""
