"""REST API of FinFusion: models, CRUD services, routers and the ASGI app."""
