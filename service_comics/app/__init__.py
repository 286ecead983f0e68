"""
Comics Service package for the Comics Access Service.

The service fronts the xkcd provider with a read-through cache:
- Latest comic: cached with a short TTL
- Comics by id: cached for the life of the process (published comics never change)
- Random comic: drawn uniformly from [1, latest id]
- Search: linear scan over the most recently cached comics

Structure:
- app.main: FastAPI app, routes, and middleware wiring.
- app.adapters: HTTP client for the provider.
- app.caching: Process-local cache store.
- app.comics: Comic model, payload normalization, and the orchestrating service.
"""
