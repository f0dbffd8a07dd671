"""API router registration helpers.

Routers are imported lazily inside `register_routes` so importing
`mentorhub.api` does not build clients or read settings.
"""

from fastapi import FastAPI


def register_routes(app: FastAPI) -> None:
    """Attach all API routers (lazy imports)."""
    from mentorhub.api.seatable import router as seatable_router

    for router in [seatable_router]:
        app.include_router(router)
