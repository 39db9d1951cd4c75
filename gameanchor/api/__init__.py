"""HTTP entry point (FastAPI).

``create_app()`` builds the application; ``gameanchor serve`` runs it with
uvicorn. Routes live in ``gameanchor.api.app``, wire schemas in
``gameanchor.api.schemas``.
"""
