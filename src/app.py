"""Boutique ordering FastAPI application.

Single-domain web server that processes commands synchronously via HTTP.
Every request runs inside the ordering domain context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV controls which config overlay of [tool.protean] is applied.
from ordering.domain import ordering

ordering.init()

from container import build_container  # noqa: E402
from ordering.api.application import create_app  # noqa: E402
from settings import Settings  # noqa: E402

app = create_app(build_container(Settings.from_env()))
