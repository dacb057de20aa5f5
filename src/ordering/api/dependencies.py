"""FastAPI dependencies for the Ordering routes."""

from fastapi import Request


def get_container(request: Request):
    """The application container built at startup (see ``container.build_container``)."""
    return request.app.state.container
