"""Shared FastAPI dependencies.

Reusable type aliases and dependency functions that routers import.
The generator is built once by create_app() and kept on app.state; tests swap
it with app.dependency_overrides.
"""

from typing import Annotated

from fastapi import Depends, Request

from random_status.services.generator import ResponseGenerator


def get_generator(request: Request) -> ResponseGenerator:
    return request.app.state.generator  # type: ignore[no-any-return]


ResponseGeneratorDep = Annotated[ResponseGenerator, Depends(get_generator)]
