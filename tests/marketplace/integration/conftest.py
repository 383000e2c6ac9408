"""API fixtures: a bare app with every marketplace router and error handler."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from marketplace.api import register_error_handlers, routers


@pytest.fixture()
def client():
    app = FastAPI()
    for router in routers:
        app.include_router(router)
    register_error_handlers(app)
    return TestClient(app)


def headers_for(actor) -> dict:
    """``X-Actor-*`` headers as the gateway in front of the service sends them."""
    headers = {"X-Actor-Id": actor.id, "X-Actor-Role": actor.role.value, "X-Actor-Name": actor.name}
    if actor.shop_name:
        headers["X-Actor-Shop"] = actor.shop_name
    if actor.depot_id:
        headers["X-Actor-Depot"] = actor.depot_id
    return headers


@pytest.fixture()
def as_actor():
    return headers_for
