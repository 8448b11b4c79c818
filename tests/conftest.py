"""
Shared pytest fixtures for the Franchise Education Admin test suite.

Provides:
    - app: Flask application (session-scoped, in-memory store)
    - _reset_store: empties every collection before each test (autouse)
    - client: Flask test client (function-scoped)
    - service / store: the app's access layer and its repositories
    - hq, mf1, mf2, lc1, tt: ready-made callers
    - make: record factory that bypasses the mutation gate
"""

import pytest

from eduadmin import create_app
from eduadmin.core.roles import Caller, Role
from eduadmin.services.entity_registry import ENTITY_DEFINITIONS


# ── App fixtures ─────────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing")


@pytest.fixture(autouse=True)
def _reset_store(app):
    app.extensions["eduadmin"].store.clear()
    yield
    app.extensions["eduadmin"].store.clear()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture()
def service(app):
    return app.extensions["eduadmin"]


@pytest.fixture()
def store(service):
    return service.store


# ── Callers ──────────────────────────────────────────────────────────────


@pytest.fixture()
def hq():
    return Caller(Role.HQ)


@pytest.fixture()
def mf1():
    return Caller(Role.MF, "mf_1")


@pytest.fixture()
def mf2():
    return Caller(Role.MF, "mf_2")


@pytest.fixture()
def lc1():
    return Caller(Role.LC, "lc_1")


@pytest.fixture()
def tt():
    return Caller(Role.TT)


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def make(store):
    """Create a record directly in the store (validated, not gated).

    Usage: ``make("programs", name="Math", visibility="public")``
    """

    def _make(entity_type, **fields):
        definition = ENTITY_DEFINITIONS[entity_type]
        return store.for_entity(entity_type).create(definition.clean(fields))

    return _make


@pytest.fixture()
def shared_program(make):
    """Program shared with mf_1 / lc_1 only."""
    return make(
        "programs", name="Speed Reading", visibility="shared",
        sharedWithMFs=["mf_1"], sharedWithLCs=["lc_1"],
    )


@pytest.fixture()
def public_program(make):
    return make("programs", name="Mental Arithmetic", visibility="public", status="active")


@pytest.fixture()
def private_program(make):
    return make("programs", name="Robotics Pilot", visibility="private")
