"""Shared fixtures for the permission compiler tests."""

from __future__ import annotations

import pytest

from acl_composer.organization.resolver import EntityResolver
from acl_composer.permissions.commands import PermissionCommandExecutor
from acl_composer.permissions.state import PermissionStateModel
from fixtures import FakeChainReader, make_organization


@pytest.fixture
def organization():
    return make_organization()


@pytest.fixture
def resolver(organization):
    return EntityResolver(organization)


@pytest.fixture
def state(organization):
    return PermissionStateModel(organization)


@pytest.fixture
def executor(resolver, state):
    return PermissionCommandExecutor(resolver, state)


@pytest.fixture
def reader():
    return FakeChainReader()
