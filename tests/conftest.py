import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APIClient

from apps.groups.models import Group, GroupMember

User = get_user_model()


def make_user(email, first_name='', last_name=''):
    return User.objects.create_user(
        email=email,
        username=email.split('@')[0],
        first_name=first_name,
        last_name=last_name,
        password='test-pass-123',
    )


@pytest.fixture(autouse=True)
def clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def alice(db):
    return make_user('alice@example.com', 'Alice', 'Ng')


@pytest.fixture
def bob(db):
    return make_user('bob@example.com', 'Bob', 'Ruiz')


@pytest.fixture
def carol(db):
    return make_user('carol@example.com', 'Carol', 'Ito')


@pytest.fixture
def outsider(db):
    return make_user('mallory@example.com', 'Mallory')


@pytest.fixture
def group(alice, bob, carol):
    group = Group.objects.create(
        name='Cabin',
        currency='USD',
        invite_code='CABIN123',
        created_by=alice,
    )
    GroupMember.objects.create(group=group, user=alice, role=GroupMember.Role.ADMIN)
    GroupMember.objects.create(group=group, user=bob)
    GroupMember.objects.create(group=group, user=carol)
    return group


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def client_for(api_client):
    def _client(user):
        api_client.force_authenticate(user=user)
        return api_client
    return _client
