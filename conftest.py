import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from apps.accounts.models import User, UserRole


def _client_for(user):
    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


# =============================================================================
# Users
# =============================================================================

@pytest.fixture
def viewer(db):
    """Staff member who can only read inventory."""
    return User.objects.create_user(
        email='viewer@example.com',
        password='TestPass123!',
        display_name='Viewer',
        role=UserRole.VIEWER,
    )


@pytest.fixture
def editor(db):
    """Staff member who can sell vehicles and manage expenses."""
    return User.objects.create_user(
        email='editor@example.com',
        password='TestPass123!',
        display_name='Editor',
        role=UserRole.EDITOR,
    )


@pytest.fixture
def dealer_admin(db):
    """Dealership admin."""
    return User.objects.create_user(
        email='admin@example.com',
        password='TestPass123!',
        display_name='Admin',
        role=UserRole.ADMIN,
    )


# =============================================================================
# Authenticated clients
# =============================================================================

@pytest.fixture
def viewer_client(viewer):
    """Return API client authenticated as viewer."""
    return _client_for(viewer)


@pytest.fixture
def editor_client(editor):
    """Return API client authenticated as editor."""
    return _client_for(editor)


@pytest.fixture
def dealer_admin_client(dealer_admin):
    """Return API client authenticated as admin."""
    return _client_for(dealer_admin)
