import pytest
from django.urls import reverse
from rest_framework import status


# =============================================================================
# JWT Tests
# =============================================================================

@pytest.mark.django_db
class TestTokens:
    """Tests for POST /api/auth/token/ and /api/auth/token/refresh/"""

    def test_obtain_token(self, api_client, editor):
        url = reverse('accounts:token-obtain')
        response = api_client.post(url, {'email': editor.email, 'password': 'TestPass123!'})

        assert response.status_code == status.HTTP_200_OK
        assert 'access' in response.data
        assert 'refresh' in response.data

    def test_obtain_token_wrong_password(self, api_client, editor):
        url = reverse('accounts:token-obtain')
        response = api_client.post(url, {'email': editor.email, 'password': 'WrongPass123!'})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_inactive_user_gets_no_token(self, api_client, editor):
        editor.is_active = False
        editor.save()

        url = reverse('accounts:token-obtain')
        response = api_client.post(url, {'email': editor.email, 'password': 'TestPass123!'})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_refresh_token(self, api_client, editor):
        tokens = api_client.post(
            reverse('accounts:token-obtain'),
            {'email': editor.email, 'password': 'TestPass123!'},
        ).data

        response = api_client.post(reverse('accounts:token-refresh'), {'refresh': tokens['refresh']})

        assert response.status_code == status.HTTP_200_OK
        assert 'access' in response.data


# =============================================================================
# Current User Tests
# =============================================================================

@pytest.mark.django_db
class TestCurrentUser:
    """Tests for GET /api/auth/me/"""

    def test_get_current_user(self, editor_client, editor):
        response = editor_client.get(reverse('accounts:current-user'))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['email'] == editor.email
        assert response.data['role'] == 'editor'
        assert 'password' not in response.data

    def test_unauthenticated(self, api_client):
        response = api_client.get(reverse('accounts:current-user'))
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
