from django.contrib.auth import get_user_model
from rest_framework import status
from rest_framework.test import APITestCase

User = get_user_model()


class TokenAuthTest(APITestCase):
    def setUp(self):
        self.user = User.objects.create_user(
            username='storekeeper',
            password='testpass123',
            first_name='Store',
            last_name='Keeper'
        )

    def test_token_obtain_and_me(self):
        """A bearer token from /token/ identifies the user on /me/"""
        response = self.client.post('/api/auth/token/', {
            'username': 'storekeeper',
            'password': 'testpass123',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)

        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['access']}")
        response = self.client.get('/api/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['username'], 'storekeeper')
        self.assertEqual(response.data['full_name'], 'Store Keeper')

    def test_refresh(self):
        response = self.client.post('/api/auth/token/', {
            'username': 'storekeeper',
            'password': 'testpass123',
        }, format='json')
        response = self.client.post('/api/auth/token/refresh/', {'refresh': response.data['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)

    def test_wrong_password(self):
        response = self.client.post('/api/auth/token/', {
            'username': 'storekeeper',
            'password': 'wrong',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_me_requires_token(self):
        response = self.client.get('/api/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_change_password(self):
        self.client.force_authenticate(user=self.user)
        response = self.client.post('/api/auth/change-password/', {
            'old_password': 'testpass123',
            'new_password': 'N3w-Secure-Pass!',
            'new_password_confirm': 'N3w-Secure-Pass!',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('N3w-Secure-Pass!'))

        response = self.client.post('/api/auth/change-password/', {
            'old_password': 'testpass123',
            'new_password': 'An0ther-Pass!',
            'new_password_confirm': 'An0ther-Pass!',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Old password is incorrect')

    def test_health_is_public(self):
        response = self.client.get('/api/auth/health/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'healthy')
