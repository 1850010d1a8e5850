from rest_framework.test import APIClient

from common.testing import StoreTestCase
from rides.models import Role
from services import reset_services


class AuthFlowTests(StoreTestCase):

    def setUp(self):
        super().setUp()
        self.client = APIClient()

    def register(self, username='rider', password='secret123', role=Role.USER):
        return self.client.post('/api/auth/register', {
            'username': username,
            'password': password,
            'role': role,
        }, format='json')

    def test_register_returns_user_and_tokens(self):
        response = self.register()

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['user']['username'], 'rider')
        self.assertEqual(response.data['user']['role'], Role.USER)
        self.assertNotIn('password', response.data['user'])
        self.assertIn('access', response.data['tokens'])
        self.assertIn('refresh', response.data['tokens'])

        stored = self.services.users.find_by_username('rider')
        self.assertNotEqual(stored.password, 'secret123')

    def test_register_rejects_duplicate_username(self):
        self.register()
        response = self.register(role=Role.DRIVER)

        self.assertEqual(response.status_code, 400)
        self.assertIn('username', response.data)

    def test_register_rejects_unknown_role(self):
        response = self.register(role='ROLE_ADMIN')
        self.assertEqual(response.status_code, 400)
        self.assertIn('role', response.data)

    def test_register_rejects_short_password(self):
        response = self.register(password='123')
        self.assertEqual(response.status_code, 400)

    def test_login_and_use_access_token(self):
        self.register()
        response = self.client.post('/api/auth/login', {
            'username': 'rider',
            'password': 'secret123',
        }, format='json')
        self.assertEqual(response.status_code, 200)

        self.client.credentials(HTTP_AUTHORIZATION='Bearer ' + response.data['tokens']['access'])
        response = self.client.post('/api/rides', {
            'pickupLocation': 'Home',
            'dropLocation': 'Office',
        }, format='json')
        self.assertEqual(response.status_code, 201)

        response = self.client.get('/api/rides/user/me')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data), 1)

    def test_login_with_bad_credentials(self):
        self.register()
        for username, password in (('rider', 'wrong-pass'), ('nobody', 'secret123')):
            with self.subTest(username=username):
                response = self.client.post('/api/auth/login', {
                    'username': username,
                    'password': password,
                }, format='json')
                self.assertEqual(response.status_code, 401)
                self.assertEqual(response.data, {'error': 'Invalid username or password'})

    def test_login_requires_both_fields(self):
        response = self.client.post('/api/auth/login', {'username': 'rider'}, format='json')
        self.assertEqual(response.status_code, 400)

    def test_refresh(self):
        tokens = self.register().data['tokens']

        response = self.client.post('/api/auth/refresh', {'refresh': tokens['refresh']}, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertIn('access', response.data)

        response = self.client.post('/api/auth/refresh', {'refresh': 'garbage'}, format='json')
        self.assertEqual(response.status_code, 401)

        response = self.client.post('/api/auth/refresh', {}, format='json')
        self.assertEqual(response.status_code, 400)

    def test_token_for_unknown_user_is_rejected(self):
        tokens = self.register().data['tokens']

        # Fresh registry, empty user store
        reset_services()

        self.client.credentials(HTTP_AUTHORIZATION='Bearer ' + tokens['access'])
        response = self.client.get('/api/rides/user/me')
        self.assertEqual(response.status_code, 401)

    def test_refresh_for_unknown_user_is_rejected(self):
        tokens = self.register().data['tokens']

        reset_services()

        response = self.client.post('/api/auth/refresh', {'refresh': tokens['refresh']}, format='json')
        self.assertEqual(response.status_code, 401)
        self.assertIn('error', response.data)

    def test_refresh_rejects_access_token(self):
        tokens = self.register().data['tokens']

        response = self.client.post('/api/auth/refresh', {'refresh': tokens['access']}, format='json')
        self.assertEqual(response.status_code, 401)
