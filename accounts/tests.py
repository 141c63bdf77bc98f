"""Accounts app tests."""

import re
from datetime import timedelta

from django.contrib.auth import get_user_model
from django.core import mail
from django.core.cache import cache
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework.test import APIClient

from accounts.models import ShippingAddress
from accounts.tokens import email_verification_token, encode_uid, password_reset_token

PASSWORD = 'Gr0cery!Basket'


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class AuthApiTests(TestCase):
	def setUp(self):
		cache.clear()
		self.client = APIClient()

	def _register(self, **overrides):
		payload = {
			'first_name': 'Ravi',
			'last_name': 'Kumar',
			'email': 'Ravi.Kumar@Example.com',
			'password': PASSWORD,
			'phone': '9876543210',
		}
		payload.update(overrides)
		return self.client.post('/api/auth/register/', payload, format='json')

	def test_register_creates_shopper(self):
		res = self._register(role='admin')
		self.assertEqual(res.status_code, 201)
		self.assertNotIn('password', res.data)

		user = get_user_model().objects.get(pk=res.data['id'])
		self.assertEqual(user.email, 'ravi.kumar@example.com')
		self.assertEqual(user.role, 'user')
		self.assertTrue(user.check_password(PASSWORD))

	def test_register_rejects_duplicate_email(self):
		self._register()
		res = self._register(email='ravi.kumar@example.com')
		self.assertEqual(res.status_code, 400)
		self.assertIn('email', res.data)

	def test_register_rejects_invalid_phone(self):
		res = self._register(phone='12345')
		self.assertEqual(res.status_code, 400)
		self.assertIn('phone', res.data)

	def test_login_returns_token_pair(self):
		self._register()
		res = self.client.post('/api/auth/login/', {'email': 'ravi.kumar@example.com', 'password': PASSWORD}, format='json')
		self.assertEqual(res.status_code, 200)
		self.assertIn('access', res.data)
		self.assertIn('refresh', res.data)

		self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {res.data['access']}")
		me = self.client.get('/api/auth/me/')
		self.assertEqual(me.status_code, 200)
		self.assertEqual(me.data['full_name'], 'Ravi Kumar')

	def test_login_with_wrong_password_fails(self):
		self._register()
		res = self.client.post('/api/auth/login/', {'email': 'ravi.kumar@example.com', 'password': 'nope'}, format='json')
		self.assertEqual(res.status_code, 401)

	def test_change_password(self):
		user = get_user_model().objects.create_user(username='p@example.com', email='p@example.com', password=PASSWORD)
		self.client.force_authenticate(user=user)

		res = self.client.post('/api/auth/change-password/', {'current_password': 'wrong', 'new_password': 'N3w!Passw0rd'}, format='json')
		self.assertEqual(res.status_code, 400)

		res = self.client.post('/api/auth/change-password/', {'current_password': PASSWORD, 'new_password': 'N3w!Passw0rd'}, format='json')
		self.assertEqual(res.status_code, 200)
		user.refresh_from_db()
		self.assertTrue(user.check_password('N3w!Passw0rd'))


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class AccountSecurityTests(TestCase):
	@classmethod
	def setUpTestData(cls):
		cls.user = get_user_model().objects.create_user(
			username='shopper@example.com',
			email='shopper@example.com',
			password=PASSWORD,
			first_name='Lata',
		)

	def setUp(self):
		cache.clear()
		self.client = APIClient()

	def _login(self, password=PASSWORD):
		return self.client.post('/api/auth/login/', {'email': 'shopper@example.com', 'password': password}, format='json')

	def _link_params(self, message):
		match = re.search(r'uid=([^&\s]+)&token=([^\s]+)', message.body)
		self.assertIsNotNone(match)
		return {'uid': match.group(1), 'token': match.group(2)}

	def test_register_sends_verification_email(self):
		res = self.client.post('/api/auth/register/', {
			'first_name': 'Nisha',
			'last_name': 'Verma',
			'email': 'nisha@example.com',
			'password': PASSWORD,
		}, format='json')

		self.assertEqual(res.status_code, 201)
		self.assertEqual(len(mail.outbox), 1)
		self.assertEqual(mail.outbox[0].to, ['nisha@example.com'])
		self.assertIn('verify-email?uid=', mail.outbox[0].body)

	def test_verify_email(self):
		params = {'uid': encode_uid(self.user), 'token': email_verification_token.make_token(self.user)}

		res = self.client.post('/api/auth/verify-email/', params, format='json')
		self.assertEqual(res.status_code, 200)
		self.user.refresh_from_db()
		self.assertTrue(self.user.email_verified)

		res = self.client.post('/api/auth/verify-email/', params, format='json')
		self.assertEqual(res.status_code, 400)

	def test_verify_email_rejects_bad_token(self):
		res = self.client.post('/api/auth/verify-email/', {'uid': encode_uid(self.user), 'token': 'bad-token'}, format='json')
		self.assertEqual(res.status_code, 400)
		res = self.client.post('/api/auth/verify-email/', {'uid': 'garbage', 'token': 'bad-token'}, format='json')
		self.assertEqual(res.status_code, 400)

	def test_resend_verification_only_for_unverified(self):
		res = self.client.post('/api/auth/resend-verification/', {'email': 'Shopper@Example.com'}, format='json')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(len(mail.outbox), 1)

		self.user.email_verified = True
		self.user.save(update_fields=['email_verified'])
		res = self.client.post('/api/auth/resend-verification/', {'email': 'shopper@example.com'}, format='json')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(len(mail.outbox), 1)

	@override_settings(ACCOUNT_REQUIRE_VERIFIED_EMAIL=True)
	def test_unverified_login_blocked_when_required(self):
		self.assertEqual(self._login().status_code, 403)

		self.user.email_verified = True
		self.user.save(update_fields=['email_verified'])
		self.assertEqual(self._login().status_code, 200)

	def test_forgot_password_does_not_reveal_unknown_email(self):
		res = self.client.post('/api/auth/forgot-password/', {'email': 'nobody@example.com'}, format='json')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(len(mail.outbox), 0)

	def test_reset_password_flow(self):
		res = self.client.post('/api/auth/forgot-password/', {'email': 'shopper@example.com'}, format='json')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(len(mail.outbox), 1)
		params = self._link_params(mail.outbox[0])

		res = self.client.post('/api/auth/reset-password/', {**params, 'new_password': 'Fr3sh!Mang0es'}, format='json')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(self._login('Fr3sh!Mang0es').status_code, 200)

		# The token is bound to the old password hash.
		res = self.client.post('/api/auth/reset-password/', {**params, 'new_password': 'An0ther!Pass'}, format='json')
		self.assertEqual(res.status_code, 400)

	def test_reset_password_validates_new_password(self):
		params = {'uid': encode_uid(self.user), 'token': password_reset_token.make_token(self.user)}
		res = self.client.post('/api/auth/reset-password/', {**params, 'new_password': '12345678'}, format='json')
		self.assertEqual(res.status_code, 400)
		self.assertIn('new_password', res.data)

	@override_settings(LOGIN_MAX_FAILED_ATTEMPTS=3)
	def test_repeated_failed_logins_lock_account(self):
		for _ in range(3):
			self.assertEqual(self._login('wrong-password').status_code, 401)

		res = self._login()
		self.assertEqual(res.status_code, 423)
		self.user.refresh_from_db()
		self.assertTrue(self.user.is_locked)

	def test_expired_lock_allows_login_and_resets_counter(self):
		self.user.failed_login_attempts = 5
		self.user.locked_until = timezone.now() - timedelta(minutes=1)
		self.user.save(update_fields=['failed_login_attempts', 'locked_until'])

		self.assertEqual(self._login().status_code, 200)
		self.user.refresh_from_db()
		self.assertEqual(self.user.failed_login_attempts, 0)
		self.assertIsNone(self.user.locked_until)

	def test_successful_login_clears_failed_attempts(self):
		self._login('wrong-password')
		self.user.refresh_from_db()
		self.assertEqual(self.user.failed_login_attempts, 1)

		self.assertEqual(self._login().status_code, 200)
		self.user.refresh_from_db()
		self.assertEqual(self.user.failed_login_attempts, 0)

	def test_logout_blacklists_refresh_token(self):
		tokens = self._login().data
		self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['access']}")

		res = self.client.post('/api/auth/logout/', {'refresh': tokens['refresh']}, format='json')
		self.assertEqual(res.status_code, 200)

		res = self.client.post('/api/auth/token/refresh/', {'refresh': tokens['refresh']}, format='json')
		self.assertEqual(res.status_code, 401)
		res = self.client.post('/api/auth/logout/', {'refresh': tokens['refresh']}, format='json')
		self.assertEqual(res.status_code, 400)


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class UserAdminApiTests(TestCase):
	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.admin = User.objects.create_user(username='boss@example.com', email='boss@example.com', password=PASSWORD, role='admin')
		cls.shopper = User.objects.create_user(username='buyer@example.com', email='buyer@example.com', password=PASSWORD)

	def setUp(self):
		self.client = APIClient()
		self.client.force_authenticate(user=self.admin)

	def test_listing_requires_admin(self):
		shopper_client = APIClient()
		shopper_client.force_authenticate(user=self.shopper)
		self.assertEqual(shopper_client.get('/api/users/').status_code, 403)
		self.assertEqual(self.client.get('/api/users/').status_code, 200)

	def test_change_role(self):
		res = self.client.patch(f'/api/users/{self.shopper.id}/role/', {'role': 'admin'}, format='json')
		self.assertEqual(res.status_code, 200)
		self.shopper.refresh_from_db()
		self.assertTrue(self.shopper.is_admin)

	def test_admin_cannot_demote_or_delete_self(self):
		res = self.client.patch(f'/api/users/{self.admin.id}/role/', {'role': 'user'}, format='json')
		self.assertEqual(res.status_code, 400)
		res = self.client.delete(f'/api/users/{self.admin.id}/')
		self.assertEqual(res.status_code, 400)

	def test_delete_user(self):
		res = self.client.delete(f'/api/users/{self.shopper.id}/')
		self.assertEqual(res.status_code, 204)
		self.assertFalse(get_user_model().objects.filter(pk=self.shopper.id).exists())


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class ShippingAddressApiTests(TestCase):
	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.user = User.objects.create_user(username='addr@example.com', email='addr@example.com', password=PASSWORD)

	def setUp(self):
		self.client = APIClient()
		self.client.force_authenticate(user=self.user)

	def _create(self, **overrides):
		payload = {
			'address_line1': '221 Residency Road',
			'city': 'Bengaluru',
			'state': 'Karnataka',
			'country': 'India',
			'pin_code': '560025',
			'phone_number': '9876543210',
		}
		payload.update(overrides)
		return self.client.post('/api/addresses/', payload, format='json')

	def test_first_address_becomes_default(self):
		first = self._create()
		second = self._create(address_line1='7 Church Street')
		self.assertEqual(first.status_code, 201)
		self.assertTrue(first.data['is_default'])
		self.assertFalse(second.data['is_default'])

	def test_set_default(self):
		self._create()
		second = self._create(address_line1='7 Church Street')

		res = self.client.patch(f"/api/addresses/{second.data['id']}/set-default/")
		self.assertEqual(res.status_code, 200)
		defaults = ShippingAddress.objects.filter(user=self.user, is_default=True)
		self.assertEqual([a.id for a in defaults], [second.data['id']])

	def test_deleting_default_promotes_next(self):
		first = self._create()
		second = self._create(address_line1='7 Church Street')

		res = self.client.delete(f"/api/addresses/{first.data['id']}/")
		self.assertEqual(res.status_code, 204)
		self.assertTrue(ShippingAddress.objects.get(pk=second.data['id']).is_default)

	def test_pin_and_phone_are_validated(self):
		res = self._create(pin_code='5600', phone_number='12345')
		self.assertEqual(res.status_code, 400)
		self.assertIn('pin_code', res.data)
		self.assertIn('phone_number', res.data)

	def test_addresses_are_private(self):
		created = self._create()
		User = get_user_model()
		stranger = User.objects.create_user(username='x@example.com', email='x@example.com', password=PASSWORD)
		client = APIClient()
		client.force_authenticate(user=stranger)
		self.assertEqual(client.get(f"/api/addresses/{created.data['id']}/").status_code, 404)
		self.assertEqual(client.get('/api/addresses/').data, [])
