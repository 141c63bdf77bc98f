"""Products app tests."""

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from products.models import Category, Product


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class CatalogApiTests(TestCase):
	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.shopper = User.objects.create_user(
			username='shopper@example.com',
			email='shopper@example.com',
			password='12345678',
		)
		cls.admin = User.objects.create_user(
			username='catalog_admin@example.com',
			email='catalog_admin@example.com',
			password='12345678',
			role='admin',
		)
		cls.fruits = Category.objects.create(name='Fruits')
		cls.dairy = Category.objects.create(name='Dairy')
		cls.mango = Product.objects.create(
			category=cls.fruits, name='Alphonso Mango', description='Sweet summer mango', price='180.00', stock=40,
		)
		cls.banana = Product.objects.create(
			category=cls.fruits, name='Banana Robusta', description='Ripe bananas', price='45.00', stock=0,
		)
		cls.milk = Product.objects.create(
			category=cls.dairy, name='Full Cream Milk 1L', description='Fresh milk', price='68.00', stock=4,
		)

	def setUp(self):
		cache.clear()
		self.client = APIClient()
		self.admin_client = APIClient()
		self.admin_client.force_authenticate(user=self.admin)

	def _names(self, res):
		return sorted(item['name'] for item in res.data['results'])

	def test_list_is_public_and_paginated(self):
		res = self.client.get('/api/products/')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['count'], 3)

	def test_list_filters(self):
		res = self.client.get('/api/products/', {'category': self.fruits.id})
		self.assertEqual(self._names(res), ['Alphonso Mango', 'Banana Robusta'])

		res = self.client.get('/api/products/', {'min_price': '50', 'max_price': '100'})
		self.assertEqual(self._names(res), ['Full Cream Milk 1L'])

		res = self.client.get('/api/products/', {'in_stock': 'true'})
		self.assertEqual(self._names(res), ['Alphonso Mango', 'Full Cream Milk 1L'])

	def test_search_matches_name_and_description(self):
		res = self.client.get('/api/products/search/', {'q': 'mango'})
		self.assertEqual(res.status_code, 200)
		self.assertEqual(self._names(res), ['Alphonso Mango'])

		res = self.client.get('/api/products/search/', {'q': 'fresh', 'category': self.dairy.id})
		self.assertEqual(self._names(res), ['Full Cream Milk 1L'])

	def test_stock_status(self):
		res = self.client.get(f'/api/products/{self.banana.id}/')
		self.assertEqual(res.data['stock_status'], 'out_of_stock')
		res = self.client.get(f'/api/products/{self.milk.id}/')
		self.assertEqual(res.data['stock_status'], 'low_stock')
		self.assertEqual(res.data['category_name'], 'Dairy')

	def test_listing_cache_is_invalidated_on_write(self):
		first = self.client.get('/api/products/')
		self.assertEqual(first.data['count'], 3)

		Product.objects.create(category=self.dairy, name='Paneer 200g', price='90.00', stock=10)

		second = self.client.get('/api/products/')
		self.assertEqual(second.data['count'], 4)

	def test_only_admin_can_create(self):
		payload = {'name': 'Green Apple', 'price': '150.00', 'category': self.fruits.id, 'stock': 12}

		shopper_client = APIClient()
		shopper_client.force_authenticate(user=self.shopper)
		self.assertEqual(shopper_client.post('/api/products/', payload, format='json').status_code, 403)

		res = self.admin_client.post('/api/products/', payload, format='json')
		self.assertEqual(res.status_code, 201)
		self.assertEqual(res.data['stock_status'], 'limited_stock')

	def test_duplicate_name_returns_409(self):
		payload = {'name': 'alphonso mango', 'price': '150.00', 'category': self.fruits.id, 'stock': 1}
		res = self.admin_client.post('/api/products/', payload, format='json')
		self.assertEqual(res.status_code, 409)

	def test_unknown_category_returns_400(self):
		payload = {'name': 'Dragon Fruit', 'price': '150.00', 'category': 999999, 'stock': 1}
		res = self.admin_client.post('/api/products/', payload, format='json')
		self.assertEqual(res.status_code, 400)

	def test_negative_price_and_stock_are_rejected(self):
		payload = {'name': 'Kiwi', 'price': '-1.00', 'category': self.fruits.id, 'stock': -3}
		res = self.admin_client.post('/api/products/', payload, format='json')
		self.assertEqual(res.status_code, 400)
		self.assertIn('price', res.data)
		self.assertIn('stock', res.data)

	def test_admin_update_and_delete(self):
		res = self.admin_client.patch(f'/api/products/{self.milk.id}/', {'stock': 30}, format='json')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['stock_status'], 'in_stock')

		res = self.admin_client.delete(f'/api/products/{self.banana.id}/')
		self.assertEqual(res.status_code, 204)
		self.assertFalse(Product.objects.filter(pk=self.banana.id).exists())


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class CategoryApiTests(TestCase):
	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.admin = User.objects.create_user(
			username='cat_admin@example.com',
			email='cat_admin@example.com',
			password='12345678',
			role='admin',
		)
		cls.bakery = Category.objects.create(name='Bakery', description='Bread')

	def test_list_is_public(self):
		res = APIClient().get('/api/categories/')
		self.assertEqual(res.status_code, 200)
		self.assertEqual([c['name'] for c in res.data], ['Bakery'])

	def test_create_is_upsert_by_name(self):
		client = APIClient()
		client.force_authenticate(user=self.admin)

		res = client.post('/api/categories/', {'name': 'Bakery', 'description': 'Fresh bread daily'}, format='json')
		self.assertEqual(res.status_code, 201)
		self.assertEqual(res.data['id'], self.bakery.id)
		self.assertEqual(Category.objects.count(), 1)
		self.bakery.refresh_from_db()
		self.assertEqual(self.bakery.description, 'Fresh bread daily')

		res = client.post('/api/categories/', {'name': 'Snacks'}, format='json')
		self.assertEqual(res.status_code, 201)
		self.assertEqual(Category.objects.count(), 2)

	def test_create_requires_admin(self):
		res = APIClient().post('/api/categories/', {'name': 'Snacks'}, format='json')
		self.assertEqual(res.status_code, 401)
