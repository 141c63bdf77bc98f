"""Cart app tests."""

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from cart.models import Cart, CartItem
from products.models import Category, Product


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class CartApiTests(TestCase):
	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.customer = User.objects.create_user(
			username='cart_customer@example.com',
			email='cart_customer@example.com',
			password='12345678',
		)
		cls.category = Category.objects.create(name='Dairy')
		cls.product = Product.objects.create(
			category=cls.category,
			name='Paneer 200g',
			price='90.00',
			stock=2,
		)
		cls.other = Product.objects.create(
			category=cls.category,
			name='Curd 400g',
			price='45.50',
			stock=10,
		)

	def setUp(self):
		self.client = APIClient()
		self.client.force_authenticate(user=self.customer)

	def test_get_cart_creates_it_lazily(self):
		self.assertFalse(Cart.objects.filter(user=self.customer).exists())
		res = self.client.get('/api/cart/')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['items'], [])
		self.assertTrue(Cart.objects.filter(user=self.customer).exists())

	def test_requires_authentication(self):
		res = APIClient().get('/api/cart/')
		self.assertEqual(res.status_code, 401)

	def test_add_merges_quantity_and_returns_cart(self):
		res1 = self.client.post('/api/cart/add/', data={'product_id': self.other.id, 'quantity': 2}, format='json')
		self.assertEqual(res1.status_code, 200)
		res2 = self.client.post('/api/cart/add/', data={'product_id': self.other.id, 'quantity': 3}, format='json')
		self.assertEqual(res2.status_code, 200)

		self.assertEqual(len(res2.data['items']), 1)
		self.assertEqual(res2.data['items'][0]['quantity'], 5)
		self.assertEqual(res2.data['total_price'], '227.50')

	def test_cannot_add_more_than_stock(self):
		res = self.client.post('/api/cart/add/', data={'product_id': self.product.id, 'quantity': 3}, format='json')
		self.assertEqual(res.status_code, 400)
		self.assertFalse(CartItem.objects.filter(product=self.product).exists())

	def test_merged_quantity_cannot_exceed_stock(self):
		self.client.post('/api/cart/add/', data={'product_id': self.product.id, 'quantity': 2}, format='json')
		res = self.client.post('/api/cart/add/', data={'product_id': self.product.id, 'quantity': 1}, format='json')
		self.assertEqual(res.status_code, 400)
		self.assertEqual(CartItem.objects.get(product=self.product).quantity, 2)

	def test_add_unknown_product_returns_404(self):
		res = self.client.post('/api/cart/add/', data={'product_id': 999999, 'quantity': 1}, format='json')
		self.assertEqual(res.status_code, 404)

	def test_add_rejects_zero_quantity(self):
		res = self.client.post('/api/cart/add/', data={'product_id': self.other.id, 'quantity': 0}, format='json')
		self.assertEqual(res.status_code, 400)

	def test_cannot_update_quantity_more_than_stock(self):
		res1 = self.client.post('/api/cart/add/', data={'product_id': self.product.id, 'quantity': 1}, format='json')
		self.assertEqual(res1.status_code, 200)

		# update to 3 (exceeds stock=2)
		res2 = self.client.put('/api/cart/update/', data={'product_id': self.product.id, 'quantity': 3}, format='json')
		self.assertEqual(res2.status_code, 400)
		self.assertEqual(CartItem.objects.get(product=self.product).quantity, 1)

	def test_update_sets_quantity(self):
		self.client.post('/api/cart/add/', data={'product_id': self.other.id, 'quantity': 1}, format='json')
		res = self.client.put('/api/cart/update/', data={'product_id': self.other.id, 'quantity': 4}, format='json')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['items'][0]['quantity'], 4)

	def test_update_item_not_in_cart_returns_404(self):
		res = self.client.put('/api/cart/update/', data={'product_id': self.other.id, 'quantity': 1}, format='json')
		self.assertEqual(res.status_code, 404)

	def test_remove_and_clear(self):
		self.client.post('/api/cart/add/', data={'product_id': self.product.id, 'quantity': 1}, format='json')
		self.client.post('/api/cart/add/', data={'product_id': self.other.id, 'quantity': 1}, format='json')

		res = self.client.delete('/api/cart/remove/', data={'product_id': self.product.id}, format='json')
		self.assertEqual(res.status_code, 200)
		self.assertEqual([item['product']['id'] for item in res.data['items']], [self.other.id])

		res = self.client.post('/api/cart/clear/', format='json')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(CartItem.objects.filter(cart__user=self.customer).count(), 0)

	def test_deleted_product_stays_as_empty_line(self):
		doomed = Product.objects.create(category=self.category, name='Old Stock', price='10.00', stock=5)
		self.client.post('/api/cart/add/', data={'product_id': doomed.id, 'quantity': 1}, format='json')
		doomed.delete()

		res = self.client.get('/api/cart/')
		self.assertEqual(res.status_code, 200)
		self.assertIsNone(res.data['items'][0]['product'])
		self.assertEqual(res.data['total_price'], '0.00')
