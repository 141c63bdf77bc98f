"""Orders app tests."""

import shutil
import tempfile
from decimal import Decimal
from pathlib import Path
from unittest import mock

from django.contrib.auth import get_user_model
from django.core.files.storage import default_storage
from django.db import DatabaseError
from django.test import TestCase, override_settings
from rest_framework.exceptions import ValidationError
from rest_framework.test import APIClient

from accounts.models import ShippingAddress
from cart.models import Cart, CartItem
from invoices.exceptions import GenerationTimeout
from invoices.models import Invoice
from invoices.rendering import artifact_is_complete, artifact_name
from invoices.tests import write_undecodable_png
from orders.exceptions import EmptyCart, InsufficientStock, ProductNotFound
from orders.models import Order
from orders.services import INVOICE_WARNING, place_order
from products.models import Category, Product

TEMP_MEDIA_ROOT = tempfile.mkdtemp()


def tearDownModule():
	shutil.rmtree(TEMP_MEDIA_ROOT, ignore_errors=True)


@override_settings(MEDIA_ROOT=TEMP_MEDIA_ROOT, ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class PlaceOrderTests(TestCase):
	"""Checkout workflow: stock, order snapshot, invoice and cart handling."""

	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.customer = User.objects.create_user(
			username='test_customer@example.com',
			email='test_customer@example.com',
			password='12345678',
			first_name='Asha',
			last_name='Rao',
		)
		cls.category = Category.objects.create(name='Staples')
		cls.rice = Product.objects.create(category=cls.category, name='Basmati Rice 5kg', price='100.00', stock=5)
		cls.dal = Product.objects.create(category=cls.category, name='Toor Dal 1kg', price='250.00', stock=10)
		cls.address = ShippingAddress.objects.create(
			user=cls.customer,
			address_line1='12 MG Road',
			city='Bengaluru',
			state='Karnataka',
			country='India',
			pin_code='560001',
			phone_number='9876543210',
			is_default=True,
		)

	def setUp(self):
		self.cart, _ = Cart.objects.get_or_create(user=self.customer)

	def _add(self, product, quantity):
		return CartItem.objects.create(cart=self.cart, product=product, quantity=quantity)

	def test_place_order_decrements_stock_and_snapshots_price(self):
		self._add(self.rice, 2)

		result = place_order(self.customer, shipping_address_id=self.address.id)

		self.rice.refresh_from_db()
		self.assertEqual(self.rice.stock, 3)

		items = list(result.order.items.all())
		self.assertEqual(len(items), 1)
		self.assertEqual(items[0].product_id, self.rice.id)
		self.assertEqual(items[0].quantity, 2)
		self.assertEqual(items[0].price, Decimal('100.00'))
		self.assertEqual(result.order.total_amount, Decimal('200.00'))
		self.assertEqual(result.order.shipping_address_id, self.address.id)
		self.assertEqual(result.order.payment_status, 'pending')
		self.assertEqual(result.order.order_status, 'processing')
		self.assertEqual(result.order.payment_mode, 'cod')

		self.assertIsNone(result.warning)
		self.assertEqual(result.invoice.order_id, result.order.id)
		self.assertEqual(result.invoice.payment_status, 'unpaid')
		self.assertEqual(result.invoice.pdf_file.name, f'invoices/invoice-{result.invoice.id}.pdf')
		self.assertTrue(artifact_is_complete(result.invoice.pdf_file.name))

		self.assertEqual(self.cart.items.count(), 0)

	def test_order_total_matches_line_items(self):
		self._add(self.rice, 3)
		self._add(self.dal, 2)

		order = place_order(self.customer).order

		expected = sum(item.price * item.quantity for item in order.items.all())
		self.assertEqual(order.total_amount, expected)
		self.assertEqual(order.total_amount, Decimal('800.00'))

	def test_invoice_amount_matches_printed_total(self):
		self._add(self.rice, 2)

		result = place_order(self.customer, payment_mode='upi')

		# 200 + 18% tax; shipping is printed but not added to the total
		self.assertEqual(result.invoice.amount, Decimal('236.00'))
		self.assertEqual(result.invoice.payment_method, 'upi')

	@override_settings(INVOICE_TOTAL_INCLUDES_SHIPPING=True)
	def test_invoice_amount_can_include_shipping(self):
		self._add(self.rice, 2)

		result = place_order(self.customer)

		self.assertEqual(result.invoice.amount, Decimal('286.00'))

	def test_insufficient_stock_leaves_everything_unchanged(self):
		self._add(self.dal, 2)
		self._add(self.rice, 6)

		with self.assertRaises(InsufficientStock) as ctx:
			place_order(self.customer)

		self.assertEqual(ctx.exception.product_name, 'Basmati Rice 5kg')
		self.rice.refresh_from_db()
		self.dal.refresh_from_db()
		self.assertEqual(self.rice.stock, 5)
		self.assertEqual(self.dal.stock, 10)
		self.assertEqual(Order.objects.count(), 0)
		self.assertEqual(Invoice.objects.count(), 0)
		self.assertEqual(self.cart.items.count(), 2)

	def test_stock_change_during_checkout_rolls_back_earlier_decrements(self):
		self._add(self.dal, 1)
		self._add(self.rice, 2)
		# Another checkout took most of the rice after validation passed.
		Product.objects.filter(pk=self.rice.pk).update(stock=1)

		with mock.patch('orders.services._validate_cart_items'):
			with self.assertRaises(InsufficientStock):
				place_order(self.customer)

		self.dal.refresh_from_db()
		self.rice.refresh_from_db()
		self.assertEqual(self.dal.stock, 10)
		self.assertEqual(self.rice.stock, 1)
		self.assertEqual(Order.objects.count(), 0)

	def test_empty_cart_raises(self):
		with self.assertRaises(EmptyCart):
			place_order(self.customer)
		self.assertEqual(Order.objects.count(), 0)
		self.assertEqual(Invoice.objects.count(), 0)

	def test_user_without_cart_gets_empty_cart(self):
		self.cart.delete()
		with self.assertRaises(EmptyCart):
			place_order(self.customer)

	def test_deleted_product_raises_product_not_found(self):
		doomed = Product.objects.create(category=self.category, name='Sugar 1kg', price='45.00', stock=5)
		self._add(self.rice, 1)
		self._add(doomed, 1)
		doomed.delete()

		with self.assertRaises(ProductNotFound):
			place_order(self.customer)
		self.rice.refresh_from_db()
		self.assertEqual(self.rice.stock, 5)

	def test_foreign_shipping_address_is_rejected(self):
		User = get_user_model()
		stranger = User.objects.create_user(username='s@example.com', email='s@example.com', password='12345678')
		foreign = ShippingAddress.objects.create(
			user=stranger,
			address_line1='1 Park Street',
			city='Kolkata',
			state='West Bengal',
			country='India',
			pin_code='700016',
			phone_number='9123456780',
		)
		self._add(self.rice, 1)

		with self.assertRaises(ValidationError):
			place_order(self.customer, shipping_address_id=foreign.id)
		self.rice.refresh_from_db()
		self.assertEqual(self.rice.stock, 5)

	def test_render_failure_keeps_order_and_returns_warning(self):
		self._add(self.rice, 2)

		with mock.patch('orders.services.generate_invoice_artifact', side_effect=GenerationTimeout()):
			result = place_order(self.customer)

		self.assertIsNotNone(result.warning)
		self.assertTrue(Order.objects.filter(pk=result.order.pk).exists())
		self.assertTrue(Invoice.objects.filter(pk=result.invoice.pk).exists())
		self.assertFalse(result.invoice.pdf_file)
		self.assertEqual(self.cart.items.count(), 0)
		self.rice.refresh_from_db()
		self.assertEqual(self.rice.stock, 3)

	def test_undecodable_logo_still_produces_invoice(self):
		logo_dir = tempfile.mkdtemp()
		self.addCleanup(shutil.rmtree, logo_dir, True)
		logo = write_undecodable_png(Path(logo_dir) / 'logo.png')
		self._add(self.rice, 2)

		with self.settings(INVOICE_LOGO_PATH=logo):
			result = place_order(self.customer)

		self.assertIsNone(result.warning)
		self.assertTrue(artifact_is_complete(result.invoice.pdf_file.name))
		self.assertEqual(self.cart.items.count(), 0)

	def test_layout_crash_keeps_order_and_returns_warning(self):
		self._add(self.rice, 2)

		with mock.patch('invoices.pdf.InvoiceLayout._items_table', side_effect=RuntimeError('layout crashed')):
			result = place_order(self.customer)

		self.assertEqual(result.warning, INVOICE_WARNING)
		self.assertEqual(Order.objects.count(), 1)
		self.assertFalse(result.invoice.pdf_file)
		self.assertFalse(artifact_is_complete(artifact_name(result.invoice.pk)))
		self.assertEqual(self.cart.items.count(), 0)

	def test_storage_failure_keeps_order_and_returns_warning(self):
		self._add(self.rice, 1)

		with mock.patch('invoices.rendering.default_storage.save', side_effect=OSError('disk full')):
			result = place_order(self.customer)

		self.assertEqual(result.warning, INVOICE_WARNING)
		self.assertFalse(result.invoice.pdf_file)
		self.assertEqual(self.cart.items.count(), 0)

	def test_failing_to_record_pdf_path_returns_warning(self):
		self._add(self.rice, 2)
		real_save = Invoice.save

		def failing_save(instance, *args, **kwargs):
			if 'pdf_file' in (kwargs.get('update_fields') or ()):
				raise DatabaseError('database is locked')
			return real_save(instance, *args, **kwargs)

		with mock.patch.object(Invoice, 'save', failing_save):
			result = place_order(self.customer)

		self.assertEqual(result.warning, INVOICE_WARNING)
		self.assertEqual(Order.objects.count(), 1)
		self.assertFalse(result.invoice.pdf_file)
		self.assertFalse(default_storage.exists(artifact_name(result.invoice.pk)))
		self.assertEqual(self.cart.items.count(), 0)


@override_settings(MEDIA_ROOT=TEMP_MEDIA_ROOT, ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class OrderApiTests(TestCase):
	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.customer = User.objects.create_user(
			username='api_customer@example.com',
			email='api_customer@example.com',
			password='12345678',
		)
		cls.other_customer = User.objects.create_user(
			username='other@example.com',
			email='other@example.com',
			password='12345678',
		)
		cls.admin = User.objects.create_user(
			username='admin@example.com',
			email='admin@example.com',
			password='12345678',
			role='admin',
		)
		cls.category = Category.objects.create(name='Fruits')
		cls.mango = Product.objects.create(category=cls.category, name='Alphonso Mango', price='120.00', stock=20)

	def setUp(self):
		self.client = APIClient()
		self.client.force_authenticate(user=self.customer)

	def _fill_cart(self, user, quantity=2):
		cart, _ = Cart.objects.get_or_create(user=user)
		CartItem.objects.create(cart=cart, product=self.mango, quantity=quantity)

	def test_place_order_returns_201_with_order_and_invoice(self):
		self._fill_cart(self.customer)

		res = self.client.post('/api/orders/place/', data={}, format='json')

		self.assertEqual(res.status_code, 201)
		self.assertEqual(res.data['order']['total_amount'], '240.00')
		self.assertEqual(res.data['order']['items'][0]['product_name'], 'Alphonso Mango')
		self.assertEqual(res.data['invoice']['order'], res.data['order']['id'])
		self.assertTrue(res.data['invoice']['has_pdf'])
		self.assertNotIn('warning', res.data)

	def test_place_order_reports_pdf_warning(self):
		self._fill_cart(self.customer)

		with mock.patch('orders.services.generate_invoice_artifact', side_effect=GenerationTimeout()):
			res = self.client.post('/api/orders/place/', data={'payment_mode': 'card'}, format='json')

		self.assertEqual(res.status_code, 201)
		self.assertIn('warning', res.data)
		self.assertEqual(res.data['order']['payment_mode'], 'card')

	def test_place_order_with_empty_cart_returns_400(self):
		res = self.client.post('/api/orders/place/', data={}, format='json')
		self.assertEqual(res.status_code, 400)
		self.assertEqual(res.data['detail'], 'Cart is empty.')

	def test_place_order_with_insufficient_stock_returns_400(self):
		self._fill_cart(self.customer, quantity=21)
		res = self.client.post('/api/orders/place/', data={}, format='json')
		self.assertEqual(res.status_code, 400)
		self.assertEqual(res.data['detail'], 'Insufficient stock for Alphonso Mango')

	def test_place_order_rejects_unknown_payment_mode(self):
		self._fill_cart(self.customer)
		res = self.client.post('/api/orders/place/', data={'payment_mode': 'barter'}, format='json')
		self.assertEqual(res.status_code, 400)
		self.assertEqual(Order.objects.count(), 0)

	def test_list_returns_only_own_orders(self):
		self._fill_cart(self.customer, quantity=1)
		place_order(self.customer)
		self._fill_cart(self.other_customer, quantity=1)
		place_order(self.other_customer)

		res = self.client.get('/api/orders/')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['count'], 1)
		self.assertEqual(res.data['results'][0]['user'], self.customer.id)

	def test_all_orders_is_admin_only(self):
		self._fill_cart(self.customer, quantity=1)
		place_order(self.customer)
		self._fill_cart(self.other_customer, quantity=1)
		place_order(self.other_customer)

		res = self.client.get('/api/orders/all/')
		self.assertEqual(res.status_code, 403)

		admin_client = APIClient()
		admin_client.force_authenticate(user=self.admin)
		res = admin_client.get('/api/orders/all/')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['count'], 2)
