"""Invoices app tests."""

import re
import shutil
import struct
import tempfile
import threading
import zlib
from decimal import Decimal
from pathlib import Path
from types import SimpleNamespace
from unittest import mock

from django.contrib.auth import get_user_model
from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from django.db import DatabaseError
from django.test import SimpleTestCase, TestCase, override_settings
from django.utils import timezone
from PIL import Image
from rest_framework.exceptions import NotFound
from rest_framework.test import APIClient

from invoices.documents import build_invoice_document, resolve_line_items
from invoices.exceptions import (
	GenerationTimeout,
	InvalidInvoiceInput,
	InvoiceRenderError,
	NoValidLineItems,
	StreamWriteError,
)
from invoices.models import Invoice
from invoices.pdf import logo_is_usable
from invoices.pricing import format_currency, invoice_summary
from invoices.rendering import artifact_is_complete, artifact_name, render_invoice, store_artifact
from invoices.services import generate_invoice_artifact, get_invoice_artifact
from orders.models import Order, OrderItem
from products.models import Category, Product

TEMP_MEDIA_ROOT = tempfile.mkdtemp()


def tearDownModule():
	shutil.rmtree(TEMP_MEDIA_ROOT, ignore_errors=True)


def _normalized_pdf(content):
	# Drop the document identifier so renders can be compared byte for byte.
	return re.sub(rb'/ID \[.*?\]', b'', content, flags=re.S)


def _png_chunk(kind, data):
	return struct.pack('>I', len(data)) + kind + data + struct.pack('>I', zlib.crc32(kind + data) & 0xffffffff)


def write_undecodable_png(path):
	"""A PNG whose chunks and checksums are valid but whose pixel data is not."""
	header = struct.pack('>IIBBBBB', 8, 8, 8, 2, 0, 0, 0)
	Path(path).write_bytes(
		b'\x89PNG\r\n\x1a\n'
		+ _png_chunk(b'IHDR', header)
		+ _png_chunk(b'IDAT', b'definitely not deflate data')
		+ _png_chunk(b'IEND', b'')
	)
	return str(path)


class InvoicePricingTests(SimpleTestCase):
	def test_tax_is_eighteen_percent(self):
		summary = invoice_summary(Decimal('1000'))
		self.assertEqual(summary.tax, Decimal('180.00'))
		self.assertEqual(summary.shipping, Decimal('0.00'))
		self.assertEqual(summary.total, Decimal('1180.00'))

	def test_shipping_charged_up_to_threshold(self):
		self.assertEqual(invoice_summary(Decimal('400')).shipping, Decimal('50.00'))
		self.assertEqual(invoice_summary(Decimal('499')).shipping, Decimal('50.00'))

	def test_free_shipping_above_threshold(self):
		self.assertEqual(invoice_summary(Decimal('600')).shipping, Decimal('0.00'))

	def test_shipping_is_not_added_to_total_by_default(self):
		summary = invoice_summary(Decimal('400'))
		self.assertEqual(summary.tax, Decimal('72.00'))
		self.assertEqual(summary.shipping, Decimal('50.00'))
		self.assertEqual(summary.total, Decimal('472.00'))

	@override_settings(INVOICE_TOTAL_INCLUDES_SHIPPING=True)
	def test_shipping_can_be_included_in_total(self):
		self.assertEqual(invoice_summary(Decimal('400')).total, Decimal('522.00'))

	@override_settings(INVOICE_TAX_RATE='0.05', INVOICE_SHIPPING_FEE='30')
	def test_rates_come_from_settings(self):
		summary = invoice_summary(Decimal('200'))
		self.assertEqual(summary.tax, Decimal('10.00'))
		self.assertEqual(summary.shipping, Decimal('30.00'))

	def test_currency_format(self):
		self.assertEqual(format_currency(Decimal('1234.5')), 'Rs. 1,234.50')


class LineItemResolutionTests(SimpleTestCase):
	def test_invalid_lines_are_skipped(self):
		product = SimpleNamespace(name='Tomato')
		lines = [
			SimpleNamespace(pk=1, product=None, price=Decimal('10'), quantity=1),
			SimpleNamespace(pk=2, product=SimpleNamespace(name='  '), price=Decimal('10'), quantity=1),
			SimpleNamespace(pk=3, product=product, price='abc', quantity=1),
			SimpleNamespace(pk=4, product=product, price=Decimal('10'), quantity=0),
			SimpleNamespace(pk=5, product=product, price=Decimal('10'), quantity='2'),
			SimpleNamespace(pk=6, product=product, price=Decimal('12.50'), quantity=3),
		]

		items = resolve_line_items(lines)

		self.assertEqual(len(items), 1)
		self.assertEqual(items[0].name, 'Tomato')
		self.assertEqual(items[0].amount, Decimal('37.50'))


class LogoProbeTests(SimpleTestCase):
	def setUp(self):
		self.tmp = Path(tempfile.mkdtemp())
		self.addCleanup(shutil.rmtree, self.tmp, True)

	def test_valid_image_is_usable(self):
		path = self.tmp / 'logo.png'
		Image.new('RGB', (8, 8), (200, 150, 0)).save(path)
		self.assertTrue(logo_is_usable(str(path)))

	def test_missing_or_corrupt_image_is_not_usable(self):
		broken = self.tmp / 'broken.png'
		broken.write_bytes(b'not an image')
		self.assertFalse(logo_is_usable(str(broken)))
		self.assertFalse(logo_is_usable(str(self.tmp / 'missing.png')))
		self.assertFalse(logo_is_usable(''))


class InvoiceFixtureMixin:
	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.customer = User.objects.create_user(
			username='inv_customer@example.com',
			email='inv_customer@example.com',
			password='12345678',
			first_name='Meera',
			last_name='Iyer',
		)
		cls.other_customer = User.objects.create_user(
			username='inv_other@example.com',
			email='inv_other@example.com',
			password='12345678',
		)
		cls.admin = User.objects.create_user(
			username='inv_admin@example.com',
			email='inv_admin@example.com',
			password='12345678',
			role='admin',
		)
		cls.category = Category.objects.create(name='Vegetables')
		cls.product = Product.objects.create(category=cls.category, name='Tomato', price='30.00', stock=50)

	def setUp(self):
		super().setUp()
		# Per-test media root: rolled-back ids are reused, so shared files would leak between tests.
		media_root = tempfile.mkdtemp(dir=TEMP_MEDIA_ROOT)
		media_override = self.settings(MEDIA_ROOT=media_root)
		media_override.enable()
		self.addCleanup(media_override.disable)

	def _make_invoice(self, lines=1, product=None, user=None):
		user = user or self.customer
		product = product or self.product
		order = Order.objects.create(user=user, total_amount=Decimal('0'))
		for _ in range(lines):
			OrderItem.objects.create(order=order, product=product, quantity=2, price=product.price)
		order.total_amount = sum(item.line_total for item in order.items.all())
		order.save(update_fields=['total_amount'])
		invoice = Invoice.objects.create(
			order=order,
			user=user,
			amount=invoice_summary(order.total_amount).total,
			payment_method='cod',
			order_date=timezone.now(),
		)
		return invoice, order

	def _render(self, invoice, order, **kwargs):
		return render_invoice(invoice, order, order.user, order.shipping_address, **kwargs)

	def _read(self, name):
		with default_storage.open(name, 'rb') as fh:
			return fh.read()


@override_settings(MEDIA_ROOT=TEMP_MEDIA_ROOT)
class RenderInvoiceTests(InvoiceFixtureMixin, TestCase):
	def test_render_writes_non_empty_pdf(self):
		invoice, order = self._make_invoice()

		name = self._render(invoice, order)

		self.assertEqual(name, artifact_name(invoice.pk))
		self.assertTrue(artifact_is_complete(name))
		self.assertTrue(self._read(name).startswith(b'%PDF'))

	def test_missing_inputs_are_rejected(self):
		invoice, order = self._make_invoice()
		with self.assertRaises(InvalidInvoiceInput):
			render_invoice(None, order, self.customer, None)
		with self.assertRaises(InvalidInvoiceInput):
			render_invoice(invoice, order, None, None)

	def test_order_without_items_is_rejected(self):
		invoice, order = self._make_invoice(lines=0)
		with self.assertRaises(InvalidInvoiceInput):
			self._render(invoice, order)
		self.assertFalse(artifact_is_complete(artifact_name(invoice.pk)))

	def test_all_invalid_items_raise_no_valid_line_items(self):
		gone = Product.objects.create(category=self.category, name='Onion', price='25.00', stock=5)
		invoice, order = self._make_invoice(product=gone)
		gone.delete()

		with self.assertRaises(NoValidLineItems):
			build_invoice_document(invoice, order, self.customer, None)
		with self.assertRaises(NoValidLineItems):
			self._render(invoice, order)
		self.assertFalse(artifact_is_complete(artifact_name(invoice.pk)))

	def test_regenerating_gives_equivalent_document(self):
		invoice, order = self._make_invoice(lines=3)

		first = self._read(self._render(invoice, order))
		second = self._read(self._render(invoice, order))

		self.assertEqual(_normalized_pdf(first), _normalized_pdf(second))

	def test_long_orders_continue_on_more_pages(self):
		invoice, order = self._make_invoice(lines=60)

		content = self._read(self._render(invoice, order))

		pages = re.search(rb'/Count (\d+)', content)
		self.assertIsNotNone(pages)
		self.assertGreaterEqual(int(pages.group(1)), 2)

	def test_timeout_raises_and_leaves_no_artifact(self):
		invoice, order = self._make_invoice()
		started = threading.Event()

		def stalled_layout(document, cancel_event=None):
			started.set()
			cancel_event.wait(5)
			raise GenerationTimeout()

		with mock.patch('invoices.rendering.layout_invoice', side_effect=stalled_layout):
			with self.assertRaises(GenerationTimeout):
				self._render(invoice, order, timeout=0.05)

		self.assertTrue(started.is_set())
		self.assertFalse(artifact_is_complete(artifact_name(invoice.pk)))

	@override_settings(INVOICE_GENERATION_TIMEOUT=0.05)
	def test_timeout_defaults_to_setting(self):
		invoice, order = self._make_invoice()

		def stalled_layout(document, cancel_event=None):
			cancel_event.wait(5)
			raise GenerationTimeout()

		with mock.patch('invoices.rendering.layout_invoice', side_effect=stalled_layout):
			with self.assertRaises(GenerationTimeout):
				self._render(invoice, order)

	def test_undecodable_logo_falls_back_to_placeholder(self):
		invoice, order = self._make_invoice()
		logo_dir = tempfile.mkdtemp()
		self.addCleanup(shutil.rmtree, logo_dir, True)
		logo = write_undecodable_png(Path(logo_dir) / 'logo.png')
		self.assertTrue(logo_is_usable(logo))

		with self.settings(INVOICE_LOGO_PATH=logo):
			name = self._render(invoice, order)

		self.assertTrue(artifact_is_complete(name))
		self.assertTrue(self._read(name).startswith(b'%PDF'))

	def test_unexpected_layout_error_becomes_render_error(self):
		invoice, order = self._make_invoice()

		with mock.patch('invoices.pdf.InvoiceLayout._summary', side_effect=ZeroDivisionError('bad row')):
			with self.assertRaises(InvoiceRenderError):
				self._render(invoice, order)

		self.assertFalse(artifact_is_complete(artifact_name(invoice.pk)))

	def test_concurrent_write_leaves_only_canonical_file(self):
		invoice, _ = self._make_invoice()
		name = artifact_name(invoice.pk)
		real_save = default_storage.save

		def save_after_other_writer(target, content, *args, **kwargs):
			# Another render finishes between our delete and our save.
			real_save(name, ContentFile(b'%PDF-1.4 other'))
			return real_save(target, content, *args, **kwargs)

		with mock.patch.object(default_storage, 'save', side_effect=save_after_other_writer):
			saved = store_artifact(invoice.pk, b'%PDF-1.4 ours')

		self.assertEqual(saved, name)
		self.assertTrue(artifact_is_complete(name))
		prefix = f'invoice-{invoice.pk}'
		_, files = default_storage.listdir('invoices')
		self.assertEqual([f for f in files if f.startswith(prefix)], [f'{prefix}.pdf'])

	def test_empty_output_is_a_write_error(self):
		invoice, _ = self._make_invoice()
		with self.assertRaises(StreamWriteError):
			store_artifact(invoice.pk, b'')
		self.assertFalse(default_storage.exists(artifact_name(invoice.pk)))


@override_settings(MEDIA_ROOT=TEMP_MEDIA_ROOT, ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class InvoiceRetrievalTests(InvoiceFixtureMixin, TestCase):
	def test_missing_artifact_is_regenerated(self):
		invoice, _ = self._make_invoice()
		self.assertFalse(invoice.pdf_file)

		name = get_invoice_artifact(invoice.pk, self.customer)

		invoice.refresh_from_db()
		self.assertEqual(invoice.pdf_file.name, name)
		self.assertTrue(artifact_is_complete(name))

	def test_unrecorded_artifact_is_discarded(self):
		invoice, _ = self._make_invoice()
		real_save = Invoice.save

		def failing_save(instance, *args, **kwargs):
			if 'pdf_file' in (kwargs.get('update_fields') or ()):
				raise DatabaseError('database is locked')
			return real_save(instance, *args, **kwargs)

		with mock.patch.object(Invoice, 'save', failing_save):
			with self.assertRaises(DatabaseError):
				generate_invoice_artifact(invoice)

		self.assertFalse(default_storage.exists(artifact_name(invoice.pk)))
		invoice.refresh_from_db()
		self.assertFalse(invoice.pdf_file)

	def test_other_users_cannot_see_invoice(self):
		invoice, _ = self._make_invoice()
		with self.assertRaises(NotFound):
			get_invoice_artifact(invoice.pk, self.other_customer)
		with self.assertRaises(NotFound):
			get_invoice_artifact(999999, self.customer)

	def test_admin_can_fetch_any_invoice(self):
		invoice, _ = self._make_invoice()
		name = get_invoice_artifact(invoice.pk, self.admin)
		self.assertTrue(artifact_is_complete(name))

	def test_download_endpoint_streams_pdf(self):
		invoice, _ = self._make_invoice()
		client = APIClient()
		client.force_authenticate(user=self.customer)

		res = client.get(f'/api/invoice/{invoice.pk}/')

		self.assertEqual(res.status_code, 200)
		self.assertEqual(res['Content-Type'], 'application/pdf')
		self.assertTrue(b''.join(res.streaming_content).startswith(b'%PDF'))

	def test_download_endpoint_returns_404_for_strangers(self):
		invoice, _ = self._make_invoice()
		client = APIClient()
		client.force_authenticate(user=self.other_customer)

		res = client.get(f'/api/invoice/{invoice.pk}/')

		self.assertEqual(res.status_code, 404)

	def test_download_endpoint_reports_render_failure_as_json(self):
		gone = Product.objects.create(category=self.category, name='Garlic', price='15.00', stock=5)
		invoice, _ = self._make_invoice(product=gone)
		gone.delete()
		client = APIClient()
		client.force_authenticate(user=self.customer)

		res = client.get(f'/api/invoice/{invoice.pk}/')

		self.assertEqual(res.status_code, 500)
		self.assertEqual(res.json()['detail'], 'No valid items to render on the invoice.')

	def test_list_returns_own_invoices(self):
		self._make_invoice()
		self._make_invoice(user=self.other_customer)
		client = APIClient()
		client.force_authenticate(user=self.customer)

		res = client.get('/api/invoices/')

		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['count'], 1)
		self.assertTrue(res.data['results'][0]['download_url'].endswith(f"/api/invoice/{res.data['results'][0]['id']}/"))

	def test_deleting_invoice_removes_pdf(self):
		invoice, _ = self._make_invoice()
		name = get_invoice_artifact(invoice.pk, self.customer)
		invoice.refresh_from_db()

		invoice.delete()

		self.assertFalse(default_storage.exists(name))
