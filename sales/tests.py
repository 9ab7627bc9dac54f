import shutil
import tempfile
from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal
from types import SimpleNamespace

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import SimpleTestCase, TestCase, override_settings
from rest_framework import status
from rest_framework.test import APITestCase

from procurement.models import PurchaseOrder
from third_party.models import Client, Vendor
from utils.enums import (
    QuotationRequestStatusChoices as QStatus, SalesOrderStatusChoices, VendorQuotationStatusChoices
)
from .grouping import bucket_key, group_quotations, group_status
from .models import QuotationRequest, VendorQuotation, SalesOrder
from .services import SalesOrderService, VendorQuotationService, DashboardService

User = get_user_model()

# 2025-01-01 10:00:00 UTC, a multiple of the 10 s window
BASE_TIME = datetime(2025, 1, 1, 10, 0, 0, tzinfo=dt_timezone.utc)


def row(client_id, seconds, status=QStatus.SENT, total='100'):
    return SimpleNamespace(
        client_id=client_id,
        client=SimpleNamespace(company_name=f'Client {client_id}'),
        created_at=BASE_TIME + timedelta(seconds=seconds),
        status=status,
        total_amount=Decimal(total),
    )


class QuotationGroupingTest(SimpleTestCase):

    def test_same_window_groups_together(self):
        self.assertEqual(bucket_key(1, row(1, 1).created_at), bucket_key(1, row(1, 8).created_at))
        self.assertNotEqual(bucket_key(1, row(1, 1).created_at), bucket_key(1, row(1, 16).created_at))
        self.assertNotEqual(bucket_key(1, row(1, 1).created_at), bucket_key(2, row(2, 1).created_at))

    def test_group_rows(self):
        groups = group_quotations([row(1, 1), row(1, 8), row(1, 16), row(2, 2)])
        self.assertEqual([len(group['items']) for group in groups], [2, 1, 1])
        self.assertEqual(groups[0]['total_amount'], Decimal('200'))
        self.assertEqual(groups[0]['created_at'], BASE_TIME + timedelta(seconds=1))
        self.assertEqual(groups[2]['client_id'], 2)

    def test_group_total_excludes_rejected(self):
        groups = group_quotations([row(1, 1, total='100'), row(1, 2, status=QStatus.REJECTED, total='50')])
        self.assertEqual(groups[0]['total_amount'], Decimal('100'))

    def test_group_status(self):
        def statuses(*values):
            return [SimpleNamespace(status=value) for value in values]

        self.assertEqual(group_status(statuses(QStatus.REJECTED, QStatus.REJECTED)), QStatus.REJECTED)
        self.assertEqual(group_status(statuses(QStatus.APPROVED, QStatus.PARTIAL, QStatus.REJECTED)), QStatus.COMPLETED)
        self.assertEqual(group_status(statuses(QStatus.APPROVED, QStatus.APPROVAL)), QStatus.APPROVAL)
        self.assertEqual(group_status(statuses(QStatus.APPROVED, QStatus.SENT)), QStatus.SENT)


class SalesOrderBatchStatusTest(TestCase):
    def setUp(self):
        self.customer = Client.objects.create(company_name='Acme Motors')
        self.first = SalesOrder.objects.create(client=self.customer)
        self.cancelled = SalesOrder.objects.create(client=self.customer, status=SalesOrderStatusChoices.CANCELLED)
        self.second = SalesOrder.objects.create(client=self.customer)
        self.ids = [self.first.id, self.cancelled.id, self.second.id]

    def test_partial_failure_keeps_successes(self):
        result = SalesOrderService.bulk_update_status(self.ids, SalesOrderStatusChoices.DESIGN_IN_REVIEW)

        self.assertEqual(result['updated'], [self.first.id, self.second.id])
        self.assertEqual([failure['id'] for failure in result['failed']], [self.cancelled.id])
        self.assertIn('CANCELLED', result['failed'][0]['error'])

        self.first.refresh_from_db()
        self.second.refresh_from_db()
        self.cancelled.refresh_from_db()
        self.assertEqual(self.first.status, SalesOrderStatusChoices.DESIGN_IN_REVIEW)
        self.assertEqual(self.second.status, SalesOrderStatusChoices.DESIGN_IN_REVIEW)
        self.assertEqual(self.cancelled.status, SalesOrderStatusChoices.CANCELLED)

    def test_missing_order_reported(self):
        result = SalesOrderService.bulk_update_status([self.first.id, 999999], SalesOrderStatusChoices.DESIGN_APPROVED)
        self.assertEqual(result['updated'], [self.first.id])
        self.assertEqual(result['failed'], [{'id': 999999, 'error': 'Sales order not found'}])

    def test_atomic_mode_rolls_back(self):
        with self.assertRaises(ValidationError):
            SalesOrderService.bulk_update_status(self.ids, SalesOrderStatusChoices.DESIGN_IN_REVIEW, atomic=True)

        self.first.refresh_from_db()
        self.second.refresh_from_db()
        self.assertEqual(self.first.status, SalesOrderStatusChoices.CREATED)
        self.assertEqual(self.second.status, SalesOrderStatusChoices.CREATED)

    def test_material_ready(self):
        order = SalesOrderService.mark_material_ready(self.first)
        self.assertEqual(order.status, SalesOrderStatusChoices.MATERIAL_READY)
        self.assertTrue(order.material_available)

        in_production = SalesOrder.objects.create(client=self.customer, status=SalesOrderStatusChoices.IN_PRODUCTION)
        order = SalesOrderService.mark_material_ready(in_production)
        self.assertEqual(order.status, SalesOrderStatusChoices.IN_PRODUCTION)
        self.assertTrue(order.material_available)


class VendorQuotationResponseTest(TestCase):
    def setUp(self):
        self.vendor = Vendor.objects.create(name='Steel Corp')

    def test_waiting_statuses_become_received(self):
        for value in ('Sent ', 'DRAFT', 'EMAIL_RECEIVED'):
            with self.subTest(status=value):
                quotation = VendorQuotation.objects.create(vendor=self.vendor, status=value)
                quotation = VendorQuotationService.upload_response(quotation, document_name='quote.pdf')
                self.assertEqual(quotation.status, VendorQuotationStatusChoices.RECEIVED)
                self.assertEqual(quotation.received_document_name, 'quote.pdf')
                self.assertIsNotNone(quotation.received_at)

    def test_status_matched_exactly(self):
        """'Sent' without the trailing space is not a waiting status"""
        for value in ('Sent', 'APPROVED'):
            with self.subTest(status=value):
                quotation = VendorQuotation.objects.create(vendor=self.vendor, status=value)
                quotation = VendorQuotationService.upload_response(quotation, document_name='quote.pdf')
                self.assertEqual(quotation.status, value)

    def test_document_required(self):
        quotation = VendorQuotation.objects.create(vendor=self.vendor)
        with self.assertRaises(ValidationError):
            VendorQuotationService.upload_response(quotation)


class DashboardTest(TestCase):

    def test_approved_purchase_orders_use_legacy_value(self):
        vendor = Vendor.objects.create(name='Steel Corp')
        PurchaseOrder.objects.create(vendor=vendor, status='Approved ')
        PurchaseOrder.objects.create(vendor=vendor, status='Approved ')
        PurchaseOrder.objects.create(vendor=vendor, status='APPROVED')
        PurchaseOrder.objects.create(vendor=vendor, status='Approved')

        stats = DashboardService.stats()
        self.assertEqual(stats['approved_purchase_orders'], 2)
        self.assertEqual(stats['sales_orders']['total'], 0)


class QuotationAPITest(APITestCase):
    def setUp(self):
        self.user = User.objects.create_user(username='sales', password='pass12345')
        self.client.force_authenticate(user=self.user)
        self.customer = Client.objects.create(company_name='Acme Motors')

    def test_send_and_batch_approve(self):
        response = self.client.post('/api/sales/quotation-requests/send/', {
            'client': self.customer.id,
            'items': [
                {'item_description': 'Compression spring 2mm', 'quantity': '1000', 'unit_rate': '1.25'},
                {'item_description': 'Torsion spring', 'quantity': '500', 'unit_rate': '2'},
            ],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(response.data), 2)
        self.assertEqual({item['status'] for item in response.data}, {QStatus.SENT})
        self.assertEqual(response.data[0]['total_amount'], '1250.00')
        ids = [item['id'] for item in response.data]

        response = self.client.post('/api/sales/quotation-requests/batch-approve/', {
            'ids': ids,
            'approval_reference': 'PO-ACME-778.pdf',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['approved'], 2)
        for quotation in QuotationRequest.objects.filter(pk__in=ids):
            self.assertEqual(quotation.status, QStatus.APPROVED)
            self.assertEqual(quotation.approval_reference, 'PO-ACME-778.pdf')

    def test_batch_approve_unknown_id(self):
        response = self.client.post('/api/sales/quotation-requests/batch-approve/', {'ids': [424242]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_batch_approve_with_document(self):
        media_root = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, media_root, ignore_errors=True)
        rows = [
            QuotationRequest.objects.create(client=self.customer, item_description=f'Spring {n}', quantity=1, status=QStatus.SENT)
            for n in range(2)
        ]

        with override_settings(MEDIA_ROOT=media_root):
            response = self.client.post('/api/sales/quotation-requests/batch-approve/', {
                'ids': [rows[0].id, rows[1].id],
                'approval_document': SimpleUploadedFile('approval.pdf', b'%PDF-1.4', content_type='application/pdf'),
            }, format='multipart')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        stored = {quotation.approval_document.name for quotation in QuotationRequest.objects.all()}
        self.assertEqual(len(stored), 1)
        self.assertEqual(QuotationRequest.objects.filter(approval_reference='approval.pdf').count(), 2)

    def test_grouped(self):
        other = Client.objects.create(company_name='Beta Auto')
        for seconds, customer in [(1, self.customer), (8, self.customer), (16, self.customer), (2, other)]:
            QuotationRequest.objects.create(
                client=customer,
                item_description='Spring',
                quantity=10,
                unit_rate=Decimal('3'),
                status=QStatus.SENT,
                created_at=BASE_TIME + timedelta(seconds=seconds),
            )

        response = self.client.get('/api/sales/quotation-requests/grouped/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        sizes = sorted(len(group['items']) for group in response.data)
        self.assertEqual(sizes, [1, 1, 2])

        response = self.client.get(f'/api/sales/quotation-requests/grouped/?client={other.id}')
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['total_amount'], '30.00')


class SalesOrderAPITest(APITestCase):
    def setUp(self):
        self.user = User.objects.create_user(username='sales', password='pass12345')
        self.client.force_authenticate(user=self.user)
        self.customer = Client.objects.create(company_name='Acme Motors')

    def test_create_and_batch_status(self):
        response = self.client.post('/api/sales/sales-orders/', {
            'client': self.customer.id,
            'project_name': 'Clutch springs',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertRegex(response.data['so_number'], r'^SO-\d{8}-0001$')

        cancelled = SalesOrder.objects.create(client=self.customer, status=SalesOrderStatusChoices.CANCELLED)
        response = self.client.post('/api/sales/sales-orders/batch-status/', {
            'ids': [response.data['id'], cancelled.id],
            'status': SalesOrderStatusChoices.DESIGN_IN_REVIEW,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['updated']), 1)
        self.assertEqual(response.data['failed'][0]['id'], cancelled.id)

        response = self.client.post('/api/sales/sales-orders/batch-status/', {
            'ids': [cancelled.id],
            'status': SalesOrderStatusChoices.DISPATCHED,
            'atomic': True,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_vendor_quotation_upload_and_dashboard(self):
        vendor = Vendor.objects.create(name='Steel Corp')
        quotation = VendorQuotation.objects.create(vendor=vendor, status='Sent ')

        response = self.client.post(f'/api/sales/vendor-quotations/{quotation.id}/upload-response/', {
            'document_name': 'steelcorp-quote.pdf',
            'total_amount': '15000.00',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], VendorQuotationStatusChoices.RECEIVED)
        self.assertEqual(response.data['total_amount'], '15000.00')

        response = self.client.get('/api/sales/dashboard/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['vendor_quotations']['received'], 1)
