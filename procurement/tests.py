from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APITestCase

from inventory.models import GRN, GRNItem
from third_party.models import Vendor
from utils.enums import POItemBalanceStatus, POStatusChoices
from .models import PurchaseOrder, PurchaseOrderItem, Payment
from .services import POBalanceService, ReconciliationService, PaymentService

User = get_user_model()


def make_purchase_order(vendor, lines, **kwargs):
    """lines: [(item_code, quantity, unit_rate), ...]"""
    purchase_order = PurchaseOrder.objects.create(vendor=vendor, **kwargs)
    for item_code, quantity, unit_rate in lines:
        PurchaseOrderItem.objects.create(
            purchase_order=purchase_order,
            item_code=item_code,
            material_name=f'{item_code} material',
            material_type='RM',
            quantity=Decimal(quantity),
            unit_rate=Decimal(unit_rate),
        )
    return purchase_order


def receive(purchase_order, accepted_by_code, status='AVAILABLE'):
    """GRN with one line per PO item; accepted quantities keyed by item code"""
    grn = GRN.objects.create(purchase_order=purchase_order, status='INSPECTED')
    for po_item in purchase_order.items.all():
        accepted = Decimal(accepted_by_code.get(po_item.item_code, '0'))
        GRNItem.objects.create(
            grn=grn,
            po_item=po_item,
            item_code=po_item.item_code,
            ordered_qty=po_item.quantity,
            received_qty=accepted,
            accepted_qty=accepted,
            status=status,
        )
    return grn


class PurchaseOrderModelTest(TestCase):
    def setUp(self):
        self.vendor = Vendor.objects.create(name='Steel Corp')

    def test_po_number_and_amounts(self):
        purchase_order = make_purchase_order(self.vendor, [('RM-001', '100', '5.50'), ('RM-002', '10', '20')])
        self.assertRegex(purchase_order.po_number, r'^PO-\d{8}-0001$')
        self.assertEqual(purchase_order.items.get(item_code='RM-001').amount, Decimal('550.00'))
        self.assertEqual(purchase_order.total_amount, Decimal('750.00'))

        second = make_purchase_order(self.vendor, [('RM-003', '1', '1')])
        self.assertTrue(second.po_number.endswith('-0002'))


class POBalanceTest(TestCase):
    def setUp(self):
        self.vendor = Vendor.objects.create(name='Steel Corp')
        self.purchase_order = make_purchase_order(
            self.vendor, [('RM-001', '100', '5'), ('RM-002', '50', '2')], status=POStatusChoices.APPROVED
        )

    def test_open_closed_and_excess_lines(self):
        receive(self.purchase_order, {'RM-001': '100', 'RM-002': '60'}, status='EXCESS_ACCEPTED')

        balance = POBalanceService.balance(self.purchase_order)
        lines = {line['item_code']: line for line in balance['items']}
        self.assertEqual(lines['RM-001']['status'], POItemBalanceStatus.CLOSED)
        self.assertEqual(lines['RM-002']['status'], POItemBalanceStatus.EXCESS)
        self.assertEqual(lines['RM-002']['balance_qty'], Decimal('-10'))
        self.assertEqual(balance['overall_status'], 'ORDERED')

    def test_partial_receipt(self):
        receive(self.purchase_order, {'RM-001': '40'})
        balance = POBalanceService.balance(self.purchase_order)
        self.assertEqual(balance['overall_status'], 'PARTIALLY_RECEIVED')
        self.assertEqual(balance['items'][0]['balance_qty'], Decimal('60'))

        POBalanceService.sync_status(self.purchase_order)
        self.purchase_order.refresh_from_db()
        self.assertEqual(self.purchase_order.status, POStatusChoices.PARTIALLY_RECEIVED)

    def test_complete_receipt_closes_po(self):
        receive(self.purchase_order, {'RM-001': '100', 'RM-002': '50'})
        self.assertEqual(POBalanceService.balance(self.purchase_order)['overall_status'], 'COMPLETED')

        POBalanceService.sync_status(self.purchase_order)
        self.purchase_order.refresh_from_db()
        self.assertEqual(self.purchase_order.status, POStatusChoices.COMPLETED)

    def test_legacy_status_matched_exactly(self):
        """'Approved ' with its trailing space counts; 'Approved' without it does not"""
        receive(self.purchase_order, {'RM-001': '30'}, status='Approved ')
        receive(self.purchase_order, {'RM-001': '20'}, status='Approved')

        lines = {line['item_code']: line for line in POBalanceService.balance(self.purchase_order)['items']}
        self.assertEqual(lines['RM-001']['accepted_qty'], Decimal('30'))

    def test_pending_and_rejected_lines_do_not_count(self):
        receive(self.purchase_order, {'RM-001': '100'}, status='PENDING')
        receive(self.purchase_order, {'RM-001': '100'}, status='REJECTED')
        lines = {line['item_code']: line for line in POBalanceService.balance(self.purchase_order)['items']}
        self.assertEqual(lines['RM-001']['accepted_qty'], Decimal('0'))
        self.assertEqual(lines['RM-001']['status'], POItemBalanceStatus.OPEN)


class ReconciliationTest(TestCase):
    def setUp(self):
        self.vendor = Vendor.objects.create(name='Steel Corp')
        self.purchase_order = make_purchase_order(
            self.vendor,
            [('RM-001', '100', '5'), ('RM-002', '100', '2'), ('RM-003', '100', '1')],
            status=POStatusChoices.APPROVED
        )

    def test_shortage_and_overage(self):
        receive(self.purchase_order, {'RM-001': '80', 'RM-002': '100', 'RM-003': '0'}, status='AVAILABLE')
        receive(self.purchase_order, {'RM-003': '120'}, status='OVERAGE')

        lines = {line['item_code']: line for line in ReconciliationService.reconcile(self.purchase_order)}
        self.assertEqual((lines['RM-001']['shortage_qty'], lines['RM-001']['overage_qty']), (Decimal('20'), Decimal('0')))
        self.assertEqual((lines['RM-002']['shortage_qty'], lines['RM-002']['overage_qty']), (Decimal('0'), Decimal('0')))
        self.assertEqual((lines['RM-003']['shortage_qty'], lines['RM-003']['overage_qty']), (Decimal('0'), Decimal('20')))

    def test_replacement_po_covers_shortages_once(self):
        receive(self.purchase_order, {'RM-001': '80', 'RM-002': '100', 'RM-003': '100'})

        replacement = ReconciliationService.create_replacement_po(self.purchase_order, notes='Short shipment')
        self.assertEqual(replacement.parent_po, self.purchase_order)
        self.assertEqual(replacement.vendor, self.vendor)
        self.assertEqual(replacement.status, POStatusChoices.DRAFT)

        items = list(replacement.items.all())
        self.assertEqual(len(items), 1)
        self.assertEqual(items[0].item_code, 'RM-001')
        self.assertEqual(items[0].quantity, Decimal('20'))
        self.assertEqual(items[0].unit_rate, Decimal('5'))

        with self.assertRaises(ValidationError):
            ReconciliationService.create_replacement_po(self.purchase_order)

    def test_no_shortage_no_replacement(self):
        receive(self.purchase_order, {'RM-001': '100', 'RM-002': '100', 'RM-003': '100'})
        with self.assertRaises(ValidationError):
            ReconciliationService.create_replacement_po(self.purchase_order)
        self.assertFalse(PurchaseOrder.objects.filter(parent_po=self.purchase_order).exists())


class PurchaseOrderAPITest(APITestCase):
    def setUp(self):
        self.user = User.objects.create_user(username='buyer', password='pass12345')
        self.client.force_authenticate(user=self.user)
        self.vendor = Vendor.objects.create(name='Steel Corp')

    def test_create_with_items(self):
        response = self.client.post('/api/procurement/purchase-orders/', {
            'vendor': self.vendor.id,
            'items': [
                {'item_code': 'RM-001', 'quantity': '100', 'unit_rate': '5.00'},
                {'item_code': 'RM-002', 'quantity': '10', 'unit_rate': '12.50'},
            ],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], POStatusChoices.DRAFT)
        self.assertEqual(response.data['total_amount'], '625.00')
        self.assertEqual(response.data['created_by'], self.user.id)

    def test_items_required(self):
        response = self.client.post('/api/procurement/purchase-orders/', {
            'vendor': self.vendor.id,
            'items': [],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_items_locked_after_approval(self):
        purchase_order = make_purchase_order(self.vendor, [('RM-001', '100', '5')], status=POStatusChoices.APPROVED)
        response = self.client.patch(f'/api/procurement/purchase-orders/{purchase_order.id}/', {
            'items': [{'item_code': 'RM-001', 'quantity': '200', 'unit_rate': '5'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(purchase_order.items.get().quantity, Decimal('100'))

    def test_balance_reconciliation_and_replacement(self):
        purchase_order = make_purchase_order(self.vendor, [('RM-001', '100', '5')], status=POStatusChoices.APPROVED)
        receive(purchase_order, {'RM-001': '80'})

        response = self.client.get(f'/api/procurement/purchase-orders/{purchase_order.id}/balance/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['overall_status'], 'PARTIALLY_RECEIVED')

        response = self.client.get(f'/api/procurement/purchase-orders/{purchase_order.id}/reconciliation/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['items'][0]['shortage_qty'], Decimal('20'))

        response = self.client.post(f'/api/procurement/purchase-orders/{purchase_order.id}/replacement/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['parent_po'], purchase_order.id)

        response = self.client.post(f'/api/procurement/purchase-orders/{purchase_order.id}/replacement/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('already exists', response.data['error'])


class PaymentAPITest(APITestCase):
    def setUp(self):
        self.user = User.objects.create_user(username='accounts', password='pass12345')
        self.client.force_authenticate(user=self.user)
        self.vendor = Vendor.objects.create(name='Steel Corp')
        self.purchase_order = make_purchase_order(self.vendor, [('RM-001', '100', '5')])

    def test_payment_lifecycle(self):
        response = self.client.post('/api/procurement/payments/', {
            'vendor': self.vendor.id,
            'purchase_order': self.purchase_order.id,
            'amount': '300.00',
            'mode': 'UPI',
            'reference_no': 'UTR123',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertRegex(response.data['payment_number'], r'^PAY-\d{8}-0001$')
        payment_id = response.data['id']

        self.assertEqual(PaymentService.outstanding(self.purchase_order), Decimal('200.00'))

        response = self.client.patch(f'/api/procurement/payments/{payment_id}/', {'status': 'COMPLETED'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Payment.objects.get(pk=payment_id).status, 'COMPLETED')

        response = self.client.get(f'/api/procurement/payments/outstanding/?purchase_order={self.purchase_order.id}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['outstanding'], Decimal('200.00'))

    def test_overpayment_rejected(self):
        response = self.client.post('/api/procurement/payments/', {
            'vendor': self.vendor.id,
            'purchase_order': self.purchase_order.id,
            'amount': '600.00',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('amount', response.data)

    def test_vendor_must_match_po(self):
        other = Vendor.objects.create(name='Wire Works')
        response = self.client.post('/api/procurement/payments/', {
            'vendor': other.id,
            'purchase_order': self.purchase_order.id,
            'amount': '10.00',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('purchase_order', response.data)

    def test_payments_cannot_be_deleted(self):
        payment = Payment.objects.create(vendor=self.vendor, amount=Decimal('10'))
        response = self.client.delete(f'/api/procurement/payments/{payment.id}/')
        self.assertEqual(response.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)
