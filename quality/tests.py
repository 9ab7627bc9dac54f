from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.test import SimpleTestCase, TestCase
from rest_framework import status
from rest_framework.test import APITestCase

from inventory.grn_service import GRNService
from inventory.models import GRNItem, StockBalance, StockEntry
from procurement.models import PurchaseOrder, PurchaseOrderItem
from sales.models import SalesOrder
from third_party.models import Client, Vendor
from utils.enums import (
    GRNItemStatusChoices, GRNStatusChoices, POStatusChoices, QCLineStatusChoices,
    QCStatusChoices, SalesOrderStatusChoices, StockEntryStatusChoices
)
from utils.state_machine import IllegalTransition
from .models import QCInspection
from .services import QCInspectionService
from .status import derive_inspection_status, derive_line_status

User = get_user_model()


class StatusDerivationTest(SimpleTestCase):

    def test_line_status(self):
        self.assertEqual(derive_line_status(100, 80), (QCLineStatusChoices.SHORTAGE, Decimal('20'), Decimal('0')))
        self.assertEqual(derive_line_status(100, 120), (QCLineStatusChoices.OVERAGE, Decimal('0'), Decimal('20')))
        self.assertEqual(derive_line_status(100, 100), (QCLineStatusChoices.AVAILABLE, Decimal('0'), Decimal('0')))

    def test_missing_accepted_counts_as_zero(self):
        self.assertEqual(derive_line_status('5', None)[0], QCLineStatusChoices.SHORTAGE)
        self.assertEqual(derive_inspection_status([{'ordered_qty': '5'}]), QCStatusChoices.IN_PROGRESS)

    def test_aggregate_within_tolerance(self):
        items = [
            {'ordered_qty': '100', 'accepted_qty': '100.0005'},
            {'ordered_qty': '50', 'accepted_qty': '50'},
        ]
        self.assertEqual(derive_inspection_status(items), QCStatusChoices.PASSED)
        self.assertEqual(derive_line_status('100', '100.0005')[0], QCLineStatusChoices.AVAILABLE)

        items.append({'ordered_qty': '10', 'accepted_qty': '9.99'})
        self.assertEqual(derive_inspection_status(items), QCStatusChoices.IN_PROGRESS)


class InspectionFixtureMixin:

    def make_grn(self, with_sales_order=True):
        self.user = User.objects.create_user(username='inspector', password='pass12345')
        self.vendor = Vendor.objects.create(name='Steel Corp')
        self.customer = Client.objects.create(company_name='Acme Motors')
        self.sales_order = SalesOrder.objects.create(
            client=self.customer, status=SalesOrderStatusChoices.PROCUREMENT_IN_PROGRESS
        ) if with_sales_order else None
        self.purchase_order = PurchaseOrder.objects.create(
            vendor=self.vendor, status=POStatusChoices.APPROVED, sales_order=self.sales_order
        )
        self.wire = PurchaseOrderItem.objects.create(
            purchase_order=self.purchase_order, item_code='RM-WIRE', material_type='RM',
            quantity=Decimal('100'), unit_rate=Decimal('12')
        )
        self.strip = PurchaseOrderItem.objects.create(
            purchase_order=self.purchase_order, item_code='RM-STRIP', material_type='RM',
            quantity=Decimal('50'), unit_rate=Decimal('8')
        )
        self.grn = GRNService.create_with_items(self.purchase_order, [
            {'po_item': self.wire, 'received_qty': Decimal('100')},
            {'po_item': self.strip, 'received_qty': Decimal('50')},
        ], user=self.user)
        self.wire_line = self.grn.items.get(item_code='RM-WIRE')
        self.strip_line = self.grn.items.get(item_code='RM-STRIP')


class QCInspectionServiceTest(InspectionFixtureMixin, TestCase):
    def setUp(self):
        self.make_grn()
        self.inspection = QCInspectionService.create(self.grn, user=self.user)

    def test_one_inspection_per_grn(self):
        with self.assertRaises(ValidationError):
            QCInspectionService.create(self.grn)

    def test_accepted_plus_rejected_must_equal_received(self):
        with self.assertRaises(ValidationError) as ctx:
            QCInspectionService.record_results(self.inspection, [
                {'grn_item': self.wire_line, 'accepted_qty': Decimal('80'), 'rejected_qty': Decimal('10')},
            ])
        self.assertIn('RM-WIRE', str(ctx.exception))

        self.wire_line.refresh_from_db()
        self.assertEqual(self.wire_line.accepted_qty, Decimal('0'))
        self.assertFalse(self.inspection.items.exists())

    def test_rejected_defaults_to_remainder(self):
        inspection = QCInspectionService.record_results(self.inspection, [
            {'grn_item': self.wire_line, 'accepted_qty': Decimal('80')},
            {'grn_item': self.strip_line.pk, 'accepted_qty': Decimal('50')},
        ], user=self.user)

        self.assertEqual(inspection.status, QCStatusChoices.IN_PROGRESS)
        self.wire_line.refresh_from_db()
        self.assertEqual(self.wire_line.rejected_qty, Decimal('20'))
        self.assertEqual(self.wire_line.accepted_qty + self.wire_line.rejected_qty, self.wire_line.received_qty)
        self.assertEqual(self.wire_line.status, GRNItemStatusChoices.SHORTAGE)
        self.assertEqual(self.wire_line.shortage_qty, Decimal('20'))
        self.assertEqual(self.wire_line.version, 1)

        self.grn.refresh_from_db()
        self.assertEqual(self.grn.status, GRNStatusChoices.INSPECTED)

    def test_results_replace_previous_lines(self):
        QCInspectionService.record_results(self.inspection, [
            {'grn_item': self.wire_line, 'accepted_qty': Decimal('80')},
        ])
        inspection = QCInspectionService.record_results(self.inspection, [
            {'grn_item': self.wire_line, 'accepted_qty': Decimal('100')},
            {'grn_item': self.strip_line, 'accepted_qty': Decimal('50')},
        ])
        self.assertEqual(inspection.status, QCStatusChoices.PASSED)
        self.assertEqual(inspection.items.count(), 2)
        self.assertEqual(inspection.items.get(item_code='RM-WIRE').line_status, QCLineStatusChoices.AVAILABLE)

    def test_accept_releases_stock(self):
        QCInspectionService.record_results(self.inspection, [
            {'grn_item': self.wire_line, 'accepted_qty': Decimal('100')},
            {'grn_item': self.strip_line, 'accepted_qty': Decimal('50')},
        ])
        result = QCInspectionService.resolve(self.inspection, 'ACCEPT', user=self.user)

        self.assertEqual(result['inspection'].status, QCStatusChoices.ACCEPTED)
        self.grn.refresh_from_db()
        self.assertEqual(self.grn.status, GRNStatusChoices.APPROVED)

        entry = result['stock_entry']
        self.assertEqual(entry.status, StockEntryStatusChoices.SUBMITTED)
        self.assertEqual(entry.grn, self.grn)
        self.assertEqual(
            StockBalance.objects.get(item_code='RM-WIRE', warehouse__code='RM-HOLD').current_balance,
            Decimal('100')
        )

        self.purchase_order.refresh_from_db()
        self.assertEqual(self.purchase_order.status, POStatusChoices.COMPLETED)
        self.sales_order.refresh_from_db()
        self.assertEqual(self.sales_order.status, SalesOrderStatusChoices.MATERIAL_READY)
        self.assertTrue(self.sales_order.material_available)

        with self.assertRaises(IllegalTransition):
            QCInspectionService.record_results(self.inspection, [
                {'grn_item': self.wire_line, 'accepted_qty': Decimal('90')},
            ])

    def test_discrepancy_needs_explicit_acceptance(self):
        QCInspectionService.record_results(self.inspection, [
            {'grn_item': self.wire_line, 'accepted_qty': Decimal('80')},
            {'grn_item': self.strip_line, 'accepted_qty': Decimal('50')},
        ])
        with self.assertRaises(IllegalTransition):
            QCInspectionService.resolve(self.inspection, 'ACCEPT')
        with self.assertRaises(ValidationError):
            QCInspectionService.resolve(self.inspection, 'ACCEPT_OVERAGE')

        result = QCInspectionService.resolve(self.inspection, 'ACCEPT_SHORTAGE')
        self.assertEqual(result['inspection'].status, QCStatusChoices.SHORTAGE)
        self.assertEqual(
            StockBalance.objects.get(item_code='RM-WIRE', warehouse__code='RM-HOLD').current_balance,
            Decimal('80')
        )
        self.purchase_order.refresh_from_db()
        self.assertEqual(self.purchase_order.status, POStatusChoices.PARTIALLY_RECEIVED)

    def test_fail_rejects_grn(self):
        QCInspectionService.record_results(self.inspection, [
            {'grn_item': self.wire_line, 'accepted_qty': Decimal('10')},
        ])
        result = QCInspectionService.resolve(self.inspection, 'FAIL', remarks='Rusted coils')

        self.assertEqual(result['inspection'].status, QCStatusChoices.FAILED)
        self.assertIsNone(result['stock_entry'])
        self.grn.refresh_from_db()
        self.assertEqual(self.grn.status, GRNStatusChoices.REJECTED)
        for line in self.grn.items.all():
            self.assertEqual(line.status, GRNItemStatusChoices.REJECTED)
            self.assertEqual(line.accepted_qty, Decimal('0'))
            self.assertEqual(line.rejected_qty, line.received_qty)
        self.assertFalse(StockEntry.objects.exists())

        with self.assertRaises(ValidationError):
            QCInspectionService.start(self.inspection)

    def test_grn_update_sends_inspection_back(self):
        QCInspectionService.record_results(self.inspection, [
            {'grn_item': self.wire_line, 'accepted_qty': Decimal('100')},
            {'grn_item': self.strip_line, 'accepted_qty': Decimal('50')},
        ])
        GRNService.update_received(self.grn, [{'id': self.strip_line.pk, 'received_qty': Decimal('55')}])

        self.inspection.refresh_from_db()
        self.assertEqual(self.inspection.status, QCStatusChoices.IN_PROGRESS)
        self.grn.refresh_from_db()
        self.assertEqual(self.grn.status, GRNStatusChoices.RECEIVED)
        self.assertEqual(GRNItem.objects.get(pk=self.strip_line.pk).status, GRNItemStatusChoices.PENDING)

    def test_cannot_reduce_accepted_below_allocated(self):
        QCInspectionService.record_results(self.inspection, [
            {'grn_item': self.wire_line, 'accepted_qty': Decimal('100')},
        ])
        GRNItem.objects.filter(pk=self.wire_line.pk).update(allocated_qty=Decimal('60'))
        with self.assertRaises(ValidationError):
            QCInspectionService.record_results(self.inspection, [
                {'grn_item': self.wire_line, 'accepted_qty': Decimal('50')},
            ])


class QCInspectionAPITest(InspectionFixtureMixin, APITestCase):
    def setUp(self):
        self.make_grn(with_sales_order=False)
        self.client.force_authenticate(user=self.user)

    def test_inspection_flow(self):
        response = self.client.post('/api/quality/qc-inspections/', {
            'grn': self.grn.id,
            'items': [
                {'grn_item': self.wire_line.id, 'accepted_qty': '95'},
                {'grn_item': self.strip_line.id, 'accepted_qty': '50'},
            ],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], QCStatusChoices.IN_PROGRESS)
        self.assertIn('ACCEPT_SHORTAGE', response.data['allowed_events'])
        inspection_id = response.data['id']

        response = self.client.patch(f'/api/quality/qc-inspections/{inspection_id}/', {
            'defects': 'None',
            'items': [
                {'grn_item': self.wire_line.id, 'accepted_qty': '100'},
                {'grn_item': self.strip_line.id, 'accepted_qty': '50', 'rejected_qty': '0'},
            ],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], QCStatusChoices.PASSED)
        self.assertEqual(len(response.data['items']), 2)

        response = self.client.post(f'/api/quality/qc-inspections/{inspection_id}/resolve/', {'decision': 'ACCEPT'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['inspection']['status'], QCStatusChoices.ACCEPTED)
        self.assertTrue(response.data['inspection']['is_closed'])
        self.assertEqual(response.data['stock_entry']['entry_type'], 'Material Receipt')

        response = self.client.get('/api/quality/qc-inspections/stats/')
        self.assertEqual(response.data['by_status'][QCStatusChoices.ACCEPTED], 1)

    def test_invariant_violation_is_400(self):
        inspection = QCInspectionService.create(self.grn)
        response = self.client.patch(f'/api/quality/qc-inspections/{inspection.id}/', {
            'items': [{'grn_item': self.wire_line.id, 'accepted_qty': '90', 'rejected_qty': '20'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('must equal received', response.data['error'])

    def test_negative_quantity_rejected_by_api(self):
        inspection = QCInspectionService.create(self.grn)
        response = self.client.patch(f'/api/quality/qc-inspections/{inspection.id}/', {
            'items': [{'grn_item': self.wire_line.id, 'accepted_qty': '-1'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_illegal_resolution_is_400(self):
        inspection = QCInspectionService.create(self.grn)
        response = self.client.post(f'/api/quality/qc-inspections/{inspection.id}/resolve/', {'decision': 'ACCEPT'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("cannot apply 'ACCEPT'", response.data['error'])
        self.assertEqual(QCInspection.objects.get(pk=inspection.pk).status, QCStatusChoices.PENDING)

    def test_start_and_delete(self):
        inspection = QCInspectionService.create(self.grn)
        response = self.client.post(f'/api/quality/qc-inspections/{inspection.id}/start/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], QCStatusChoices.IN_PROGRESS)

        response = self.client.delete(f'/api/quality/qc-inspections/{inspection.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
