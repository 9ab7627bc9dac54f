from decimal import Decimal
from io import StringIO
from unittest import mock

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.core.management import call_command
from django.db.models import F, Sum
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APITestCase

from procurement.models import PurchaseOrder, PurchaseOrderItem
from quality.services import QCInspectionService
from third_party.models import Vendor
from utils.enums import (
    AllocationStatusChoices, GRNItemStatusChoices, GRNStatusChoices, LedgerTransactionTypeChoices,
    QCStatusChoices, ReferenceDocTypeChoices, StockEntryStatusChoices, WarehouseTypeChoices
)
from utils.exceptions import ConcurrentAllocationError
from .allocation_service import WarehouseAllocationService
from .grn_service import GRNService
from .models import (
    Warehouse, StockLedgerEntry, StockBalance, StockEntry,
    GRN, GRNItem, WarehouseAllocation
)
from .transaction_manager import StockTransactionManager

User = get_user_model()


def balance_of(item_code, warehouse_code):
    row = StockBalance.objects.filter(item_code=item_code, warehouse__code=warehouse_code).first()
    return row.current_balance if row else Decimal('0')


def total_stock(item_code):
    return StockBalance.objects.filter(item_code=item_code).aggregate(total=Sum('current_balance'))['total']


class ReceiptFixtureMixin:
    """Vendor, a PO for spring wire and a GRN taken through QC"""

    def make_order(self, ordered_qty='10'):
        self.vendor = Vendor.objects.create(name='Steel Corp')
        self.purchase_order = PurchaseOrder.objects.create(vendor=self.vendor, status='APPROVED')
        self.po_item = PurchaseOrderItem.objects.create(
            purchase_order=self.purchase_order,
            item_code='RM-WIRE-2MM',
            material_name='Spring wire 2mm',
            material_type='RM',
            quantity=Decimal(ordered_qty),
            unit_rate=Decimal('12.50'),
        )

    def make_receipt(self, accepted_qty='10', ordered_qty='10', resolve=True):
        """
        Receive `accepted_qty` against the PO line and record it all as
        accepted. With `resolve` the inspection is closed, which approves the
        GRN and books the receipt into the receiving hold.
        """
        self.make_order(ordered_qty)
        self.grn = GRNService.create_with_items(
            self.purchase_order, [{'po_item': self.po_item, 'received_qty': Decimal(accepted_qty)}]
        )
        self.grn_item = self.grn.items.get()
        self.inspection = QCInspectionService.create(
            self.grn, items=[{'grn_item': self.grn_item, 'accepted_qty': Decimal(accepted_qty)}]
        )
        if resolve:
            self.resolve()
        self.grn.refresh_from_db()
        self.grn_item.refresh_from_db()

    def resolve(self):
        self.inspection.refresh_from_db()
        self.grn_item.refresh_from_db()
        if self.grn_item.accepted_qty < self.grn_item.ordered_qty:
            decision = 'ACCEPT_SHORTAGE'
        elif self.grn_item.accepted_qty > self.grn_item.ordered_qty:
            decision = 'ACCEPT_OVERAGE'
        else:
            decision = 'ACCEPT'
        result = QCInspectionService.resolve(self.inspection, decision)
        self.grn.refresh_from_db()
        self.grn_item.refresh_from_db()
        return result


class WarehouseTest(TestCase):

    def test_infer_type(self):
        self.assertEqual(Warehouse.infer_type('RM-HOLD'), WarehouseTypeChoices.HOLD)
        self.assertEqual(Warehouse.infer_type('wip-2'), WarehouseTypeChoices.WIP)
        self.assertEqual(Warehouse.infer_type('FG'), WarehouseTypeChoices.FG)
        self.assertEqual(Warehouse.infer_type('BAY-7'), WarehouseTypeChoices.RM)

    def test_created_on_demand(self):
        warehouse = StockTransactionManager.get_or_create_warehouse(' sub-2 ')
        self.assertEqual(warehouse.code, 'SUB-2')
        self.assertEqual(warehouse.warehouse_type, WarehouseTypeChoices.SUB)
        self.assertEqual(StockTransactionManager.get_or_create_warehouse('SUB-2').pk, warehouse.pk)

    def test_seed_warehouses(self):
        call_command('seed_warehouses', stdout=StringIO())
        self.assertEqual(
            sorted(Warehouse.objects.values_list('code', flat=True)),
            ['FG', 'REJECT', 'RM', 'RM-HOLD', 'SUB', 'WIP']
        )
        call_command('seed_warehouses', '--dry-run', stdout=StringIO())
        self.assertEqual(Warehouse.objects.count(), 6)


class StockPostingTest(TestCase):
    def setUp(self):
        self.warehouse = StockTransactionManager.get_or_create_warehouse('RM')

    def test_in_and_out(self):
        StockTransactionManager.post('RM-001', self.warehouse, 'IN', Decimal('50'), ReferenceDocTypeChoices.STOCK_ENTRY)
        entry = StockTransactionManager.post('RM-001', self.warehouse, 'OUT', Decimal('20'), ReferenceDocTypeChoices.STOCK_ENTRY)
        self.assertEqual(entry.balance_after, Decimal('30'))
        self.assertEqual(balance_of('RM-001', 'RM'), Decimal('30'))
        self.assertEqual(StockLedgerEntry.objects.count(), 2)

    def test_out_is_clamped_at_zero(self):
        StockTransactionManager.post('RM-001', self.warehouse, 'IN', Decimal('5'), ReferenceDocTypeChoices.STOCK_ENTRY)
        with self.assertLogs('inventory.transaction_manager', level='WARNING') as logs:
            entry = StockTransactionManager.post(
                'RM-001', self.warehouse, 'OUT', Decimal('8'), ReferenceDocTypeChoices.STOCK_ENTRY
            )
        self.assertEqual(entry.balance_after, Decimal('0'))
        self.assertIn('clamped', logs.output[0])

    def test_ledger_is_append_only(self):
        entry = StockTransactionManager.post('RM-001', self.warehouse, 'IN', Decimal('5'), ReferenceDocTypeChoices.STOCK_ENTRY)
        entry.remarks = 'edited'
        with self.assertRaises(ValidationError):
            entry.save()

    def test_unknown_transaction_type(self):
        with self.assertRaises(ValidationError):
            StockTransactionManager.post('RM-001', self.warehouse, 'MOVE', Decimal('5'), ReferenceDocTypeChoices.STOCK_ENTRY)


class WarehouseAllocationTest(ReceiptFixtureMixin, TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username='storekeeper', password='pass12345')
        self.make_receipt(accepted_qty='10')

    def test_allocation_above_pending_rejected(self):
        with self.assertRaises(ValidationError):
            WarehouseAllocationService.allocate(self.grn_item.pk, 'RM', Decimal('15'), user=self.user)

        self.grn_item.refresh_from_db()
        self.assertEqual(self.grn_item.allocated_qty, Decimal('0'))
        self.assertFalse(WarehouseAllocation.objects.exists())

    def test_pending_is_an_upper_bound(self):
        with self.assertRaises(ValidationError):
            WarehouseAllocationService.allocate(self.grn_item.pk, 'RM', Decimal('10.001'))

        result = WarehouseAllocationService.allocate(self.grn_item.pk, 'RM', Decimal('10'))
        self.assertEqual(result['total_allocated_qty'], Decimal('10'))
        self.assertEqual(result['pending_allocation_qty'], Decimal('0'))
        self.assertEqual(result['allocation_status'], AllocationStatusChoices.FULLY_ALLOCATED)

    def test_two_partial_allocations(self):
        version = self.grn_item.version
        WarehouseAllocationService.allocate(self.grn_item.pk, 'RM', Decimal('4'), user=self.user)
        result = WarehouseAllocationService.allocate(self.grn_item.pk, 'WIP', Decimal('4'), user=self.user)

        self.assertEqual(result['total_allocated_qty'], Decimal('8'))
        self.assertEqual(result['pending_allocation_qty'], Decimal('2'))
        self.assertEqual(result['allocation_status'], AllocationStatusChoices.PARTIAL)

        self.grn_item.refresh_from_db()
        self.assertEqual(self.grn_item.allocated_qty, Decimal('8'))
        self.assertEqual(self.grn_item.pending_allocation_qty, Decimal('2'))
        self.assertEqual(self.grn_item.version, version + 2)
        self.assertEqual(WarehouseAllocation.objects.filter(grn_item=self.grn_item).count(), 2)

        self.assertEqual(balance_of('RM-WIRE-2MM', 'RM-HOLD'), Decimal('2'))
        self.assertEqual(balance_of('RM-WIRE-2MM', 'RM'), Decimal('4'))
        self.assertEqual(balance_of('RM-WIRE-2MM', 'WIP'), Decimal('4'))
        self.assertEqual(total_stock('RM-WIRE-2MM'), Decimal('10'))

        ledger = StockLedgerEntry.objects.filter(reference_doc_type=ReferenceDocTypeChoices.WAREHOUSE_ALLOCATION)
        self.assertEqual(ledger.count(), 4)
        self.assertEqual(set(ledger.values_list('reference_doc_number', flat=True)), {self.grn.grn_number})

    def test_full_allocation_leaves_pending_list(self):
        self.assertIn(self.grn_item, WarehouseAllocationService.pending())
        result = WarehouseAllocationService.allocate(self.grn_item.pk, 'RM', Decimal('10'))
        self.assertEqual(result['allocation_status'], AllocationStatusChoices.FULLY_ALLOCATED)
        self.assertNotIn(self.grn_item, WarehouseAllocationService.pending())

    def test_invalid_targets_and_quantities(self):
        for target, quantity in [('', '1'), ('RM', '0'), ('RM', '-2'), ('RM-HOLD', '1')]:
            with self.subTest(target=target, quantity=quantity):
                with self.assertRaises(ValidationError):
                    WarehouseAllocationService.allocate(self.grn_item.pk, target, Decimal(quantity))
        self.assertFalse(WarehouseAllocation.objects.exists())

    def test_lost_version_race_applies_nothing(self):
        """Another allocation bumps the version between our read and our write"""
        stale = GRNItem.objects.get(pk=self.grn_item.pk)
        GRNItem.objects.filter(pk=self.grn_item.pk).update(version=F('version') + 1)

        locked = mock.Mock()
        locked.get.return_value = stale
        with mock.patch.object(GRNItem.objects, 'select_for_update', return_value=locked):
            with self.assertRaises(ConcurrentAllocationError):
                WarehouseAllocationService.allocate(self.grn_item.pk, 'RM', Decimal('4'))

        self.grn_item.refresh_from_db()
        self.assertEqual(self.grn_item.allocated_qty, Decimal('0'))
        self.assertFalse(WarehouseAllocation.objects.exists())
        self.assertFalse(
            StockLedgerEntry.objects.filter(reference_doc_type=ReferenceDocTypeChoices.WAREHOUSE_ALLOCATION).exists()
        )


class ReceiptToAllocationFlowTest(ReceiptFixtureMixin, TestCase):
    """GRN -> QC -> receipt into the hold -> allocation, checked across warehouses"""

    def test_allocation_waits_for_approval(self):
        self.make_receipt(accepted_qty='100', ordered_qty='100', resolve=False)
        self.assertEqual(self.grn.status, GRNStatusChoices.INSPECTED)
        self.assertEqual(self.grn_item.accepted_qty, Decimal('100'))
        self.assertNotIn(self.grn_item, WarehouseAllocationService.pending())

        with self.assertRaises(ValidationError):
            WarehouseAllocationService.allocate(self.grn_item.pk, 'RM', Decimal('40'))
        self.assertFalse(StockLedgerEntry.objects.exists())

        self.resolve()
        self.assertEqual(self.grn.status, GRNStatusChoices.APPROVED)
        self.assertEqual(balance_of('RM-WIRE-2MM', 'RM-HOLD'), Decimal('100'))

        WarehouseAllocationService.allocate(self.grn_item.pk, 'RM', Decimal('40'))
        self.assertEqual(balance_of('RM-WIRE-2MM', 'RM-HOLD'), Decimal('60'))
        self.assertEqual(balance_of('RM-WIRE-2MM', 'RM'), Decimal('40'))
        self.assertEqual(total_stock('RM-WIRE-2MM'), Decimal('100'))

    def test_received_change_resets_qc_results(self):
        self.make_receipt(accepted_qty='100', ordered_qty='100', resolve=False)

        GRNService.update_received(self.grn, [{'id': self.grn_item.pk, 'received_qty': Decimal('60')}])

        self.grn_item.refresh_from_db()
        self.assertEqual(self.grn_item.received_qty, Decimal('60'))
        self.assertEqual(self.grn_item.accepted_qty, Decimal('0'))
        self.assertEqual(self.grn_item.rejected_qty, Decimal('0'))
        self.assertEqual(self.grn_item.pending_allocation_qty, Decimal('0'))
        self.assertEqual(self.grn_item.status, GRNItemStatusChoices.PENDING)
        self.inspection.refresh_from_db()
        self.assertEqual(self.inspection.status, QCStatusChoices.IN_PROGRESS)

        QCInspectionService.record_results(self.inspection, [{'grn_item': self.grn_item, 'accepted_qty': Decimal('60')}])
        self.resolve()
        self.assertEqual(self.grn_item.status, GRNItemStatusChoices.SHORTAGE)
        self.assertEqual(self.grn_item.accepted_qty + self.grn_item.rejected_qty, self.grn_item.received_qty)
        self.assertEqual(balance_of('RM-WIRE-2MM', 'RM-HOLD'), Decimal('60'))

        with self.assertRaises(ValidationError):
            WarehouseAllocationService.allocate(self.grn_item.pk, 'RM', Decimal('100'))

    def test_received_change_refused_once_allocated(self):
        self.make_receipt(accepted_qty='100', ordered_qty='100', resolve=False)
        GRNItem.objects.filter(pk=self.grn_item.pk).update(allocated_qty=Decimal('30'))

        with self.assertRaises(ValidationError):
            GRNService.update_received(self.grn, [{'id': self.grn_item.pk, 'received_qty': Decimal('20')}])

        self.grn_item.refresh_from_db()
        self.assertEqual(self.grn_item.received_qty, Decimal('100'))
        self.assertEqual(self.grn_item.accepted_qty, Decimal('100'))


class ExcessDecisionTest(ReceiptFixtureMixin, TestCase):
    def setUp(self):
        self.make_receipt(accepted_qty='120', ordered_qty='100')

    def test_approve_excess(self):
        self.assertEqual(self.grn_item.status, GRNItemStatusChoices.OVERAGE)
        grn_item = GRNService.approve_excess(self.grn_item, notes='Keep for next batch')
        self.assertEqual(grn_item.status, GRNItemStatusChoices.EXCESS_ACCEPTED)
        self.assertEqual(grn_item.accepted_qty, Decimal('120'))
        self.assertIn('Keep for next batch', grn_item.remarks)
        self.assertEqual(balance_of('RM-WIRE-2MM', 'RM-HOLD'), Decimal('120'))

        with self.assertRaises(ValidationError):
            GRNService.approve_excess(grn_item)

    def test_reject_excess(self):
        self.assertEqual(balance_of('RM-WIRE-2MM', 'RM-HOLD'), Decimal('120'))

        grn_item = GRNService.reject_excess(self.grn_item, reason='Return 20 to vendor')
        self.assertEqual(grn_item.status, GRNItemStatusChoices.AVAILABLE)
        self.assertEqual(grn_item.accepted_qty, Decimal('100'))
        self.assertEqual(grn_item.rejected_qty, Decimal('20'))
        self.assertEqual(grn_item.overage_qty, Decimal('0'))
        self.assertEqual(grn_item.accepted_qty + grn_item.rejected_qty, grn_item.received_qty)

        self.assertEqual(balance_of('RM-WIRE-2MM', 'RM-HOLD'), Decimal('100'))
        returned = StockLedgerEntry.objects.get(
            reference_doc_type=ReferenceDocTypeChoices.GRN,
            transaction_type=LedgerTransactionTypeChoices.OUT,
        )
        self.assertEqual(returned.quantity, Decimal('20'))
        self.assertEqual(returned.reference_doc_number, self.grn.grn_number)

        WarehouseAllocationService.allocate(grn_item.pk, 'RM', Decimal('100'))
        self.assertEqual(total_stock('RM-WIRE-2MM'), Decimal('100'))


class StockEntryFromGRNTest(ReceiptFixtureMixin, TestCase):

    def test_receipt_skips_finished_goods(self):
        self.make_order(ordered_qty='10')
        grn = GRNService.create_with_items(self.purchase_order, [
            {'po_item': self.po_item, 'received_qty': Decimal('10')},
            {'item_code': 'FG-SPRING', 'material_type': 'FG', 'ordered_qty': Decimal('5'), 'received_qty': Decimal('5')},
        ])
        wire_line = grn.items.get(item_code='RM-WIRE-2MM')
        fg_line = grn.items.get(item_code='FG-SPRING')
        inspection = QCInspectionService.create(grn, items=[
            {'grn_item': wire_line, 'accepted_qty': Decimal('10')},
            {'grn_item': fg_line, 'accepted_qty': Decimal('5')},
        ])

        entry = QCInspectionService.resolve(inspection, 'ACCEPT')['stock_entry']
        self.assertEqual(entry.status, StockEntryStatusChoices.SUBMITTED)
        self.assertEqual(entry.to_warehouse.code, 'RM-HOLD')
        self.assertEqual(list(entry.items.values_list('item_code', flat=True)), ['RM-WIRE-2MM'])
        self.assertEqual(
            StockLedgerEntry.objects.filter(
                reference_doc_type=ReferenceDocTypeChoices.GRN,
                reference_doc_number=grn.grn_number,
            ).count(),
            1
        )
        self.assertEqual(balance_of('FG-SPRING', 'RM-HOLD'), Decimal('0'))

        self.assertNotIn(fg_line, WarehouseAllocationService.pending())
        with self.assertRaises(ValidationError):
            WarehouseAllocationService.allocate(fg_line.pk, 'FG', Decimal('5'))
        self.assertEqual(balance_of('FG-SPRING', 'FG'), Decimal('0'))


class GRNAPITest(APITestCase):
    def setUp(self):
        self.user = User.objects.create_user(username='storekeeper', password='pass12345')
        self.client.force_authenticate(user=self.user)
        self.vendor = Vendor.objects.create(name='Steel Corp')
        self.purchase_order = PurchaseOrder.objects.create(vendor=self.vendor, status='APPROVED')
        self.po_item = PurchaseOrderItem.objects.create(
            purchase_order=self.purchase_order, item_code='RM-001', quantity=Decimal('100'), unit_rate=Decimal('2')
        )

    def test_create_and_update_received(self):
        response = self.client.post('/api/inventory/grn-items/create-with-items/', {
            'purchase_order': self.purchase_order.id,
            'items': [{'po_item': self.po_item.id, 'received_qty': '95'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        grn_id = response.data['id']
        self.assertEqual(response.data['grn_number'], f'GRN-{grn_id:04d}')
        self.assertEqual(response.data['status'], GRNStatusChoices.RECEIVED)
        self.assertEqual(response.data['items'][0]['item_code'], 'RM-001')
        self.assertEqual(response.data['items'][0]['ordered_qty'], '100.000')

        line_id = response.data['items'][0]['id']
        response = self.client.patch(f'/api/inventory/grns/{grn_id}/', {
            'notes': 'Second truck',
            'items': [{'id': line_id, 'received_qty': '100'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['notes'], 'Second truck')
        self.assertEqual(response.data['items'][0]['received_qty'], '100.000')

    def test_pending_grn_and_delete(self):
        response = self.client.post('/api/inventory/grns/', {
            'purchase_order': self.purchase_order.id,
            'items': [{'po_item': self.po_item.id, 'received_qty': '0'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], GRNStatusChoices.PENDING)

        response = self.client.delete(f"/api/inventory/grns/{response.data['id']}/")
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_received_grn_cannot_be_deleted(self):
        grn = GRNService.create_with_items(self.purchase_order, [{'po_item': self.po_item, 'received_qty': '10'}])
        response = self.client.delete(f'/api/inventory/grns/{grn.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(GRN.objects.filter(pk=grn.pk).exists())

    def test_po_item_from_another_po_rejected(self):
        other_po = PurchaseOrder.objects.create(vendor=self.vendor)
        response = self.client.post('/api/inventory/grns/', {
            'purchase_order': other_po.id,
            'items': [{'po_item': self.po_item.id, 'received_qty': '10'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(GRN.objects.exists())

    def test_stats(self):
        GRNService.create_with_items(self.purchase_order, [{'po_item': self.po_item, 'received_qty': '10'}])
        response = self.client.get('/api/inventory/grns/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_grns'], 1)
        self.assertEqual(response.data['received_grns'], 1)


class AllocationAPITest(ReceiptFixtureMixin, APITestCase):
    def setUp(self):
        self.user = User.objects.create_user(username='storekeeper', password='pass12345')
        self.client.force_authenticate(user=self.user)
        self.make_receipt(accepted_qty='10')

    def test_allocate_and_pending(self):
        response = self.client.get('/api/inventory/warehouse-allocations/pending/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['id'] for row in response.data], [self.grn_item.id])

        response = self.client.post('/api/inventory/warehouse-allocations/allocate/', {
            'grn_item_id': self.grn_item.id,
            'target_warehouse': 'rm',
            'allocate_qty': '4',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['to_warehouse'], 'RM')
        self.assertEqual(response.data['pending_allocation_qty'], Decimal('6'))

        response = self.client.get('/api/inventory/warehouse-allocations/')
        self.assertEqual(len(response.data), 1)

    def test_over_allocation_is_400(self):
        response = self.client.post('/api/inventory/warehouse-allocations/allocate/', {
            'grn_item_id': self.grn_item.id,
            'target_warehouse': 'RM',
            'allocate_qty': '15',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('exceeds pending', response.data['error'])

    def test_unknown_grn_item_is_404(self):
        response = self.client.post('/api/inventory/warehouse-allocations/allocate/', {
            'grn_item_id': 999999,
            'target_warehouse': 'RM',
            'allocate_qty': '1',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class StockEntryAPITest(APITestCase):
    def setUp(self):
        self.user = User.objects.create_user(username='storekeeper', password='pass12345')
        self.client.force_authenticate(user=self.user)
        self.rm = Warehouse.objects.create(code='RM', name='Raw Material Store', warehouse_type='RM')
        self.wip = Warehouse.objects.create(code='WIP', name='Work In Progress', warehouse_type='WIP')

    def _create(self, payload):
        return self.client.post('/api/inventory/stock-entries/', payload, format='json')

    def test_receipt_transfer_cancel(self):
        response = self._create({
            'entry_type': 'Material Receipt',
            'to_warehouse': self.rm.id,
            'submit': True,
            'items': [{'item_code': 'RM-001', 'quantity': '100', 'valuation_rate': '2'}],
        })
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], StockEntryStatusChoices.SUBMITTED)
        self.assertRegex(response.data['entry_no'], r'^MA-\d{6}-\d{6}$')
        self.assertEqual(balance_of('RM-001', 'RM'), Decimal('100'))

        response = self._create({
            'entry_type': 'Material Transfer',
            'from_warehouse': self.rm.id,
            'to_warehouse': self.wip.id,
            'items': [{'item_code': 'RM-001', 'quantity': '30'}],
        })
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], StockEntryStatusChoices.DRAFT)
        transfer_id = response.data['id']
        self.assertEqual(balance_of('RM-001', 'WIP'), Decimal('0'))

        response = self.client.patch(f'/api/inventory/stock-entries/{transfer_id}/', {
            'items': [{'item_code': 'RM-001', 'quantity': '40'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.post(f'/api/inventory/stock-entries/{transfer_id}/submit/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(balance_of('RM-001', 'RM'), Decimal('60'))
        self.assertEqual(balance_of('RM-001', 'WIP'), Decimal('40'))

        response = self.client.post(f'/api/inventory/stock-entries/{transfer_id}/submit/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.patch(f'/api/inventory/stock-entries/{transfer_id}/', {'remarks': 'late edit'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.post(f'/api/inventory/stock-entries/{transfer_id}/cancel/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], StockEntryStatusChoices.CANCELLED)
        self.assertEqual(balance_of('RM-001', 'RM'), Decimal('100'))
        self.assertEqual(balance_of('RM-001', 'WIP'), Decimal('0'))

        response = self.client.post(f'/api/inventory/stock-entries/{transfer_id}/cancel/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.delete(f'/api/inventory/stock-entries/{transfer_id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_negative_adjustment_posts_out(self):
        StockTransactionManager.post('RM-001', self.rm, 'IN', Decimal('10'), ReferenceDocTypeChoices.STOCK_ENTRY)
        response = self._create({
            'entry_type': 'Material Adjustment',
            'to_warehouse': self.rm.id,
            'submit': True,
            'items': [{'item_code': 'RM-001', 'quantity': '-3'}],
        })
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(balance_of('RM-001', 'RM'), Decimal('7'))
        last = StockLedgerEntry.objects.filter(item_code='RM-001').order_by('-id').first()
        self.assertEqual(last.transaction_type, LedgerTransactionTypeChoices.OUT)

    def test_draft_can_be_deleted(self):
        response = self._create({
            'entry_type': 'Material Issue',
            'from_warehouse': self.rm.id,
            'items': [{'item_code': 'RM-001', 'quantity': '1'}],
        })
        response = self.client.delete(f"/api/inventory/stock-entries/{response.data['id']}/")
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(StockEntry.objects.exists())

    def test_warehouse_rules(self):
        for payload in [
            {'entry_type': 'Material Receipt'},
            {'entry_type': 'Material Issue', 'to_warehouse': self.rm.id},
            {'entry_type': 'Material Transfer', 'from_warehouse': self.rm.id, 'to_warehouse': self.rm.id},
        ]:
            with self.subTest(entry_type=payload['entry_type']):
                payload['items'] = [{'item_code': 'RM-001', 'quantity': '1'}]
                response = self._create(payload)
                self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(StockEntry.objects.exists())

    def test_ledger_and_balance_filters(self):
        StockTransactionManager.post('RM-001', self.rm, 'IN', Decimal('10'), ReferenceDocTypeChoices.STOCK_ENTRY)
        StockTransactionManager.post('RM-001', self.wip, 'IN', Decimal('5'), ReferenceDocTypeChoices.STOCK_ENTRY)

        response = self.client.get('/api/inventory/stock-balances/?warehouse_code=wip')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['current_balance'], '5.000')

        response = self.client.get('/api/inventory/stock-ledger/?item_code=RM-001')
        self.assertEqual(len(response.data), 2)
