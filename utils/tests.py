from decimal import Decimal

from django.core.exceptions import ObjectDoesNotExist, ValidationError
from django.test import SimpleTestCase, override_settings
from rest_framework import status

from inventory.models_grn import GRN_WORKFLOW
from quality.models import QC_WORKFLOW
from .exceptions import ConcurrentAllocationError, api_exception_handler
from .quantities import quantities_equal, shortage_overage, to_decimal
from .state_machine import IllegalTransition, TransitionTable


class TransitionTableTest(SimpleTestCase):

    def test_unknown_target_state_rejected_at_definition(self):
        with self.assertRaises(ValueError):
            TransitionTable('Door', ['OPEN', 'CLOSED'], ['SHUT'], {'OPEN': {'SHUT': 'LOCKED'}})

    def test_grn_illegal_transitions(self):
        with self.assertRaises(IllegalTransition):
            GRN_WORKFLOW.next_state('PENDING', 'APPROVE')
        with self.assertRaises(IllegalTransition):
            GRN_WORKFLOW.next_state('RECEIVED', 'APPROVE')
        with self.assertRaises(IllegalTransition):
            GRN_WORKFLOW.next_state('APPROVED', 'RECEIVE')
        self.assertTrue(GRN_WORKFLOW.is_terminal('REJECTED'))
        self.assertEqual(GRN_WORKFLOW.next_state('INSPECTED', 'RECEIVE'), 'RECEIVED')

    def test_qc_table(self):
        self.assertEqual(QC_WORKFLOW.next_state('PENDING', 'RESULTS_DISCREPANT'), 'IN_PROGRESS')
        self.assertEqual(QC_WORKFLOW.next_state('IN_PROGRESS', 'ACCEPT_SHORTAGE'), 'SHORTAGE')
        self.assertEqual(QC_WORKFLOW.next_state('PASSED', 'ACCEPT'), 'ACCEPTED')
        self.assertEqual(QC_WORKFLOW.next_state('FAILED', 'GRN_UPDATED'), 'IN_PROGRESS')
        self.assertEqual(QC_WORKFLOW.allowed_events('FAILED'), ['GRN_UPDATED', 'START'])

        for state, event in [
            ('IN_PROGRESS', 'ACCEPT'),
            ('PASSED', 'ACCEPT_SHORTAGE'),
            ('PENDING', 'GRN_UPDATED'),
            ('ACCEPTED', 'START'),
            ('SHORTAGE', 'GRN_UPDATED'),
            ('OVERAGE', 'FAIL'),
        ]:
            with self.subTest(state=state, event=event):
                self.assertFalse(QC_WORKFLOW.can_fire(state, event))
                with self.assertRaises(IllegalTransition):
                    QC_WORKFLOW.next_state(state, event)

    def test_illegal_transition_is_a_validation_error(self):
        error = IllegalTransition('QC inspection', 'ACCEPTED', 'START')
        self.assertIsInstance(error, ValidationError)
        self.assertIn("cannot apply 'START'", error.messages[0])


class QuantitiesTest(SimpleTestCase):

    def test_to_decimal(self):
        self.assertEqual(to_decimal('12.5'), Decimal('12.5'))
        self.assertEqual(to_decimal(None), Decimal('0'))
        self.assertEqual(to_decimal(''), Decimal('0'))
        self.assertEqual(to_decimal('abc', default=None), None)

    def test_shortage_overage(self):
        self.assertEqual(shortage_overage(100, 80), (Decimal('20'), Decimal('0')))
        self.assertEqual(shortage_overage(100, 120), (Decimal('0'), Decimal('20')))
        self.assertEqual(shortage_overage(100, 100), (Decimal('0'), Decimal('0')))

    def test_tolerance(self):
        self.assertTrue(quantities_equal('10', '10.0005'))
        self.assertFalse(quantities_equal('10', '10.01'))

    @override_settings(ERP_SETTINGS={'QTY_TOLERANCE': '0.1'})
    def test_tolerance_from_settings(self):
        self.assertTrue(quantities_equal('10', '10.05'))


class ExceptionHandlerTest(SimpleTestCase):

    def test_validation_error_is_400(self):
        response = api_exception_handler(ValidationError('Quantity too large'), {})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Quantity too large')

    def test_field_errors_are_flattened(self):
        response = api_exception_handler(ValidationError({'items': 'At least one item is required'}), {})
        self.assertEqual(response.data['details'], ['items: At least one item is required'])

    def test_concurrent_allocation_is_409(self):
        response = api_exception_handler(ConcurrentAllocationError('changed concurrently'), {})
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_missing_object_is_404(self):
        response = api_exception_handler(ObjectDoesNotExist('GRN item matching query does not exist.'), {})
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
