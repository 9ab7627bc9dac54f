import os
import tempfile
from io import StringIO

from django.core.management import call_command
from django.test import TestCase
from django.contrib.auth import get_user_model
from rest_framework.test import APITestCase
from rest_framework import status

from .models import Vendor, Client

User = get_user_model()


class PartyCodeTest(TestCase):
    """Auto-generated vendor and client codes"""

    def test_vendor_codes_are_sequential(self):
        first = Vendor.objects.create(name='Steel Corp')
        second = Vendor.objects.create(name='Wire Works')
        self.assertEqual(first.vendor_code, 'V_001')
        self.assertEqual(second.vendor_code, 'V_002')

    def test_client_code_and_gst_uppercase(self):
        client = Client.objects.create(company_name='Acme Motors', gst_no='22aaaaa0000a1z5')
        self.assertEqual(client.company_code, 'C_001')
        self.assertEqual(client.gst_no, '22AAAAA0000A1Z5')


class ClientAPITest(APITestCase):
    def setUp(self):
        self.user = User.objects.create_user(username='buyer', password='pass12345')
        self.client.force_authenticate(user=self.user)

    def test_client_crud(self):
        """Create, read, update and delete a client through the API"""
        response = self.client.post('/api/third-party/clients/', {
            'company_name': 'Acme Motors',
            'contact_person': 'R. Kumar',
            'email': 'purchase@acme.example',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        client_id = response.data['id']
        self.assertEqual(response.data['company_code'], 'C_001')
        self.assertEqual(response.data['created_by'], self.user.id)

        response = self.client.patch(f'/api/third-party/clients/{client_id}/', {'phone': '9876543210'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['phone'], '9876543210')

        response = self.client.get('/api/third-party/clients/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)

        response = self.client.delete(f'/api/third-party/clients/{client_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Client.objects.exists())

    def test_invalid_gst_rejected(self):
        response = self.client.post('/api/third-party/vendors/', {'name': 'Bad GST', 'gst_no': 'ABC'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('gst_no', response.data)

    def test_requires_authentication(self):
        self.client.force_authenticate(user=None)
        response = self.client.get('/api/third-party/vendors/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class ImportVendorsCommandTest(TestCase):
    def _write_csv(self, content):
        handle, path = tempfile.mkstemp(suffix='.csv')
        with os.fdopen(handle, 'w', encoding='utf-8') as csv_file:
            csv_file.write(content)
        self.addCleanup(os.remove, path)
        return path

    def test_import_creates_and_skips(self):
        Vendor.objects.create(name='Existing Vendor')
        path = self._write_csv(
            'Name,GST_No,Email\n'
            'Existing Vendor,,\n'
            'New Vendor,22aaaaa0000a1z5,SALES@NEW.EXAMPLE\n'
        )
        call_command('import_vendors_from_csv', path, stdout=StringIO())

        vendor = Vendor.objects.get(name='New Vendor')
        self.assertEqual(vendor.gst_no, '22AAAAA0000A1Z5')
        self.assertEqual(vendor.email, 'sales@new.example')
        self.assertEqual(Vendor.objects.count(), 2)

    def test_dry_run_saves_nothing(self):
        path = self._write_csv('Name\nDry Vendor\n')
        call_command('import_vendors_from_csv', path, '--dry-run', stdout=StringIO())
        self.assertFalse(Vendor.objects.exists())
