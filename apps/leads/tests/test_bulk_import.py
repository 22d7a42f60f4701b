"""
Bulk Import Tests
=================

Test Coverage:
1. Row validation, duplicates and the 100 rows cap
2. Ownership of imported leads
3. Auto-prospecting campaign scheduled for the imported leads
"""

import json
from datetime import timedelta
from decimal import Decimal

from django.test import TestCase, Client
from django.urls import reverse
from django.contrib.auth import get_user_model
from apps.core.models import Company
from apps.leads.models import Lead
from apps.whatsapp.models import CampaignMessage, WhatsAppCampaign

User = get_user_model()


class BulkImportViewTest(TestCase):

    def setUp(self):
        self.client = Client()
        self.company = Company.objects.create(name='Acme Sales')
        self.manager = User.objects.create_user(
            email='manager@acme.test', password='x', first_name='Mia', company=self.company, role=User.ROLE_MANAGER
        )
        self.seller = User.objects.create_user(
            email='seller@acme.test', password='x', first_name='Sam', company=self.company, role=User.ROLE_SELLER
        )
        Lead.objects.create(company=self.company, name='Existing', phone='5511999990001', email='old@lead.test')
        self.url = reverse('leads:bulk_import')

    def post_import(self, payload, user=None):
        self.client.force_login(user or self.manager)
        return self.client.post(self.url, data=json.dumps(payload), content_type='application/json')

    def test_import_counts_each_outcome(self):
        response = self.post_import({'leads': [
            {'name': 'Ana', 'phone': '+55 (11) 99999-0002', 'company': 'Souza Ltda', 'estimated_value': 1500},
            {'name': 'Same phone', 'phone': '5511999990001'},
            {'name': 'Same email', 'phone': '5511999990009', 'email': 'OLD@lead.test'},
            {'name': '', 'phone': '5511999990003'},
            {'name': 'No phone'},
            'not a lead',
            {'name': 'Bia', 'phone': '5511999990004', 'source': 'Fair'},
        ]})

        self.assertEqual(response.status_code, 200)
        results = response.json()['data']['results']
        self.assertEqual(results['success'], 2)
        self.assertEqual(results['duplicates'], 2)
        self.assertEqual(results['errors'], 3)
        self.assertEqual([detail['row'] for detail in results['error_details']], [3, 4, 5])
        self.assertIsNone(response.json()['data']['campaign_id'])

        ana = Lead.objects.get(name='Ana')
        self.assertEqual(ana.phone, '5511999990002')
        self.assertEqual(ana.company_name, 'Souza Ltda')
        self.assertEqual(ana.estimated_value, Decimal('1500'))
        self.assertEqual(ana.source, 'Bulk import')
        self.assertEqual(ana.created_by, self.manager)
        self.assertIsNone(ana.assigned_to)
        self.assertEqual(Lead.objects.get(name='Bia').source, 'Fair')

    def test_duplicates_inside_the_batch(self):
        response = self.post_import({'leads': [
            {'name': 'Ana', 'phone': '5511999990002'},
            {'name': 'Ana again', 'phone': '5511999990002'},
        ]})

        results = response.json()['data']['results']
        self.assertEqual(results['success'], 1)
        self.assertEqual(results['duplicates'], 1)

    def test_seller_keeps_imported_leads(self):
        self.post_import({'leads': [{'name': 'Ana', 'phone': '5511999990002'}]}, user=self.seller)

        self.assertEqual(Lead.objects.get(name='Ana').assigned_to, self.seller)

    def test_batch_limits(self):
        too_many = [{'name': f'Lead {i}', 'phone': f'55119{i:08d}'} for i in range(101)]

        self.assertEqual(self.post_import({'leads': too_many}).status_code, 400)
        self.assertEqual(self.post_import({'leads': []}).status_code, 400)
        self.assertEqual(self.post_import({'leads': 'Ana'}).status_code, 400)
        self.assertEqual(Lead.objects.count(), 1)

    def test_auto_prospect_schedules_campaign(self):
        response = self.post_import({
            'leads': [
                {'name': 'Ana', 'phone': '5511999990002'},
                {'name': 'Bia', 'phone': '5511999990003'},
                {'name': 'Existing', 'phone': '5511999990001'},
            ],
            'auto_prospect': True,
            'message_template': 'Hi {nome}!',
            'campaign_name': 'Fair leads',
            'delay_seconds': 30,
        })

        campaign = WhatsAppCampaign.objects.get(pk=response.json()['data']['campaign_id'])
        self.assertEqual(campaign.name, 'Fair leads')
        self.assertEqual(campaign.status, WhatsAppCampaign.STATUS_SCHEDULED)
        self.assertEqual(campaign.total_recipients, 2)
        self.assertEqual(campaign.created_by, self.manager)

        first, second = CampaignMessage.objects.filter(campaign=campaign).order_by('scheduled_at')
        self.assertEqual(first.lead.name, 'Ana')
        self.assertEqual(second.scheduled_at - first.scheduled_at, timedelta(seconds=30))

    def test_auto_prospect_validation(self):
        leads = [{'name': 'Ana', 'phone': '5511999990002'}]

        response = self.post_import({'leads': leads, 'auto_prospect': True, 'message_template': '<script>x</script>'})
        self.assertEqual(response.status_code, 400)

        response = self.post_import({'leads': leads, 'auto_prospect': True, 'message_template': 'Hi', 'delay_seconds': '5'})
        self.assertEqual(response.status_code, 400)

        response = self.post_import({'leads': leads, 'auto_prospect': True, 'message_template': 'Hi'}, user=self.seller)
        self.assertEqual(response.status_code, 403)

        self.assertFalse(Lead.objects.filter(name='Ana').exists())
        self.assertFalse(WhatsAppCampaign.objects.exists())

    def test_nothing_imported_creates_no_campaign(self):
        response = self.post_import({
            'leads': [{'name': 'Existing', 'phone': '5511999990001'}],
            'auto_prospect': True,
            'message_template': 'Hi {nome}!',
        })

        self.assertIsNone(response.json()['data']['campaign_id'])
        self.assertFalse(WhatsAppCampaign.objects.exists())
