from types import SimpleNamespace
from unittest.mock import MagicMock, patch

from django.test import TestCase, Client, override_settings
from django.urls import reverse
from django.contrib.auth import get_user_model
from apps.core.models import Company
from apps.leads.analysis import AnalysisError, AnalysisUnavailable, analyze_lead, build_prompt
from apps.leads.models import Lead, LeadObservation

User = get_user_model()


def claude_reply(text):
    client = MagicMock()
    client.messages.create.return_value = SimpleNamespace(content=[SimpleNamespace(type='text', text=text)])
    return client


class LeadAnalysisTest(TestCase):

    def setUp(self):
        self.company = Company.objects.create(name='Acme Sales')
        self.seller = User.objects.create_user(
            email='seller@acme.test', password='x', first_name='Sam', company=self.company
        )
        self.lead = Lead.objects.create(
            company=self.company, name='Ana Souza', company_name='Souza Ltda', assigned_to=self.seller,
            status=Lead.STATUS_PROPOSAL
        )
        self.lead.add_observation('Asked for a discount', self.seller, note_type=LeadObservation.TYPE_CALL)

    def test_prompt_has_lead_and_history(self):
        prompt = build_prompt(self.lead, list(self.lead.observations.all()))

        self.assertIn('Souza Ltda', prompt)
        self.assertIn('Asked for a discount', prompt)
        self.assertIn('Seller: Sam', prompt)
        self.assertIn('Not informed', prompt)

    def test_analysis(self):
        client = claude_reply('  Warm lead, follow up tomorrow.  ')

        result = analyze_lead(self.lead, client=client)

        self.assertEqual(result['analysis'], 'Warm lead, follow up tomorrow.')
        self.assertEqual(result['lead']['notes_count'], 1)
        self.assertEqual(client.messages.create.call_args[1]['max_tokens'], 1500)

    def test_not_configured(self):
        with self.assertRaises(AnalysisUnavailable):
            analyze_lead(self.lead)

    def test_empty_or_failed_answer(self):
        with self.assertRaises(AnalysisError):
            analyze_lead(self.lead, client=claude_reply('   '))

        client = MagicMock()
        client.messages.create.side_effect = ValueError('boom')
        with self.assertRaises(AnalysisError):
            analyze_lead(self.lead, client=client)


class LeadAnalysisViewTest(TestCase):

    def setUp(self):
        self.client = Client()
        self.company = Company.objects.create(name='Acme Sales')
        self.seller = User.objects.create_user(
            email='seller@acme.test', password='x', first_name='Sam', company=self.company
        )
        self.other_seller = User.objects.create_user(
            email='other@acme.test', password='x', first_name='Sue', company=self.company
        )
        self.lead = Lead.objects.create(company=self.company, name='Ana', assigned_to=self.seller)
        self.url = reverse('leads:analysis', kwargs={'pk': self.lead.pk})

    def test_without_ai_is_503(self):
        self.client.force_login(self.seller)

        response = self.client.post(self.url)

        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json()['status'], 'error')

    @override_settings(ANTHROPIC_API_KEY='sk-test')
    @patch('apps.leads.analysis.get_client')
    def test_analysis(self, mock_get_client):
        mock_get_client.return_value = claude_reply('Cold lead.')
        self.client.force_login(self.seller)

        response = self.client.post(self.url)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['data']['analysis'], 'Cold lead.')

    def test_lead_of_another_seller_is_404(self):
        self.client.force_login(self.other_seller)

        self.assertEqual(self.client.post(self.url).status_code, 404)
