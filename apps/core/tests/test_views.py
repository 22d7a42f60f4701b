import json
from datetime import timedelta
from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase, Client
from django.urls import reverse
from django.utils import timezone
from django.contrib.auth import get_user_model
from apps.agenda.models import Meeting, Reminder, Task
from apps.core.demo import MEETINGS, STATUS_DISTRIBUTION, DemoDataSeeder
from apps.core.models import ApiToken, Company
from apps.leads.models import Lead, LeadValue

User = get_user_model()


class CoreTestBase(TestCase):

    def setUp(self):
        self.client = Client()
        self.company = Company.objects.create(name='Acme Sales')
        self.owner = User.objects.create_user(
            email='owner@acme.test', password='x', first_name='Olivia', company=self.company, role=User.ROLE_OWNER
        )
        self.manager = User.objects.create_user(
            email='manager@acme.test', password='x', first_name='Mia', company=self.company, role=User.ROLE_MANAGER
        )
        self.seller = User.objects.create_user(
            email='seller@acme.test', password='x', first_name='Sam', company=self.company, role=User.ROLE_SELLER
        )


class DashboardStatsViewTest(CoreTestBase):

    def setUp(self):
        super().setUp()
        won = Lead.objects.create(company=self.company, name='Won', status=Lead.STATUS_WON, assigned_to=self.seller)
        LeadValue.objects.create(lead=won, name='Setup', amount=Decimal('3000'))
        LeadValue.objects.create(lead=won, name='Plan', amount=Decimal('500'))
        Lead.objects.create(company=self.company, name='Lost', status=Lead.STATUS_LOST, loss_reason='Price',
                            assigned_to=self.manager)
        Lead.objects.create(company=self.company, name='Open', status=Lead.STATUS_PROPOSAL,
                            estimated_value=Decimal('2000'), assigned_to=self.seller)
        Lead.objects.create(company=self.company, name='Old', created_at=timezone.now() - timedelta(days=40))

        other = Company.objects.create(name='Other Co')
        Lead.objects.create(company=other, name='Foreign', status=Lead.STATUS_WON)

    def test_manager_sees_company(self):
        self.client.force_login(self.manager)

        response = self.client.get(reverse('core:dashboard_stats'), {'days': 7})

        self.assertEqual(response.status_code, 200)
        data = response.json()['data']
        self.assertEqual(data['scope'], 'company')
        self.assertEqual(data['total_leads'], 4)
        self.assertEqual(data['won_leads'], 1)
        self.assertEqual(data['lost_leads'], 1)
        self.assertEqual(data['by_status']['proposal'], 1)
        self.assertEqual(data['won_value'], '3500.00')
        self.assertEqual(data['pipeline_value'], '2000.00')
        self.assertEqual(data['conversion_rate'], 25.0)
        self.assertEqual(len(data['leads_per_day']), 7)
        self.assertEqual(sum(day['count'] for day in data['leads_per_day']), 3)
        self.assertEqual(len(data['per_seller']), 3)

        seller_row = next(row for row in data['per_seller'] if row['user_id'] == self.seller.id)
        self.assertEqual(seller_row['leads'], 2)
        self.assertEqual(seller_row['won'], 1)
        self.assertEqual(seller_row['conversion_rate'], 50.0)

    def test_seller_sees_own_numbers(self):
        self.client.force_login(self.seller)

        response = self.client.get(reverse('core:dashboard_stats'))

        data = response.json()['data']
        self.assertEqual(data['scope'], 'me')
        self.assertEqual(data['total_leads'], 2)
        self.assertEqual([row['user_id'] for row in data['per_seller']], [self.seller.id])
        self.assertEqual(len(data['leads_per_day']), 30)

    def test_invalid_days(self):
        self.client.force_login(self.manager)

        self.assertEqual(self.client.get(reverse('core:dashboard_stats'), {'days': 'x'}).status_code, 400)
        self.assertEqual(self.client.get(reverse('core:dashboard_stats'), {'days': 0}).status_code, 400)


class ApiTokenViewsTest(CoreTestBase):

    def test_manager_creates_token_shown_once(self):
        self.client.force_login(self.manager)

        response = self.client.post(
            reverse('core:api_tokens'), data=json.dumps({'name': 'Landing page'}), content_type='application/json'
        )

        self.assertEqual(response.status_code, 201)
        token = ApiToken.objects.get()
        self.assertEqual(response.json()['data']['token'], token.token)
        self.assertEqual(token.created_by, self.manager)

        listed = self.client.get(reverse('core:api_tokens')).json()['data']
        self.assertEqual(listed[0]['token'], token.masked())

    def test_name_required(self):
        self.client.force_login(self.manager)

        response = self.client.post(reverse('core:api_tokens'), data=json.dumps({}), content_type='application/json')

        self.assertEqual(response.status_code, 400)

    def test_seller_cannot_manage_tokens(self):
        self.client.force_login(self.seller)

        self.assertEqual(self.client.get(reverse('core:api_tokens')).status_code, 403)

    def test_revoke(self):
        token = ApiToken.objects.create(company=self.company, name='Sheets')
        self.client.force_login(self.manager)

        response = self.client.post(reverse('core:api_token_revoke', kwargs={'pk': token.pk}))

        self.assertEqual(response.status_code, 200)
        token.refresh_from_db()
        self.assertFalse(token.is_active)

    def test_revoke_other_company_token_is_404(self):
        other = Company.objects.create(name='Other Co')
        token = ApiToken.objects.create(company=other, name='Sheets')
        self.client.force_login(self.manager)

        response = self.client.post(reverse('core:api_token_revoke', kwargs={'pk': token.pk}))

        self.assertEqual(response.status_code, 404)
        token.refresh_from_db()
        self.assertTrue(token.is_active)


class DemoDataSeederTest(CoreTestBase):

    def test_full_distribution(self):
        counts = DemoDataSeeder(self.company, seed=42).run()

        self.assertEqual(counts['leads'], 300)
        self.assertEqual(Lead.objects.filter(company=self.company, status=Lead.STATUS_WON).count(), 60)
        self.assertEqual(Lead.objects.filter(company=self.company, status=Lead.STATUS_LOST).count(), 30)
        # 'qualified' leads sit in the contacted column with the flag set
        self.assertEqual(
            Lead.objects.filter(company=self.company, status=Lead.STATUS_CONTACTED, qualified=True).count(), 45
        )
        self.assertFalse(Lead.objects.filter(status=Lead.STATUS_LOST, loss_reason='').exists())

        won_values = LeadValue.objects.filter(lead__company=self.company).count()
        self.assertEqual(counts['lead_values'], won_values)
        self.assertGreaterEqual(won_values, 60 * 2)
        self.assertLessEqual(won_values, 60 * 4)

        self.assertEqual(counts['meetings'], 250)
        self.assertEqual(counts['tasks'], 400)
        self.assertEqual(counts['reminders'], 200)
        self.assertEqual(Reminder.objects.filter(completed=True).count(), 120)

    def test_scaled_run(self):
        seeder = DemoDataSeeder(self.company, scale=0.1, seed=1)
        counts = seeder.run()

        self.assertEqual(counts['leads'], sum(seeder.scaled(count) for _, count in STATUS_DISTRIBUTION))
        self.assertLess(counts['leads'], 40)
        self.assertEqual(counts['meetings'], seeder.scaled(MEETINGS))
        self.assertEqual(Meeting.objects.filter(company=self.company).count(), counts['meetings'])

        for meeting in Meeting.objects.filter(company=self.company):
            self.assertEqual(meeting.participants.filter(is_organizer=True).count(), 1)

        for task in Task.objects.filter(company=self.company):
            self.assertEqual(task.total_assigned, task.assignments.count())
            if task.status == Task.STATUS_DONE:
                self.assertEqual(task.total_completed, task.total_assigned)

    def test_company_without_users(self):
        empty = Company.objects.create(name='Empty Co')

        with self.assertRaises(ValueError):
            DemoDataSeeder(empty).run()

    def test_view_is_owner_only(self):
        self.client.force_login(self.manager)

        response = self.client.post(reverse('core:demo_seed'), data=json.dumps({'scale': 0.05}), content_type='application/json')

        self.assertEqual(response.status_code, 403)

    def test_view_seeds_company(self):
        self.client.force_login(self.owner)

        response = self.client.post(reverse('core:demo_seed'), data=json.dumps({'scale': 0.05}), content_type='application/json')

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['data']['leads'], Lead.objects.filter(company=self.company).count())

    def test_view_rejects_bad_scale(self):
        self.client.force_login(self.owner)

        response = self.client.post(reverse('core:demo_seed'), data=json.dumps({'scale': 5}), content_type='application/json')

        self.assertEqual(response.status_code, 400)

    def test_management_command(self):
        out = StringIO()

        call_command('seed_demo_data', '--company', self.company.slug, '--scale', '0.05', '--seed', '7', stdout=out)

        self.assertIn('Demo data created successfully', out.getvalue())
        self.assertTrue(Lead.objects.filter(company=self.company).exists())

    def test_management_command_unknown_company(self):
        with self.assertRaises(CommandError):
            call_command('seed_demo_data', '--company', 'nope', stdout=StringIO())
