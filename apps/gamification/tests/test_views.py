import json

from channels.layers import get_channel_layer
from channels.testing import WebsocketCommunicator
from django.contrib.auth.models import AnonymousUser
from django.test import TestCase, Client
from django.urls import reverse
from django.contrib.auth import get_user_model
from apps.core.models import Company
from apps.gamification.consumers import GamificationConsumer
from apps.gamification.models import GamificationEvent, GamificationSetting
from apps.leads.models import Lead

User = get_user_model()


class GamificationViewsTest(TestCase):

    def setUp(self):
        self.client = Client()
        self.company = Company.objects.create(name='Acme Sales')
        self.manager = User.objects.create_user(
            email='manager@acme.test', password='x', first_name='Mia', company=self.company, role=User.ROLE_MANAGER
        )
        self.seller = User.objects.create_user(
            email='seller@acme.test', password='x', first_name='Sam', company=self.company, role=User.ROLE_SELLER
        )
        Lead.objects.create(company=self.company, name='One', created_by=self.seller)
        Lead.objects.create(company=self.company, name='Two', created_by=self.seller)
        Lead.objects.create(company=self.company, name='Three', created_by=self.manager)

    def test_leaderboard(self):
        self.client.force_login(self.seller)

        response = self.client.get(reverse('gamification:leaderboard'), {'days': 7})

        self.assertEqual(response.status_code, 200)
        data = response.json()['data']
        self.assertEqual(data['days'], 7)
        self.assertEqual([row['user_id'] for row in data['leaderboard']], [self.seller.id, self.manager.id])
        self.assertEqual(data['leaderboard'][0]['stats']['total_points'], 20)

    def test_days_are_clamped(self):
        self.client.force_login(self.seller)

        response = self.client.get(reverse('gamification:leaderboard'), {'days': 5000})

        self.assertEqual(response.json()['data']['days'], 365)

    def test_my_stats(self):
        self.client.force_login(self.manager)

        response = self.client.get(reverse('gamification:me'))

        data = response.json()['data']
        self.assertEqual(data['position'], 2)
        self.assertEqual(data['stats']['leads_created'], 1)
        self.assertEqual(len(data['recent_events']), 1)
        self.assertEqual(data['badges'], [])

    def test_settings_get_shows_defaults(self):
        self.client.force_login(self.seller)

        response = self.client.get(reverse('gamification:settings'))

        self.assertEqual(response.json()['data']['points']['sale_closed'], 100)

    def test_manager_updates_points(self):
        self.client.force_login(self.manager)

        response = self.client.post(
            reverse('gamification:settings'),
            data=json.dumps({'points': {'lead_created': 50, 'sale_closed': 200}}),
            content_type='application/json'
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['data']['points']['lead_created'], 50)
        self.assertEqual(GamificationSetting.objects.filter(company=self.company).count(), 2)

        Lead.objects.create(company=self.company, name='Four', created_by=self.seller)
        self.assertEqual(GamificationEvent.objects.filter(lead__name='Four').get().points, 50)

    def test_seller_cannot_update_points(self):
        self.client.force_login(self.seller)

        response = self.client.post(
            reverse('gamification:settings'),
            data=json.dumps({'points': {'lead_created': 50}}),
            content_type='application/json'
        )

        self.assertEqual(response.status_code, 403)
        self.assertFalse(GamificationSetting.objects.exists())

    def test_invalid_points(self):
        self.client.force_login(self.manager)

        response = self.client.post(
            reverse('gamification:settings'),
            data=json.dumps({'points': {'lead_created': True, 'sale_closed': 2000, 'coffee': 1}}),
            content_type='application/json'
        )

        self.assertEqual(response.status_code, 400)
        errors = response.json()['errors']
        self.assertEqual(set(errors), {'lead_created', 'sale_closed', 'coffee'})
        self.assertFalse(GamificationSetting.objects.exists())

    def test_body_must_be_an_object(self):
        self.client.force_login(self.manager)

        for body in ('[1]', '"points"', '{broken'):
            response = self.client.post(reverse('gamification:settings'), data=body, content_type='application/json')

            self.assertEqual(response.status_code, 400)
            self.assertEqual(response.json()['message'], 'Invalid JSON payload')


class GamificationConsumerTest(TestCase):

    def setUp(self):
        self.company = Company.objects.create(name='Acme Sales')
        self.seller = User.objects.create_user(
            email='seller@acme.test', password='x', first_name='Sam', company=self.company
        )

    async def test_anonymous_is_rejected(self):
        communicator = WebsocketCommunicator(GamificationConsumer.as_asgi(), '/ws/gamification/')
        communicator.scope['user'] = AnonymousUser()

        connected, code = await communicator.connect()

        self.assertFalse(connected)
        self.assertEqual(code, 4401)

    async def test_ping_and_company_events(self):
        communicator = WebsocketCommunicator(GamificationConsumer.as_asgi(), '/ws/gamification/')
        communicator.scope['user'] = self.seller

        connected, _ = await communicator.connect()
        self.assertTrue(connected)

        await communicator.send_json_to({'type': 'ping'})
        self.assertEqual(await communicator.receive_json_from(), {'type': 'pong'})

        await get_channel_layer().group_send(
            f'gamification_{self.company.id}',
            {'type': 'gamification.event', 'event': {'points': 100, 'celebrate': True}}
        )
        message = await communicator.receive_json_from()
        self.assertEqual(message['type'], 'event')
        self.assertTrue(message['event']['celebrate'])
        self.assertEqual(message['ranking_changes'], [])

        await communicator.disconnect()
