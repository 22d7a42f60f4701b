from datetime import timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

from django.test import TestCase
from django.utils import timezone
from django.contrib.auth import get_user_model
from apps.agenda.models import Meeting
from apps.core.models import Company
from apps.gamification.models import GamificationEvent
from apps.leads.models import Lead

User = get_user_model()


class ScoringSignalsTest(TestCase):

    def setUp(self):
        self.company = Company.objects.create(name='Acme Sales')
        self.manager = User.objects.create_user(
            email='manager@acme.test', password='x', first_name='Mia', company=self.company, role=User.ROLE_MANAGER
        )
        self.seller = User.objects.create_user(
            email='seller@acme.test', password='x', first_name='Sam', company=self.company, role=User.ROLE_SELLER
        )
        self.lead = Lead.objects.create(
            company=self.company, name='Ana Souza', created_by=self.seller, assigned_to=self.seller,
            estimated_value=Decimal('5000')
        )

    def events(self, event_type, user=None):
        events = GamificationEvent.objects.filter(event_type=event_type)
        if user is not None:
            events = events.filter(user=user)
        return events

    def test_lead_created_scores_creator(self):
        event = self.events(GamificationEvent.EVENT_LEAD_CREATED).get()

        self.assertEqual(event.user, self.seller)
        self.assertEqual(event.points, 10)
        self.assertEqual(event.lead, self.lead)

    def test_qualified_once(self):
        self.lead.mark_qualified(user=self.manager)
        self.lead.mark_qualified(user=self.manager)

        event = self.events(GamificationEvent.EVENT_LEAD_QUALIFIED).get()
        self.assertEqual(event.user, self.manager)
        self.assertEqual(event.points, 15)

    def test_proposal_scores_actor(self):
        self.lead.change_status(Lead.STATUS_PROPOSAL, user=self.manager)

        self.assertEqual(self.events(GamificationEvent.EVENT_PROPOSAL_SENT, self.manager).get().points, 25)

    def test_sale_scores_seller_with_value_bonus(self):
        self.lead.change_status(Lead.STATUS_WON, user=self.manager)

        event = self.events(GamificationEvent.EVENT_SALE_CLOSED).get()
        self.assertEqual(event.user, self.seller)
        self.assertEqual(event.points, 105)

    def test_unchanged_save_scores_nothing(self):
        self.lead.company_name = 'Souza Ltda'
        self.lead.save()

        self.assertEqual(GamificationEvent.objects.count(), 1)

    def test_observation(self):
        self.lead.add_observation('Asked for a discount', self.manager)

        self.assertEqual(self.events(GamificationEvent.EVENT_OBSERVATION_ADDED, self.manager).get().points, 3)

    def test_meeting_scheduled(self):
        start = timezone.now() + timedelta(days=1)
        Meeting.objects.create(
            company=self.company, title='Demo', lead=self.lead, start_time=start,
            end_time=start + timedelta(hours=1), created_by=self.seller
        )

        event = self.events(GamificationEvent.EVENT_MEETING_SCHEDULED).get()
        self.assertEqual(event.points, 20)
        self.assertEqual(event.metadata['meeting_title'], 'Demo')

    def test_meeting_without_creator_is_ignored(self):
        start = timezone.now() + timedelta(days=1)
        Meeting.objects.create(company=self.company, title='Demo', start_time=start, end_time=start + timedelta(hours=1))

        self.assertFalse(self.events(GamificationEvent.EVENT_MEETING_SCHEDULED).exists())


class BroadcastSignalTest(TestCase):

    def setUp(self):
        self.company = Company.objects.create(name='Acme Sales')
        self.seller = User.objects.create_user(
            email='seller@acme.test', password='x', first_name='Sam', company=self.company
        )

    @patch('apps.gamification.signals.get_channel_layer')
    def test_sale_is_broadcast_with_celebration(self, mock_layer):
        layer = MagicMock()
        layer.group_send = AsyncMock()
        mock_layer.return_value = layer

        GamificationEvent.objects.create(
            company=self.company, user=self.seller, event_type=GamificationEvent.EVENT_SALE_CLOSED, points=100
        )

        group, message = layer.group_send.call_args[0]
        self.assertEqual(group, f'gamification_{self.company.id}')
        self.assertEqual(message['type'], 'gamification.event')
        self.assertEqual(message['event']['user_name'], 'Sam')
        self.assertTrue(message['event']['celebrate'])

    @patch('apps.gamification.signals.get_channel_layer')
    def test_broadcast_failure_does_not_break_save(self, mock_layer):
        layer = MagicMock()
        layer.group_send = AsyncMock(side_effect=ConnectionError('redis down'))
        mock_layer.return_value = layer

        GamificationEvent.objects.create(
            company=self.company, user=self.seller, event_type=GamificationEvent.EVENT_LEAD_CREATED, points=10
        )

        self.assertEqual(GamificationEvent.objects.count(), 1)

    @patch('apps.gamification.signals.get_channel_layer')
    def test_broadcast_carries_ranking_changes(self, mock_layer):
        layer = MagicMock()
        layer.group_send = AsyncMock()
        mock_layer.return_value = layer
        leader = User.objects.create_user(
            email='leader@acme.test', password='x', first_name='Bia', company=self.company
        )
        GamificationEvent.objects.create(
            company=self.company, user=leader, event_type=GamificationEvent.EVENT_PROPOSAL_SENT, points=25
        )

        GamificationEvent.objects.create(
            company=self.company, user=self.seller, event_type=GamificationEvent.EVENT_SALE_CLOSED, points=100
        )

        changes = {change['user_id']: change for change in layer.group_send.call_args[0][1]['ranking_changes']}
        self.assertEqual(changes[self.seller.id]['old_position'], None)
        self.assertEqual(changes[self.seller.id]['new_position'], 1)
        self.assertEqual(changes[leader.id]['old_position'], 1)
        self.assertEqual(changes[leader.id]['new_position'], 2)
        self.assertEqual(changes[leader.id]['direction'], 'down')
