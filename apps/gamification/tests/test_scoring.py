"""
Gamification Scoring Tests
==========================

Test Coverage:
1. Stats and badges from raw events
2. Points table and value bonus
3. Leaderboard ordering and window
4. Ranking changes
"""

from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone
from django.contrib.auth import get_user_model
from apps.core.models import Company
from apps.gamification.models import GamificationEvent, GamificationSetting
from apps.gamification.scoring import (
    CONSISTENCY, HIGH_TICKET, MASTER_CLOSER, ON_FIRE, SNIPER,
    build_leaderboard, calculate_badges, calculate_user_stats, get_points_table,
    ranking_changes, record_event, sale_value_bonus,
)
from apps.leads.models import Lead

User = get_user_model()


class UserStatsTest(TestCase):

    def test_empty(self):
        stats = calculate_user_stats([])

        self.assertEqual(stats['total_points'], 0)
        self.assertEqual(stats['conversion_rate'], 0.0)

    def test_counts_and_values_from_dicts(self):
        events = [
            {'event_type': 'lead_created', 'points': 10, 'metadata': {}},
            {'event_type': 'lead_created', 'points': 10, 'metadata': {}},
            {'event_type': 'proposal_sent', 'points': 25, 'metadata': {}},
            {'event_type': 'sale_closed', 'points': 105, 'metadata': {'estimated_value': 5000}},
            {'event_type': 'observation_added', 'points': 3, 'metadata': None},
            {'event_type': 'meeting_scheduled', 'points': 20, 'metadata': {}},
        ]

        stats = calculate_user_stats(events)

        self.assertEqual(stats['total_points'], 173)
        self.assertEqual(stats['leads_created'], 2)
        self.assertEqual(stats['proposals_sent'], 1)
        self.assertEqual(stats['sales_closed'], 1)
        self.assertEqual(stats['observations_added'], 1)
        self.assertEqual(stats['total_sales_value'], 5000.0)
        self.assertEqual(stats['conversion_rate'], 50.0)

    def test_conversion_without_created_leads_is_zero(self):
        stats = calculate_user_stats([{'event_type': 'sale_closed', 'points': 100, 'metadata': {}}])

        self.assertEqual(stats['conversion_rate'], 0.0)


class BadgesTest(TestCase):

    def _stats(self, **overrides):
        stats = {'sales_closed': 0, 'leads_created': 0, 'conversion_rate': 0.0, 'total_sales_value': 0.0}
        stats.update(overrides)
        return stats

    def test_no_badges(self):
        self.assertEqual(calculate_badges(self._stats()), [])

    def test_thresholds(self):
        self.assertEqual(calculate_badges(self._stats(sales_closed=3)), [ON_FIRE])
        self.assertIn(SNIPER, calculate_badges(self._stats(conversion_rate=50.0)))
        self.assertIn(HIGH_TICKET, calculate_badges(self._stats(total_sales_value=100000.0)))
        self.assertNotIn(CONSISTENCY, calculate_badges(self._stats(sales_closed=7, leads_created=20)))
        self.assertIn(CONSISTENCY, calculate_badges(self._stats(sales_closed=7, leads_created=21)))

    def test_all_badges(self):
        badges = calculate_badges(self._stats(
            sales_closed=10, leads_created=21, conversion_rate=60.0, total_sales_value=150000.0
        ))

        self.assertEqual(badges, [MASTER_CLOSER, SNIPER, HIGH_TICKET, CONSISTENCY, ON_FIRE])


class RecordEventTest(TestCase):

    def setUp(self):
        self.company = Company.objects.create(name='Acme Sales')
        self.seller = User.objects.create_user(email='seller@acme.test', password='x', first_name='Sam', company=self.company)

    def test_value_bonus(self):
        self.assertEqual(sale_value_bonus(None), 0)
        self.assertEqual(sale_value_bonus(Decimal('999.99')), 0)
        self.assertEqual(sale_value_bonus(Decimal('25000')), 25)
        self.assertEqual(sale_value_bonus('-50'), 0)
        self.assertEqual(sale_value_bonus('abc'), 0)

    def test_company_settings_override_defaults(self):
        GamificationSetting.objects.create(company=self.company, event_type='lead_created', points=40)

        table = get_points_table(self.company)

        self.assertEqual(table['lead_created'], 40)
        self.assertEqual(table['sale_closed'], 100)

    def test_sale_closed_gets_bonus_and_metadata(self):
        lead = Lead(company=self.company, name='Big Deal', estimated_value=Decimal('12000'))

        event = record_event(self.seller, 'sale_closed')
        self.assertEqual(event.points, 100)

        lead.save()
        event = record_event(self.seller, 'sale_closed', lead=lead)
        self.assertEqual(event.points, 112)
        self.assertEqual(event.metadata['lead_name'], 'Big Deal')
        self.assertEqual(event.metadata['estimated_value'], 12000.0)

    def test_user_without_company_is_ignored(self):
        loner = User.objects.create_user(email='loner@test.com', password='x')

        self.assertIsNone(record_event(loner, 'lead_created'))

    def test_unknown_event_type(self):
        with self.assertRaises(ValueError):
            record_event(self.seller, 'coffee_made')


class LeaderboardTest(TestCase):

    def setUp(self):
        self.company = Company.objects.create(name='Acme Sales')
        self.other_company = Company.objects.create(name='Other Co')
        self.ana = User.objects.create_user(email='ana@acme.test', password='x', first_name='Ana', company=self.company)
        self.bia = User.objects.create_user(email='bia@acme.test', password='x', first_name='Bia', company=self.company)
        self.caio = User.objects.create_user(email='caio@acme.test', password='x', first_name='Caio', company=self.company)
        self.outsider = User.objects.create_user(email='out@other.test', password='x', company=self.other_company)

    def _event(self, user, event_type, points, days_ago=0, **metadata):
        event = GamificationEvent.objects.create(
            company=user.company, user=user, event_type=event_type, points=points, metadata=metadata
        )
        if days_ago:
            GamificationEvent.objects.filter(pk=event.pk).update(created_at=timezone.now() - timedelta(days=days_ago))
        return event

    def test_sorted_by_points_with_medals(self):
        self._event(self.ana, 'lead_created', 10)
        self._event(self.bia, 'sale_closed', 100, estimated_value=2000)
        self._event(self.caio, 'proposal_sent', 25)
        self._event(self.outsider, 'sale_closed', 500)

        board = build_leaderboard(self.company, days=30)

        self.assertEqual([row['name'] for row in board], ['Bia', 'Caio', 'Ana'])
        self.assertEqual([row['position'] for row in board], [1, 2, 3])
        self.assertEqual(board[0]['medal'], '🥇')
        self.assertEqual(board[0]['stats']['total_sales_value'], 2000.0)

    def test_ties_sorted_by_name(self):
        self._event(self.caio, 'lead_created', 10)
        self._event(self.ana, 'lead_created', 10)

        board = build_leaderboard(self.company, days=30)

        self.assertEqual([row['name'] for row in board], ['Ana', 'Caio'])

    def test_window_excludes_old_events(self):
        self._event(self.ana, 'sale_closed', 100, days_ago=45)
        self._event(self.bia, 'lead_created', 10)

        self.assertEqual([row['name'] for row in build_leaderboard(self.company, days=30)], ['Bia'])
        self.assertEqual([row['name'] for row in build_leaderboard(self.company, days=60)], ['Ana', 'Bia'])

    def test_limit(self):
        self._event(self.ana, 'lead_created', 10)
        self._event(self.bia, 'lead_created', 20)

        board = build_leaderboard(self.company, days=30, limit=1)

        self.assertEqual(len(board), 1)
        self.assertEqual(board[0]['name'], 'Bia')

    def test_ranking_changes(self):
        previous = [{'user_id': 1, 'name': 'A', 'position': 1}, {'user_id': 2, 'name': 'B', 'position': 2}]
        current = [
            {'user_id': 2, 'name': 'B', 'position': 1},
            {'user_id': 1, 'name': 'A', 'position': 2},
            {'user_id': 3, 'name': 'C', 'position': 3},
        ]

        changes = {change['user_id']: change for change in ranking_changes(previous, current)}

        self.assertEqual(changes[2]['direction'], 'up')
        self.assertEqual(changes[1]['direction'], 'down')
        self.assertIsNone(changes[3]['old_position'])
        self.assertEqual(changes[3]['direction'], 'up')
