from decimal import Decimal

from django.test import TestCase
from apps.billing.plans import get_plan, monthly_revenue, plan_for_price
from apps.billing.provisioning import stripe_field, subscription_period


class PlanMappingTest(TestCase):

    def test_known_prices(self):
        self.assertEqual(plan_for_price('price_individual_monthly'), ('individual', 1))
        self.assertEqual(plan_for_price('price_team_yearly'), ('team', 10))

    def test_unknown_or_missing_price(self):
        self.assertEqual(plan_for_price('price_nope'), ('individual', 1))
        self.assertEqual(plan_for_price(None), ('individual', 1))

    def test_monthly_revenue(self):
        self.assertEqual(monthly_revenue('price_team_monthly'), Decimal('397'))
        self.assertEqual(monthly_revenue('price_team_yearly'), Decimal('330.83'))
        self.assertEqual(monthly_revenue('price_nope'), Decimal('0'))

    def test_enterprise_is_unlimited(self):
        self.assertEqual(get_plan('enterprise').user_limit, -1)


class StripeFieldTest(TestCase):

    def test_walks_nested_data(self):
        data = {'items': {'data': [{'price': {'id': 'price_1'}}]}}

        self.assertEqual(stripe_field(data, 'items', 'data', 0, 'price', 'id'), 'price_1')
        self.assertIsNone(stripe_field(data, 'items', 'data', 3, 'price'))
        self.assertEqual(stripe_field(data, 'missing', default='x'), 'x')

    def test_period_from_first_item(self):
        data = {'items': {'data': [{'current_period_start': 1760000000, 'current_period_end': 1762592000}]}}

        start, end = subscription_period(data)

        self.assertEqual(start.year, 2025)
        self.assertGreater(end, start)
