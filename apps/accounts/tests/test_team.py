import json

from django.core import mail
from django.test import TestCase, Client
from django.urls import reverse
from django.contrib.auth import get_user_model
from apps.accounts.team import (
    TEMPORARY_PASSWORD_ALPHABET,
    DuplicateEmail,
    SeatLimitReached,
    TeamError,
    add_team_member,
    generate_temporary_password,
)
from apps.billing.models import Subscription
from apps.core.models import Company

User = get_user_model()


class TemporaryPasswordTest(TestCase):

    def test_default_length_and_alphabet(self):
        password = generate_temporary_password()

        self.assertEqual(len(password), 12)
        self.assertTrue(all(char in TEMPORARY_PASSWORD_ALPHABET for char in password))

    def test_no_ambiguous_characters(self):
        password = generate_temporary_password(length=200)

        for char in '0O1lI':
            self.assertNotIn(char, password)


class AddTeamMemberTest(TestCase):

    def setUp(self):
        self.company = Company.objects.create(name='Acme Sales')
        self.owner = User.objects.create_user(
            email='owner@acme.test', password='x', first_name='Olivia', company=self.company, role=User.ROLE_OWNER
        )
        Subscription.objects.create(
            company=self.company, status=Subscription.STATUS_ACTIVE, plan_type=Subscription.PLAN_TEAM, user_limit=3
        )

    def test_creates_user_with_temporary_password(self):
        user, password = add_team_member(self.company, 'Sam Seller', 'Sam@Acme.test', User.ROLE_SELLER, self.owner)

        self.assertEqual(user.email, 'sam@acme.test')
        self.assertEqual(user.first_name, 'Sam')
        self.assertEqual(user.last_name, 'Seller')
        self.assertEqual(user.company, self.company)
        self.assertTrue(user.must_change_password)
        self.assertTrue(user.check_password(password))

    def test_sends_credentials_by_email(self):
        user, password = add_team_member(self.company, 'Sam Seller', 'sam@acme.test', User.ROLE_SELLER, self.owner)

        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ['sam@acme.test'])
        self.assertIn(password, mail.outbox[0].body)

    def test_rejects_owner_role(self):
        with self.assertRaises(TeamError):
            add_team_member(self.company, 'Other Owner', 'other@acme.test', User.ROLE_OWNER)

    def test_rejects_duplicate_email(self):
        with self.assertRaises(DuplicateEmail):
            add_team_member(self.company, 'Owner Again', 'OWNER@acme.test', User.ROLE_MANAGER)

    def test_enforces_seat_limit(self):
        add_team_member(self.company, 'One', 'one@acme.test', User.ROLE_SELLER)
        add_team_member(self.company, 'Two', 'two@acme.test', User.ROLE_SELLER)

        with self.assertRaises(SeatLimitReached):
            add_team_member(self.company, 'Three', 'three@acme.test', User.ROLE_SELLER)

    def test_inactive_users_do_not_use_seats(self):
        one, _ = add_team_member(self.company, 'One', 'one@acme.test', User.ROLE_SELLER)
        add_team_member(self.company, 'Two', 'two@acme.test', User.ROLE_SELLER)
        one.is_active = False
        one.save()

        user, _ = add_team_member(self.company, 'Three', 'three@acme.test', User.ROLE_SELLER)

        self.assertEqual(user.company, self.company)

    def test_unlimited_plan(self):
        self.company.subscription.user_limit = -1
        self.company.subscription.save()

        for i in range(5):
            add_team_member(self.company, f'Seller {i}', f'seller{i}@acme.test', User.ROLE_SELLER)

        self.assertEqual(self.company.get_active_users_count(), 6)

    def test_without_subscription_only_one_user(self):
        self.company.subscription.delete()

        with self.assertRaises(SeatLimitReached):
            add_team_member(self.company, 'Sam', 'sam@acme.test', User.ROLE_SELLER)


class TeamViewTest(TestCase):

    def setUp(self):
        self.client = Client()
        self.company = Company.objects.create(name='Acme Sales')
        self.owner = User.objects.create_user(
            email='owner@acme.test', password='x', first_name='Olivia', company=self.company, role=User.ROLE_OWNER
        )
        self.seller = User.objects.create_user(
            email='seller@acme.test', password='x', first_name='Sam', company=self.company, role=User.ROLE_SELLER
        )
        Subscription.objects.create(
            company=self.company, status=Subscription.STATUS_ACTIVE, plan_type=Subscription.PLAN_TEAM, user_limit=10
        )
        self.url = reverse('accounts:team')

    def _post(self, payload):
        return self.client.post(self.url, data=json.dumps(payload), content_type='application/json')

    def test_list_members(self):
        self.client.force_login(self.seller)

        response = self.client.get(self.url)

        self.assertEqual(response.status_code, 200)
        data = response.json()['data']
        self.assertEqual(len(data['members']), 2)
        self.assertEqual(data['seat_limit'], 10)
        self.assertEqual(data['seats_available'], 8)

    def test_owner_adds_member(self):
        self.client.force_login(self.owner)

        response = self._post({'name': 'Mia Manager', 'email': 'mia@acme.test', 'role': 'manager'})

        self.assertEqual(response.status_code, 201)
        self.assertTrue(User.objects.filter(email='mia@acme.test', role=User.ROLE_MANAGER).exists())

    def test_seller_cannot_add_member(self):
        self.client.force_login(self.seller)

        response = self._post({'name': 'Mia', 'email': 'mia@acme.test', 'role': 'manager'})

        self.assertEqual(response.status_code, 403)

    def test_duplicate_email_answers_409(self):
        self.client.force_login(self.owner)

        response = self._post({'name': 'Sam', 'email': 'seller@acme.test', 'role': 'seller'})

        self.assertEqual(response.status_code, 409)

    def test_deactivate_member(self):
        self.client.force_login(self.owner)

        response = self.client.post(reverse('accounts:team_deactivate', kwargs={'pk': self.seller.pk}))

        self.assertEqual(response.status_code, 200)
        self.seller.refresh_from_db()
        self.assertFalse(self.seller.is_active)

    def test_owner_cannot_deactivate_self(self):
        self.client.force_login(self.owner)

        response = self.client.post(reverse('accounts:team_deactivate', kwargs={'pk': self.owner.pk}))

        self.assertEqual(response.status_code, 400)


class MeViewTest(TestCase):

    def setUp(self):
        self.client = Client()
        self.company = Company.objects.create(name='Acme Sales')
        self.user = User.objects.create_user(email='owner@acme.test', password='x', company=self.company, role=User.ROLE_OWNER)

    def test_requires_login(self):
        response = self.client.get(reverse('accounts:me'))

        self.assertEqual(response.status_code, 401)

    def test_free_plan_without_subscription(self):
        self.client.force_login(self.user)

        response = self.client.get(reverse('accounts:me'))

        data = response.json()['data']
        self.assertEqual(data['user']['email'], 'owner@acme.test')
        self.assertEqual(data['company']['slug'], 'acme-sales')
        self.assertEqual(data['subscription']['plan_type'], 'free')
        self.assertEqual(data['company']['seat_limit'], 1)

    def test_profile_created_by_signal(self):
        self.assertTrue(hasattr(self.user, 'profile'))
        self.assertTrue(self.user.wants_email_notifications())
