"""
Tests for Custom Decorators
============================

Tests all custom decorators to ensure proper access control.

Test Cases:
1. api_login_required decorator
2. company_required decorator
3. manager_required / owner_required decorators
4. same_company_required decorator
"""

import json

from django.test import TestCase, RequestFactory
from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from django.http import JsonResponse
from apps.core.models import Company
from apps.leads.models import Lead
from apps.accounts.decorators import (
    api_login_required,
    company_required,
    manager_required,
    owner_required,
    same_company_required,
)

User = get_user_model()


def ok_view(request, *args, **kwargs):
    return JsonResponse({'status': 'success'})


class ApiLoginRequiredDecoratorTest(TestCase):

    def setUp(self):
        self.factory = RequestFactory()
        self.view = api_login_required(ok_view)

    def test_anonymous_user_gets_401_json(self):
        request = self.factory.get('/api/test/')
        request.user = AnonymousUser()

        response = self.view(request)

        self.assertEqual(response.status_code, 401)
        self.assertEqual(json.loads(response.content)['status'], 'error')

    def test_authenticated_user_passes(self):
        request = self.factory.get('/api/test/')
        request.user = User.objects.create_user(email='user@test.com', password='testpass123')

        response = self.view(request)

        self.assertEqual(response.status_code, 200)


class CompanyRequiredDecoratorTest(TestCase):
    """Test @company_required decorator"""

    def setUp(self):
        """Setup test data"""
        self.factory = RequestFactory()

        self.company = Company.objects.create(name='Acme Sales')

        self.user_with_company = User.objects.create_user(
            email='withcompany@test.com',
            password='testpass123',
            first_name='Ana',
            last_name='Souza',
            company=self.company
        )

        self.user_without_company = User.objects.create_user(
            email='nocompany@test.com',
            password='testpass123',
            first_name='Bruno',
            last_name='Lima'
        )

        self.view = company_required(ok_view)

    def test_user_with_company_can_access(self):
        request = self.factory.get('/api/test/')
        request.user = self.user_with_company

        response = self.view(request)

        self.assertEqual(response.status_code, 200)

    def test_user_without_company_gets_403(self):
        request = self.factory.get('/api/test/')
        request.user = self.user_without_company

        response = self.view(request)

        self.assertEqual(response.status_code, 403)

    def test_anonymous_user_gets_401(self):
        request = self.factory.get('/api/test/')
        request.user = AnonymousUser()

        response = self.view(request)

        self.assertEqual(response.status_code, 401)


class RoleDecoratorsTest(TestCase):
    """Test @manager_required and @owner_required"""

    def setUp(self):
        self.factory = RequestFactory()
        self.company = Company.objects.create(name='Acme Sales')

        self.owner = User.objects.create_user(email='owner@test.com', password='x', company=self.company, role=User.ROLE_OWNER)
        self.manager = User.objects.create_user(email='manager@test.com', password='x', company=self.company, role=User.ROLE_MANAGER)
        self.seller = User.objects.create_user(email='seller@test.com', password='x', company=self.company, role=User.ROLE_SELLER)

    def _call(self, view, user):
        request = self.factory.post('/api/test/')
        request.user = user
        return view(request)

    def test_manager_required(self):
        view = manager_required(ok_view)

        self.assertEqual(self._call(view, self.owner).status_code, 200)
        self.assertEqual(self._call(view, self.manager).status_code, 200)
        self.assertEqual(self._call(view, self.seller).status_code, 403)

    def test_owner_required(self):
        view = owner_required(ok_view)

        self.assertEqual(self._call(view, self.owner).status_code, 200)
        self.assertEqual(self._call(view, self.manager).status_code, 403)
        self.assertEqual(self._call(view, self.seller).status_code, 403)


class SameCompanyRequiredDecoratorTest(TestCase):
    """Test @same_company_required decorator"""

    def setUp(self):
        self.factory = RequestFactory()

        self.company1 = Company.objects.create(name='Company One')
        self.company2 = Company.objects.create(name='Company Two')

        self.user1 = User.objects.create_user(email='user1@test.com', password='x', company=self.company1)

        self.lead1 = Lead.objects.create(company=self.company1, name='Lead One', phone='5511999990001')
        self.lead2 = Lead.objects.create(company=self.company2, name='Lead Two', phone='5511999990002')

        self.view = same_company_required(Lead)(ok_view)

    def test_user_can_access_own_company_object(self):
        request = self.factory.get('/api/test/')
        request.user = self.user1

        response = self.view(request, pk=self.lead1.pk)

        self.assertEqual(response.status_code, 200)

    def test_other_company_object_answers_404(self):
        request = self.factory.get('/api/test/')
        request.user = self.user1

        response = self.view(request, pk=self.lead2.pk)

        self.assertEqual(response.status_code, 404)
        self.assertEqual(json.loads(response.content)['message'], 'Lead not found')
