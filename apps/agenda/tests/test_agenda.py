"""
Agenda Tests
============

Test Coverage:
1. Task assignment and completion counters
2. Meeting feedback
3. Upcoming view
4. Celery tasks: meeting reminders, feedback check, cleanup
"""

import json
from datetime import timedelta
from unittest.mock import patch

from django.core import mail
from django.test import TestCase, Client
from django.urls import reverse
from django.utils import timezone
from django.contrib.auth import get_user_model
from apps.agenda.models import Meeting, MeetingParticipant, Reminder, Task, TaskAssignment
from apps.agenda.tasks import check_meeting_feedback, cleanup_old_tasks, send_meeting_reminders
from apps.core.models import Company
from apps.leads.models import Lead

User = get_user_model()


class AgendaTestBase(TestCase):

    def setUp(self):
        self.client = Client()
        self.company = Company.objects.create(name='Acme Sales')
        self.manager = User.objects.create_user(
            email='manager@acme.test', password='x', first_name='Mia', company=self.company, role=User.ROLE_MANAGER
        )
        self.seller = User.objects.create_user(
            email='seller@acme.test', password='x', first_name='Sam', company=self.company, role=User.ROLE_SELLER
        )
        self.other_seller = User.objects.create_user(
            email='seller2@acme.test', password='x', first_name='Sue', company=self.company, role=User.ROLE_SELLER
        )
        self.lead = Lead.objects.create(company=self.company, name='Ana Souza')

    def make_meeting(self, start, created_by=None, **kwargs):
        return Meeting.objects.create(
            company=self.company,
            title=kwargs.pop('title', 'Demo'),
            lead=self.lead,
            start_time=start,
            end_time=start + timedelta(minutes=30),
            created_by=created_by,
            **kwargs
        )


class TaskModelTest(AgendaTestBase):

    def setUp(self):
        super().setUp()
        self.task = Task.objects.create(
            company=self.company, title='Send proposal', assignment_type=Task.ASSIGNMENT_MULTIPLE, created_by=self.manager
        )
        self.task.assign([self.seller, self.other_seller])

    def test_assign_counts_users(self):
        self.assertEqual(self.task.total_assigned, 2)
        self.assertEqual(self.task.assign([self.seller]), 0)
        self.assertEqual(self.task.total_assigned, 2)

    def test_assign_skips_other_company_users(self):
        other = Company.objects.create(name='Other Co')
        outsider = User.objects.create_user(email='out@other.test', password='x', company=other)

        self.assertEqual(self.task.assign([outsider]), 0)
        self.assertEqual(self.task.total_assigned, 2)

    def test_completion_flow(self):
        self.assertTrue(self.task.complete_for(self.seller))
        self.assertEqual(self.task.status, Task.STATUS_IN_PROGRESS)
        self.assertEqual(self.task.progress(), 50)

        self.assertTrue(self.task.complete_for(self.other_seller))
        self.assertEqual(self.task.status, Task.STATUS_DONE)
        self.assertEqual(self.task.total_completed, 2)

    def test_complete_twice_or_unassigned(self):
        self.assertTrue(self.task.complete_for(self.seller))
        self.assertFalse(self.task.complete_for(self.seller))
        self.assertFalse(self.task.complete_for(self.manager))
        self.task.refresh_from_db()
        self.assertEqual(self.task.total_completed, 1)

    def test_overdue(self):
        self.task.due_date = timezone.now() - timedelta(days=1)

        self.assertTrue(self.task.is_overdue())


class MeetingModelTest(AgendaTestBase):

    def test_record_feedback(self):
        meeting = self.make_meeting(timezone.now() - timedelta(hours=2))

        meeting.record_feedback('Client wants a proposal')

        meeting.refresh_from_db()
        self.assertEqual(meeting.status, Meeting.STATUS_DONE)
        self.assertTrue(meeting.feedback_collected)

    def test_feedback_validation(self):
        meeting = self.make_meeting(timezone.now())

        with self.assertRaises(ValueError):
            meeting.record_feedback('  ')
        with self.assertRaises(ValueError):
            meeting.record_feedback('ok', status='postponed')

    def test_organizer(self):
        meeting = self.make_meeting(timezone.now(), created_by=self.manager)
        meeting.add_participant(self.seller, is_organizer=True)

        self.assertEqual(meeting.organizer(), self.seller)


class AgendaViewsTest(AgendaTestBase):

    def test_upcoming(self):
        now = timezone.now()
        soon = self.make_meeting(now + timedelta(days=1), title='Soon')
        soon.add_participant(self.seller)
        later = self.make_meeting(now + timedelta(days=20), title='Later')
        later.add_participant(self.seller)
        task = Task.objects.create(company=self.company, title='Call back')
        task.assign([self.seller])
        Reminder.objects.create(user=self.seller, description='Send contract', reminder_date=now + timedelta(hours=3))
        Reminder.objects.create(user=self.seller, description='Done', reminder_date=now, completed=True)

        self.client.force_login(self.seller)
        response = self.client.get(reverse('agenda:upcoming'))

        data = response.json()['data']
        self.assertEqual([meeting['title'] for meeting in data['meetings']], ['Soon'])
        self.assertEqual([task['title'] for task in data['tasks']], ['Call back'])
        self.assertEqual([reminder['description'] for reminder in data['reminders']], ['Send contract'])

    def test_complete_task(self):
        task = Task.objects.create(company=self.company, title='Call back')
        task.assign([self.seller])
        self.client.force_login(self.seller)

        response = self.client.post(reverse('agenda:task_complete', kwargs={'pk': task.pk}))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['data']['status'], Task.STATUS_DONE)

    def test_complete_task_not_assigned(self):
        task = Task.objects.create(company=self.company, title='Call back')
        task.assign([self.other_seller])
        self.client.force_login(self.seller)

        response = self.client.post(reverse('agenda:task_complete', kwargs={'pk': task.pk}))

        self.assertEqual(response.status_code, 400)

    def test_meeting_feedback_by_participant(self):
        meeting = self.make_meeting(timezone.now() - timedelta(hours=1))
        meeting.add_participant(self.seller)
        self.client.force_login(self.seller)

        response = self.client.post(
            reverse('agenda:meeting_feedback', kwargs={'pk': meeting.pk}),
            data=json.dumps({'feedback': 'Went well', 'status': 'done'}),
            content_type='application/json'
        )

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()['data']['feedback_collected'])

    def test_meeting_feedback_forbidden_for_outsider_seller(self):
        meeting = self.make_meeting(timezone.now() - timedelta(hours=1))
        self.client.force_login(self.other_seller)

        response = self.client.post(
            reverse('agenda:meeting_feedback', kwargs={'pk': meeting.pk}),
            data=json.dumps({'feedback': 'Went well'}),
            content_type='application/json'
        )

        self.assertEqual(response.status_code, 403)

    def test_reminder_of_other_user_is_404(self):
        reminder = Reminder.objects.create(user=self.other_seller, description='x', reminder_date=timezone.now())
        self.client.force_login(self.seller)

        response = self.client.post(reverse('agenda:reminder_complete', kwargs={'pk': reminder.pk}))

        self.assertEqual(response.status_code, 404)


class AgendaTasksTest(AgendaTestBase):

    def test_meeting_reminders_sent_once(self):
        meeting = self.make_meeting(timezone.now() + timedelta(minutes=30))
        meeting.add_participant(self.seller)
        meeting.add_participant(self.manager, is_organizer=True)
        far = self.make_meeting(timezone.now() + timedelta(hours=5))
        far.add_participant(self.seller)

        result = send_meeting_reminders()

        self.assertEqual(result, {'sent': 2, 'failed': 0})
        self.assertEqual(len(mail.outbox), 2)
        self.assertIn('Ana Souza', mail.outbox[0].body)
        self.assertEqual(send_meeting_reminders(), {'sent': 0, 'failed': 0})

    @patch('apps.agenda.tasks.send_notification_email', return_value=False)
    def test_failed_reminder_is_retried_later(self, mock_send):
        meeting = self.make_meeting(timezone.now() + timedelta(minutes=30))
        meeting.add_participant(self.seller)

        result = send_meeting_reminders()

        self.assertEqual(result, {'sent': 0, 'failed': 1})
        self.assertFalse(MeetingParticipant.objects.get(meeting=meeting).reminder_sent)

    def test_check_meeting_feedback(self):
        self.make_meeting(timezone.now() - timedelta(hours=3))
        self.make_meeting(timezone.now() - timedelta(hours=3), status=Meeting.STATUS_DONE, feedback_collected=True)
        self.make_meeting(timezone.now() + timedelta(hours=3))

        self.assertEqual(check_meeting_feedback(), {'pending_feedback': 1})

    def test_cleanup_old_tasks(self):
        old_done = Task.objects.create(company=self.company, title='Old done', status=Task.STATUS_DONE)
        old_done.assign([self.seller])
        Task.objects.filter(pk=old_done.pk).update(updated_at=timezone.now() - timedelta(days=40))

        Task.objects.create(
            company=self.company, title='Abandoned', status=Task.STATUS_OPEN,
            created_at=timezone.now() - timedelta(days=100)
        )
        Task.objects.create(company=self.company, title='Recent done', status=Task.STATUS_DONE)
        Task.objects.create(company=self.company, title='Recent open')

        result = cleanup_old_tasks()

        self.assertEqual(result, {'done_deleted': 1, 'open_deleted': 1})
        self.assertEqual(
            sorted(Task.objects.values_list('title', flat=True)), ['Recent done', 'Recent open']
        )
        self.assertFalse(TaskAssignment.objects.exists())
