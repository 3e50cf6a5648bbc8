"""
Test suite for Notifications module
Tests: visibility rules, unread counts, polling, system events, room broadcast
"""
import json
from unittest.mock import MagicMock, patch

from django.core.cache import cache
from django.test import TestCase, override_settings
from rest_framework import status

from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.notifications.broadcast import ADMIN_ROOM, channel_for, publish, user_room
from backend.notifications.models import Notification
from backend.notifications.services import create_notification, notify_user, trigger_system_notification


class NotificationServiceTests(TestCase):

    def test_system_event_is_admin_only(self):
        notification = trigger_system_notification('low-stock', {'product': 'Aspirin', 'stock': 2})
        self.assertTrue(notification.admin_only)
        self.assertIsNone(notification.user)
        self.assertEqual(notification.type, 'inventory')
        self.assertEqual(notification.message, 'Aspirin is low on stock (2 left)')
        self.assertEqual(notification.data['event'], 'low-stock')

    def test_missing_template_values_render_blank(self):
        notification = trigger_system_notification('payment-failed', {'order_id': 7})
        self.assertEqual(notification.message, 'Payment failed for order #7: ')

    def test_unknown_event_is_ignored(self):
        self.assertIsNone(trigger_system_notification('meteor-strike', {}))
        self.assertFalse(Notification.objects.exists())

    def test_notify_user_without_user(self):
        self.assertIsNone(notify_user(None, 'order', 'Title', 'Message'))
        self.assertFalse(Notification.objects.exists())


class BroadcastTests(TestCase):

    def test_publish_without_broker(self):
        """Local memory cache has no broker; publishing is a no-op"""
        self.assertFalse(publish(ADMIN_ROOM, 'notification', {'id': 1}))

    @override_settings(NOTIFICATION_CHANNEL_PREFIX='test:notifications')
    @patch('backend.notifications.broadcast.get_redis_connection')
    def test_publish_to_room_channel(self, mock_connection):
        conn = MagicMock()
        mock_connection.return_value = conn
        self.assertTrue(publish(user_room(5), 'notification', {'id': 1}))

        channel, message = conn.publish.call_args[0]
        self.assertEqual(channel, 'test:notifications:user-5')
        self.assertEqual(json.loads(message), {'event': 'notification', 'room': 'user-5', 'payload': {'id': 1}})

    @patch('backend.notifications.broadcast.get_redis_connection')
    def test_broker_failure_does_not_raise(self, mock_connection):
        mock_connection.return_value.publish.side_effect = ConnectionError('down')
        self.assertFalse(publish(ADMIN_ROOM, 'notification', {}))

    @patch('backend.notifications.broadcast.get_redis_connection')
    def test_broadcast_after_commit(self, mock_connection):
        """User notifications go to the user's room once the transaction commits"""
        conn = MagicMock()
        mock_connection.return_value = conn
        user = TestDataFactory.create_user()

        with self.captureOnCommitCallbacks(execute=True):
            create_notification('order', 'Order updated', 'Shipped', user=user)
            conn.publish.assert_not_called()

        channels = [call[0][0] for call in conn.publish.call_args_list]
        self.assertIn(channel_for(user_room(user.pk)), channels)

    @patch('backend.notifications.broadcast.get_redis_connection')
    def test_admin_notifications_go_to_admin_room(self, mock_connection):
        conn = MagicMock()
        mock_connection.return_value = conn
        with self.captureOnCommitCallbacks(execute=True):
            trigger_system_notification('new-contact', {'name': 'Jane'})
        self.assertIn(channel_for(ADMIN_ROOM), [call[0][0] for call in conn.publish.call_args_list])


class NotificationAPITests(TestCase):

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()

    def test_user_sees_only_own_notifications(self):
        own = TestDataFactory.create_notification(user=self.user)
        TestDataFactory.create_notification()
        TestDataFactory.create_notification(user=TestDataFactory.create_user())
        self.client.authenticate_user(self.user)

        response = self.client.get('/api/notifications/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([n['id'] for n in response.data['notifications']], [own.id])
        self.assertEqual(response.data['unread_count'], 1)

    def test_admin_sees_admin_notifications(self):
        TestDataFactory.create_notification()
        TestDataFactory.create_notification(user=self.admin)
        TestDataFactory.create_notification(user=self.user)
        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/notifications/')
        self.assertEqual(len(response.data['notifications']), 2)

    def test_filter_by_read(self):
        TestDataFactory.create_notification(user=self.user, read=True)
        unread = TestDataFactory.create_notification(user=self.user)
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/notifications/?read=false')
        self.assertEqual([n['id'] for n in response.data['notifications']], [unread.id])

    def test_mark_read_updates_count(self):
        notification = TestDataFactory.create_notification(user=self.user)
        self.client.authenticate_user(self.user)
        self.assertEqual(self.client.get('/api/notifications/unread-count/').data['count'], 1)

        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.put(f'/api/notifications/{notification.id}/read/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['read'])
        self.assertIsNotNone(response.data['read_at'])
        self.assertEqual(self.client.get('/api/notifications/unread-count/').data['count'], 0)

    def test_cannot_mark_other_users_notification(self):
        other = TestDataFactory.create_notification(user=TestDataFactory.create_user())
        self.client.authenticate_user(self.user)
        response = self.client.put(f'/api/notifications/{other.id}/read/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_mark_all_read(self):
        TestDataFactory.create_notification(user=self.user)
        TestDataFactory.create_notification(user=self.user)
        TestDataFactory.create_notification()
        self.client.authenticate_user(self.user)
        self.client.get('/api/notifications/unread-count/')

        response = self.client.put('/api/notifications/mark-all-read/')
        self.assertEqual(response.data['updated'], 2)
        self.assertEqual(self.client.get('/api/notifications/unread-count/').data['count'], 0)
        self.assertTrue(Notification.objects.filter(user__isnull=True, read=False).exists())

    def test_poll_since(self):
        first = TestDataFactory.create_notification(user=self.user)
        second = TestDataFactory.create_notification(user=self.user)
        self.client.authenticate_user(self.user)

        response = self.client.get(f'/api/notifications/poll/?since={first.id}')
        self.assertEqual([n['id'] for n in response.data['notifications']], [second.id])
        self.assertEqual(response.data['latest_id'], second.id)

        response = self.client.get(f'/api/notifications/poll/?since={second.id}')
        self.assertEqual(response.data['notifications'], [])
        self.assertEqual(response.data['latest_id'], second.id)

    def test_poll_invalid_since(self):
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/notifications/poll/?since=yesterday')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_admin_creates_user_notification(self):
        self.client.authenticate_user(self.admin)
        response = self.client.post('/api/notifications/', {
            'type': 'system', 'title': 'Pharmacy closed', 'message': 'Closed Monday', 'user_id': self.user.id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['user'], self.user.id)
        self.assertFalse(response.data['admin_only'])

    def test_customer_cannot_create_notification(self):
        self.client.authenticate_user(self.user)
        response = self.client.post('/api/notifications/', {'title': 'x', 'message': 'y'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_delete(self):
        notification = TestDataFactory.create_notification(user=self.user)
        self.client.authenticate_user(self.user)
        response = self.client.delete(f'/api/notifications/{notification.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Notification.objects.filter(pk=notification.pk).exists())

    def test_stats(self):
        TestDataFactory.create_notification(type='order')
        TestDataFactory.create_notification(type='order', read=True)
        TestDataFactory.create_notification(type='contact')
        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/notifications/stats/overview/')
        self.assertEqual(response.data['total'], 3)
        self.assertEqual(response.data['unread'], 2)
        self.assertEqual(response.data['today'], 3)
        self.assertEqual(response.data['type_counts'], {'order': 2, 'contact': 1})
