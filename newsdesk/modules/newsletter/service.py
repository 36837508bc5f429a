"""
Newsletter Subscribers
======================

Subscriptions are keyed by email. Subscribing an address that is already
active is a conflict; subscribing a previously unsubscribed address
reactivates it.
"""

import csv
import io
import logging
import re

from ...backend.query import Query
from ...core.config import Config
from ...core.dates import utcnow

logger = logging.getLogger(__name__)

# Rejects consecutive dots, leading/trailing dots
EMAIL_REGEX = re.compile(r'^[a-zA-Z0-9_%+-]+(\.[a-zA-Z0-9_%+-]+)*@[a-zA-Z0-9-]+(\.[a-zA-Z0-9-]+)*\.[a-zA-Z]{2,}$')


class AlreadySubscribedError(ValueError):
    """The address already has an active subscription"""


class NewsletterService:
    def __init__(self, store, collection=None):
        self.store = store
        self.collection = collection or Config.NEWSLETTER_COLLECTION

    def list_subscribers(self, active_only=False):
        query = Query(self.collection)
        if active_only:
            query = query.where('active', '==', True)
        return self.store.query(query.order_by('created_at', 'desc'))

    def find_by_email(self, email):
        email = (email or '').strip().lower()
        rows = self.store.query(Query(self.collection).where('email', '==', email).limit(1))
        return rows[0] if rows else None

    def subscribe(self, email, name=None):
        """
        Add or reactivate a subscription; returns the subscriber id

        Raises:
            ValueError: malformed email
            AlreadySubscribedError: the email is already subscribed
        """
        email = (email or '').strip().lower()
        if not EMAIL_REGEX.match(email):
            raise ValueError('Please enter a valid email address')

        now = utcnow()
        existing = self.find_by_email(email)
        if existing:
            if existing.get('active'):
                raise AlreadySubscribedError('This email is already subscribed')
            self.store.update(self.collection, existing['id'], {'active': True, 'updated_at': now})
            logger.info(f"Subscriber reactivated: {existing['id']}")
            return existing['id']

        subscriber_id = self.store.add(self.collection, {
            'email': email,
            'name': (name or '').strip() or None,
            'active': True,
            'created_at': now,
            'updated_at': now,
        })
        logger.info(f"New subscriber: {subscriber_id}")
        return subscriber_id

    def unsubscribe_email(self, email):
        """Deactivate by email; False when the address is unknown"""
        existing = self.find_by_email(email)
        if existing is None:
            return False
        return self.set_active(existing['id'], False)

    def set_active(self, subscriber_id, active):
        return self.store.update(self.collection, subscriber_id, {'active': bool(active), 'updated_at': utcnow()})

    def delete_subscriber(self, subscriber_id):
        return self.store.delete(self.collection, subscriber_id)

    def export_csv(self):
        """CSV of active subscribers: email, name, subscribed date"""
        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow(['email', 'name', 'subscribed_at'])
        for subscriber in self.list_subscribers(active_only=True):
            created = subscriber.get('created_at')
            writer.writerow([
                subscriber.get('email', ''),
                subscriber.get('name') or '',
                created.strftime('%Y-%m-%d') if created else '',
            ])
        return buffer.getvalue()
