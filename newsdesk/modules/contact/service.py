import logging
import re

from ...backend.query import Query
from ...core.config import Config
from ...core.dates import utcnow

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')


def valid_email(email):
    return bool(email) and EMAIL_PATTERN.match(email) is not None


class ContactService:
    """Messages sent through the public contact form"""

    def __init__(self, store, collection=None):
        self.store = store
        self.collection = collection or Config.CONTACT_COLLECTION

    def list_messages(self, unread_only=False):
        query = Query(self.collection)
        if unread_only:
            query = query.where('read', '==', False)
        return self.store.query(query.order_by('created_at', 'desc'))

    def get_message(self, message_id):
        return self.store.get(self.collection, message_id)

    def create_message(self, name, email, subject, message):
        """
        Store a new message from the public form

        Raises:
            ValueError: a required field is missing or the email is malformed
        """
        name, email = (name or '').strip(), (email or '').strip().lower()
        subject, message = (subject or '').strip(), (message or '').strip()
        if not (name and email and message):
            raise ValueError('Name, email and message are required')
        if not valid_email(email):
            raise ValueError('Please enter a valid email address')

        now = utcnow()
        message_id = self.store.add(self.collection, {
            'name': name,
            'email': email,
            'subject': subject,
            'message': message,
            'read': False,
            'replied': False,
            'created_at': now,
            'updated_at': now,
        })
        logger.info(f"Contact message received: {message_id}")
        return message_id

    def mark_read(self, message_id, read=True):
        return self.store.update(self.collection, message_id, {'read': bool(read), 'updated_at': utcnow()})

    def mark_replied(self, message_id):
        return self.store.update(self.collection, message_id,
                                 {'replied': True, 'read': True, 'updated_at': utcnow()})

    def delete_message(self, message_id):
        return self.store.delete(self.collection, message_id)
