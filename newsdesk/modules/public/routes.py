"""
Public Routes
=============

Provides:
- GET /                           -- landing page linking to the admin
- POST /api/contact               -- contact form submission
- POST /api/newsletter/subscribe  -- newsletter signup (409 when already subscribed)
- POST /api/newsletter/unsubscribe
"""

import logging

from flask import jsonify, render_template, request
from flask_cors import cross_origin

from . import public_bp
from ..contact.service import ContactService
from ..newsletter.service import AlreadySubscribedError, NewsletterService
from ...core.errors import BackendError
from ...core.extension import get_store
from ...core.logging_service import LoggingService

logger = logging.getLogger(__name__)

def _payload():
    return request.get_json(silent=True) or request.form.to_dict()


@public_bp.route('/')
def index():
    """Landing page"""
    return render_template('public/index.html')


@public_bp.route('/api/contact', methods=['POST', 'OPTIONS'])
@cross_origin(supports_credentials=False)
def submit_contact():
    data = _payload()
    try:
        message_id = ContactService(get_store()).create_message(
            data.get('name'), data.get('email'), data.get('subject'), data.get('message'))
    except ValueError as e:
        return jsonify({'success': False, 'error': str(e)}), 400
    except BackendError as e:
        LoggingService.error('contact', 'Failed to store contact message', {'error': str(e)})
        return jsonify({'success': False, 'error': 'Could not send your message. Please try again.'}), 500

    return jsonify({'success': True, 'id': message_id}), 201


@public_bp.route('/api/newsletter/subscribe', methods=['POST', 'OPTIONS'])
@cross_origin(supports_credentials=False)
def subscribe():
    data = _payload()
    try:
        subscriber_id = NewsletterService(get_store()).subscribe(data.get('email'), data.get('name'))
    except AlreadySubscribedError as e:
        return jsonify({'success': False, 'error': str(e)}), 409
    except ValueError as e:
        return jsonify({'success': False, 'error': str(e)}), 400
    except BackendError as e:
        LoggingService.error('newsletter', 'Subscribe failed', {'error': str(e)})
        return jsonify({'success': False, 'error': 'Subscription failed. Please try again.'}), 500

    return jsonify({'success': True, 'id': subscriber_id, 'message': 'Successfully subscribed!'}), 201


@public_bp.route('/api/newsletter/unsubscribe', methods=['POST', 'OPTIONS'])
@cross_origin(supports_credentials=False)
def unsubscribe():
    email = _payload().get('email')
    if not email:
        return jsonify({'success': False, 'error': 'Email is required'}), 400

    try:
        found = NewsletterService(get_store()).unsubscribe_email(email)
    except BackendError as e:
        LoggingService.error('newsletter', 'Unsubscribe failed', {'error': str(e)})
        return jsonify({'success': False, 'error': 'Unsubscribe failed. Please try again.'}), 500

    if not found:
        return jsonify({'success': False, 'error': 'Email not found'}), 404
    logger.info("Subscriber unsubscribed via public endpoint")
    return jsonify({'success': True, 'message': 'You have been unsubscribed'})
