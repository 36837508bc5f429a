"""
Contact Inbox Routes
====================

Admin only.
"""

from flask import flash, redirect, render_template, request, url_for

from . import contact_bp
from .service import ContactService
from ..auth.gate import requires_roles
from ..auth.roles import Role
from ...core.errors import BackendError
from ...core.extension import get_store
from ...core.logging_service import LoggingService

UPDATE_ERROR = 'Failed to update message'


def _service():
    return ContactService(get_store())


@contact_bp.route('/')
@requires_roles(Role.ADMIN)
def messages_page():
    unread_only = request.args.get('unread') in ('1', 'true')
    messages = []
    try:
        messages = _service().list_messages(unread_only=unread_only)
    except BackendError as e:
        LoggingService.error('contact', 'Failed to load messages', {'error': str(e)})
        flash('Failed to load messages', 'error')
    return render_template('contact/messages.html', messages=messages, unread_only=unread_only)


@contact_bp.route('/<message_id>')
@requires_roles(Role.ADMIN)
def view_message(message_id):
    """Show one message; opening it marks it read"""
    try:
        message = _service().get_message(message_id)
        if message is not None and not message.get('read'):
            _service().mark_read(message_id)
            message['read'] = True
    except BackendError as e:
        LoggingService.error('contact', 'Failed to load message', {'error': str(e)})
        flash('Failed to load message', 'error')
        return redirect(url_for('contact.messages_page'))

    if message is None:
        flash('Message not found', 'error')
        return redirect(url_for('contact.messages_page'))
    return render_template('contact/message.html', message=message)


@contact_bp.route('/<message_id>/read', methods=['POST'])
@requires_roles(Role.ADMIN)
def toggle_read(message_id):
    read = request.form.get('read', '1') in ('1', 'true')
    try:
        if not _service().mark_read(message_id, read):
            flash('Message not found', 'error')
    except BackendError as e:
        LoggingService.error('contact', UPDATE_ERROR, {'error': str(e)})
        flash(UPDATE_ERROR, 'error')
    return redirect(url_for('contact.messages_page'))


@contact_bp.route('/<message_id>/replied', methods=['POST'])
@requires_roles(Role.ADMIN)
def mark_replied(message_id):
    try:
        if _service().mark_replied(message_id):
            flash('Message marked as replied', 'success')
        else:
            flash('Message not found', 'error')
    except BackendError as e:
        LoggingService.error('contact', UPDATE_ERROR, {'error': str(e)})
        flash(UPDATE_ERROR, 'error')
    return redirect(url_for('contact.messages_page'))


@contact_bp.route('/<message_id>/delete', methods=['POST'])
@requires_roles(Role.ADMIN)
def delete_message(message_id):
    try:
        if _service().delete_message(message_id):
            LoggingService.log_user_action('contact', 'delete', details={'message_id': message_id})
            flash('Message deleted', 'success')
        else:
            flash('Message not found', 'error')
    except BackendError as e:
        LoggingService.error('contact', 'Failed to delete message', {'error': str(e)})
        flash('Failed to delete message', 'error')
    return redirect(url_for('contact.messages_page'))
