"""
Newsletter Admin Routes
=======================
"""

from flask import Response, flash, jsonify, redirect, render_template, request, url_for

from . import newsletter_bp
from .service import NewsletterService
from ..auth.gate import requires_roles
from ..auth.roles import Role
from ...core.dates import utcnow
from ...core.errors import BackendError
from ...core.extension import get_store
from ...core.logging_service import LoggingService

ROLES = (Role.ADMIN, Role.AUTHOR)
UPDATE_ERROR = 'Failed to update subscriber'


def _service():
    return NewsletterService(get_store())


@newsletter_bp.route('/')
@requires_roles(*ROLES)
def subscribers_page():
    active_only = request.args.get('active') in ('1', 'true')
    subscribers = []
    try:
        subscribers = _service().list_subscribers(active_only=active_only)
    except BackendError as e:
        LoggingService.error('newsletter', 'Failed to load subscribers', {'error': str(e)})
        flash('Failed to load subscribers', 'error')
    return render_template('newsletter/subscribers.html', subscribers=subscribers,
                           active_only=active_only)


@newsletter_bp.route('/<subscriber_id>/unsubscribe', methods=['POST'])
@requires_roles(*ROLES)
def unsubscribe(subscriber_id):
    try:
        if _service().set_active(subscriber_id, False):
            flash('Subscriber unsubscribed', 'success')
        else:
            flash('Subscriber not found', 'error')
    except BackendError as e:
        LoggingService.error('newsletter', UPDATE_ERROR, {'error': str(e)})
        flash(UPDATE_ERROR, 'error')
    return redirect(url_for('newsletter.subscribers_page'))


@newsletter_bp.route('/<subscriber_id>/reactivate', methods=['POST'])
@requires_roles(*ROLES)
def reactivate(subscriber_id):
    try:
        if _service().set_active(subscriber_id, True):
            flash('Subscriber reactivated', 'success')
        else:
            flash('Subscriber not found', 'error')
    except BackendError as e:
        LoggingService.error('newsletter', UPDATE_ERROR, {'error': str(e)})
        flash(UPDATE_ERROR, 'error')
    return redirect(url_for('newsletter.subscribers_page'))


@newsletter_bp.route('/<subscriber_id>/delete', methods=['POST'])
@requires_roles(*ROLES)
def delete_subscriber(subscriber_id):
    try:
        if _service().delete_subscriber(subscriber_id):
            LoggingService.log_user_action('newsletter', 'delete', details={'subscriber_id': subscriber_id})
            flash('Subscriber deleted', 'success')
        else:
            flash('Subscriber not found', 'error')
    except BackendError as e:
        LoggingService.error('newsletter', 'Failed to delete subscriber', {'error': str(e)})
        flash('Failed to delete subscriber', 'error')
    return redirect(url_for('newsletter.subscribers_page'))


@newsletter_bp.route('/export')
@requires_roles(*ROLES, api=True)
def export_subscribers():
    """Export active subscribers as CSV"""
    try:
        body = _service().export_csv()
    except BackendError as e:
        LoggingService.error('newsletter', 'Failed to export subscribers', {'error': str(e)})
        return jsonify({'error': 'Failed to export subscribers'}), 500

    LoggingService.log_user_action('newsletter', 'export')
    filename = f"subscribers-{utcnow().strftime('%Y-%m-%d')}.csv"
    return Response(body, mimetype='text/csv',
                    headers={'Content-Disposition': f'attachment; filename={filename}'})
