"""
Admin Dashboard Routes
======================

Dashboard page and its JSON stats endpoint. Both take a ``preset`` or, for
a custom range, ``start``/``end`` (YYYY-MM-DD or RFC 3339); without them
the current week is shown.

Each signed-in user has one dashboard controller. Every stats request
takes the next generation number and echoes it back; a request overtaken
by a newer one from the same user answers 409 instead of stale numbers.
"""

from flask import jsonify, render_template, request

from . import dashboard_bp
from .stats import PRESETS, date_value, parse_range_args
from ..auth.gate import current_session, requires_roles
from ...core.extension import get_extension
from ...core.logging_service import LoggingService

SUPERSEDED = 'Superseded by a newer request'


def _controller():
    return get_extension().dashboards.for_user(current_session().user_id)


@dashboard_bp.route('/')
@dashboard_bp.route('/dashboard')
@requires_roles()
def dashboard():
    """Main admin dashboard"""
    try:
        date_range, preset = parse_range_args(request.args)
    except (TypeError, ValueError) as e:
        return render_template('dashboard/dashboard.html', state=None, presets=PRESETS,
                               range_error=str(e), date_value=date_value), 400

    state = _controller().load(date_range, preset)
    if state.error:
        LoggingService.warning('dashboard', 'Dashboard rendered without stats')
    return render_template('dashboard/dashboard.html', state=state, presets=PRESETS,
                           range_error=None, date_value=date_value)


@dashboard_bp.route('/api/stats')
@requires_roles(api=True)
def stats_api():
    """Dashboard stats for a date range (API endpoint)"""
    try:
        date_range, preset = parse_range_args(request.args)
    except (TypeError, ValueError) as e:
        return jsonify({'error': str(e)}), 400

    controller = _controller()
    ticket = controller.begin(date_range, preset)
    state = controller.settle(ticket, date_range)
    if state.generation != ticket:
        return jsonify({'error': SUPERSEDED, 'generation': ticket}), 409
    if state.error:
        return jsonify(state.to_dict()), 500
    return jsonify(state.to_dict())
