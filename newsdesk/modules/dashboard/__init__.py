"""
Newsdesk Dashboard Module

Admin landing page with publishing, audience and user statistics for a
selectable date range.
"""

from flask import Blueprint

dashboard_bp = Blueprint(
    'admin',
    __name__,
    url_prefix='/admin',
    template_folder='templates'
)

from . import routes
from .stats import (DashboardAggregator, DashboardStats, DateRange, percentage_change,
                    preset_range, PRESETS)
from .state import ControllerRegistry, DashboardController, DashboardState

__all__ = ['dashboard_bp', 'DashboardAggregator', 'DashboardStats', 'DateRange',
           'percentage_change', 'preset_range', 'PRESETS', 'DashboardController',
           'DashboardState', 'ControllerRegistry']
