"""
Comment Moderation Routes
=========================
"""

from flask import flash, redirect, render_template, request, url_for

from . import comments_bp
from .service import CommentService, STATUSES
from ..auth.gate import requires_roles
from ..auth.roles import Role
from ...core.errors import BackendError
from ...core.extension import get_store
from ...core.logging_service import LoggingService

ROLES = (Role.ADMIN, Role.AUTHOR)
MODERATION_ERROR = 'Failed to update comment'


def _service():
    return CommentService(get_store())


def _back():
    return redirect(url_for('comments.comments_page', status=request.args.get('status') or None))


@comments_bp.route('/')
@requires_roles(*ROLES)
def comments_page():
    """Comment list, optionally filtered by status or article"""
    status = request.args.get('status') or None
    article_id = request.args.get('article') or None
    comments = []
    try:
        comments = _service().list_comments(status=status, article_id=article_id)
    except ValueError as e:
        flash(str(e), 'error')
    except BackendError as e:
        LoggingService.error('comments', 'Failed to load comments', {'error': str(e)})
        flash('Failed to load comments', 'error')
    return render_template('comments/comments.html', comments=comments, statuses=STATUSES,
                           current_status=status)


@comments_bp.route('/<comment_id>/approve', methods=['POST'])
@requires_roles(*ROLES)
def approve_comment(comment_id):
    try:
        if _service().approve(comment_id):
            LoggingService.log_user_action('comments', 'approve', details={'comment_id': comment_id})
            flash('Comment approved', 'success')
        else:
            flash('Comment not found', 'error')
    except BackendError as e:
        LoggingService.error('comments', MODERATION_ERROR, {'error': str(e)})
        flash(MODERATION_ERROR, 'error')
    return _back()


@comments_bp.route('/<comment_id>/reject', methods=['POST'])
@requires_roles(*ROLES)
def reject_comment(comment_id):
    try:
        if _service().reject(comment_id):
            flash('Comment rejected', 'success')
        else:
            flash('Comment not found', 'error')
    except BackendError as e:
        LoggingService.error('comments', MODERATION_ERROR, {'error': str(e)})
        flash(MODERATION_ERROR, 'error')
    return _back()


@comments_bp.route('/<comment_id>/delete', methods=['POST'])
@requires_roles(*ROLES)
def delete_comment(comment_id):
    try:
        if _service().delete_comment(comment_id):
            LoggingService.log_user_action('comments', 'delete', details={'comment_id': comment_id})
            flash('Comment deleted', 'success')
        else:
            flash('Comment not found', 'error')
    except BackendError as e:
        LoggingService.error('comments', 'Failed to delete comment', {'error': str(e)})
        flash('Failed to delete comment', 'error')
    return _back()
