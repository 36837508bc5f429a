"""
News Admin Routes
=================

Article list and editor pages (plain form posts) plus a JSON API for
scripted clients. Authors only ever see and change their own articles.
"""

from flask import flash, jsonify, redirect, render_template, request, url_for

from . import news_bp
from .service import ArticleService, STATUSES
from ..categories.service import CategoryService
from ..auth.gate import current_session, requires_roles
from ..auth.roles import Role
from ...core.errors import BackendError
from ...core.extension import get_store
from ...core.logging_service import LoggingService

LOAD_ERROR = 'Failed to load articles'
SAVE_ERROR = 'Failed to save article'


def _service():
    return ArticleService(get_store())


def _own_articles_only():
    session = current_session()
    return session.role is Role.AUTHOR


def _may_change(article):
    if not _own_articles_only():
        return True
    return article.get('author_id') == current_session().user_id


def _load_for_change(article_id):
    """Article the current user may change, or None (treated as not found)"""
    article = _service().get_article(article_id)
    if article is None or not _may_change(article):
        return None
    return article


def _json_body():
    """Request JSON as a dict; None when the body is not a JSON object"""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    return data if isinstance(data, dict) else None


def _list_args():
    featured = request.args.get('featured')
    return {
        'status': request.args.get('status') or None,
        'featured': None if featured in (None, '') else featured.lower() in ('1', 'true', 'yes'),
        'category_id': request.args.get('category') or None,
        'order_by': request.args.get('order_by', 'created_at'),
        'direction': request.args.get('direction', 'desc'),
        'limit': request.args.get('limit', type=int),
        'offset': request.args.get('offset', 0, type=int),
        'author_id': current_session().user_id if _own_articles_only() else None,
    }


@news_bp.route('/')
@requires_roles()
def articles_page():
    """Article management page"""
    articles = []
    try:
        articles = _service().list_articles(**_list_args())
    except ValueError as e:
        flash(str(e), 'error')
    except BackendError as e:
        LoggingService.error('articles', LOAD_ERROR, {'error': str(e)})
        flash(LOAD_ERROR, 'error')
    return render_template('news/articles.html', articles=articles, statuses=STATUSES)


@news_bp.route('/api/articles', methods=['GET'])
@requires_roles(api=True)
def get_articles():
    """Get articles (API endpoint)"""
    try:
        return jsonify(_service().list_articles(**_list_args()))
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except BackendError as e:
        LoggingService.error('articles', LOAD_ERROR, {'error': str(e)})
        return jsonify({'error': LOAD_ERROR}), 500


@news_bp.route('/api/articles/<article_id>', methods=['GET'])
@requires_roles(api=True)
def get_article(article_id):
    """Get a single article (API endpoint)"""
    try:
        article = _service().get_article(article_id)
    except BackendError as e:
        LoggingService.error('articles', LOAD_ERROR, {'error': str(e), 'article_id': article_id})
        return jsonify({'error': LOAD_ERROR}), 500

    if article is None or not _may_change(article):
        return jsonify({'error': 'Article not found'}), 404
    return jsonify(article)


@news_bp.route('/api/articles', methods=['POST'])
@requires_roles(api=True)
def create_article():
    """Create a new article (API endpoint)"""
    data = _json_body()
    if data is None:
        return jsonify({'error': 'Expected a JSON object'}), 400

    try:
        article_id = _service().create_article(data, author_id=current_session().user_id)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except BackendError as e:
        LoggingService.error('articles', SAVE_ERROR, {'error': str(e)})
        return jsonify({'error': SAVE_ERROR}), 500

    LoggingService.log_user_action('articles', 'create', details={'article_id': article_id})
    return jsonify({'success': True, 'id': article_id}), 201


@news_bp.route('/api/articles/<article_id>', methods=['PUT'])
@requires_roles(api=True)
def update_article(article_id):
    """Update an article (API endpoint)"""
    data = _json_body()
    if data is None:
        return jsonify({'error': 'Expected a JSON object'}), 400

    try:
        if _load_for_change(article_id) is None:
            return jsonify({'error': 'Article not found'}), 404
        updated = _service().update_article(article_id, data)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except BackendError as e:
        LoggingService.error('articles', SAVE_ERROR, {'error': str(e), 'article_id': article_id})
        return jsonify({'error': SAVE_ERROR}), 500

    if not updated:
        return jsonify({'error': 'Article not found'}), 404
    return jsonify({'success': True, 'message': 'Article updated successfully'})


@news_bp.route('/api/articles/<article_id>', methods=['DELETE'])
@requires_roles(api=True)
def delete_article(article_id):
    """Delete an article (API endpoint)"""
    try:
        if _load_for_change(article_id) is None:
            return jsonify({'error': 'Article not found'}), 404
        deleted = _service().delete_article(article_id)
    except BackendError as e:
        LoggingService.error('articles', 'Failed to delete article', {'error': str(e), 'article_id': article_id})
        return jsonify({'error': 'Failed to delete article'}), 500

    if not deleted:
        return jsonify({'error': 'Article not found'}), 404
    LoggingService.log_user_action('articles', 'delete', details={'article_id': article_id})
    return jsonify({'success': True})


@news_bp.route('/api/articles/<article_id>/status', methods=['POST'])
@requires_roles(api=True)
def set_article_status(article_id):
    """Change article status (API endpoint)"""
    status = (_json_body() or {}).get('status')
    if status not in STATUSES:
        return jsonify({'error': f"Status must be one of: {', '.join(STATUSES)}"}), 400

    try:
        if _load_for_change(article_id) is None:
            return jsonify({'error': 'Article not found'}), 404
        _service().set_status(article_id, status)
    except BackendError as e:
        LoggingService.error('articles', SAVE_ERROR, {'error': str(e), 'article_id': article_id})
        return jsonify({'error': SAVE_ERROR}), 500

    LoggingService.log_user_action('articles', 'set_status', details={'article_id': article_id, 'status': status})
    return jsonify({'success': True, 'status': status})


@news_bp.route('/api/articles/<article_id>/featured', methods=['POST'])
@requires_roles(api=True)
def set_article_featured(article_id):
    """Set or clear the featured flag (API endpoint)"""
    featured = bool((_json_body() or {}).get('featured'))

    try:
        if _load_for_change(article_id) is None:
            return jsonify({'error': 'Article not found'}), 404
        _service().set_featured(article_id, featured)
    except BackendError as e:
        LoggingService.error('articles', SAVE_ERROR, {'error': str(e), 'article_id': article_id})
        return jsonify({'error': SAVE_ERROR}), 500

    return jsonify({'success': True, 'featured': featured})


# --- editor pages ---

def _form_data():
    return {
        'title': request.form.get('title', '').strip(),
        'content': request.form.get('content', ''),
        'excerpt': request.form.get('excerpt', '').strip(),
        'image_url': request.form.get('image_url', '').strip(),
        'status': request.form.get('status', 'draft'),
        'featured': request.form.get('featured') in ('on', '1', 'true'),
        'category_ids': request.form.getlist('category_ids'),
    }


def _active_categories():
    try:
        return CategoryService(get_store()).list_categories(active_only=True)
    except BackendError as e:
        LoggingService.error('articles', 'Failed to load categories', {'error': str(e)})
        return []


def _editor(article, status=200):
    return render_template('news/edit.html', article=article, statuses=STATUSES,
                           categories=_active_categories()), status


@news_bp.route('/new', methods=['GET', 'POST'])
@requires_roles()
def new_article():
    """Article editor for a new article"""
    if request.method == 'GET':
        return _editor(None)

    data = _form_data()
    try:
        article_id = _service().create_article(data, author_id=current_session().user_id)
    except ValueError as e:
        flash(str(e), 'error')
        return _editor(data, 400)
    except BackendError as e:
        LoggingService.error('articles', SAVE_ERROR, {'error': str(e)})
        flash(SAVE_ERROR, 'error')
        return _editor(data, 500)

    LoggingService.log_user_action('articles', 'create', details={'article_id': article_id})
    flash(f"Article '{data['title']}' created", 'success')
    return redirect(url_for('news_admin.articles_page'))


@news_bp.route('/<article_id>/edit', methods=['GET', 'POST'])
@requires_roles()
def edit_article(article_id):
    try:
        article = _load_for_change(article_id)
    except BackendError as e:
        LoggingService.error('articles', LOAD_ERROR, {'error': str(e), 'article_id': article_id})
        flash(LOAD_ERROR, 'error')
        return redirect(url_for('news_admin.articles_page'))

    if article is None:
        flash('Article not found', 'error')
        return redirect(url_for('news_admin.articles_page'))
    if request.method == 'GET':
        return _editor(article)

    data = _form_data()
    try:
        _service().update_article(article_id, data)
    except ValueError as e:
        flash(str(e), 'error')
        return _editor(dict(article, **data), 400)
    except BackendError as e:
        LoggingService.error('articles', SAVE_ERROR, {'error': str(e), 'article_id': article_id})
        flash(SAVE_ERROR, 'error')
        return _editor(dict(article, **data), 500)

    LoggingService.log_user_action('articles', 'update', details={'article_id': article_id})
    flash('Article updated', 'success')
    return redirect(url_for('news_admin.articles_page'))


@news_bp.route('/<article_id>/status', methods=['POST'])
@requires_roles()
def change_status(article_id):
    status = request.form.get('status')
    if status not in STATUSES:
        flash(f"Status must be one of: {', '.join(STATUSES)}", 'error')
        return redirect(url_for('news_admin.articles_page'))

    try:
        if _load_for_change(article_id) is None:
            flash('Article not found', 'error')
        else:
            _service().set_status(article_id, status)
            LoggingService.log_user_action('articles', 'set_status',
                                           details={'article_id': article_id, 'status': status})
            flash(f"Article marked {status}", 'success')
    except BackendError as e:
        LoggingService.error('articles', SAVE_ERROR, {'error': str(e), 'article_id': article_id})
        flash(SAVE_ERROR, 'error')
    return redirect(url_for('news_admin.articles_page'))


@news_bp.route('/<article_id>/featured', methods=['POST'])
@requires_roles()
def toggle_featured(article_id):
    try:
        article = _load_for_change(article_id)
        if article is None:
            flash('Article not found', 'error')
        else:
            featured = not article.get('featured')
            _service().set_featured(article_id, featured)
            flash('Article featured' if featured else 'Article no longer featured', 'success')
    except BackendError as e:
        LoggingService.error('articles', SAVE_ERROR, {'error': str(e), 'article_id': article_id})
        flash(SAVE_ERROR, 'error')
    return redirect(url_for('news_admin.articles_page'))


@news_bp.route('/<article_id>/delete', methods=['POST'])
@requires_roles()
def remove_article(article_id):
    try:
        if _load_for_change(article_id) is None:
            flash('Article not found', 'error')
        else:
            _service().delete_article(article_id)
            LoggingService.log_user_action('articles', 'delete', details={'article_id': article_id})
            flash('Article deleted', 'success')
    except BackendError as e:
        LoggingService.error('articles', 'Failed to delete article', {'error': str(e), 'article_id': article_id})
        flash('Failed to delete article', 'error')
    return redirect(url_for('news_admin.articles_page'))
