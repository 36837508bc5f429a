"""
Category Admin Routes
=====================
"""

from flask import flash, jsonify, redirect, render_template, request, url_for

from . import categories_bp
from .service import CategoryService
from ..auth.gate import requires_roles
from ..auth.roles import Role
from ...core.errors import BackendError
from ...core.extension import get_store
from ...core.logging_service import LoggingService

ROLES = (Role.ADMIN, Role.AUTHOR)
GENERIC_ERROR = 'Something went wrong while saving the category'


def _service():
    return CategoryService(get_store())


def _form_data():
    return {
        'name': request.form.get('name', '').strip(),
        'description': request.form.get('description', '').strip(),
        'order': request.form.get('order', 0, type=int),
        'active': request.form.get('active') in ('on', '1', 'true'),
    }


@categories_bp.route('/')
@requires_roles(*ROLES)
def categories_page():
    """Category list with create form"""
    categories = []
    try:
        categories = _service().list_categories()
    except BackendError as e:
        LoggingService.error('categories', 'Failed to load categories', {'error': str(e)})
        flash('Failed to load categories', 'error')
    return render_template('categories/categories.html', categories=categories)


@categories_bp.route('/create', methods=['POST'])
@requires_roles(*ROLES)
def create_category():
    data = _form_data()
    if not data['name']:
        flash('Category name is required', 'error')
        return redirect(url_for('categories.categories_page'))

    try:
        category_id = _service().create_category(data)
        LoggingService.log_user_action('categories', 'create', details={'category_id': category_id})
        flash(f"Category '{data['name']}' created", 'success')
    except BackendError as e:
        LoggingService.error('categories', GENERIC_ERROR, {'error': str(e)})
        flash(GENERIC_ERROR, 'error')
    return redirect(url_for('categories.categories_page'))


@categories_bp.route('/<category_id>/edit', methods=['GET', 'POST'])
@requires_roles(*ROLES)
def edit_category(category_id):
    try:
        category = _service().get_category(category_id)
    except BackendError as e:
        LoggingService.error('categories', 'Failed to load category', {'error': str(e)})
        flash('Failed to load category', 'error')
        return redirect(url_for('categories.categories_page'))

    if category is None:
        flash('Category not found', 'error')
        return redirect(url_for('categories.categories_page'))

    if request.method == 'POST':
        data = _form_data()
        if not data['name']:
            flash('Category name is required', 'error')
            return render_template('categories/edit.html', category=category), 400
        try:
            _service().update_category(category_id, data)
            flash('Category updated', 'success')
            return redirect(url_for('categories.categories_page'))
        except BackendError as e:
            LoggingService.error('categories', GENERIC_ERROR, {'error': str(e)})
            flash(GENERIC_ERROR, 'error')

    return render_template('categories/edit.html', category=category)


@categories_bp.route('/<category_id>/toggle', methods=['POST'])
@requires_roles(*ROLES)
def toggle_category(category_id):
    try:
        active = _service().toggle_active(category_id)
    except BackendError as e:
        LoggingService.error('categories', GENERIC_ERROR, {'error': str(e)})
        flash(GENERIC_ERROR, 'error')
        return redirect(url_for('categories.categories_page'))

    if active is None:
        flash('Category not found', 'error')
    else:
        flash('Category activated' if active else 'Category deactivated', 'success')
    return redirect(url_for('categories.categories_page'))


@categories_bp.route('/<category_id>/delete', methods=['POST'])
@requires_roles(*ROLES)
def delete_category(category_id):
    try:
        if _service().delete_category(category_id):
            LoggingService.log_user_action('categories', 'delete', details={'category_id': category_id})
            flash('Category deleted', 'success')
        else:
            flash('Category not found', 'error')
    except BackendError as e:
        LoggingService.error('categories', 'Failed to delete category', {'error': str(e)})
        flash('Failed to delete category', 'error')
    return redirect(url_for('categories.categories_page'))


@categories_bp.route('/api/categories')
@requires_roles(Role.ADMIN, Role.EDITOR, Role.AUTHOR, api=True)
def get_categories():
    """Categories for the article editor (API endpoint)"""
    try:
        active_only = request.args.get('active') in ('1', 'true')
        return jsonify(_service().list_categories(active_only=active_only))
    except BackendError as e:
        LoggingService.error('categories', 'Failed to load categories', {'error': str(e)})
        return jsonify({'error': 'Failed to load categories'}), 500
