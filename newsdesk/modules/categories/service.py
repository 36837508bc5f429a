import logging

from ...backend.query import Query
from ...core.config import Config
from ...core.dates import utcnow
from ...core.helpers import slugify

logger = logging.getLogger(__name__)


class CategoryService:
    """Article categories, ordered by their ``order`` field then name"""

    def __init__(self, store, collection=None):
        self.store = store
        self.collection = collection or Config.CATEGORIES_COLLECTION

    def list_categories(self, active_only=False):
        query = Query(self.collection)
        if active_only:
            query = query.where('active', '==', True)
        rows = self.store.query(query)
        return sorted(rows, key=lambda c: (c.get('order') or 0, (c.get('name') or '').lower()))

    def get_category(self, category_id):
        return self.store.get(self.collection, category_id)

    def create_category(self, data):
        now = utcnow()
        category = {
            'name': data['name'],
            'slug': slugify(data['name']),
            'description': data.get('description') or '',
            'order': int(data.get('order') or 0),
            'active': bool(data.get('active', True)),
            'article_count': 0,
            'created_at': now,
            'updated_at': now,
        }
        category_id = self.store.add(self.collection, category)
        logger.info(f"Category created: {category_id} ({category['slug']})")
        return category_id

    def update_category(self, category_id, data):
        changes = {key: data[key] for key in ('name', 'description', 'order', 'active') if key in data}
        if 'name' in changes:
            changes['slug'] = slugify(changes['name'])
        if 'order' in changes:
            changes['order'] = int(changes['order'] or 0)
        if 'active' in changes:
            changes['active'] = bool(changes['active'])
        changes['updated_at'] = utcnow()
        return self.store.update(self.collection, category_id, changes)

    def delete_category(self, category_id):
        return self.store.delete(self.collection, category_id)

    def toggle_active(self, category_id):
        """Flip the active flag; returns the new value, or None when missing"""
        category = self.get_category(category_id)
        if category is None:
            return None
        active = not category.get('active', False)
        self.store.update(self.collection, category_id, {'active': active, 'updated_at': utcnow()})
        return active
