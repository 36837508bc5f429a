"""
Article Service
===============

CRUD and workflow operations for articles in the document store.
"""

import logging

from ...backend.query import Query
from ...core.config import Config
from ...core.dates import utcnow
from ...core.helpers import slugify, truncate_text

logger = logging.getLogger(__name__)

STATUSES = ('draft', 'published', 'archived')
ORDER_FIELDS = ('created_at', 'updated_at', 'published_at', 'title', 'view_count')

# Fields an editor may set directly
EDITABLE_FIELDS = ('title', 'content', 'excerpt', 'image_url', 'category_ids', 'featured', 'status')
TEXT_FIELDS = ('title', 'content', 'excerpt', 'image_url')


def check_article_data(data, require_title=False):
    """
    Reject payloads with wrongly typed fields

    Raises:
        ValueError: a text field is not a string, the title is blank, or
            category_ids is not a list of ids
    """
    for key in TEXT_FIELDS:
        if data.get(key) is not None and not isinstance(data[key], str):
            raise ValueError(f"'{key}' must be text")
    if (require_title or 'title' in data) and not (data.get('title') or '').strip():
        raise ValueError('Title is required')
    category_ids = data.get('category_ids')
    if category_ids is not None and not (
            isinstance(category_ids, list) and all(isinstance(c, str) for c in category_ids)):
        raise ValueError("'category_ids' must be a list of category ids")


class ArticleService:
    def __init__(self, store, collection=None):
        self.store = store
        self.collection = collection or Config.ARTICLES_COLLECTION

    def list_articles(self, status=None, featured=None, category_id=None, author_id=None,
                      order_by='created_at', direction='desc', limit=None, offset=0):
        """
        List articles matching all given filters

        Args:
            status: draft / published / archived
            featured: only featured (True) or non-featured (False) articles
            category_id: articles tagged with this category
            author_id: articles written by this user
            order_by: one of ORDER_FIELDS
            direction: 'asc' or 'desc'
            limit / offset: paging
        """
        if order_by not in ORDER_FIELDS:
            raise ValueError(f"Cannot order articles by '{order_by}'")

        query = Query(self.collection)
        if status:
            if status not in STATUSES:
                raise ValueError(f"Unknown article status '{status}'")
            query = query.where('status', '==', status)
        if featured is not None:
            query = query.where('featured', '==', bool(featured))
        if category_id:
            query = query.where('category_ids', 'array-contains', category_id)
        if author_id:
            query = query.where('author_id', '==', author_id)

        query = query.order_by(order_by, direction).offset(offset)
        if limit:
            query = query.limit(limit)
        return self.store.query(query)

    def get_article(self, article_id):
        return self.store.get(self.collection, article_id)

    def get_by_slug(self, slug):
        rows = self.store.query(Query(self.collection).where('slug', '==', slug).limit(1))
        return rows[0] if rows else None

    def create_article(self, data, author_id):
        """Create an article; returns its id"""
        check_article_data(data, require_title=True)
        now = utcnow()
        status = data.get('status') or 'draft'
        if status not in STATUSES:
            raise ValueError(f"Unknown article status '{status}'")

        content = data.get('content') or ''
        article = {
            'title': data['title'].strip(),
            'slug': slugify(data['title']),
            'content': content,
            'excerpt': data.get('excerpt') or truncate_text(content, 160),
            'image_url': data.get('image_url') or '',
            'status': status,
            'featured': bool(data.get('featured', False)),
            'category_ids': list(data.get('category_ids') or []),
            'author_id': author_id,
            'created_at': now,
            'updated_at': now,
            'published_at': now if status == 'published' else None,
            'view_count': 0,
            'comment_count': 0,
            'like_count': 0,
            'share_count': 0,
        }
        article_id = self.store.add(self.collection, article)
        logger.info(f"Article created: {article_id} ({article['slug']})")
        return article_id

    def update_article(self, article_id, data):
        """Update editable fields; False when the article does not exist"""
        check_article_data(data)
        changes = {key: data[key] for key in EDITABLE_FIELDS if key in data}
        if 'status' in changes and changes['status'] not in STATUSES:
            raise ValueError(f"Unknown article status '{changes['status']}'")
        if 'title' in changes:
            changes['title'] = changes['title'].strip()
            changes['slug'] = slugify(changes['title'])
        if 'featured' in changes:
            changes['featured'] = bool(changes['featured'])
        if changes.get('status') == 'published':
            current = self.get_article(article_id)
            if current is None:
                return False
            if not current.get('published_at'):
                changes['published_at'] = utcnow()
        changes['updated_at'] = utcnow()
        return self.store.update(self.collection, article_id, changes)

    def delete_article(self, article_id):
        return self.store.delete(self.collection, article_id)

    def set_status(self, article_id, status):
        """Move an article through the workflow; publishing stamps published_at"""
        if status not in STATUSES:
            raise ValueError(f"Unknown article status '{status}'")
        changes = {'status': status, 'updated_at': utcnow()}
        if status == 'published':
            changes['published_at'] = changes['updated_at']
        return self.store.update(self.collection, article_id, changes)

    def set_featured(self, article_id, featured):
        return self.store.update(self.collection, article_id,
                                 {'featured': bool(featured), 'updated_at': utcnow()})
