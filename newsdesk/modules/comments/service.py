import logging

from ...backend.query import Query
from ...core.config import Config
from ...core.dates import utcnow

logger = logging.getLogger(__name__)

STATUSES = ('pending', 'approved', 'rejected')


class CommentService:
    """Reader comments awaiting or past moderation"""

    def __init__(self, store, collection=None, articles_collection=None):
        self.store = store
        self.collection = collection or Config.COMMENTS_COLLECTION
        self.articles_collection = articles_collection or Config.ARTICLES_COLLECTION

    def list_comments(self, status=None, article_id=None):
        query = Query(self.collection)
        if status:
            if status not in STATUSES:
                raise ValueError(f"Unknown comment status '{status}'")
            query = query.where('status', '==', status)
        if article_id:
            query = query.where('article_id', '==', article_id)
        return self.store.query(query.order_by('created_at', 'desc'))

    def get_comment(self, comment_id):
        return self.store.get(self.collection, comment_id)

    def approve(self, comment_id):
        """
        Approve a comment and count it on its article

        Returns False when the comment does not exist. Approving an already
        approved comment does not count it twice.
        """
        comment = self.get_comment(comment_id)
        if comment is None:
            return False
        if comment.get('status') == 'approved':
            return True

        self.store.update(self.collection, comment_id, {'status': 'approved', 'updated_at': utcnow()})
        if comment.get('article_id'):
            self.store.increment(self.articles_collection, comment['article_id'], 'comment_count', 1)
        logger.info(f"Comment approved: {comment_id}")
        return True

    def reject(self, comment_id):
        return self.store.update(self.collection, comment_id, {'status': 'rejected', 'updated_at': utcnow()})

    def delete_comment(self, comment_id):
        return self.store.delete(self.collection, comment_id)
