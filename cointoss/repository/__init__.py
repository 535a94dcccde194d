from .change_feed import ResultFeed, Subscription
from .session_repository import SessionRepository, StoreError

__all__ = ['ResultFeed', 'Subscription', 'SessionRepository', 'StoreError']
