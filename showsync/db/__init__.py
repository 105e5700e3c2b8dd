from showsync.db.models import ALL_MODELS, PageEntry, Show, SyncRun, database_proxy
from showsync.db.notifier import ChangeNotifier, Subscription
from showsync.db.session import DatabaseSessionManager

__all__ = [
    "ALL_MODELS",
    "ChangeNotifier",
    "DatabaseSessionManager",
    "PageEntry",
    "Show",
    "Subscription",
    "SyncRun",
    "database_proxy",
]
